"""Repository layer for data access.

Repositories encapsulate all database operations, providing a clean
interface between business logic and data storage.

Available repositories:
- UserRepository: accounts, plans, billing fields
- DocumentRepository: documents and their results
- ShareRepository: public share links
- WebhookFailureRepository: dead-lettered webhook events
"""
from bridge.repositories.user_repository import UserRepository
from bridge.repositories.document_repository import DocumentRepository
from bridge.repositories.share_repository import ShareRepository
from bridge.repositories.webhook_failure_repository import WebhookFailureRepository

__all__ = ["UserRepository", "DocumentRepository", "ShareRepository", "WebhookFailureRepository"]

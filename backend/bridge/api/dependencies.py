# bridge/api/dependencies.py
"""Service providers for the API routes.

Each provider is a FastAPI dependency; tests replace them through
`app.dependency_overrides`.
"""
from functools import lru_cache

from fastapi import Depends

from bridge.auth import get_user_repository
from bridge.config import settings
from bridge.core.llm.llm_client import LLMClient, build_anthropic_client
from bridge.core.storage.storage_factory import StorageBackend, get_storage_backend
from bridge.errors import ConfigurationError
from bridge.mock_responses import MockLLMClient
from bridge.repositories import (
    DocumentRepository,
    ShareRepository,
    UserRepository,
    WebhookFailureRepository,
)
from bridge.services.billing import BillingClient
from bridge.services.ingestion import DocumentIngestionService
from bridge.services.share_service import ShareService
from bridge.services.translation_pipeline import TranslationPipeline
from bridge.services.usage_ledger import UsageLedger
from bridge.services.webhooks import ClerkWebhookHandler, StripeWebhookHandler
from bridge.utils.logging import logger
from bridge.utils.notifications import EmailClient


@lru_cache
def get_storage() -> StorageBackend:
    return get_storage_backend()


@lru_cache
def get_llm_client():
    if settings.mock_mode:
        logger.warning("MOCK_MODE enabled: translations return fixed mock output")
        return MockLLMClient()
    if not settings.anthropic_api_key:
        raise ConfigurationError("ANTHROPIC_API_KEY", "translation")
    return LLMClient(
        client=build_anthropic_client(settings.anthropic_api_key, settings.llm_timeout_seconds),
        model=settings.llm_model,
        max_tokens=settings.llm_max_tokens,
        max_input_chars=settings.llm_max_input_chars,
        temperature=settings.llm_temperature,
    )


def get_document_repository() -> DocumentRepository:
    return DocumentRepository()


def get_share_repository() -> ShareRepository:
    return ShareRepository()


def get_webhook_failure_repository() -> WebhookFailureRepository:
    return WebhookFailureRepository()


def get_usage_ledger() -> UsageLedger:
    return UsageLedger()


def get_ingestion_service(
    storage: StorageBackend = Depends(get_storage),
    documents: DocumentRepository = Depends(get_document_repository),
) -> DocumentIngestionService:
    return DocumentIngestionService(storage, documents, max_upload_bytes=settings.max_upload_bytes)


def get_translation_pipeline(
    llm_client=Depends(get_llm_client),
    storage: StorageBackend = Depends(get_storage),
    documents: DocumentRepository = Depends(get_document_repository),
    ledger: UsageLedger = Depends(get_usage_ledger),
) -> TranslationPipeline:
    return TranslationPipeline(
        llm_client=llm_client,
        storage=storage,
        documents=documents,
        ledger=ledger,
        min_extracted_chars=settings.min_extracted_chars,
        max_upload_bytes=settings.max_upload_bytes,
    )


def get_share_service(
    shares: ShareRepository = Depends(get_share_repository),
    documents: DocumentRepository = Depends(get_document_repository),
    ingestion: DocumentIngestionService = Depends(get_ingestion_service),
) -> ShareService:
    return ShareService(
        shares=shares,
        documents=documents,
        ingestion=ingestion,
        app_url=settings.app_url,
        default_ttl_hours=settings.share_default_ttl_hours,
        max_ttl_hours=settings.share_max_ttl_hours,
    )


def get_billing_client() -> BillingClient:
    return BillingClient(
        api_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        price_ids=settings.price_ids,
    )


def get_email_client() -> EmailClient:
    return EmailClient(
        api_key=settings.resend_api_key,
        sender=settings.email_from,
        api_url=settings.resend_api_url,
    )


def get_stripe_webhook_handler(
    users: UserRepository = Depends(get_user_repository),
    billing: BillingClient = Depends(get_billing_client),
    email: EmailClient = Depends(get_email_client),
) -> StripeWebhookHandler:
    return StripeWebhookHandler(users=users, billing=billing, email=email, app_url=settings.app_url)


def get_clerk_webhook_handler(
    users: UserRepository = Depends(get_user_repository),
) -> ClerkWebhookHandler:
    return ClerkWebhookHandler(users=users)

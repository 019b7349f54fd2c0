"""Dead-letter table for webhook events that failed internal processing.

Webhook endpoints always acknowledge the provider; failures land here so an
operator can inspect and replay them.
"""
from sqlalchemy import Column, String, DateTime, Text
from bridge.database import Base
from bridge.db_models_documents import JSONType
from bridge.utils.dates import utcnow
from bridge.utils.id_generator import generate_id


class WebhookFailure(Base):
    __tablename__ = "webhook_failures"

    id = Column(String(36), primary_key=True, default=generate_id)
    provider = Column(String(32), nullable=False, index=True)  # stripe, clerk
    event_id = Column(String(255), nullable=True)
    event_type = Column(String(100), nullable=True)
    payload = Column(JSONType, nullable=True)
    error_message = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    resolved_at = Column(DateTime, nullable=True)

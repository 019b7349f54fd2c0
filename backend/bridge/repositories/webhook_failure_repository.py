"""Repository for the webhook dead-letter table."""
from typing import List, Optional
from contextlib import contextmanager
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from bridge.database import SessionLocal
from bridge.db_models_webhooks import WebhookFailure
from bridge.utils.dates import utcnow
from bridge.utils.logging import logger


class WebhookFailureRepository:

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def _get_session(self) -> Session:
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def record_failure(
        self,
        provider: str,
        error_message: str,
        event_id: Optional[str] = None,
        event_type: Optional[str] = None,
        payload: Optional[dict] = None,
    ) -> Optional[WebhookFailure]:
        """Store a failed event. Never raises: the webhook must still acknowledge."""
        with self._get_session() as db:
            try:
                failure = WebhookFailure(
                    provider=provider,
                    event_id=event_id,
                    event_type=event_type,
                    payload=payload,
                    error_message=error_message[:4000],
                )
                db.add(failure)
                db.commit()
                db.refresh(failure)
                return failure
            except SQLAlchemyError as e:
                # Last resort: the structured log line is the dead letter
                logger.critical(
                    "Failed to persist webhook failure",
                    extra={
                        "provider": provider,
                        "event_id": event_id,
                        "event_type": event_type,
                        "original_error": error_message,
                        "error": str(e),
                    }
                )
                db.rollback()
                return None

    def list_unresolved(self, provider: Optional[str] = None, limit: int = 100) -> List[WebhookFailure]:
        with self._get_session() as db:
            try:
                query = db.query(WebhookFailure).filter(WebhookFailure.resolved_at.is_(None))
                if provider:
                    query = query.filter(WebhookFailure.provider == provider)
                return query.order_by(WebhookFailure.created_at.desc()).limit(limit).all()
            except SQLAlchemyError as e:
                logger.error(f"Failed to list webhook failures: {e}", extra={"error": str(e)})
                return []

    def mark_resolved(self, failure_id: str) -> bool:
        with self._get_session() as db:
            try:
                updated = (
                    db.query(WebhookFailure)
                    .filter(WebhookFailure.id == failure_id, WebhookFailure.resolved_at.is_(None))
                    .update({WebhookFailure.resolved_at: utcnow()}, synchronize_session=False)
                )
                db.commit()
                return updated > 0
            except SQLAlchemyError as e:
                logger.error(f"Failed to resolve webhook failure: {e}", extra={"failure_id": failure_id, "error": str(e)})
                db.rollback()
                return False

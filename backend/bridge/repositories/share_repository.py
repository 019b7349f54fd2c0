"""Repository for share link database operations."""
from datetime import datetime
from typing import Optional
from contextlib import contextmanager
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError

from bridge.database import SessionLocal
from bridge.db_models_documents import Document, Share
from bridge.utils.logging import logger


class ShareRepository:

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def _get_session(self) -> Session:
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def create_share(
        self,
        document_id: str,
        created_by: str,
        token: str,
        expires_at: datetime,
        can_download: bool,
    ) -> Share:
        """Persist a new share. Raises on failure (including a token collision)."""
        with self._get_session() as db:
            try:
                share = Share(
                    document_id=document_id,
                    created_by=created_by,
                    token=token,
                    expires_at=expires_at,
                    can_download=can_download,
                    view_count=0,
                )
                db.add(share)
                db.commit()
                db.refresh(share)
                logger.info(
                    "Created share",
                    extra={"document_id": document_id, "user_id": created_by, "share_id": share.id}
                )
                return share
            except SQLAlchemyError as e:
                logger.error(f"Failed to create share: {e}", extra={"document_id": document_id, "error": str(e)})
                db.rollback()
                raise

    def record_view(self, token: str, now: datetime) -> Optional[Share]:
        """Count one view of an unexpired share and return it with its document and result loaded.

        The expiry check and the counter bump are one conditional UPDATE, so an
        expired share is never counted. Returns None for unknown or expired tokens.
        """
        with self._get_session() as db:
            try:
                updated = (
                    db.query(Share)
                    .filter(Share.token == token, Share.expires_at > now)
                    .update(
                        {Share.view_count: Share.view_count + 1, Share.last_viewed_at: now},
                        synchronize_session=False,
                    )
                )
                if not updated:
                    db.rollback()
                    return None
                db.commit()
                return (
                    db.query(Share)
                    .options(joinedload(Share.document).joinedload(Document.result))
                    .filter(Share.token == token)
                    .first()
                )
            except SQLAlchemyError as e:
                logger.error(f"Failed to record share view: {e}", extra={"error": str(e)})
                db.rollback()
                return None

    def get_share_by_token(self, token: str) -> Optional[Share]:
        with self._get_session() as db:
            try:
                return db.query(Share).filter(Share.token == token).first()
            except SQLAlchemyError as e:
                logger.error(f"Failed to get share: {e}", extra={"error": str(e)})
                return None

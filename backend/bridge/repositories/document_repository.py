"""Repository for document and result database operations.

Results are written inside the translation pipeline's own transaction (see
`add_result`), so the Result row and the usage increment commit together.
"""
from typing import List, Optional, Tuple
from contextlib import contextmanager
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from bridge.database import SessionLocal
from bridge.db_models_documents import Document, Result, Share
from bridge.enums import Domain
from bridge.utils.logging import logger


class DocumentRepository:
    """Repository for Document and Result rows."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def _get_session(self) -> Session:
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def session(self) -> Session:
        """Open a session for callers that need one transaction across repositories."""
        return self._session_factory()

    def create_document(
        self,
        user_id: str,
        blob_url: str,
        filename: str,
        mime_type: str,
        file_size: int,
        family_id: Optional[str] = None,
    ) -> Document:
        """Insert exactly one Document row. Page count is left empty.

        Raises:
            SQLAlchemyError: propagated so the request fails instead of
                continuing without a document
        """
        with self._get_session() as db:
            try:
                document = Document(
                    user_id=user_id,
                    family_id=family_id,
                    blob_url=blob_url,
                    filename=filename,
                    mime_type=mime_type,
                    file_size=file_size,
                )
                db.add(document)
                db.commit()
                db.refresh(document)
                logger.info(
                    "Created document record",
                    extra={"document_id": document.id, "user_id": user_id, "mime_type": mime_type}
                )
                return document
            except SQLAlchemyError as e:
                logger.error(f"Failed to create document: {e}", extra={"user_id": user_id, "error": str(e)})
                db.rollback()
                raise

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._get_session() as db:
            try:
                return db.query(Document).filter(Document.id == document_id).first()
            except SQLAlchemyError as e:
                logger.error(f"Failed to get document: {e}", extra={"document_id": document_id, "error": str(e)})
                return None

    def list_documents_for_user(self, user_id: str, limit: int = 50, offset: int = 0) -> List[Tuple[Document, Optional[Result]]]:
        """Documents owned by the user, newest first, each paired with its Result if any."""
        with self._get_session() as db:
            try:
                rows = (
                    db.query(Document, Result)
                    .outerjoin(Result, Result.document_id == Document.id)
                    .filter(Document.user_id == user_id)
                    .order_by(Document.uploaded_at.desc())
                    .offset(offset)
                    .limit(limit)
                    .all()
                )
                return [(doc, result) for doc, result in rows]
            except SQLAlchemyError as e:
                logger.error(f"Failed to list documents: {e}", extra={"user_id": user_id, "error": str(e)})
                return []

    def get_result_for_document(self, document_id: str) -> Optional[Result]:
        with self._get_session() as db:
            try:
                return db.query(Result).filter(Result.document_id == document_id).first()
            except SQLAlchemyError as e:
                logger.error(f"Failed to get result: {e}", extra={"document_id": document_id, "error": str(e)})
                return None

    @staticmethod
    def add_result(
        db: Session,
        document_id: str,
        translation_html: str,
        summary: dict,
        detected_language: str,
        target_language: str,
        domain: Optional[Domain],
        confidence: int,
        processing_time_ms: int,
    ) -> Result:
        """Stage a Result in the caller's session and flush it.

        The flush surfaces the unique document_id constraint as IntegrityError
        before the caller commits.
        """
        result = Result(
            document_id=document_id,
            translation_html=translation_html,
            summary=summary,
            detected_language=detected_language,
            target_language=target_language,
            domain=domain,
            confidence=confidence,
            processing_time_ms=processing_time_ms,
        )
        db.add(result)
        db.flush()
        return result

    def delete_document(self, document_id: str) -> bool:
        """Delete the Result, the Shares, then the Document, in one transaction.

        Returns:
            True if a document row was deleted, False otherwise
        """
        with self._get_session() as db:
            try:
                results_removed = db.query(Result).filter(Result.document_id == document_id).delete(synchronize_session=False)
                shares_removed = db.query(Share).filter(Share.document_id == document_id).delete(synchronize_session=False)
                deleted = db.query(Document).filter(Document.id == document_id).delete(synchronize_session=False)
                db.commit()
                logger.info(
                    "Deleted document rows",
                    extra={
                        "document_id": document_id,
                        "results_removed": results_removed,
                        "shares_removed": shares_removed,
                    }
                )
                return deleted > 0
            except SQLAlchemyError as e:
                logger.error(f"Failed to delete document: {e}", extra={"document_id": document_id, "error": str(e)})
                db.rollback()
                return False

"""Result access and public share links."""
from datetime import timedelta
from typing import Callable, Optional

from bridge.db_models_documents import Result, Share
from bridge.errors import NotFoundError, RequestValidationError
from bridge.repositories.document_repository import DocumentRepository
from bridge.repositories.share_repository import ShareRepository
from bridge.services.ingestion import DocumentIngestionService
from bridge.utils.dates import isoformat, utcnow
from bridge.utils.id_generator import generate_share_token
from bridge.utils.logging import logger
from bridge.utils.metrics import SHARE_VIEWS


def result_to_response(result: Result) -> dict:
    return {
        "id": result.id,
        "documentId": result.document_id,
        "translation_html": result.translation_html,
        "summary": result.summary,
        "detected_language": result.detected_language,
        "target_language": result.target_language,
        "domain": result.domain.value if result.domain else None,
        "confidence": result.confidence,
        "processing_time_ms": result.processing_time_ms,
        "createdAt": isoformat(result.created_at),
    }


class ShareService:

    def __init__(
        self,
        shares: ShareRepository,
        documents: DocumentRepository,
        ingestion: DocumentIngestionService,
        app_url: str,
        default_ttl_hours: int = 48,
        max_ttl_hours: int = 720,
        clock: Callable = utcnow,
    ):
        self.shares = shares
        self.documents = documents
        self.ingestion = ingestion
        self.app_url = app_url.rstrip("/")
        self.default_ttl_hours = default_ttl_hours
        self.max_ttl_hours = max_ttl_hours
        self.clock = clock

    def get_result(self, document_id: str, requester_id: str) -> Result:
        """Owner-only read of a document's Result."""
        self.ingestion.get_owned_document(document_id, requester_id, action="view")
        result = self.documents.get_result_for_document(document_id)
        if not result:
            raise NotFoundError("Result not found")
        return result

    def create_share(
        self,
        document_id: str,
        requester_id: str,
        ttl_hours: Optional[int] = None,
        can_download: bool = True,
    ) -> Share:
        ttl = self.default_ttl_hours if ttl_hours is None else ttl_hours
        if ttl <= 0 or ttl > self.max_ttl_hours:
            raise RequestValidationError(
                f"ttl must be between 1 and {self.max_ttl_hours} hours",
                details={"ttl": ttl},
            )

        self.ingestion.get_owned_document(document_id, requester_id, action="share")

        return self.shares.create_share(
            document_id=document_id,
            created_by=requester_id,
            token=generate_share_token(),
            expires_at=self.clock() + timedelta(hours=ttl),
            can_download=can_download,
        )

    def share_url(self, share: Share) -> str:
        return f"{self.app_url}/share/{share.token}"

    def share_to_response(self, share: Share) -> dict:
        return {
            "id": share.id,
            "token": share.token,
            "url": self.share_url(share),
            "expiresAt": isoformat(share.expires_at),
            "canDownload": share.can_download,
            "createdAt": isoformat(share.created_at),
        }

    def resolve_share(self, token: str) -> Share:
        """Return the share with document and result loaded, counting one view.

        Unknown, expired, and result-less shares all raise NotFoundError and
        are not counted.
        """
        now = self.clock()
        share = self.shares.get_share_by_token(token)
        if not share or share.expires_at <= now:
            SHARE_VIEWS.labels(outcome="not_found" if not share else "expired").inc()
            raise NotFoundError("Share link not found or expired")

        if not self.documents.get_result_for_document(share.document_id):
            SHARE_VIEWS.labels(outcome="no_result").inc()
            raise NotFoundError("Share link not found or expired")

        viewed = self.shares.record_view(token, now)
        if not viewed:
            SHARE_VIEWS.labels(outcome="expired").inc()
            raise NotFoundError("Share link not found or expired")

        SHARE_VIEWS.labels(outcome="viewed").inc()
        logger.info("Share viewed", extra={"share_id": viewed.id, "document_id": viewed.document_id})
        return viewed

    def public_view(self, share: Share) -> dict:
        """Public payload; the raw file URL is exposed only when downloads are allowed."""
        document = share.document
        return {
            "share": {
                "expiresAt": isoformat(share.expires_at),
                "canDownload": share.can_download,
                "viewCount": share.view_count,
            },
            "document": {
                "id": document.id,
                "filename": document.filename,
                "mimeType": document.mime_type,
                "uploadedAt": isoformat(document.uploaded_at),
                "url": document.blob_url if share.can_download else None,
            },
            "result": result_to_response(document.result),
        }

"""Document ingestion: upload validation, blob storage and Document records."""
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from bridge.core.storage.storage_factory import StorageBackend
from bridge.db_models_documents import Document
from bridge.errors import BridgeError, ForbiddenError, NotFoundError, UploadValidationError
from bridge.repositories.document_repository import DocumentRepository
from bridge.utils.dates import utcnow
from bridge.utils.id_generator import generate_blob_name
from bridge.utils.logging import logger
from bridge.utils.metrics import UPLOADS_TOTAL

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

# MIME type -> extension used when the original filename has none
ALLOWED_MIME_TYPES = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/jpg": ".jpg",
}

PDF_MIME_TYPE = "application/pdf"


@dataclass(frozen=True)
class StoredUpload:
    url: str
    pathname: str
    content_type: str
    size: int
    uploaded_at: datetime

    def to_response(self) -> dict:
        return {
            "url": self.url,
            "pathname": self.pathname,
            "contentType": self.content_type,
            "size": self.size,
            "uploadedAt": self.uploaded_at.isoformat() + "Z",
        }


def validate_file(mime_type: Optional[str], size: Optional[int], max_bytes: int = MAX_UPLOAD_BYTES) -> None:
    """Reject anything outside the MIME allow-list or over the size ceiling.

    Raises:
        UploadValidationError
    """
    if not mime_type or mime_type.lower() not in ALLOWED_MIME_TYPES:
        raise UploadValidationError(
            f"Unsupported file type: {mime_type or 'unknown'}. Allowed types: PDF, JPEG, PNG.",
            details={"contentType": mime_type},
        )
    if size is None or size <= 0:
        raise UploadValidationError("Uploaded file is empty")
    if size > max_bytes:
        raise UploadValidationError(
            f"File too large: {size} bytes. Maximum size is {max_bytes // (1024 * 1024)} MB.",
            details={"size": size, "maxSize": max_bytes},
        )


class DocumentIngestionService:

    def __init__(
        self,
        storage: StorageBackend,
        documents: DocumentRepository,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ):
        self.storage = storage
        self.documents = documents
        self.max_upload_bytes = max_upload_bytes

    def accept_upload(self, data: bytes, declared_mime_type: str, declared_size: Optional[int], filename: Optional[str]) -> StoredUpload:
        """Validate an upload and write it to blob storage under a random name.

        Both the declared size and the actual byte count are checked; nothing
        is written when either check fails.
        """
        try:
            validate_file(declared_mime_type, declared_size if declared_size is not None else len(data), self.max_upload_bytes)
            validate_file(declared_mime_type, len(data), self.max_upload_bytes)
        except UploadValidationError:
            UPLOADS_TOTAL.labels(outcome="rejected").inc()
            raise

        mime_type = declared_mime_type.lower()
        extension = Path(filename or "").suffix or ALLOWED_MIME_TYPES[mime_type]
        pathname = generate_blob_name(extension)

        url = self.storage.put(pathname, data, mime_type)
        UPLOADS_TOTAL.labels(outcome="stored").inc()
        logger.info(
            "Upload stored",
            extra={"pathname": pathname, "size": len(data), "content_type": mime_type, "storage": self.storage.get_storage_type()}
        )
        return StoredUpload(
            url=url,
            pathname=pathname,
            content_type=mime_type,
            size=len(data),
            uploaded_at=utcnow(),
        )

    def create_document_record(
        self,
        owner_id: str,
        storage_url: str,
        filename: str,
        mime_type: str,
        size: int,
        family_id: Optional[str] = None,
    ) -> Document:
        return self.documents.create_document(
            user_id=owner_id,
            blob_url=storage_url,
            filename=filename,
            mime_type=mime_type.lower(),
            file_size=size,
            family_id=family_id,
        )

    def get_owned_document(self, document_id: str, requester_id: str, action: str = "access") -> Document:
        """
        Raises:
            NotFoundError: no such document
            ForbiddenError: requester is not the owner
        """
        document = self.documents.get_document(document_id)
        if not document:
            raise NotFoundError("Document not found")
        if document.user_id != requester_id:
            raise ForbiddenError(f"You don't have permission to {action} this document")
        return document

    def delete_document(self, document_id: str, requester_id: str) -> Document:
        """Owner-only delete: blob first (best effort), then Result, Shares and Document rows."""
        document = self.get_owned_document(document_id, requester_id, action="delete")

        key = self.storage.key_for_url(document.blob_url)
        if key:
            try:
                self.storage.delete(key)
            except Exception as e:
                # Best effort: the rows are removed regardless
                logger.warning(
                    f"Failed to delete document blob: {e}",
                    extra={"document_id": document_id, "blob_url": document.blob_url}
                )
        else:
            logger.warning(
                "Document blob is not managed by the configured storage; leaving it",
                extra={"document_id": document_id, "blob_url": document.blob_url}
            )

        if not self.documents.delete_document(document_id):
            raise BridgeError("Failed to delete document")

        logger.info("Document deleted", extra={"document_id": document_id, "user_id": requester_id})
        return document

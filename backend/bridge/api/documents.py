# bridge/api/documents.py
"""Document, result and export endpoints (owner only)"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from bridge.api.dependencies import (
    get_document_repository,
    get_ingestion_service,
    get_share_service,
)
from bridge.auth import get_current_user
from bridge.db_models_documents import Document, Result
from bridge.db_models_users import User
from bridge.models import ExportRequest
from bridge.repositories.document_repository import DocumentRepository
from bridge.services.exporter import export_bytes
from bridge.services.ingestion import DocumentIngestionService
from bridge.services.share_service import ShareService, result_to_response
from bridge.utils.dates import isoformat
from bridge.utils.logging import logger
from bridge.utils.metrics import EXPORT_REQUESTS

router = APIRouter()


def document_to_response(document: Document, result: Optional[Result] = None) -> dict:
    return {
        "id": document.id,
        "filename": document.filename,
        "mimeType": document.mime_type,
        "fileSize": document.file_size,
        "pageCount": document.page_count,
        "url": document.blob_url,
        "uploadedAt": isoformat(document.uploaded_at),
        "hasResult": result is not None,
        "resultId": result.id if result else None,
    }


@router.get("/api/documents")
def list_documents(
    user: User = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
    limit: int = Query(50, ge=1, le=100, description="Number of documents to return"),
    offset: int = Query(0, ge=0, description="Number of documents to skip"),
):
    """Caller's documents, newest first"""
    rows = documents.list_documents_for_user(user.id, limit=limit, offset=offset)
    items = []
    for document, result in rows:
        item = document_to_response(document, result)
        item["detectedLanguage"] = result.detected_language if result else None
        item["confidence"] = result.confidence if result else None
        items.append(item)
    return {"documents": items, "limit": limit, "offset": offset}


@router.get("/api/doc/{document_id}")
def get_document(
    document_id: str,
    user: User = Depends(get_current_user),
    ingestion: DocumentIngestionService = Depends(get_ingestion_service),
    documents: DocumentRepository = Depends(get_document_repository),
):
    document = ingestion.get_owned_document(document_id, user.id, action="view")
    return document_to_response(document, documents.get_result_for_document(document_id))


@router.get("/api/doc/{document_id}/result")
def get_result(
    document_id: str,
    user: User = Depends(get_current_user),
    shares: ShareService = Depends(get_share_service),
):
    return result_to_response(shares.get_result(document_id, user.id))


@router.post("/api/doc/{document_id}/export")
def export_result(
    document_id: str,
    request: ExportRequest,
    user: User = Depends(get_current_user),
    shares: ShareService = Depends(get_share_service),
):
    """
    Download the result as json or txt.

    Raises:
        404: Document or result missing
        403: Not the owner
        501: pdf
    """
    EXPORT_REQUESTS.labels(format=request.format.value).inc()
    result = shares.get_result(document_id, user.id)
    body, filename, content_type = export_bytes(result, request.format)

    logger.info(
        "Result exported",
        extra={"user_id": user.id, "document_id": document_id, "format": request.format.value, "bytes": len(body)}
    )
    return Response(
        content=body,
        media_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/api/doc/{document_id}/delete")
def delete_document(
    document_id: str,
    user: User = Depends(get_current_user),
    ingestion: DocumentIngestionService = Depends(get_ingestion_service),
):
    """Owner-only delete of the document, its result, its shares and its file"""
    ingestion.delete_document(document_id, user.id)
    logger.info("Document deleted", extra={"user_id": user.id, "document_id": document_id})
    return {"success": True, "id": document_id}

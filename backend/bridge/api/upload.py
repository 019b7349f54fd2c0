# bridge/api/upload.py
"""File upload endpoint"""
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from bridge.api.dependencies import get_ingestion_service
from bridge.auth import get_current_user
from bridge.db_models_users import User
from bridge.services.ingestion import DocumentIngestionService
from bridge.utils.logging import logger

router = APIRouter()


@router.post("/api/upload")
async def upload_file(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    ingestion: DocumentIngestionService = Depends(get_ingestion_service),
):
    """
    Store a PDF or image in blob storage.

    Returns:
        {url, pathname, contentType, size, uploadedAt}

    Raises:
        400: Unsupported type, empty or oversized file
    """
    try:
        data = await file.read()
    except Exception as e:
        logger.error(f"Failed to read uploaded file: {e}", extra={"user_id": user.id})
        raise HTTPException(status_code=400, detail="Failed to read uploaded file")

    stored = ingestion.accept_upload(
        data=data,
        declared_mime_type=file.content_type,
        declared_size=file.size,
        filename=file.filename,
    )
    logger.info("File uploaded", extra={"user_id": user.id, "pathname": stored.pathname, "size": stored.size})
    return stored.to_response()

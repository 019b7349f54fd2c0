# bridge/api/translate.py
from fastapi import APIRouter, Depends

from bridge.api.dependencies import get_translation_pipeline
from bridge.auth import get_current_user
from bridge.db_models_users import User
from bridge.models import TranslateRequest
from bridge.services.translation_pipeline import TranslationPipeline

router = APIRouter()


@router.post("/api/translate")
async def translate_document(
    request: TranslateRequest,
    user: User = Depends(get_current_user),
    pipeline: TranslationPipeline = Depends(get_translation_pipeline),
):
    """
    Translate an uploaded file and summarize it.

    Returns:
        {documentId, resultId, translation_html, summary, detected_language,
         processing_time_ms, confidence, usage: {count, limit, remaining}}

    Raises:
        400: Invalid MIME type or size
        403: TRANSLATION_LIMIT_EXCEEDED
        409: Document already has a result
        422: No readable text in the PDF
        502: Storage fetch or generation failure
    """
    outcome = await pipeline.translate(user, request)
    return outcome.to_response()

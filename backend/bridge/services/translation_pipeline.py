"""Translation pipeline: fetch → extract → generate → validate → persist.

Runs synchronously inside one request. Every stage failure raises a
`BridgeError` carrying the stage; nothing is written for a failed request
except the Document row created before the pipeline starts.

Confidence is a structural proxy computed from the shape of the summary
(which sections are filled in), not a measure of translation quality.
"""
import base64
import time
from dataclasses import dataclass
from typing import Optional, Union

import httpx
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bridge.core.storage.storage_factory import StorageBackend
from bridge.db_models_documents import Document, Result
from bridge.db_models_users import User
from bridge.enums import Domain, PipelineStage
from bridge.errors import (
    BridgeError,
    MalformedResponseError,
    PipelineError,
    QuotaExceededError,
    ResultConflictError,
)
from bridge.models import TranslateRequest, TranslationOutput
from bridge.repositories.document_repository import DocumentRepository
from bridge.services.ingestion import PDF_MIME_TYPE, validate_file
from bridge.services.text_extraction import extract_pdf_text
from bridge.services.translation_prompt import (
    TRANSLATION_SYSTEM_PROMPT,
    create_text_message,
    create_translation_prompt,
)
from bridge.services.usage_ledger import UPGRADE_URL, UsageLedger
from bridge.utils.logging import logger
from bridge.utils.metrics import (
    TRANSLATION_LATENCY_SECONDS,
    TRANSLATIONS_COMPLETED,
    TRANSLATIONS_FAILED,
)

REQUIRED_RESPONSE_FIELDS = ("translation_html", "summary", "detected_language")

BASE_CONFIDENCE = 70
MAX_CONFIDENCE = 100


def validate_response(result: dict) -> dict:
    """Reject a generation response missing any required field.

    Raises:
        MalformedResponseError
    """
    if not isinstance(result, dict):
        raise MalformedResponseError("Translation service returned a non-object response")

    missing = [field for field in REQUIRED_RESPONSE_FIELDS if not result.get(field)]
    if missing:
        raise MalformedResponseError(
            f"Translation response missing required fields: {', '.join(missing)}",
            missing_fields=missing,
        )
    if not isinstance(result["summary"], dict):
        raise MalformedResponseError("Translation summary is not an object", missing_fields=["summary"])
    return result


def calculate_confidence(result: dict) -> int:
    """Score in [70, 100] from which summary sections are present.

    Pure function of the summary: +10 actions, +10 due dates, +5 costs,
    +5 for a purpose longer than 20 characters.
    """
    summary = result.get("summary") or {}
    score = BASE_CONFIDENCE
    if summary.get("actions"):
        score += 10
    if summary.get("due_dates"):
        score += 10
    if summary.get("costs"):
        score += 5
    if len(summary.get("purpose") or "") > 20:
        score += 5
    return min(score, MAX_CONFIDENCE)


def normalize_image_media_type(mime_type: str) -> str:
    return "image/jpeg" if mime_type == "image/jpg" else mime_type


@dataclass
class TranslationOutcome:
    document: Document
    result: Result
    usage: dict

    def to_response(self) -> dict:
        return {
            "documentId": self.document.id,
            "resultId": self.result.id,
            "translation_html": self.result.translation_html,
            "summary": self.result.summary,
            "detected_language": self.result.detected_language,
            "processing_time_ms": self.result.processing_time_ms,
            "confidence": self.result.confidence,
            "usage": self.usage,
        }


class TranslationPipeline:

    def __init__(
        self,
        llm_client,
        storage: StorageBackend,
        documents: DocumentRepository,
        ledger: UsageLedger,
        min_extracted_chars: int = 20,
        max_upload_bytes: int = 10 * 1024 * 1024,
    ):
        self.llm_client = llm_client
        self.storage = storage
        self.documents = documents
        self.ledger = ledger
        self.min_extracted_chars = min_extracted_chars
        self.max_upload_bytes = max_upload_bytes

    async def translate(self, user: User, request: TranslateRequest) -> TranslationOutcome:
        """Run the whole pipeline for one uploaded file.

        Quota is checked before the Document row is created, so a rejected
        request leaves no rows behind.
        """
        start_time = time.time()
        stage = PipelineStage.QUOTA

        validate_file(request.mime_type, request.file_size, self.max_upload_bytes)
        self.ledger.require_quota(user)

        document = self.documents.create_document(
            user_id=user.id,
            blob_url=request.file_url,
            filename=request.filename,
            mime_type=request.mime_type.lower(),
            file_size=request.file_size,
        )
        log_extra = {"user_id": user.id, "document_id": document.id}

        try:
            stage = PipelineStage.EXTRACTING
            content = await self.extract_content(document, request.target_lang, request.domain)

            stage = PipelineStage.GENERATING
            raw = await self.generate(content)

            stage = PipelineStage.VALIDATING
            output = validate_response(raw)
            confidence = calculate_confidence(output)

            stage = PipelineStage.PERSISTING
            processing_time_ms = int((time.time() - start_time) * 1000)
            result, usage = self._persist(user, document, output, request, confidence, processing_time_ms)

        except BridgeError as e:
            failed_stage = getattr(e, "stage", stage)
            TRANSLATIONS_FAILED.labels(stage=failed_stage.value).inc()
            logger.warning(
                f"Translation failed at {failed_stage.value}: {e.message}",
                extra={**log_extra, "stage": failed_stage.value, "code": e.error_code}
            )
            raise

        TRANSLATIONS_COMPLETED.inc()
        TRANSLATION_LATENCY_SECONDS.observe(time.time() - start_time)
        logger.info(
            "Translation completed",
            extra={
                **log_extra,
                "result_id": result.id,
                "confidence": confidence,
                "detected_language": result.detected_language,
                "target_language": result.target_language,
                "processing_time_ms": processing_time_ms,
            }
        )
        return TranslationOutcome(document=document, result=result, usage=usage)

    async def extract_content(self, document: Document, target_language: str, domain: Optional[Domain]) -> Union[str, list]:
        """Message content for the generation call.

        PDFs become a text message with the extracted text. Images are passed
        through as a base64 image block.
        """
        data = await self._fetch(document.blob_url)

        if document.mime_type == PDF_MIME_TYPE:
            extracted = await extract_pdf_text(data, min_chars=self.min_extracted_chars)
            return create_text_message(extracted.text, target_language, domain)

        return [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": normalize_image_media_type(document.mime_type),
                    "data": base64.standard_b64encode(data).decode("ascii"),
                },
            },
            {"type": "text", "text": create_translation_prompt(target_language, domain)},
        ]

    async def generate(self, content: Union[str, list]) -> dict:
        """One structured-generation call; returns the raw response dict."""
        response = await self.llm_client.generate_structured(
            content=content,
            system_prompt=TRANSLATION_SYSTEM_PROMPT,
            pydantic_model=TranslationOutput,
        )
        return response.get("data") or {}

    async def _fetch(self, url: str) -> bytes:
        try:
            return await self.storage.fetch(url)
        except FileNotFoundError as e:
            raise PipelineError("Document file not found in storage", stage=PipelineStage.FETCHING) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise PipelineError(f"Failed to download document: {e}", stage=PipelineStage.FETCHING) from e
        except (BotoCoreError, ClientError) as e:
            raise PipelineError(f"Failed to read document from storage: {e}", stage=PipelineStage.FETCHING) from e
        except ValueError as e:
            # Storage keys outside the storage root
            raise PipelineError(f"Invalid document location: {e}", stage=PipelineStage.FETCHING) from e

    def _persist(self, user: User, document: Document, output: dict, request: TranslateRequest, confidence: int, processing_time_ms: int):
        """Write the Result and consume one unit of quota in a single transaction."""
        db = self.documents.session()
        try:
            result = DocumentRepository.add_result(
                db,
                document_id=document.id,
                translation_html=output["translation_html"],
                summary=output["summary"],
                detected_language=output["detected_language"],
                target_language=request.target_lang,
                domain=request.domain,
                confidence=confidence,
                processing_time_ms=processing_time_ms,
            )
            if not self.ledger.record_usage(db, user.id):
                db.rollback()
                # Another request used the last unit between the check and now
                raise QuotaExceededError(
                    limit=user.translation_limit,
                    count=user.translation_limit,
                    plan=self.ledger.check_quota(user).plan.value,
                    upgrade_url=UPGRADE_URL,
                )
            usage = self.ledger.current_usage(db, user.id)
            db.commit()
            return result, usage
        except IntegrityError as e:
            db.rollback()
            raise ResultConflictError(
                "This document already has a translation",
                details={"documentId": document.id},
            ) from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to persist result: {e}", extra={"document_id": document.id, "error": str(e)})
            raise PipelineError("Failed to save translation result", stage=PipelineStage.PERSISTING) from e
        finally:
            db.close()

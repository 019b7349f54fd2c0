import asyncio
import copy

import httpx
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from prometheus_client import REGISTRY
from sqlalchemy import update

from bridge.core.storage.storage_factory import R2StorageBackend

from bridge.db_models_users import User
from bridge.enums import Domain, PipelineStage
from bridge.errors import (
    ExtractionError,
    MalformedResponseError,
    PipelineError,
    QuotaExceededError,
    ResultConflictError,
    UploadValidationError,
)
from bridge.mock_responses import MockLLMClient
from bridge.models import TranslateRequest
from bridge.services.translation_pipeline import (
    TranslationPipeline,
    calculate_confidence,
    normalize_image_media_type,
    validate_response,
)
from bridge.services.usage_ledger import UsageLedger

from conftest import SAMPLE_OUTPUT, FakeLLMClient, make_pdf


def _request(url, size, mime="application/pdf", **kwargs):
    return TranslateRequest(fileUrl=url, filename="notice.pdf", mimeType=mime, fileSize=size, **kwargs)


def _count_documents(documents, user_id):
    return len(documents.list_documents_for_user(user_id))


def _fetch_failures():
    return REGISTRY.get_sample_value("translations_failed_total", {"stage": "fetching"}) or 0


class FailingR2Client:
    """Stands in for CloudflareR2Storage; every read raises."""

    def __init__(self, error):
        self.error = error

    def get_bytes(self, key):
        raise self.error


# ---------- confidence ----------

def test_confidence_full_summary_caps_at_100():
    assert calculate_confidence(SAMPLE_OUTPUT) == 100


def test_confidence_base_only():
    assert calculate_confidence({"summary": {"purpose": "short", "actions": []}}) == 70


@pytest.mark.parametrize(
    "summary, expected",
    [
        ({"purpose": "x", "actions": ["a"]}, 80),
        ({"purpose": "x", "actions": [], "due_dates": ["Monday"]}, 80),
        ({"purpose": "x", "actions": [], "costs": ["$5"]}, 75),
        ({"purpose": "A purpose longer than twenty characters", "actions": []}, 75),
        ({"purpose": "A purpose longer than twenty characters", "actions": ["a"], "due_dates": ["d"]}, 95),
    ],
)
def test_confidence_additive_rules(summary, expected):
    assert calculate_confidence({"summary": summary}) == expected


def test_confidence_is_deterministic():
    assert calculate_confidence(SAMPLE_OUTPUT) == calculate_confidence(copy.deepcopy(SAMPLE_OUTPUT))


# ---------- response validation ----------

@pytest.mark.parametrize("field", ["translation_html", "summary", "detected_language"])
def test_validate_response_requires_fields(field):
    broken = dict(SAMPLE_OUTPUT)
    broken.pop(field)
    with pytest.raises(MalformedResponseError) as exc_info:
        validate_response(broken)
    assert field in exc_info.value.to_dict()["missing_fields"]


def test_validate_response_rejects_empty_html():
    with pytest.raises(MalformedResponseError):
        validate_response({**SAMPLE_OUTPUT, "translation_html": ""})


def test_normalize_image_media_type():
    assert normalize_image_media_type("image/jpg") == "image/jpeg"
    assert normalize_image_media_type("image/png") == "image/png"


# ---------- full pipeline ----------

def test_translate_pdf_persists_result_and_counts_usage(pipeline, llm, users, documents, user, stored_pdf):
    url, size = stored_pdf
    outcome = asyncio.run(pipeline.translate(user, _request(url, size, targetLang="en", domain=Domain.SCHOOL)))

    body = outcome.to_response()
    assert body["documentId"] == outcome.document.id
    assert body["resultId"] == outcome.result.id
    assert body["translation_html"] == SAMPLE_OUTPUT["translation_html"]
    assert body["detected_language"] == "es"
    assert body["confidence"] == 100
    assert body["usage"] == {"count": 1, "limit": 5, "remaining": 4}

    stored = documents.get_result_for_document(outcome.document.id)
    assert stored.summary == SAMPLE_OUTPUT["summary"]
    assert stored.target_language == "en"
    assert stored.domain is Domain.SCHOOL
    assert users.get_user(user.id).translation_count == 1

    prompt = llm.calls[0]["content"]
    assert isinstance(prompt, str)
    assert "Target language: en" in prompt
    assert "Document domain: school" in prompt
    assert "Document content:" in prompt
    assert "museo" in prompt


def test_translate_image_sends_base64_block(pipeline, llm, storage, user):
    url = storage.put("photo.jpg", b"\xff\xd8\xff fake jpeg bytes", "image/jpeg")
    asyncio.run(pipeline.translate(user, _request(url, 22, mime="image/jpg", targetLang="vi")))

    blocks = llm.calls[0]["content"]
    assert blocks[0]["type"] == "image"
    assert blocks[0]["source"]["media_type"] == "image/jpeg"
    assert blocks[0]["source"]["type"] == "base64"
    assert blocks[1]["type"] == "text"
    assert "Target language: vi" in blocks[1]["text"]


def test_quota_exhausted_creates_no_document(pipeline, llm, users, documents, user, stored_pdf):
    url, size = stored_pdf
    user.translation_count = 5

    with pytest.raises(QuotaExceededError):
        asyncio.run(pipeline.translate(user, _request(url, size)))

    assert _count_documents(documents, user.id) == 0
    assert llm.calls == []


def test_invalid_mime_rejected_before_any_row(pipeline, documents, user):
    with pytest.raises(UploadValidationError):
        asyncio.run(pipeline.translate(user, _request("http://testserver/files/a.doc", 10, mime="application/msword")))
    assert _count_documents(documents, user.id) == 0


def test_generation_failure_leaves_no_result_and_no_usage(storage, documents, users, user, stored_pdf):
    failing = FakeLLMClient(error=PipelineError("upstream timed out", stage=PipelineStage.GENERATING))
    pipeline = TranslationPipeline(llm_client=failing, storage=storage, documents=documents, ledger=UsageLedger())
    url, size = stored_pdf

    with pytest.raises(PipelineError):
        asyncio.run(pipeline.translate(user, _request(url, size)))

    rows = documents.list_documents_for_user(user.id)
    assert len(rows) == 1
    assert rows[0][1] is None
    assert users.get_user(user.id).translation_count == 0


def test_malformed_response_is_rejected(storage, documents, users, user, stored_pdf):
    bad = FakeLLMClient(data={"translation_html": "<p>hi</p>", "summary": {"purpose": "x", "actions": []}})
    pipeline = TranslationPipeline(llm_client=bad, storage=storage, documents=documents, ledger=UsageLedger())
    url, size = stored_pdf

    with pytest.raises(MalformedResponseError) as exc_info:
        asyncio.run(pipeline.translate(user, _request(url, size)))

    assert exc_info.value.to_dict()["stage"] == "validating"
    assert users.get_user(user.id).translation_count == 0


def test_image_only_pdf_fails_extraction(pipeline, storage, llm, user):
    data = make_pdf("")
    url = storage.put("scan.pdf", data, "application/pdf")

    with pytest.raises(ExtractionError):
        asyncio.run(pipeline.translate(user, _request(url, len(data))))
    assert llm.calls == []


def test_missing_file_fails_at_fetch(pipeline, user):
    with pytest.raises(PipelineError) as exc_info:
        asyncio.run(pipeline.translate(user, _request("http://testserver/files/gone.pdf", 100)))
    assert exc_info.value.to_dict()["stage"] == "fetching"


def test_foreign_url_download_error_fails_at_fetch(pipeline, storage, user, monkeypatch):
    async def refuse(url):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(storage, "fetch", refuse)
    with pytest.raises(PipelineError) as exc_info:
        asyncio.run(pipeline.translate(user, _request("https://elsewhere.example/notice.pdf", 100)))
    assert exc_info.value.to_dict()["stage"] == "fetching"


def test_lost_race_on_last_unit_rolls_back_result(pipeline, users, documents, user, stored_pdf):
    url, size = stored_pdf
    # Another request consumed the last unit after this request's check
    db = documents.session()
    try:
        db.execute(update(User).where(User.id == user.id).values(translation_count=5))
        db.commit()
    finally:
        db.close()

    with pytest.raises(QuotaExceededError):
        asyncio.run(pipeline.translate(user, _request(url, size)))

    rows = documents.list_documents_for_user(user.id)
    assert rows[0][1] is None
    assert users.get_user(user.id).translation_count == 5


def test_second_result_for_document_conflicts(pipeline, users, translated_document):
    document = translated_document.document
    owner = users.get_user(document.user_id)

    with pytest.raises(ResultConflictError) as exc_info:
        pipeline._persist(owner, document, validate_response(SAMPLE_OUTPUT), _request(document.blob_url, 10), 100, 5)

    assert exc_info.value.http_status == 409
    assert exc_info.value.error_code == "RESULT_ALREADY_EXISTS"
    assert users.get_user(document.user_id).translation_count == 1


def test_mock_client_returns_valid_output(storage, documents, user, stored_pdf):
    pipeline = TranslationPipeline(llm_client=MockLLMClient(), storage=storage, documents=documents, ledger=UsageLedger())
    url, size = stored_pdf
    outcome = asyncio.run(pipeline.translate(user, _request(url, size, targetLang="fr")))
    assert outcome.result.translation_html
    assert 70 <= outcome.result.confidence <= 100


def test_target_language_is_stored_on_result(pipeline, llm, documents, user, stored_pdf):
    url, size = stored_pdf
    outcome = asyncio.run(pipeline.translate(user, _request(url, size, targetLang="es")))

    stored = documents.get_result_for_document(outcome.document.id)
    assert stored.target_language == "es"
    assert 70 <= stored.confidence <= 100
    assert "Target language: es" in llm.calls[0]["content"]


def test_path_traversal_url_fails_at_fetch(pipeline, llm, users, user):
    before = _fetch_failures()

    with pytest.raises(PipelineError) as exc_info:
        asyncio.run(pipeline.translate(user, _request("http://testserver/files/../../etc/passwd", 100)))

    assert exc_info.value.to_dict()["stage"] == "fetching"
    assert exc_info.value.http_status == 502
    assert _fetch_failures() == before + 1
    assert llm.calls == []
    assert users.get_user(user.id).translation_count == 0


def test_invalid_foreign_url_fails_at_fetch(pipeline, user):
    with pytest.raises(PipelineError) as exc_info:
        asyncio.run(pipeline.translate(user, _request("https://example.com/\x00notice.pdf", 100)))
    assert exc_info.value.to_dict()["stage"] == "fetching"


@pytest.mark.parametrize(
    "error",
    [
        ClientError({"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "GetObject"),
        EndpointConnectionError(endpoint_url="https://r2.bridge.test"),
    ],
)
def test_r2_read_errors_fail_at_fetch(documents, llm, user, error):
    storage = R2StorageBackend(FailingR2Client(error), "https://files.bridge.test")
    pipeline = TranslationPipeline(llm_client=llm, storage=storage, documents=documents, ledger=UsageLedger())

    with pytest.raises(PipelineError) as exc_info:
        asyncio.run(pipeline.translate(user, _request("https://files.bridge.test/notice.pdf", 100)))

    assert exc_info.value.to_dict()["stage"] == "fetching"
    assert "storage" in exc_info.value.message
    assert llm.calls == []

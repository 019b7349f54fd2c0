import asyncio
import os
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment is fixed before any
# bridge module is imported.
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="bridge-tests-"))
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_DIR"] = str(_TMP_ROOT / "logs")
os.environ["MOCK_MODE"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOCAL_STORAGE_DIR"] = str(_TMP_ROOT / "uploads")
os.environ["LOCAL_STORAGE_BASE_URL"] = "http://testserver/files"
os.environ["APP_URL"] = "https://app.bridge.test"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_stripe_secret"
os.environ["STRIPE_PRICE_STARTER"] = "price_starter_test"
os.environ["STRIPE_PRICE_PRO"] = "price_pro_test"
os.environ["STRIPE_PRICE_ENTERPRISE"] = "price_enterprise_test"
os.environ["CLERK_WEBHOOK_SECRET"] = "whsec_YnJpZGdlLXRlc3Qtd2ViaG9vay1zaWduaW5nLWtleSE="

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from bridge import auth
from bridge.api import dependencies
from bridge.core.storage.storage_factory import LocalFilesystemBackend
from bridge.database import Base, engine, init_db
from bridge.models import TranslateRequest, TranslationOutput
from bridge.repositories import DocumentRepository, ShareRepository, UserRepository
from bridge.services.ingestion import DocumentIngestionService
from bridge.services.share_service import ShareService
from bridge.services.translation_pipeline import TranslationPipeline
from bridge.services.usage_ledger import UsageLedger
from main import app

TEST_USER_HEADER = "x-test-user-id"

SAMPLE_OUTPUT = {
    "translation_html": "<h1>Field trip</h1><p>Your child's class visits the museum on Friday.</p>",
    "summary": {
        "purpose": "Permission request for a school museum field trip",
        "actions": ["Sign the permission slip", "Pack a lunch"],
        "due_dates": ["Friday, March 14"],
        "costs": ["$15 entrance fee"],
    },
    "detected_language": "es",
}


class FakeLLMClient:
    """Returns a canned response (or raises) and records every call."""

    model = "fake"

    def __init__(self, data=None, error=None):
        self.data = SAMPLE_OUTPUT if data is None else data
        self.error = error
        self.calls = []

    async def generate_structured(self, content, system_prompt, pydantic_model):
        self.calls.append({"content": content, "system_prompt": system_prompt, "model": pydantic_model})
        if self.error:
            raise self.error
        assert pydantic_model is TranslationOutput
        return {"data": self.data, "usage": {"input_tokens": 100, "output_tokens": 50, "model": self.model}}


class FakeEmailClient:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def send(self, to, subject, html, text=None):
        if self.error:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return "email_123"


def make_pdf(text: str) -> bytes:
    import fitz

    doc = fitz.open()
    page = doc.new_page()
    if text:
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture(autouse=True)
def database():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def users():
    return UserRepository()


@pytest.fixture
def documents():
    return DocumentRepository()


@pytest.fixture
def share_repo():
    return ShareRepository()


@pytest.fixture
def storage(tmp_path):
    return LocalFilesystemBackend(tmp_path / "blobs", "http://testserver/files")


@pytest.fixture
def user(users):
    return users.create_user(user_id="user_alice", email="alice@example.com", name="Alice")


@pytest.fixture
def other_user(users):
    return users.create_user(user_id="user_bob", email="bob@example.com", name="Bob")


@pytest.fixture
def llm():
    return FakeLLMClient()


@pytest.fixture
def ingestion(storage, documents):
    return DocumentIngestionService(storage, documents)


@pytest.fixture
def pipeline(llm, storage, documents):
    return TranslationPipeline(llm_client=llm, storage=storage, documents=documents, ledger=UsageLedger())


@pytest.fixture
def share_service(share_repo, documents, ingestion):
    return ShareService(
        shares=share_repo,
        documents=documents,
        ingestion=ingestion,
        app_url="https://app.bridge.test",
    )


@pytest.fixture
def stored_pdf(storage):
    """A readable PDF already in storage; returns its durable URL."""
    data = make_pdf("Estimados padres: la clase visitara el museo el viernes. Firmen el permiso.")
    return storage.put("notice.pdf", data, "application/pdf"), len(data)


@pytest.fixture
def translated_document(user, pipeline, stored_pdf):
    """A document owned by `user` that already has a Result."""
    url, size = stored_pdf
    request = TranslateRequest(fileUrl=url, filename="notice.pdf", mimeType="application/pdf", fileSize=size)
    return asyncio.run(pipeline.translate(user, request))


def _test_user_id(request: Request) -> str:
    user_id = request.headers.get(TEST_USER_HEADER)
    if user_id:
        return user_id
    return auth.get_current_user_id(request)


@pytest.fixture
def client(storage, llm):
    """TestClient with auth keyed off a header and fakes for external providers."""
    app.dependency_overrides[auth.get_current_user_id] = _test_user_id
    app.dependency_overrides[dependencies.get_storage] = lambda: storage
    app.dependency_overrides[dependencies.get_llm_client] = lambda: llm
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user_id: str = "user_alice") -> dict:
    return {TEST_USER_HEADER: user_id}



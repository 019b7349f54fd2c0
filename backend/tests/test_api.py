import json

from sqlalchemy import update

from bridge.db_models_users import User
from bridge.enums import PipelineStage
from bridge.errors import PipelineError

from conftest import SAMPLE_OUTPUT, auth_headers, make_pdf


def _upload(client, data, content_type, filename="notice.pdf", user_id="user_alice"):
    return client.post(
        "/api/upload",
        files={"file": (filename, data, content_type)},
        headers=auth_headers(user_id),
    )


def _translate(client, upload_body, user_id="user_alice", **extra):
    payload = {
        "fileUrl": upload_body["url"],
        "filename": "notice.pdf",
        "mimeType": upload_body["contentType"],
        "fileSize": upload_body["size"],
        **extra,
    }
    return client.post("/api/translate", json=payload, headers=auth_headers(user_id))


def _translated(client):
    pdf = make_pdf("Estimados padres: reunion de padres el martes a las seis de la tarde.")
    upload = _upload(client, pdf, "application/pdf").json()
    return _translate(client, upload, targetLang="en", domain="school").json()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_metrics_endpoint(client):
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "translations_completed_total" in response.text


def test_upload_requires_auth(client):
    response = client.post("/api/upload", files={"file": ("a.pdf", b"%PDF", "application/pdf")})
    assert response.status_code == 401


def test_banned_user_is_rejected(client, users, user):
    users.set_banned(user.id, True)
    response = client.get("/api/users/me", headers=auth_headers())
    assert response.status_code == 403


def test_upload_stores_file(client, user):
    response = _upload(client, b"\x89PNG fake", "image/png", filename="photo.png")
    assert response.status_code == 200
    body = response.json()
    assert body["contentType"] == "image/png"
    assert body["size"] == 9
    assert body["pathname"].endswith(".png")
    assert body["url"].endswith(body["pathname"])


def test_upload_rejects_unsupported_type(client, user):
    response = _upload(client, b"hello", "text/plain", filename="notes.txt")
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_UPLOAD"


def test_translate_end_to_end(client, users, user):
    body = _translated(client)

    assert body["translation_html"] == SAMPLE_OUTPUT["translation_html"]
    assert body["summary"] == SAMPLE_OUTPUT["summary"]
    assert body["confidence"] == 100
    assert body["usage"] == {"count": 1, "limit": 5, "remaining": 4}
    assert users.get_user(user.id).translation_count == 1


def test_translate_quota_exceeded_response(client, documents, user):
    db = documents.session()
    db.execute(update(User).where(User.id == user.id).values(translation_count=5))
    db.commit()
    db.close()

    upload = _upload(client, make_pdf("Some readable school notice text for parents."), "application/pdf").json()
    response = _translate(client, upload)

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "TRANSLATION_LIMIT_EXCEEDED"
    assert body["limit"] == 5
    assert body["count"] == 5
    assert body["plan"] == "free"
    assert body["upgradeUrl"] == "/settings/billing"
    assert body["error"]
    assert body["message"]
    assert documents.list_documents_for_user(user.id) == []


def test_translate_invalid_type_is_400(client, user):
    response = client.post(
        "/api/translate",
        json={"fileUrl": "http://testserver/files/x.doc", "filename": "x.doc", "mimeType": "application/msword", "fileSize": 10},
        headers=auth_headers(),
    )
    assert response.status_code == 400


def test_translate_upstream_failure_is_502(client, llm, user):
    llm.error = PipelineError("Translation service timed out", stage=PipelineStage.GENERATING)
    upload = _upload(client, make_pdf("Some readable school notice text for parents."), "application/pdf").json()
    response = _translate(client, upload)

    assert response.status_code == 502
    assert response.json()["stage"] == "generating"
    assert "timed out" in response.json()["message"]


def test_translate_storage_path_escape_is_structured_502(client, user):
    response = client.post(
        "/api/translate",
        json={
            "fileUrl": "http://testserver/files/../../etc/passwd",
            "filename": "passwd.pdf",
            "mimeType": "application/pdf",
            "fileSize": 100,
        },
        headers=auth_headers(),
    )

    assert response.status_code == 502
    assert response.headers["content-type"].startswith("application/json")
    body = response.json()
    assert body["code"] == "TRANSLATION_FAILED"
    assert body["stage"] == "fetching"


def test_document_metadata_and_result(client, user):
    translated = _translated(client)
    document_id = translated["documentId"]

    meta = client.get(f"/api/doc/{document_id}", headers=auth_headers()).json()
    assert meta["hasResult"] is True
    assert meta["resultId"] == translated["resultId"]
    assert meta["mimeType"] == "application/pdf"

    result = client.get(f"/api/doc/{document_id}/result", headers=auth_headers()).json()
    assert result["translation_html"] == SAMPLE_OUTPUT["translation_html"]
    assert result["domain"] == "school"

    listing = client.get("/api/documents", headers=auth_headers()).json()
    assert [d["id"] for d in listing["documents"]] == [document_id]
    assert listing["documents"][0]["detectedLanguage"] == "es"


def test_non_owner_gets_403(client, user, other_user):
    document_id = _translated(client)["documentId"]

    for method, path in [
        ("get", f"/api/doc/{document_id}"),
        ("get", f"/api/doc/{document_id}/result"),
        ("delete", f"/api/doc/{document_id}/delete"),
    ]:
        response = getattr(client, method)(path, headers=auth_headers(other_user.id))
        assert response.status_code == 403, path

    response = client.post(f"/api/doc/{document_id}/export", json={"format": "json"}, headers=auth_headers(other_user.id))
    assert response.status_code == 403
    response = client.post("/api/share", json={"docId": document_id}, headers=auth_headers(other_user.id))
    assert response.status_code == 403


def test_unknown_document_is_404(client, user):
    assert client.get("/api/doc/missing", headers=auth_headers()).status_code == 404


def test_export_formats(client, user):
    document_id = _translated(client)["documentId"]

    as_json = client.post(f"/api/doc/{document_id}/export", json={"format": "json"}, headers=auth_headers())
    assert as_json.status_code == 200
    assert json.loads(as_json.content)["summary"] == SAMPLE_OUTPUT["summary"]
    assert f"translation-{document_id}.json" in as_json.headers["content-disposition"]

    as_txt = client.post(f"/api/doc/{document_id}/export", json={"format": "txt"}, headers=auth_headers())
    assert as_txt.status_code == 200
    assert as_txt.text.startswith("TRANSLATION")

    as_pdf = client.post(f"/api/doc/{document_id}/export", json={}, headers=auth_headers())
    assert as_pdf.status_code == 501

    invalid = client.post(f"/api/doc/{document_id}/export", json={"format": "docx"}, headers=auth_headers())
    assert invalid.status_code == 422


def test_delete_document(client, user):
    document_id = _translated(client)["documentId"]

    response = client.delete(f"/api/doc/{document_id}/delete", headers=auth_headers())
    assert response.status_code == 200
    assert client.get(f"/api/doc/{document_id}", headers=auth_headers()).status_code == 404


def test_share_roundtrip_is_public(client, user):
    document_id = _translated(client)["documentId"]

    created = client.post("/api/share", json={"docId": document_id, "ttl": 24, "canDownload": False}, headers=auth_headers())
    assert created.status_code == 200
    share = created.json()
    assert share["canDownload"] is False
    assert share["url"].endswith(share["token"])

    public = client.get(f"/api/share/{share['token']}")
    assert public.status_code == 200
    assert public.json()["document"]["url"] is None
    assert public.json()["result"]["summary"] == SAMPLE_OUTPUT["summary"]

    assert client.get("/api/share/not-a-real-token").status_code == 404


def test_share_rejects_bad_ttl(client, user):
    document_id = _translated(client)["documentId"]
    response = client.post("/api/share", json={"docId": document_id, "ttl": 0}, headers=auth_headers())
    assert response.status_code == 400


def test_users_me(client, user):
    _translated(client)
    body = client.get("/api/users/me", headers=auth_headers()).json()

    assert body["email"] == "alice@example.com"
    assert body["plan"]["plan"] == "free"
    assert body["plan"]["features"]["family_sharing"] is False
    assert body["usage"] == {"count": 1, "limit": 5, "remaining": 4}

from datetime import timedelta

import pytest

from bridge.errors import ForbiddenError, NotFoundError, RequestValidationError
from bridge.services.share_service import ShareService
from bridge.utils.dates import utcnow


def test_create_share_defaults(share_service, translated_document, user):
    before = utcnow()
    share = share_service.create_share(translated_document.document.id, user.id)

    assert len(share.token) >= 32
    assert share.can_download is True
    assert share.view_count == 0
    assert timedelta(hours=47, minutes=59) < share.expires_at - before <= timedelta(hours=48, seconds=5)

    body = share_service.share_to_response(share)
    assert body["url"] == f"https://app.bridge.test/share/{share.token}"
    assert set(body) == {"id", "token", "url", "expiresAt", "canDownload", "createdAt"}


def test_share_tokens_are_unique(share_service, translated_document, user):
    tokens = {share_service.create_share(translated_document.document.id, user.id).token for _ in range(5)}
    assert len(tokens) == 5


def test_only_owner_can_share(share_service, translated_document, other_user):
    with pytest.raises(ForbiddenError):
        share_service.create_share(translated_document.document.id, other_user.id)


@pytest.mark.parametrize("ttl", [0, -1, 721])
def test_share_ttl_bounds(share_service, translated_document, user, ttl):
    with pytest.raises(RequestValidationError):
        share_service.create_share(translated_document.document.id, user.id, ttl_hours=ttl)


def test_resolve_counts_views(share_service, share_repo, translated_document, user):
    share = share_service.create_share(translated_document.document.id, user.id, ttl_hours=1)

    share_service.resolve_share(share.token)
    viewed = share_service.resolve_share(share.token)

    assert viewed.view_count == 2
    assert viewed.last_viewed_at is not None
    assert viewed.document.result.id == translated_document.result.id


def test_expired_share_is_not_found_and_not_counted(share_repo, documents, ingestion, translated_document, user):
    now = utcnow()
    creating = ShareService(share_repo, documents, ingestion, app_url="https://app.bridge.test", clock=lambda: now)
    share = creating.create_share(translated_document.document.id, user.id, ttl_hours=1)

    later = ShareService(
        share_repo, documents, ingestion,
        app_url="https://app.bridge.test",
        clock=lambda: now + timedelta(hours=1),
    )
    with pytest.raises(NotFoundError):
        later.resolve_share(share.token)

    assert share_repo.get_share_by_token(share.token).view_count == 0


def test_unknown_token_is_not_found(share_service):
    with pytest.raises(NotFoundError):
        share_service.resolve_share("does-not-exist")


def test_public_view_hides_file_url_without_download(share_service, translated_document, user):
    share = share_service.create_share(translated_document.document.id, user.id, can_download=False)
    view = share_service.public_view(share_service.resolve_share(share.token))

    assert view["document"]["url"] is None
    assert view["document"]["filename"] == "notice.pdf"
    assert view["result"]["translation_html"] == translated_document.result.translation_html
    assert view["share"]["viewCount"] == 1


def test_public_view_includes_file_url_with_download(share_service, translated_document, user):
    share = share_service.create_share(translated_document.document.id, user.id, can_download=True)
    view = share_service.public_view(share_service.resolve_share(share.token))
    assert view["document"]["url"] == translated_document.document.blob_url


def test_get_result_owner_only(share_service, translated_document, user, other_user):
    assert share_service.get_result(translated_document.document.id, user.id).id == translated_document.result.id
    with pytest.raises(ForbiddenError):
        share_service.get_result(translated_document.document.id, other_user.id)


def test_shares_are_removed_with_document(share_service, share_repo, ingestion, translated_document, user):
    share = share_service.create_share(translated_document.document.id, user.id)
    ingestion.delete_document(translated_document.document.id, user.id)
    assert share_repo.get_share_by_token(share.token) is None

# bridge/api/share.py
from fastapi import APIRouter, Depends

from bridge.api.dependencies import get_share_service
from bridge.auth import get_current_user
from bridge.db_models_users import User
from bridge.models import ShareRequest
from bridge.services.share_service import ShareService
from bridge.utils.logging import logger

router = APIRouter()


@router.post("/api/share")
def create_share(
    request: ShareRequest,
    user: User = Depends(get_current_user),
    shares: ShareService = Depends(get_share_service),
):
    """Create a time-limited public link to a translated document"""
    share = shares.create_share(
        document_id=request.doc_id,
        requester_id=user.id,
        ttl_hours=request.ttl,
        can_download=request.can_download,
    )
    logger.info(
        "Share created",
        extra={"user_id": user.id, "document_id": request.doc_id, "share_id": share.id}
    )
    return shares.share_to_response(share)


@router.get("/api/share/{token}")
def view_share(token: str, shares: ShareService = Depends(get_share_service)):
    """Public: no authentication. Expired and unknown tokens are both 404."""
    share = shares.resolve_share(token)
    return shares.public_view(share)

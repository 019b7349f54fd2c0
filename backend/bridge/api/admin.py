# bridge/api/admin.py
"""Operator endpoints, guarded by the x-admin-api-key header"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from bridge.api.dependencies import get_webhook_failure_repository
from bridge.auth import get_user_repository, require_admin_api_key
from bridge.models import AdminPlanUpdate
from bridge.repositories.user_repository import UserRepository
from bridge.repositories.webhook_failure_repository import WebhookFailureRepository
from bridge.utils.dates import isoformat
from bridge.utils.logging import logger

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_api_key)],
)


@router.post("/users/{user_id}/plan")
def set_user_plan(
    user_id: str,
    update: AdminPlanUpdate,
    users: UserRepository = Depends(get_user_repository),
):
    """Set a user's plan (and optionally role); the translation limit follows the plan"""
    user = users.set_plan(user_id, update.plan, update.role)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    logger.info("Admin changed user plan", extra={"user_id": user_id, "plan": update.plan.value})
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role.value,
        "plan": user.subscription_plan.value,
        "translationCount": user.translation_count,
        "translationLimit": user.translation_limit,
    }


@router.get("/webhook-failures")
def list_webhook_failures(
    provider: Optional[str] = Query(None, description="stripe or clerk"),
    limit: int = Query(100, ge=1, le=500),
    failures: WebhookFailureRepository = Depends(get_webhook_failure_repository),
):
    rows = failures.list_unresolved(provider=provider, limit=limit)
    return {
        "failures": [
            {
                "id": row.id,
                "provider": row.provider,
                "eventId": row.event_id,
                "eventType": row.event_type,
                "error": row.error_message,
                "payload": row.payload,
                "createdAt": isoformat(row.created_at),
            }
            for row in rows
        ],
        "count": len(rows),
    }


@router.post("/webhook-failures/{failure_id}/resolve")
def resolve_webhook_failure(
    failure_id: str,
    failures: WebhookFailureRepository = Depends(get_webhook_failure_repository),
):
    if not failures.mark_resolved(failure_id):
        raise HTTPException(status_code=404, detail="Unresolved webhook failure not found")
    logger.info("Webhook failure resolved", extra={"failure_id": failure_id})
    return {"success": True, "id": failure_id}

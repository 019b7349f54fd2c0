# backend/bridge/api/users.py
"""User profile endpoint"""
from fastapi import APIRouter, Depends

from bridge.api.dependencies import get_usage_ledger
from bridge.auth import get_current_user
from bridge.db_models_users import User
from bridge.enums import plan_features
from bridge.services.usage_ledger import UsageLedger
from bridge.utils.dates import isoformat

router = APIRouter()


@router.get("/api/users/me")
def get_current_user_info(
    user: User = Depends(get_current_user),
    ledger: UsageLedger = Depends(get_usage_ledger),
):
    """Get current user's profile, plan features and usage"""
    quota = ledger.check_quota(user)
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "plan": plan_features(quota.plan),
        "usage": quota.to_usage(),
        "subscription": {
            "status": user.subscription_status.value if user.subscription_status else None,
            "startDate": isoformat(user.subscription_start_date),
            "endDate": isoformat(user.subscription_end_date),
            "trialEndsAt": isoformat(user.trial_ends_at),
        },
    }

"""Per-user translation quota.

`check_quota` is a pure read used to reject requests early. `record_usage`
is the authoritative gate: a single conditional UPDATE that only increments
while the count is below the limit, run in the same transaction that writes
the Result.
"""
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.orm import Session

from bridge.db_models_users import User
from bridge.enums import Plan
from bridge.errors import QuotaExceededError
from bridge.utils.dates import utcnow
from bridge.utils.logging import logger
from bridge.utils.metrics import QUOTA_REJECTIONS

UPGRADE_URL = "/settings/billing"


@dataclass(frozen=True)
class QuotaStatus:
    allowed: bool
    limit: int
    count: int
    plan: Plan

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    def to_usage(self) -> dict:
        return {"count": self.count, "limit": self.limit, "remaining": self.remaining}


class UsageLedger:

    def check_quota(self, user: User) -> QuotaStatus:
        """allowed is False iff count >= limit. No side effects."""
        count = user.translation_count or 0
        limit = user.translation_limit or 0
        return QuotaStatus(
            allowed=count < limit,
            limit=limit,
            count=count,
            plan=Plan.parse(user.subscription_plan),
        )

    def require_quota(self, user: User) -> QuotaStatus:
        """check_quota, raising QuotaExceededError when not allowed."""
        status = self.check_quota(user)
        if not status.allowed:
            QUOTA_REJECTIONS.inc()
            logger.info(
                "Translation quota exhausted",
                extra={"user_id": user.id, "count": status.count, "limit": status.limit}
            )
            raise QuotaExceededError(
                limit=status.limit,
                count=status.count,
                plan=status.plan.value,
                upgrade_url=UPGRADE_URL,
            )
        return status

    def record_usage(self, db: Session, user_id: str) -> bool:
        """Increment translation_count by one if it is still below the limit.

        Does not commit; the caller owns the transaction.

        Returns:
            True if the increment happened, False if the limit was already reached
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.translation_count < User.translation_limit)
            .values(translation_count=User.translation_count + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        applied = db.execute(stmt).rowcount == 1
        if not applied:
            logger.warning("Usage increment refused at limit", extra={"user_id": user_id})
        return applied

    def current_usage(self, db: Session, user_id: str) -> dict:
        """Usage block for a response, read inside the caller's transaction."""
        count, limit = db.query(User.translation_count, User.translation_limit).filter(User.id == user_id).one()
        return {"count": count, "limit": limit, "remaining": max(0, limit - count)}

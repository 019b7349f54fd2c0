"""Closed value sets shared by the models, the quota ledger and the webhooks.

Every consumer matches these exhaustively, so adding a plan or a status
means touching `translation_limit_for` and `plan_features` below.
"""
from enum import Enum


class Role(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    INTERNAL = "internal"


class Plan(str, Enum):
    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"

    @classmethod
    def parse(cls, value) -> "Plan":
        """Lenient parse used for stored/external strings; unknown -> FREE."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.FREE


class SubscriptionStatus(str, Enum):
    """Mirrors the billing provider's subscription statuses plus `inactive`."""
    ACTIVE = "active"
    TRIALING = "trialing"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    UNPAID = "unpaid"
    PAUSED = "paused"
    INACTIVE = "inactive"


class Domain(str, Enum):
    SCHOOL = "school"
    HEALTHCARE = "healthcare"
    LEGAL = "legal"
    GOVERNMENT = "government"


class ExportFormat(str, Enum):
    JSON = "json"
    TXT = "txt"
    PDF = "pdf"


class PipelineStage(str, Enum):
    QUOTA = "quota"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    GENERATING = "generating"
    VALIDATING = "validating"
    PERSISTING = "persisting"


DEFAULT_TRANSLATION_LIMIT = 5


def translation_limit_for(plan) -> int:
    """Translations allowed for a plan. Unknown or missing plans get the free limit."""
    if plan is None:
        return DEFAULT_TRANSLATION_LIMIT
    plan = Plan.parse(plan)
    if plan is Plan.FREE:
        return 5
    if plan is Plan.STARTER:
        return 100
    if plan is Plan.PRO:
        return 1000
    if plan is Plan.ENTERPRISE:
        return 10000
    return DEFAULT_TRANSLATION_LIMIT


def plan_features(plan) -> dict:
    plan = Plan.parse(plan or Plan.FREE)
    return {
        "plan": plan.value,
        "translation_limit": translation_limit_for(plan),
        "features": {
            "family_sharing": plan in (Plan.PRO, Plan.ENTERPRISE),
            "priority_support": plan in (Plan.PRO, Plan.ENTERPRISE),
            "custom_domains": plan is Plan.ENTERPRISE,
        },
    }

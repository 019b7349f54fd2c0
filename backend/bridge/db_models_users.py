# backend/bridge/db_models_users.py
"""Database models for user accounts, subscription state and usage"""
from sqlalchemy import Boolean, Column, String, Integer, DateTime, Enum as SAEnum
from bridge.database import Base
from bridge.enums import Plan, Role, SubscriptionStatus
from bridge.utils.dates import utcnow


def enum_column(enum_cls, length: int = 20):
    """Store enum values (not names) in a plain VARCHAR column."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class User(Base):
    """User accounts synced from Clerk or created by a completed checkout"""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)  # Clerk user ID
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    role = Column(enum_column(Role), default=Role.CUSTOMER, nullable=False)
    banned = Column(Boolean, default=False, nullable=False)  # soft delete

    # Subscription
    subscription_plan = Column(enum_column(Plan), default=Plan.FREE, nullable=False)
    subscription_status = Column(enum_column(SubscriptionStatus), default=SubscriptionStatus.ACTIVE, nullable=False)
    subscription_start_date = Column(DateTime, nullable=True)
    subscription_end_date = Column(DateTime, nullable=True)
    trial_ends_at = Column(DateTime, nullable=True)
    stripe_customer_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True)

    # Usage tracking
    translation_count = Column(Integer, default=0, nullable=False)
    translation_limit = Column(Integer, default=5, nullable=False)  # Based on plan

    # Metadata
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def translations_remaining(self) -> int:
        return max(0, (self.translation_limit or 0) - (self.translation_count or 0))

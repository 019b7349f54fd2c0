"""Repository for user database operations.

Data Access Layer for User management.

Pattern:
- All database queries go through repositories
- Endpoints/services call repositories (never SessionLocal directly)
- Repositories handle session management and error handling
- Tests pass their own session_factory
"""
from datetime import datetime
from typing import Optional
from contextlib import contextmanager
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from bridge.database import SessionLocal
from bridge.db_models_users import User
from bridge.enums import Plan, Role, SubscriptionStatus, translation_limit_for
from bridge.utils.dates import utcnow
from bridge.utils.id_generator import generate_id
from bridge.utils.logging import logger


class UserRepository:
    """Repository for user database operations.

    Usage:
        user_repo = UserRepository()
        user_repo.get_user(user_id)
        user_repo.get_or_create_user(...)
    """

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def _get_session(self) -> Session:
        """Context manager for database sessions.

        Ensures sessions are properly closed even on errors.
        """
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def get_user(self, user_id: str) -> Optional[User]:
        with self._get_session() as db:
            try:
                return db.query(User).filter(User.id == user_id).first()
            except SQLAlchemyError as e:
                logger.error(
                    f"Failed to get user: {e}",
                    extra={"user_id": user_id, "error": str(e)}
                )
                return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._get_session() as db:
            try:
                return db.query(User).filter(User.email == email).first()
            except SQLAlchemyError as e:
                logger.error(f"Failed to get user by email: {e}", extra={"error": str(e)})
                return None

    def get_user_by_customer(self, stripe_customer_id: str) -> Optional[User]:
        with self._get_session() as db:
            try:
                return db.query(User).filter(User.stripe_customer_id == stripe_customer_id).first()
            except SQLAlchemyError as e:
                logger.error(f"Failed to get user by customer: {e}", extra={"error": str(e)})
                return None

    def create_user(
        self,
        user_id: str,
        email: str,
        name: Optional[str] = None,
        plan: Plan = Plan.FREE,
        role: Role = Role.CUSTOMER,
        email_verified: bool = False,
    ) -> Optional[User]:
        """Create a new user with the plan's default translation limit.

        Returns:
            User object if successful, None on error (including duplicate)
        """
        with self._get_session() as db:
            try:
                user = User(
                    id=user_id,
                    email=email,
                    name=name,
                    email_verified=email_verified,
                    role=role,
                    subscription_plan=plan,
                    subscription_status=SubscriptionStatus.ACTIVE,
                    translation_count=0,
                    translation_limit=translation_limit_for(plan),
                )
                db.add(user)
                db.commit()
                db.refresh(user)

                logger.info(
                    f"Created user: {user_id}",
                    extra={"user_id": user_id, "plan": plan.value, "role": role.value}
                )
                return user

            except IntegrityError:
                # User already exists (race condition or duplicate email)
                db.rollback()
                logger.debug(
                    f"User {user_id} already exists (IntegrityError)",
                    extra={"user_id": user_id}
                )
                return None
            except SQLAlchemyError as e:
                logger.error(
                    f"Failed to create user: {e}",
                    extra={"user_id": user_id, "error": str(e)}
                )
                db.rollback()
                return None

    def claim_user_by_email(self, email: str, user_id: str) -> Optional[User]:
        """Re-key a user row created by checkout so it matches the identity provider id.

        Only rows without documents can be claimed; a checkout-created account has none.
        """
        with self._get_session() as db:
            try:
                user = db.query(User).filter(User.email == email).first()
                if not user:
                    return None
                if user.id != user_id:
                    old_id = user.id
                    db.query(User).filter(User.id == old_id).update(
                        {User.id: user_id, User.updated_at: utcnow()},
                        synchronize_session=False,
                    )
                    db.commit()
                    logger.info(
                        "Claimed pre-provisioned user",
                        extra={"user_id": user_id, "previous_id": old_id}
                    )
                return db.query(User).filter(User.id == user_id).first()
            except SQLAlchemyError as e:
                logger.error(f"Failed to claim user by email: {e}", extra={"user_id": user_id, "error": str(e)})
                db.rollback()
                return None

    def get_or_create_user(self, user_id: str, email: str, name: Optional[str] = None) -> Optional[User]:
        """Get existing user or create a new free-plan account.

        Handles race conditions by attempting to get the user first,
        then creating if not found, then retrying get if creation fails.
        """
        user = self.get_user(user_id)
        if user:
            return user

        # Checkout may have created the account before the first sign-in
        if self.get_user_by_email(email):
            return self.claim_user_by_email(email, user_id)

        user = self.create_user(user_id=user_id, email=email, name=name)
        if user:
            return user

        # Creation raced with another request
        return self.get_user(user_id)

    def update_profile(self, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> bool:
        with self._get_session() as db:
            try:
                user = db.query(User).filter(User.id == user_id).first()
                if not user:
                    logger.warning("User not found for profile update", extra={"user_id": user_id})
                    return False
                if email:
                    user.email = email
                if name is not None:
                    user.name = name
                db.commit()
                return True
            except SQLAlchemyError as e:
                logger.error(f"Failed to update profile: {e}", extra={"user_id": user_id, "error": str(e)})
                db.rollback()
                return False

    def set_banned(self, user_id: str, banned: bool = True) -> bool:
        """Soft delete: users are never removed, only flagged."""
        with self._get_session() as db:
            try:
                updated = db.query(User).filter(User.id == user_id).update(
                    {User.banned: banned, User.updated_at: utcnow()},
                    synchronize_session=False,
                )
                db.commit()
                return updated > 0
            except SQLAlchemyError as e:
                logger.error(f"Failed to set banned flag: {e}", extra={"user_id": user_id, "error": str(e)})
                db.rollback()
                return False

    def set_plan(self, user_id: str, plan: Plan, role: Optional[Role] = None) -> Optional[User]:
        """Change plan (and optionally role); the limit follows the plan."""
        with self._get_session() as db:
            try:
                user = db.query(User).filter(User.id == user_id).first()
                if not user:
                    return None
                user.subscription_plan = plan
                user.translation_limit = translation_limit_for(plan)
                if role is not None:
                    user.role = role
                db.commit()
                db.refresh(user)
                logger.info("User plan updated", extra={"user_id": user_id, "plan": plan.value})
                return user
            except SQLAlchemyError as e:
                logger.error(f"Failed to set plan: {e}", extra={"user_id": user_id, "error": str(e)})
                db.rollback()
                return None

    def upsert_billing_user(
        self,
        email: str,
        plan: Plan,
        status: SubscriptionStatus,
        stripe_customer_id: Optional[str],
        stripe_subscription_id: Optional[str],
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
        trial_ends_at: Optional[datetime] = None,
    ) -> User:
        """Attach a completed checkout to the user with this email, creating one if needed.

        Raises SQLAlchemyError so the webhook can dead-letter the event.
        """
        with self._get_session() as db:
            try:
                user = db.query(User).filter(User.email == email).first()
                if not user:
                    user = User(
                        id=generate_id(),
                        email=email,
                        name=email.split("@")[0],
                        role=Role.CUSTOMER,
                        translation_count=0,
                    )
                    db.add(user)
                    created = True
                else:
                    created = False

                user.subscription_plan = plan
                user.subscription_status = status
                user.translation_limit = translation_limit_for(plan)
                user.stripe_customer_id = stripe_customer_id
                user.stripe_subscription_id = stripe_subscription_id
                user.subscription_start_date = period_start or utcnow()
                user.subscription_end_date = period_end
                user.trial_ends_at = trial_ends_at
                db.commit()
                db.refresh(user)

                logger.info(
                    "Billing user created" if created else "Billing user updated",
                    extra={"user_id": user.id, "plan": plan.value, "status": status.value}
                )
                return user
            except SQLAlchemyError:
                db.rollback()
                raise

    def update_subscription_by_customer(
        self,
        stripe_customer_id: str,
        status: SubscriptionStatus,
        plan: Optional[Plan] = None,
        stripe_subscription_id: Optional[str] = None,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
    ) -> Optional[User]:
        """Apply a subscription change to the user owning this billing customer.

        Returns None when no user carries the customer id.
        Raises SQLAlchemyError so the webhook can dead-letter the event.
        """
        with self._get_session() as db:
            try:
                user = db.query(User).filter(User.stripe_customer_id == stripe_customer_id).first()
                if not user:
                    return None
                user.subscription_status = status
                if plan is not None:
                    user.subscription_plan = plan
                    user.translation_limit = translation_limit_for(plan)
                if stripe_subscription_id:
                    user.stripe_subscription_id = stripe_subscription_id
                if period_start:
                    user.subscription_start_date = period_start
                if period_end:
                    user.subscription_end_date = period_end
                db.commit()
                db.refresh(user)
                return user
            except SQLAlchemyError:
                db.rollback()
                raise

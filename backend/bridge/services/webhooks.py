"""Billing (Stripe) and identity (Clerk) webhook processing.

Signature verification happens in the route and rejects with 400. Once an
event is verified, the route always acknowledges it; failures raised here
are written to the webhook_failures table by `record_failure`.
"""
import json
from typing import Any, Optional

from bridge.enums import Plan, SubscriptionStatus
from bridge.repositories.user_repository import UserRepository
from bridge.repositories.webhook_failure_repository import WebhookFailureRepository
from bridge.services.billing import BillingClient
from bridge.utils.dates import from_unix
from bridge.utils.logging import logger
from bridge.utils.metrics import WEBHOOK_EVENTS
from bridge.utils.notifications import EmailClient, payment_failed_email, welcome_email


class UnknownCustomerError(LookupError):
    """Subscription event for a billing customer no user carries (yet)."""


def _field(obj: Any, *path, default=None):
    """Nested lookup that works for dicts and SDK objects supporting subscript."""
    current = obj
    for key in path:
        if current is None:
            return default
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError):
            return default
    return default if current is None else current


def parse_status(value: Optional[str]) -> SubscriptionStatus:
    try:
        return SubscriptionStatus(value)
    except ValueError:
        logger.warning("Unknown subscription status", extra={"status": value})
        return SubscriptionStatus.INACTIVE


def subscription_period(subscription) -> tuple:
    """(start, end) of the current period; newer API versions keep it on the item."""
    start = _field(subscription, "current_period_start") or _field(subscription, "items", "data", 0, "current_period_start")
    end = _field(subscription, "current_period_end") or _field(subscription, "items", "data", 0, "current_period_end")
    return from_unix(start), from_unix(end)


def record_failure(failures: WebhookFailureRepository, provider: str, event: Optional[dict], error: Exception) -> None:
    event = event or {}
    WEBHOOK_EVENTS.labels(provider=provider, event_type=event.get("type", "unknown"), outcome="failed").inc()
    logger.error(
        f"Webhook processing failed: {error}",
        extra={"provider": provider, "event_id": event.get("id"), "event_type": event.get("type")},
        exc_info=True,
    )
    failures.record_failure(
        provider=provider,
        error_message=f"{type(error).__name__}: {error}",
        event_id=event.get("id") or _field(event, "data", "id"),
        event_type=event.get("type"),
        payload=event,
    )


class StripeWebhookHandler:

    def __init__(self, users: UserRepository, billing: BillingClient, email: EmailClient, app_url: str):
        self.users = users
        self.billing = billing
        self.email = email
        self.app_url = app_url

    async def handle(self, event: dict) -> str:
        """Dispatch one verified event. Returns the outcome label."""
        event_type = event.get("type", "")
        obj = _field(event, "data", "object", default={})

        if event_type == "checkout.session.completed":
            await self._checkout_completed(obj)
        elif event_type in ("customer.subscription.created", "customer.subscription.updated"):
            self._subscription_changed(obj)
        elif event_type == "customer.subscription.deleted":
            self._subscription_deleted(obj)
        elif event_type == "invoice.payment_failed":
            await self._payment_failed(obj)
        else:
            logger.info("Unhandled billing event type", extra={"event_type": event_type})
            WEBHOOK_EVENTS.labels(provider="stripe", event_type=event_type, outcome="ignored").inc()
            return "ignored"

        WEBHOOK_EVENTS.labels(provider="stripe", event_type=event_type, outcome="processed").inc()
        return "processed"

    async def _checkout_completed(self, session: dict) -> None:
        email = (
            session.get("customer_email")
            or _field(session, "metadata", "email")
            or _field(session, "customer_details", "email")
        )
        if not email:
            raise ValueError("Checkout session has no customer email")

        subscription_id = session.get("subscription")
        plan, status, trial_end = Plan.STARTER, SubscriptionStatus.ACTIVE, None
        period_start = period_end = None
        if subscription_id:
            subscription = self.billing.retrieve_subscription(subscription_id)
            plan = self.billing.plan_for_price(_field(subscription, "items", "data", 0, "price", "id"))
            status = parse_status(_field(subscription, "status"))
            period_start, period_end = subscription_period(subscription)
            trial_end = from_unix(_field(subscription, "trial_end"))

        user = self.users.upsert_billing_user(
            email=email,
            plan=plan,
            status=status,
            stripe_customer_id=session.get("customer"),
            stripe_subscription_id=subscription_id,
            period_start=period_start,
            period_end=period_end,
            trial_ends_at=trial_end,
        )
        logger.info("Checkout completed", extra={"user_id": user.id, "plan": plan.value})

        subject, html, text = welcome_email(plan.value, self.app_url)
        await self.email.send(email, subject, html, text)

    def _subscription_changed(self, subscription: dict) -> None:
        customer_id = subscription.get("customer")
        period_start, period_end = subscription_period(subscription)
        user = self.users.update_subscription_by_customer(
            stripe_customer_id=customer_id,
            status=parse_status(subscription.get("status")),
            plan=self.billing.plan_for_price(_field(subscription, "items", "data", 0, "price", "id")),
            stripe_subscription_id=subscription.get("id"),
            period_start=period_start,
            period_end=period_end,
        )
        if not user:
            raise UnknownCustomerError(f"No user for billing customer {customer_id}")
        logger.info(
            "Subscription updated",
            extra={"user_id": user.id, "plan": user.subscription_plan.value, "status": user.subscription_status.value}
        )

    def _subscription_deleted(self, subscription: dict) -> None:
        customer_id = subscription.get("customer")
        user = self.users.update_subscription_by_customer(
            stripe_customer_id=customer_id,
            status=SubscriptionStatus.CANCELED,
        )
        if not user:
            raise UnknownCustomerError(f"No user for billing customer {customer_id}")
        logger.info("Subscription canceled", extra={"user_id": user.id})

    async def _payment_failed(self, invoice: dict) -> None:
        email = invoice.get("customer_email")
        if not email and invoice.get("customer"):
            user = self.users.get_user_by_customer(invoice["customer"])
            email = user.email if user else None
        if not email:
            raise ValueError("Invoice has no customer email")
        subject, html, text = payment_failed_email(self.app_url)
        await self.email.send(email, subject, html, text)
        logger.info("Payment failure notice sent", extra={"invoice_id": invoice.get("id")})


class ClerkWebhookHandler:

    def __init__(self, users: UserRepository):
        self.users = users

    @staticmethod
    def primary_email(data: dict) -> Optional[str]:
        addresses = data.get("email_addresses") or []
        primary_id = data.get("primary_email_address_id")
        for address in addresses:
            if address.get("id") == primary_id:
                return address.get("email_address")
        return addresses[0].get("email_address") if addresses else None

    @staticmethod
    def display_name(data: dict) -> Optional[str]:
        name = " ".join(part for part in (data.get("first_name"), data.get("last_name")) if part)
        return name or None

    def handle(self, event: dict) -> str:
        event_type = event.get("type", "")
        data = event.get("data") or {}
        user_id = data.get("id")

        if event_type == "user.created":
            email = self.primary_email(data)
            if not user_id or not email:
                raise ValueError("user.created event without id or email")
            user = self.users.get_or_create_user(user_id=user_id, email=email, name=self.display_name(data))
            if not user:
                raise RuntimeError(f"Could not create user {user_id}")
        elif event_type == "user.updated":
            if not self.users.update_profile(user_id, email=self.primary_email(data), name=self.display_name(data)):
                raise UnknownCustomerError(f"No user {user_id} to update")
        elif event_type == "user.deleted":
            if not self.users.set_banned(user_id, True):
                raise UnknownCustomerError(f"No user {user_id} to ban")
        else:
            logger.info("Unhandled identity event type", extra={"event_type": event_type})
            WEBHOOK_EVENTS.labels(provider="clerk", event_type=event_type, outcome="ignored").inc()
            return "ignored"

        WEBHOOK_EVENTS.labels(provider="clerk", event_type=event_type, outcome="processed").inc()
        logger.info("Identity event processed", extra={"event_type": event_type, "user_id": user_id})
        return "processed"


def parse_payload(payload: bytes) -> dict:
    return json.loads(payload.decode("utf-8"))

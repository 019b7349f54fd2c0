"""Stripe billing client.

Thin wrapper over the `stripe` SDK so routes and webhook handlers receive an
explicit client (tests pass a fake). The API key is passed per call; no
module-level `stripe.api_key` is set.
"""
from typing import Optional

import stripe

from bridge.enums import Plan
from bridge.errors import ConfigurationError
from bridge.utils.logging import logger


class BillingClient:

    def __init__(self, api_key: str, webhook_secret: str, price_ids: dict[str, str]):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.price_ids = price_ids

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("STRIPE_SECRET_KEY", "billing")
        return self.api_key

    def verify_event(self, payload: bytes, signature: Optional[str]) -> None:
        """Check the Stripe-Signature header.

        Raises:
            ConfigurationError: webhook secret missing
            ValueError: missing signature or unparsable payload
            stripe.SignatureVerificationError: signature mismatch
        """
        if not self.webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET", "billing webhooks")
        if not signature:
            raise ValueError("Missing stripe-signature header")
        stripe.Webhook.construct_event(payload, signature, self.webhook_secret)

    def retrieve_subscription(self, subscription_id: str):
        return stripe.Subscription.retrieve(subscription_id, api_key=self._require_api_key())

    def create_checkout_session(
        self,
        email: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        trial_days: int,
    ):
        session = stripe.checkout.Session.create(
            api_key=self._require_api_key(),
            customer_email=email,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={"email": email, "source": "marketing_site"},
            subscription_data={"metadata": {"email": email}, "trial_period_days": trial_days},
            allow_promotion_codes=True,
        )
        logger.info("Created checkout session", extra={"session_id": session["id"], "price_id": price_id})
        return session

    def default_price_id(self) -> str:
        price_id = self.price_ids.get(Plan.STARTER.value)
        if not price_id:
            raise ConfigurationError("STRIPE_PRICE_STARTER", "checkout")
        return price_id

    def plan_for_price(self, price_id: Optional[str]) -> Plan:
        """Map a price id to a plan: configured ids first, then the id's name, else starter."""
        if price_id:
            for plan_name, configured in self.price_ids.items():
                if configured and configured == price_id:
                    return Plan(plan_name)
            lowered = price_id.lower()
            if "enterprise" in lowered:
                return Plan.ENTERPRISE
            if "pro" in lowered:
                return Plan.PRO
        return Plan.STARTER

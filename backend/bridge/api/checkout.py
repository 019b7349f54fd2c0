# bridge/api/checkout.py
"""Checkout session for the marketing site (no authentication)"""
from fastapi import APIRouter, Depends, HTTPException
import stripe

from bridge.api.dependencies import get_billing_client
from bridge.config import settings
from bridge.models import CheckoutRequest
from bridge.services.billing import BillingClient
from bridge.utils.logging import logger

router = APIRouter()


@router.post("/api/checkout/create-session")
def create_checkout_session(
    request: CheckoutRequest,
    billing: BillingClient = Depends(get_billing_client),
):
    """
    Start a subscription checkout with a trial.

    Returns:
        {url, sessionId}
    """
    price_id = request.price_id or billing.default_price_id()
    success_url = f"{settings.app_url.rstrip('/')}/welcome?session_id={{CHECKOUT_SESSION_ID}}"
    cancel_url = request.return_url or f"{settings.marketing_site_url.rstrip('/')}/?checkout=cancelled"

    try:
        session = billing.create_checkout_session(
            email=request.email,
            price_id=price_id,
            success_url=success_url,
            cancel_url=cancel_url,
            trial_days=settings.stripe_trial_days,
        )
    except stripe.StripeError as e:
        logger.error(f"Checkout session creation failed: {e}", extra={"price_id": price_id})
        raise HTTPException(status_code=502, detail="Failed to create checkout session")

    return {"url": session["url"], "sessionId": session["id"]}

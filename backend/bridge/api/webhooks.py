# bridge/api/webhooks.py
"""
Provider webhooks.

Signatures are verified before anything else; a bad signature is a 400 and
nothing is processed. A verified event is always acknowledged with 200,
and processing failures go to the webhook_failures table instead.
"""
import json

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from svix.webhooks import Webhook, WebhookVerificationError

from bridge.api.dependencies import (
    get_billing_client,
    get_clerk_webhook_handler,
    get_stripe_webhook_handler,
    get_webhook_failure_repository,
)
from bridge.config import settings
from bridge.errors import ConfigurationError
from bridge.repositories.webhook_failure_repository import WebhookFailureRepository
from bridge.services.billing import BillingClient
from bridge.services.webhooks import (
    ClerkWebhookHandler,
    StripeWebhookHandler,
    parse_payload,
    record_failure,
)
from bridge.utils.logging import logger
from bridge.utils.metrics import WEBHOOK_EVENTS

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    billing: BillingClient = Depends(get_billing_client),
    handler: StripeWebhookHandler = Depends(get_stripe_webhook_handler),
    failures: WebhookFailureRepository = Depends(get_webhook_failure_repository),
):
    payload = await request.body()
    try:
        billing.verify_event(payload, request.headers.get("stripe-signature"))
        event = parse_payload(payload)
    except (ValueError, stripe.SignatureVerificationError) as e:
        WEBHOOK_EVENTS.labels(provider="stripe", event_type="unknown", outcome="rejected").inc()
        logger.warning(f"Billing webhook signature verification failed: {e}")
        raise HTTPException(status_code=400, detail="Webhook signature verification failed")

    logger.info("Billing webhook received", extra={"event_id": event.get("id"), "event_type": event.get("type")})
    try:
        outcome = await handler.handle(event)
    except Exception as e:
        record_failure(failures, "stripe", event, e)
        outcome = "failed"

    return {"received": True, "outcome": outcome}


@router.post("/clerk")
async def clerk_webhook(
    request: Request,
    handler: ClerkWebhookHandler = Depends(get_clerk_webhook_handler),
    failures: WebhookFailureRepository = Depends(get_webhook_failure_repository),
):
    if not settings.clerk_webhook_secret:
        raise ConfigurationError("CLERK_WEBHOOK_SECRET", "identity webhooks")

    payload = await request.body()
    headers = {
        "svix-id": request.headers.get("svix-id", ""),
        "svix-timestamp": request.headers.get("svix-timestamp", ""),
        "svix-signature": request.headers.get("svix-signature", ""),
    }
    try:
        event = Webhook(settings.clerk_webhook_secret).verify(payload, headers)
    except (WebhookVerificationError, json.JSONDecodeError) as e:
        WEBHOOK_EVENTS.labels(provider="clerk", event_type="unknown", outcome="rejected").inc()
        logger.warning(f"Identity webhook signature verification failed: {e}")
        raise HTTPException(status_code=400, detail="Webhook signature verification failed")

    logger.info("Identity webhook received", extra={"event_type": event.get("type")})
    try:
        outcome = handler.handle(event)
    except Exception as e:
        record_failure(failures, "clerk", event, e)
        outcome = "failed"

    return {"received": True, "outcome": outcome}

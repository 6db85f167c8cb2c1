"""
Webhook endpoints for billing events.

Public endpoints (no auth required) for Stripe webhooks.
"""

from fastapi import APIRouter, Depends, Request

from common.providers.rate_limiter.limiter import limiter
from packages.billing.webhooks.stripe_webhook import (
    StripeWebhookReconciler,
    get_webhook_reconciler,
    handle_stripe_webhook,
)

router = APIRouter()


@router.post("/webhooks/stripe")
@limiter.exempt
async def stripe_webhook(
    request: Request,
    reconciler: StripeWebhookReconciler = Depends(get_webhook_reconciler),
) -> dict[str, bool]:
    """
    Receive webhook events from Stripe.

    No authentication required - webhook signature validated internally.
    Exempt from rate limiting since Stripe delivers in bursts and retries.
    """
    return await handle_stripe_webhook(request, reconciler)

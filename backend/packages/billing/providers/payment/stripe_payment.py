"""
Stripe implementation of payment provider.

The Stripe SDK is synchronous; calls are short and made inline.
"""

import json
from typing import Any, Dict, List, Optional
import stripe

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.exceptions import (
    ProviderResourceMissingError,
    WebhookPayloadError,
    WebhookSignatureError,
)
from packages.billing.models.domain.stripe_webhooks import (
    StripeCheckoutSessionData,
    StripeCustomerData,
    StripeSubscriptionData,
)
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)

RESOURCE_MISSING = "resource_missing"


def _is_resource_missing(error: stripe.InvalidRequestError) -> bool:
    return getattr(error, "code", None) == RESOURCE_MISSING


class StripePaymentProvider(PaymentProviderInterface):
    """Stripe-based payment implementation."""

    def __init__(self, webhook_secret: Optional[str] = None):
        """Initialize Stripe with API credentials."""
        stripe.api_key = settings.stripe_secret_key
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.stripe_webhook_secret
        )

    @trace_span
    async def retrieve_subscription(self, subscription_id: str) -> StripeSubscriptionData:
        try:
            subscription = stripe.Subscription.retrieve(subscription_id)
        except stripe.InvalidRequestError as e:
            if _is_resource_missing(e):
                raise ProviderResourceMissingError("subscription", subscription_id)
            logger.error(
                f"Failed to retrieve subscription: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise
        return StripeSubscriptionData.model_validate(subscription.to_dict())

    @trace_span
    async def list_subscriptions(self, customer_id: str) -> List[StripeSubscriptionData]:
        try:
            result = stripe.Subscription.list(customer=customer_id, status="all", limit=10)
        except Exception as e:
            logger.error(
                f"Failed to list subscriptions: {str(e)}",
                extra={"customer_id": customer_id, "error": str(e)},
            )
            raise
        return [
            StripeSubscriptionData.model_validate(subscription.to_dict())
            for subscription in result.data
        ]

    @trace_span
    async def retrieve_customer(self, customer_id: str) -> StripeCustomerData:
        try:
            customer = stripe.Customer.retrieve(customer_id)
        except stripe.InvalidRequestError as e:
            if _is_resource_missing(e):
                raise ProviderResourceMissingError("customer", customer_id)
            raise

        customer_data = StripeCustomerData.model_validate(customer.to_dict())
        if customer_data.deleted:
            raise ProviderResourceMissingError("customer", customer_id)
        return customer_data

    @trace_span
    async def list_customers_by_email(
        self, email: str, limit: int = 10
    ) -> List[StripeCustomerData]:
        result = stripe.Customer.list(email=email, limit=limit)
        return [
            StripeCustomerData.model_validate(customer.to_dict())
            for customer in result.data
        ]

    @trace_span
    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        client_reference_id: Optional[str] = None,
    ) -> StripeCheckoutSessionData:
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                line_items=[
                    {
                        "price": price_id,
                        "quantity": 1,
                    }
                ],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                client_reference_id=client_reference_id,
                metadata=metadata,
                subscription_data={"metadata": metadata},
            )

            logger.info(
                "Created Stripe checkout session",
                extra={
                    "customer_id": customer_id,
                    "price_id": price_id,
                    "session_id": session.id,
                },
            )
            return StripeCheckoutSessionData.model_validate(session.to_dict())

        except Exception as e:
            logger.error(
                f"Failed to create checkout session: {str(e)}",
                extra={"customer_id": customer_id, "error": str(e)},
            )
            raise

    @trace_span
    async def schedule_downgrade(
        self, subscription_id: str, metadata: Dict[str, str]
    ) -> StripeSubscriptionData:
        try:
            subscription = stripe.Subscription.modify(
                subscription_id,
                cancel_at_period_end=True,
                metadata=metadata,
            )

            logger.info(
                "Scheduled Stripe subscription to cancel at period end",
                extra={"subscription_id": subscription_id, "metadata": metadata},
            )
            return StripeSubscriptionData.model_validate(subscription.to_dict())

        except Exception as e:
            logger.error(
                f"Failed to schedule downgrade: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise

    @trace_span
    async def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        metadata: Dict[str, str],
        idempotency_key: str,
        default_payment_method: Optional[str] = None,
    ) -> StripeSubscriptionData:
        params: Dict[str, Any] = {
            "customer": customer_id,
            "items": [{"price": price_id}],
            "metadata": metadata,
        }
        if default_payment_method:
            params["default_payment_method"] = default_payment_method

        try:
            subscription = stripe.Subscription.create(
                idempotency_key=idempotency_key, **params
            )

            logger.info(
                "Created Stripe subscription",
                extra={
                    "customer_id": customer_id,
                    "price_id": price_id,
                    "subscription_id": subscription.id,
                },
            )
            return StripeSubscriptionData.model_validate(subscription.to_dict())

        except Exception as e:
            logger.error(
                f"Failed to create subscription: {str(e)}",
                extra={"customer_id": customer_id, "error": str(e)},
            )
            raise

    @trace_span
    async def cancel_subscription(self, subscription_id: str) -> None:
        """Cancel Stripe subscription."""
        try:
            stripe.Subscription.cancel(subscription_id)

            logger.info(
                "Cancelled Stripe subscription",
                extra={"subscription_id": subscription_id},
            )

        except Exception as e:
            logger.error(
                f"Failed to cancel subscription: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if not self.webhook_secret:
            raise WebhookSignatureError("Webhook secret is not configured")
        if not signature:
            raise WebhookSignatureError("Missing stripe-signature header")

        body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        try:
            stripe.WebhookSignature.verify_header(body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError("Invalid signature") from e

        try:
            event = json.loads(body)
        except ValueError as e:
            raise WebhookPayloadError("Invalid payload") from e
        if not isinstance(event, dict):
            raise WebhookPayloadError("Invalid payload")
        return event

"""
Interface for payment providers.

Abstracts subscription billing away from a specific platform. Provider
objects are returned as typed domain models, never raw SDK objects.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from packages.billing.models.domain.stripe_webhooks import (
    StripeCheckoutSessionData,
    StripeCustomerData,
    StripeSubscriptionData,
)


class PaymentProviderInterface(ABC):
    """Abstract interface for payment providers."""

    @abstractmethod
    async def retrieve_subscription(self, subscription_id: str) -> StripeSubscriptionData:
        """
        Fetch a subscription with its items.

        Raises:
            ProviderResourceMissingError: the subscription doesn't exist
        """
        pass

    @abstractmethod
    async def list_subscriptions(self, customer_id: str) -> List[StripeSubscriptionData]:
        """List all of a customer's subscriptions, whatever their status."""
        pass

    @abstractmethod
    async def retrieve_customer(self, customer_id: str) -> StripeCustomerData:
        """
        Fetch a customer.

        Raises:
            ProviderResourceMissingError: the customer doesn't exist or was deleted
        """
        pass

    @abstractmethod
    async def list_customers_by_email(
        self, email: str, limit: int = 10
    ) -> List[StripeCustomerData]:
        """Find customers registered with an e-mail address."""
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        client_reference_id: Optional[str] = None,
    ) -> StripeCheckoutSessionData:
        """
        Create a hosted checkout session for a new subscription.

        ``metadata`` is attached to both the session and the subscription it
        creates.
        """
        pass

    @abstractmethod
    async def schedule_downgrade(
        self, subscription_id: str, metadata: Dict[str, str]
    ) -> StripeSubscriptionData:
        """Set the subscription to cancel at period end and record the pending
        downgrade target in its metadata."""
        pass

    @abstractmethod
    async def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        metadata: Dict[str, str],
        idempotency_key: str,
        default_payment_method: Optional[str] = None,
    ) -> StripeSubscriptionData:
        """Start a subscription for an existing customer."""
        pass

    @abstractmethod
    async def cancel_subscription(self, subscription_id: str) -> None:
        """Cancel a subscription immediately."""
        pass

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook signature and decode the event.

        Raises:
            WebhookSignatureError: signature missing, invalid, or unverifiable
            WebhookPayloadError: body is not a JSON event
        """
        pass

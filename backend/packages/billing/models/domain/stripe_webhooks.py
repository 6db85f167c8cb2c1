"""
Domain models for Stripe objects and webhook payloads.

Strongly-typed Pydantic models for the parts of Stripe's API this service
reads. Unknown fields are ignored so newer API versions keep parsing.
"""

from datetime import datetime, timezone
from typing import Optional, Any, List
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _expandable_id(value: Any) -> Any:
    """Stripe returns either an id or the expanded object; keep the id."""
    if isinstance(value, dict):
        return value.get("id")
    return value


class StripeWebhookType(str, Enum):
    """Stripe webhook event types we handle."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAID = "invoice.paid"


class StripeMetadata(BaseModel):
    """Metadata bag shared by checkout sessions and subscriptions."""

    model_config = ConfigDict(extra="allow")

    factory_id: Optional[str] = None
    user_id: Optional[str] = None
    tier: Optional[str] = None
    interval: Optional[str] = None
    change_type: Optional[str] = None
    previous_subscription_id: Optional[str] = None

    # Scheduled downgrade intent, read back when the subscription ends
    pending_downgrade_tier: Optional[str] = None
    pending_downgrade_interval: Optional[str] = None
    pending_downgrade_price_id: Optional[str] = None

    @property
    def has_pending_downgrade(self) -> bool:
        return bool(self.pending_downgrade_price_id and self.pending_downgrade_tier)


class StripeRecurring(BaseModel):
    model_config = ConfigDict(extra="ignore")

    interval: Optional[str] = None


class StripePrice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    product: Optional[str] = None
    unit_amount: Optional[int] = None
    recurring: Optional[StripeRecurring] = None

    @field_validator("product", mode="before")
    @classmethod
    def product_id(cls, v):
        return _expandable_id(v)


class StripeSubscriptionItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    price: StripePrice
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None


class StripeSubscriptionData(BaseModel):
    """Stripe subscription object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: str
    status: str
    cancel_at_period_end: bool = False
    default_payment_method: Optional[str] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    items: List[StripeSubscriptionItem] = Field(default_factory=list)
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)

    @field_validator("customer", "default_payment_method", mode="before")
    @classmethod
    def expanded_ids(cls, v):
        return _expandable_id(v)

    @field_validator("items", mode="before")
    @classmethod
    def unwrap_item_list(cls, v):
        # Stripe wraps items in a list object: {"object": "list", "data": [...]}
        if isinstance(v, dict):
            return v.get("data") or []
        return v or []

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v):
        return v or {}

    @property
    def primary_item(self) -> Optional[StripeSubscriptionItem]:
        return self.items[0] if self.items else None

    @property
    def price(self) -> Optional[StripePrice]:
        item = self.primary_item
        return item.price if item else None

    @property
    def period_end(self) -> Optional[datetime]:
        """End of the current billing period.

        Newer API versions only report the period on the subscription item.
        """
        timestamp = self.current_period_end
        if timestamp is None and self.primary_item is not None:
            timestamp = self.primary_item.current_period_end
        if timestamp is None:
            return None
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class StripeCustomerData(BaseModel):
    """Stripe customer object (possibly a deleted-customer stub)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    deleted: bool = False
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v):
        return v or {}


class StripeInvoiceData(BaseModel):
    """Stripe invoice object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    customer_email: Optional[str] = None
    subscription: Optional[str] = None
    status: Optional[str] = None
    amount_due: Optional[int] = None
    parent: Optional[dict[str, Any]] = None

    @field_validator("customer", "subscription", mode="before")
    @classmethod
    def expanded_ids(cls, v):
        return _expandable_id(v)

    @property
    def subscription_id(self) -> Optional[str]:
        """Subscription id from the legacy field or ``parent.subscription_details``."""
        if self.subscription:
            return self.subscription
        details = (self.parent or {}).get("subscription_details") or {}
        return _expandable_id(details.get("subscription"))


class StripeCheckoutSessionData(BaseModel):
    """Stripe checkout session object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    mode: Optional[str] = None
    customer: Optional[str] = None
    subscription: Optional[str] = None
    client_reference_id: Optional[str] = None
    customer_email: Optional[str] = None
    url: Optional[str] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)

    @field_validator("customer", "subscription", mode="before")
    @classmethod
    def expanded_ids(cls, v):
        return _expandable_id(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v):
        return v or {}


class StripeEventData(BaseModel):
    """Stripe event data wrapper."""

    object: dict[str, Any]


class StripeWebhookPayload(BaseModel):
    """Complete Stripe webhook payload.

    ``type`` is kept as a plain string so events we don't handle still parse
    and can be acknowledged.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    data: StripeEventData
    created: Optional[int] = None
    livemode: bool = False

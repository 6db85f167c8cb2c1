from datetime import datetime, timedelta, timezone
from typing import Optional
from pydantic import BaseModel, field_validator

from common.core.config import settings
from packages.billing.models.domain.enums import (
    BillingInterval,
    PlanTier,
    SubscriptionStatus,
)
from packages.billing.models.domain.pending_plan_change import PendingDowngrade


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything stored is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FactoryAccount(BaseModel):
    id: str
    name: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_status: SubscriptionStatus = SubscriptionStatus.TRIAL
    subscription_tier: Optional[PlanTier] = None
    billing_interval: Optional[BillingInterval] = None
    max_lines: Optional[int] = None
    payment_failed_at: Optional[datetime] = None
    pending_plan_change: Optional[PendingDowngrade] = None
    trial_end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("payment_failed_at", "trial_end_date", mode="after")
    @classmethod
    def normalize_timezone(cls, v):
        return _as_utc(v)

    def grace_period_ends_at(self) -> Optional[datetime]:
        """End of the payment grace period, if a payment has failed."""
        if self.payment_failed_at is None:
            return None
        return self.payment_failed_at + timedelta(
            days=settings.payment_grace_period_days
        )

    def has_access(self, now: Optional[datetime] = None) -> bool:
        """Whether the factory may use the product right now."""
        now = now or datetime.now(timezone.utc)
        status = self.subscription_status
        if status.has_unconditional_access():
            return True
        if status == SubscriptionStatus.TRIAL:
            return self.trial_end_date is not None and self.trial_end_date > now
        if status == SubscriptionStatus.PAST_DUE:
            grace_end = self.grace_period_ends_at()
            # No failure timestamp yet means the grace period hasn't started
            return grace_end is None or grace_end > now
        return False


class FactoryAccountCreateModel(BaseModel):
    """Model for creating a factory account."""

    id: str
    name: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_status: str = SubscriptionStatus.TRIAL.value
    subscription_tier: Optional[str] = None
    billing_interval: Optional[str] = None
    max_lines: Optional[int] = None
    trial_end_date: Optional[datetime] = None


class FactoryAccountUpdateModel(BaseModel):
    """Model for updating the billing fields of a factory account.

    Only explicitly set fields are written; pass ``None`` to clear one.
    """

    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_status: Optional[str] = None
    subscription_tier: Optional[str] = None
    billing_interval: Optional[str] = None
    max_lines: Optional[int] = None
    payment_failed_at: Optional[datetime] = None
    pending_plan_change: Optional[dict] = None

    @field_validator(
        "subscription_status", "subscription_tier", "billing_interval", mode="before"
    )
    @classmethod
    def validate_enum_value(cls, v):
        if isinstance(v, (SubscriptionStatus, PlanTier, BillingInterval)):
            return v.value
        return v

    @field_validator("pending_plan_change", mode="before")
    @classmethod
    def validate_pending_plan_change(cls, v):
        if isinstance(v, PendingDowngrade):
            return v.to_record()
        return v

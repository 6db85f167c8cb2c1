"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    PlanTier,
    BillingInterval,
    ChangeType,
    StripeSubscriptionStatus,
)
from packages.billing.models.domain.pending_plan_change import PendingDowngrade

__all__ = [
    # Enums
    "SubscriptionStatus",
    "PlanTier",
    "BillingInterval",
    "ChangeType",
    "StripeSubscriptionStatus",
    # Plan changes
    "PendingDowngrade",
]

"""
Billing enums - strongly typed enumerations for subscription and billing states.
"""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Factory subscription status as stored on the billing record.

    Flow: trial -> active -> past_due -> (active | expired | canceled)
    """

    TRIAL = "trial"  # Product-side trial, no Stripe subscription yet
    TRIALING = "trialing"  # Stripe trial period
    ACTIVE = "active"
    PAST_DUE = "past_due"  # Payment failed, access kept during grace period
    CANCELED = "canceled"
    INACTIVE = "inactive"  # Incomplete or paused in Stripe
    EXPIRED = "expired"  # Stripe gave up collecting (unpaid)

    def has_unconditional_access(self) -> bool:
        """Statuses that grant access without looking at any dates."""
        return self in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


class PlanTier(str, Enum):
    """Self-serve and sales-led plan tiers, ordered by rank."""

    STARTER = "starter"
    GROWTH = "growth"
    SCALE = "scale"
    ENTERPRISE = "enterprise"


class BillingInterval(str, Enum):
    MONTH = "month"
    YEAR = "year"


class ChangeType(str, Enum):
    """Direction of a plan change."""

    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"


class StripeSubscriptionStatus(str, Enum):
    """Subscription statuses reported by Stripe."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAUSED = "paused"

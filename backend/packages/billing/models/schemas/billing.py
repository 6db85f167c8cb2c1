"""
API schemas for billing operations.

Request and response models for billing endpoints. The web client speaks
camelCase JSON.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.billing.models.domain.enums import (
    BillingInterval,
    ChangeType,
    PlanTier,
    SubscriptionStatus,
)
from packages.billing.models.domain.pending_plan_change import PendingDowngrade


# ============================================================================
# Plan Change Schemas
# ============================================================================


class ChangePlanRequest(BaseModel):
    """Request to move the caller's factory to another plan.

    Values stay untyped here so unknown tiers and intervals reach the service
    and get the user-facing validation message instead of a 422.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    new_tier: Optional[str] = None
    billing_interval: Optional[str] = None


class ChangePlanResponse(BaseModel):
    """Outcome of a plan change; ``None`` fields are omitted from the JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    error: Optional[str] = None
    change_type: Optional[ChangeType] = None
    message: Optional[str] = None

    # Upgrade
    requires_checkout: Optional[bool] = None
    checkout_url: Optional[str] = None

    # Downgrade
    new_tier: Optional[PlanTier] = None
    new_interval: Optional[BillingInterval] = None
    max_lines: Optional[int] = None
    effective_date: Optional[datetime] = None

    @classmethod
    def failure(cls, error: str) -> "ChangePlanResponse":
        return cls(success=False, error=error)


# ============================================================================
# Status Schemas
# ============================================================================


class BillingStatusResponse(BaseModel):
    """Current billing state of the caller's factory."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    factory_id: str
    subscription_status: SubscriptionStatus
    subscription_tier: Optional[PlanTier] = None
    billing_interval: Optional[BillingInterval] = None
    max_lines: Optional[int] = None
    has_access: bool = Field(..., description="Whether the factory has product access")
    payment_failed_at: Optional[datetime] = None
    grace_period_ends_at: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    pending_plan_change: Optional[PendingDowngrade] = None

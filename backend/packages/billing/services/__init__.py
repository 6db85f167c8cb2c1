"""Billing services."""

from packages.billing.services.plan_change_service import PlanChangeService
from packages.billing.services.plans_service import PlansService
from packages.billing.services.subscription_resolver import SubscriptionResolver

__all__ = [
    "PlanChangeService",
    "PlansService",
    "SubscriptionResolver",
]

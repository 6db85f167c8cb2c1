"""Billing API routes: plan status and changes, the plan catalog, Stripe webhooks."""

from packages.billing.routes import billing, webhooks, plans

__all__ = ["billing", "webhooks", "plans"]

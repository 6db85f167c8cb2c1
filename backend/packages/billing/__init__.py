"""
Billing package - plan changes and Stripe reconciliation for factory accounts.

This package integrates with:
- Stripe: subscriptions, hosted checkout and webhooks

The factory's billing record (``factory_accounts``) is a cache of Stripe state:
plan changes write to Stripe first and webhooks re-derive the record from it.
"""

"""
Unit tests for billing domain models: pending plan changes and Stripe objects.
"""

from datetime import datetime, timezone

from packages.billing.models.domain.enums import BillingInterval, PlanTier
from packages.billing.models.domain.pending_plan_change import PendingDowngrade
from packages.billing.models.domain.stripe_webhooks import (
    StripeInvoiceData,
    StripeSubscriptionData,
    StripeWebhookPayload,
)
from tests.factories.stripe_factory import PERIOD_END, StripeFactory


class TestPendingDowngrade:
    def test_record_uses_camel_case_keys(self):
        pending = PendingDowngrade(
            new_tier=PlanTier.STARTER,
            new_interval=BillingInterval.MONTH,
            effective_date=datetime(2026, 11, 15, tzinfo=timezone.utc),
            new_price_id="price_starter_monthly",
        )

        record = pending.to_record()

        assert record["type"] == "downgrade"
        assert record["newTier"] == "starter"
        assert record["newInterval"] == "month"
        assert record["newPriceId"] == "price_starter_monthly"
        assert record["effectiveDate"].startswith("2026-11-15T00:00:00")

    def test_from_record(self):
        record = {
            "type": "downgrade",
            "newTier": "growth",
            "newInterval": "year",
            "effectiveDate": "2026-11-15T00:00:00Z",
            "newPriceId": "price_growth_yearly",
        }

        pending = PendingDowngrade.from_record(record)

        assert pending.new_tier == PlanTier.GROWTH
        assert pending.new_interval == BillingInterval.YEAR
        assert pending.effective_date == datetime(2026, 11, 15, tzinfo=timezone.utc)

    def test_from_empty_record(self):
        assert PendingDowngrade.from_record(None) is None
        assert PendingDowngrade.from_record({}) is None


class TestStripeSubscriptionData:
    def test_parses_item_list_and_price(self):
        subscription = StripeFactory.subscription(
            price_id="price_growth_yearly", product_id="prod_growth", interval="year"
        )

        assert subscription.price.id == "price_growth_yearly"
        assert subscription.price.product == "prod_growth"
        assert subscription.price.recurring.interval == "year"

    def test_expanded_objects_collapse_to_ids(self):
        data = StripeFactory.subscription_dict()
        data["customer"] = {"id": "cus_expanded", "object": "customer"}
        data["default_payment_method"] = {"id": "pm_expanded", "object": "payment_method"}
        data["items"]["data"][0]["price"]["product"] = {
            "id": "prod_expanded",
            "object": "product",
        }

        subscription = StripeSubscriptionData.model_validate(data)

        assert subscription.customer == "cus_expanded"
        assert subscription.default_payment_method == "pm_expanded"
        assert subscription.price.product == "prod_expanded"

    def test_period_end_from_subscription(self):
        subscription = StripeFactory.subscription()
        assert subscription.period_end == PERIOD_END

    def test_period_end_falls_back_to_item(self):
        subscription = StripeFactory.subscription(item_period_only=True)
        assert subscription.current_period_end is None
        assert subscription.period_end == PERIOD_END

    def test_no_items(self):
        subscription = StripeFactory.subscription(price_id=None, current_period_end=None)
        assert subscription.items == []
        assert subscription.price is None
        assert subscription.period_end is None

    def test_null_metadata(self):
        data = StripeFactory.subscription_dict()
        data["metadata"] = None
        subscription = StripeSubscriptionData.model_validate(data)
        assert subscription.metadata.factory_id is None
        assert subscription.metadata.has_pending_downgrade is False

    def test_pending_downgrade_metadata(self):
        subscription = StripeFactory.subscription(
            metadata={
                "factory_id": "f-1",
                "pending_downgrade_tier": "starter",
                "pending_downgrade_interval": "month",
                "pending_downgrade_price_id": "price_starter_monthly",
            }
        )
        assert subscription.metadata.has_pending_downgrade is True


class TestStripeInvoiceData:
    def test_subscription_from_parent_details(self):
        invoice = StripeInvoiceData.model_validate(
            StripeFactory.invoice_dict(subscription="sub_from_parent")
        )
        assert invoice.subscription is None
        assert invoice.subscription_id == "sub_from_parent"

    def test_legacy_subscription_field(self):
        invoice = StripeInvoiceData.model_validate(
            {"id": "in_1", "customer": "cus_1", "subscription": "sub_legacy"}
        )
        assert invoice.subscription_id == "sub_legacy"

    def test_no_subscription(self):
        invoice = StripeInvoiceData.model_validate({"id": "in_1", "customer": "cus_1"})
        assert invoice.subscription_id is None


class TestStripeWebhookPayload:
    def test_unknown_event_type_still_parses(self):
        payload = StripeWebhookPayload.model_validate(
            StripeFactory.event("customer.created", {"id": "cus_1"})
        )
        assert payload.type == "customer.created"
        assert payload.data.object == {"id": "cus_1"}

"""
Unit tests for SubscriptionResolver.

Stripe is mocked; the factory billing record lives in the test database.
"""

import pytest
from unittest.mock import patch

from packages.billing.exceptions import NoSubscriptionError, ProviderResourceMissingError
from packages.billing.services.subscription_resolver import (
    SubscriptionResolver,
    pick_best_subscription,
)
from packages.factories.repositories.factory_account_repository import (
    FactoryAccountRepository,
)
from tests.factories.stripe_factory import StripeFactory


@pytest.fixture
def factory_repo():
    return FactoryAccountRepository()


@pytest.fixture
def resolver(mock_payment_provider, factory_repo):
    return SubscriptionResolver(mock_payment_provider, factory_repo)


class TestPickBestSubscription:
    def test_prefers_active_over_past_due(self):
        past_due = StripeFactory.subscription(id="sub_pd", status="past_due")
        active = StripeFactory.subscription(id="sub_a", status="active")
        assert pick_best_subscription([past_due, active]).id == "sub_a"

    def test_skips_terminal_and_itemless(self):
        canceled = StripeFactory.subscription(id="sub_c", status="canceled")
        expired = StripeFactory.subscription(id="sub_e", status="incomplete_expired")
        empty = StripeFactory.subscription(id="sub_x", price_id=None)
        assert pick_best_subscription([canceled, expired, empty]) is None

    def test_falls_back_to_first_usable(self):
        paused = StripeFactory.subscription(id="sub_p", status="paused")
        assert pick_best_subscription([paused]).id == "sub_p"


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestSubscriptionResolver:
    @pytest.mark.asyncio
    async def test_stored_subscription_is_used(
        self, mock_start_span, resolver, mock_payment_provider, sample_factory
    ):
        mock_payment_provider.retrieve_subscription.return_value = (
            StripeFactory.subscription()
        )

        subscription = await resolver.resolve(sample_factory, email="owner@x.test")

        assert subscription.id == "sub_current"
        mock_payment_provider.list_subscriptions.assert_not_called()
        mock_payment_provider.list_customers_by_email.assert_not_called()

    @pytest.mark.asyncio
    async def test_canceled_stored_subscription_falls_back_to_customer(
        self,
        mock_start_span,
        resolver,
        mock_payment_provider,
        factory_repo,
        sample_factory,
    ):
        mock_payment_provider.retrieve_subscription.return_value = (
            StripeFactory.subscription(status="canceled")
        )
        mock_payment_provider.retrieve_customer.return_value = StripeFactory.customer()
        mock_payment_provider.list_subscriptions.return_value = [
            StripeFactory.subscription(id="sub_replacement")
        ]

        subscription = await resolver.resolve(sample_factory)

        assert subscription.id == "sub_replacement"
        mock_payment_provider.list_subscriptions.assert_called_once_with("cus_current")
        factory = await factory_repo.get(sample_factory.id)
        assert factory.stripe_subscription_id == "sub_replacement"
        assert factory.stripe_customer_id == "cus_current"

    @pytest.mark.asyncio
    async def test_missing_subscription_repaired_from_stored_customer(
        self,
        mock_start_span,
        resolver,
        mock_payment_provider,
        factory_repo,
        sample_factory,
    ):
        mock_payment_provider.retrieve_subscription.side_effect = (
            ProviderResourceMissingError("subscription", "sub_current")
        )
        mock_payment_provider.retrieve_customer.return_value = StripeFactory.customer()
        mock_payment_provider.list_subscriptions.return_value = [
            StripeFactory.subscription(id="sub_repaired")
        ]

        subscription = await resolver.resolve(sample_factory)

        assert subscription.id == "sub_repaired"
        mock_payment_provider.list_subscriptions.assert_called_once_with("cus_current")
        mock_payment_provider.list_customers_by_email.assert_not_called()
        factory = await factory_repo.get(sample_factory.id)
        assert factory.stripe_subscription_id == "sub_repaired"
        assert factory.stripe_customer_id == "cus_current"

    @pytest.mark.asyncio
    async def test_missing_references_recovered_by_email(
        self,
        mock_start_span,
        resolver,
        mock_payment_provider,
        factory_repo,
        sample_factory,
    ):
        mock_payment_provider.retrieve_subscription.side_effect = (
            ProviderResourceMissingError("subscription", "sub_current")
        )
        mock_payment_provider.retrieve_customer.side_effect = (
            ProviderResourceMissingError("customer", "cus_current")
        )
        mock_payment_provider.list_customers_by_email.return_value = [
            StripeFactory.customer(id="cus_deleted", deleted=True),
            StripeFactory.customer(id="cus_recreated"),
        ]

        async def list_subscriptions(customer_id):
            if customer_id == "cus_recreated":
                return [
                    StripeFactory.subscription(
                        id="sub_recreated", customer="cus_recreated"
                    )
                ]
            return []

        mock_payment_provider.list_subscriptions.side_effect = list_subscriptions

        subscription = await resolver.resolve(
            sample_factory, email="owner@sunrise-garments.test"
        )

        assert subscription.id == "sub_recreated"
        listed = [c.args[0] for c in mock_payment_provider.list_subscriptions.call_args_list]
        assert listed == ["cus_recreated"]
        factory = await factory_repo.get(sample_factory.id)
        assert factory.stripe_customer_id == "cus_recreated"
        assert factory.stripe_subscription_id == "sub_recreated"

    @pytest.mark.asyncio
    async def test_unchanged_references_not_rewritten(
        self, mock_start_span, mock_payment_provider, sample_factory
    ):
        mock_payment_provider.retrieve_subscription.return_value = (
            StripeFactory.subscription(status="incomplete_expired")
        )
        mock_payment_provider.retrieve_customer.return_value = StripeFactory.customer()
        # Stripe now reports the same subscription as active again
        mock_payment_provider.list_subscriptions.return_value = [
            StripeFactory.subscription()
        ]
        factory_repo = FactoryAccountRepository()
        with patch.object(factory_repo, "update") as mock_update:
            resolver = SubscriptionResolver(mock_payment_provider, factory_repo)
            await resolver.resolve(sample_factory)

        mock_update.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_subscription_anywhere(
        self, mock_start_span, resolver, mock_payment_provider, trial_factory
    ):
        with pytest.raises(NoSubscriptionError) as exc_info:
            await resolver.resolve(trial_factory, email="nobody@example.com")

        assert (
            exc_info.value.user_message
            == "No active subscription found. Please subscribe first."
        )
        mock_payment_provider.retrieve_subscription.assert_not_called()
        mock_payment_provider.retrieve_customer.assert_not_called()

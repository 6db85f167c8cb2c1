"""
Unit tests for StripePaymentProvider.

The Stripe SDK is patched at the resource level; responses are mocks whose
``to_dict()`` returns the raw API object.
"""

import json

import pytest
import stripe
from unittest.mock import MagicMock, patch

from packages.billing.exceptions import (
    ProviderResourceMissingError,
    WebhookPayloadError,
    WebhookSignatureError,
)
from packages.billing.providers.payment.stripe_payment import StripePaymentProvider
from tests.factories.stripe_factory import StripeFactory


def stripe_object(data):
    obj = MagicMock()
    obj.to_dict.return_value = data
    obj.id = data.get("id")
    return obj


@pytest.fixture
def provider():
    return StripePaymentProvider(webhook_secret="whsec_test")


@pytest.mark.asyncio
class TestStripePaymentProvider:
    async def test_retrieve_subscription(self, mock_start_span, provider):
        with patch(
            "stripe.Subscription.retrieve",
            return_value=stripe_object(StripeFactory.subscription_dict()),
        ):
            subscription = await provider.retrieve_subscription("sub_current")

        assert subscription.id == "sub_current"
        assert subscription.price.id == "price_starter_monthly"

    async def test_retrieve_missing_subscription(self, mock_start_span, provider):
        error = stripe.InvalidRequestError(
            "No such subscription: 'sub_gone'", "id", code="resource_missing"
        )
        with patch("stripe.Subscription.retrieve", side_effect=error):
            with pytest.raises(ProviderResourceMissingError) as exc_info:
                await provider.retrieve_subscription("sub_gone")

        assert exc_info.value.resource == "subscription"

    async def test_other_invalid_request_propagates(self, mock_start_span, provider):
        error = stripe.InvalidRequestError("Bad request", "id", code="parameter_invalid")
        with patch("stripe.Subscription.retrieve", side_effect=error):
            with pytest.raises(stripe.InvalidRequestError):
                await provider.retrieve_subscription("sub_x")

    async def test_deleted_customer_is_missing(self, mock_start_span, provider):
        with patch(
            "stripe.Customer.retrieve",
            return_value=stripe_object({"id": "cus_1", "deleted": True}),
        ):
            with pytest.raises(ProviderResourceMissingError):
                await provider.retrieve_customer("cus_1")

    async def test_list_subscriptions_includes_all_statuses(
        self, mock_start_span, provider
    ):
        result = MagicMock()
        result.data = [stripe_object(StripeFactory.subscription_dict(status="canceled"))]
        with patch("stripe.Subscription.list", return_value=result) as list_call:
            subscriptions = await provider.list_subscriptions("cus_current")

        list_call.assert_called_once_with(customer="cus_current", status="all", limit=10)
        assert subscriptions[0].status == "canceled"

    async def test_create_checkout_session(self, mock_start_span, provider):
        session = stripe_object(
            {"id": "cs_1", "url": "https://checkout.stripe.com/c/pay/cs_1"}
        )
        metadata = {"factory_id": "f-1", "tier": "growth"}
        with patch("stripe.checkout.Session.create", return_value=session) as create:
            result = await provider.create_checkout_session(
                customer_id="cus_current",
                price_id="price_growth_monthly",
                success_url="https://app/billing?checkout=success",
                cancel_url="https://app/billing?checkout=canceled",
                metadata=metadata,
                client_reference_id="f-1",
            )

        assert result.url == "https://checkout.stripe.com/c/pay/cs_1"
        kwargs = create.call_args.kwargs
        assert kwargs["mode"] == "subscription"
        assert kwargs["line_items"] == [{"price": "price_growth_monthly", "quantity": 1}]
        assert kwargs["metadata"] == metadata
        assert kwargs["subscription_data"] == {"metadata": metadata}
        assert kwargs["client_reference_id"] == "f-1"

    async def test_schedule_downgrade(self, mock_start_span, provider):
        with patch(
            "stripe.Subscription.modify",
            return_value=stripe_object(
                StripeFactory.subscription_dict(cancel_at_period_end=True)
            ),
        ) as modify:
            result = await provider.schedule_downgrade(
                "sub_current", metadata={"pending_downgrade_tier": "starter"}
            )

        modify.assert_called_once_with(
            "sub_current",
            cancel_at_period_end=True,
            metadata={"pending_downgrade_tier": "starter"},
        )
        assert result.cancel_at_period_end is True

    async def test_create_subscription_is_idempotent(self, mock_start_span, provider):
        with patch(
            "stripe.Subscription.create",
            return_value=stripe_object(StripeFactory.subscription_dict(id="sub_new")),
        ) as create:
            await provider.create_subscription(
                customer_id="cus_current",
                price_id="price_starter_monthly",
                metadata={"factory_id": "f-1"},
                idempotency_key="downgrade-sub_current",
                default_payment_method="pm_card_visa",
            )

        create.assert_called_once_with(
            idempotency_key="downgrade-sub_current",
            customer="cus_current",
            items=[{"price": "price_starter_monthly"}],
            metadata={"factory_id": "f-1"},
            default_payment_method="pm_card_visa",
        )


class TestVerifyWebhook:
    def test_valid_signature(self, provider):
        body = json.dumps({"id": "evt_1", "type": "invoice.paid"})
        with patch("stripe.WebhookSignature.verify_header", return_value=True):
            event = provider.verify_webhook(body.encode("utf-8"), "t=1,v1=abc")

        assert event["id"] == "evt_1"

    def test_missing_header(self, provider):
        with pytest.raises(WebhookSignatureError):
            provider.verify_webhook(b"{}", None)

    def test_invalid_signature(self, provider):
        error = stripe.SignatureVerificationError("No signatures found", "t=1,v1=abc")
        with patch("stripe.WebhookSignature.verify_header", side_effect=error):
            with pytest.raises(WebhookSignatureError):
                provider.verify_webhook(b"{}", "t=1,v1=abc")

    def test_not_json(self, provider):
        with patch("stripe.WebhookSignature.verify_header", return_value=True):
            with pytest.raises(WebhookPayloadError):
                provider.verify_webhook(b"not json", "t=1,v1=abc")

    def test_json_array(self, provider):
        with patch("stripe.WebhookSignature.verify_header", return_value=True):
            with pytest.raises(WebhookPayloadError):
                provider.verify_webhook(b"[1, 2]", "t=1,v1=abc")

"""
Locate a factory's live Stripe subscription.

The billing record's Stripe references can go stale (a subscription replaced
in the Stripe dashboard, a customer recreated during support). The resolver
falls back from the stored subscription to the stored customer and then to
customers registered under the account e-mail, and writes whatever it
recovers back to the billing record.
"""

from typing import List, Optional

from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.exceptions import NoSubscriptionError, ProviderResourceMissingError
from packages.billing.models.domain.enums import StripeSubscriptionStatus
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.factories.models.domain.factory_account import (
    FactoryAccount,
    FactoryAccountUpdateModel,
)
from packages.factories.repositories.factory_account_repository import (
    FactoryAccountRepository,
)

logger = get_logger(__name__)

# Statuses a subscription can never come back from
TERMINAL_STATUSES = {
    StripeSubscriptionStatus.CANCELED.value,
    StripeSubscriptionStatus.INCOMPLETE_EXPIRED.value,
}

# First match wins when a customer has several subscriptions
STATUS_PRIORITY = [
    StripeSubscriptionStatus.ACTIVE.value,
    StripeSubscriptionStatus.TRIALING.value,
    StripeSubscriptionStatus.PAST_DUE.value,
    StripeSubscriptionStatus.UNPAID.value,
    StripeSubscriptionStatus.INCOMPLETE.value,
]


def is_usable(subscription: StripeSubscriptionData) -> bool:
    """A subscription we can change plans on: not terminal and has an item."""
    return subscription.status not in TERMINAL_STATUSES and bool(subscription.items)


def pick_best_subscription(
    subscriptions: List[StripeSubscriptionData],
) -> Optional[StripeSubscriptionData]:
    candidates = [s for s in subscriptions if is_usable(s)]
    for status in STATUS_PRIORITY:
        for subscription in candidates:
            if subscription.status == status:
                return subscription
    return candidates[0] if candidates else None


class SubscriptionResolver:
    """Find the live subscription for a factory, healing stale references."""

    def __init__(
        self,
        payment: Optional[PaymentProviderInterface] = None,
        factory_repo: Optional[FactoryAccountRepository] = None,
    ):
        self.payment = payment or get_payment_provider()
        self.factory_repo = factory_repo or FactoryAccountRepository()

    @trace_span
    async def resolve(
        self, factory: FactoryAccount, email: Optional[str] = None
    ) -> StripeSubscriptionData:
        """
        Return the factory's live subscription.

        Raises:
            NoSubscriptionError: nothing usable under any known customer
        """
        subscription = await self._retrieve_stored(factory)
        if subscription is not None:
            return subscription

        logger.info(
            "[resolve-subscription] Stored subscription unusable, searching by customer",
            extra={
                "factory_id": factory.id,
                "stored_subscription_id": factory.stripe_subscription_id,
                "stored_customer_id": factory.stripe_customer_id,
            },
        )

        for customer_id in await self._candidate_customer_ids(factory, email):
            subscription = pick_best_subscription(
                await self.payment.list_subscriptions(customer_id)
            )
            if subscription is not None:
                await self._persist_references(factory, subscription)
                return subscription

        logger.info(
            "[resolve-subscription] No usable subscription found",
            extra={"factory_id": factory.id},
        )
        raise NoSubscriptionError()

    async def _retrieve_stored(
        self, factory: FactoryAccount
    ) -> Optional[StripeSubscriptionData]:
        if not factory.stripe_subscription_id:
            return None
        try:
            subscription = await self.payment.retrieve_subscription(
                factory.stripe_subscription_id
            )
        except ProviderResourceMissingError:
            logger.warning(
                "[resolve-subscription] Stored subscription no longer exists",
                extra={
                    "factory_id": factory.id,
                    "subscription_id": factory.stripe_subscription_id,
                },
            )
            return None
        return subscription if is_usable(subscription) else None

    async def _candidate_customer_ids(
        self, factory: FactoryAccount, email: Optional[str]
    ) -> List[str]:
        customer_ids: List[str] = []
        if factory.stripe_customer_id:
            try:
                customer = await self.payment.retrieve_customer(
                    factory.stripe_customer_id
                )
                customer_ids.append(customer.id)
            except ProviderResourceMissingError:
                logger.warning(
                    "[resolve-subscription] Stored customer missing or deleted",
                    extra={
                        "factory_id": factory.id,
                        "customer_id": factory.stripe_customer_id,
                    },
                )

        if email:
            for customer in await self.payment.list_customers_by_email(email, limit=10):
                if not customer.deleted and customer.id not in customer_ids:
                    customer_ids.append(customer.id)
        return customer_ids

    async def _persist_references(
        self, factory: FactoryAccount, subscription: StripeSubscriptionData
    ) -> None:
        if (
            factory.stripe_customer_id == subscription.customer
            and factory.stripe_subscription_id == subscription.id
        ):
            return

        await self.factory_repo.update(
            factory.id,
            FactoryAccountUpdateModel(
                stripe_customer_id=subscription.customer,
                stripe_subscription_id=subscription.id,
            ),
        )
        logger.info(
            "[resolve-subscription] Repaired Stripe references on billing record",
            extra={
                "factory_id": factory.id,
                "customer_id": subscription.customer,
                "subscription_id": subscription.id,
            },
        )

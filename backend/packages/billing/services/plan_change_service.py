"""
Service for changing a factory's plan.

Upgrades go through hosted checkout and only touch the billing record once
the checkout webhook arrives. Downgrades are scheduled on the live
subscription (cancel at period end) and mirrored as a pending change; the
subscription-deleted webhook materialises them.
"""

from typing import Dict, Optional, Tuple

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.billing.catalog import TierCatalog, get_tier_catalog
from packages.billing.exceptions import (
    NoFactoryError,
    PaymentProviderError,
    PlanValidationError,
)
from packages.billing.models.domain.enums import BillingInterval, ChangeType, PlanTier
from packages.billing.models.domain.pending_plan_change import PendingDowngrade
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.models.schemas.billing import ChangePlanResponse
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.services.subscription_resolver import SubscriptionResolver
from packages.factories.models.domain.factory_account import (
    FactoryAccount,
    FactoryAccountUpdateModel,
)
from packages.factories.repositories.factory_account_repository import (
    FactoryAccountRepository,
)

logger = get_logger(__name__)


def interval_label(interval: BillingInterval) -> str:
    return "yearly" if interval == BillingInterval.YEAR else "monthly"


class PlanChangeService:
    """Service for plan upgrades and downgrades."""

    def __init__(
        self,
        payment: Optional[PaymentProviderInterface] = None,
        factory_repo: Optional[FactoryAccountRepository] = None,
        resolver: Optional[SubscriptionResolver] = None,
        catalog: Optional[TierCatalog] = None,
    ):
        self.payment = payment or get_payment_provider()
        self.factory_repo = factory_repo or FactoryAccountRepository()
        self.resolver = resolver or SubscriptionResolver(self.payment, self.factory_repo)
        self.catalog = catalog or get_tier_catalog()

    def validate_request(
        self, new_tier: Optional[str], billing_interval: Optional[str]
    ) -> Tuple[PlanTier, BillingInterval, str]:
        """
        Check the requested plan before anything is sent to Stripe.

        Returns:
            Tuple of (tier, interval, target price id)

        Raises:
            PlanValidationError: with the message to show the user
        """
        if not new_tier:
            raise PlanValidationError("New tier is required")

        try:
            interval = BillingInterval(billing_interval or BillingInterval.MONTH.value)
        except ValueError:
            raise PlanValidationError("Invalid billing interval")

        try:
            tier = PlanTier(new_tier)
        except ValueError:
            raise PlanValidationError("Invalid plan tier")

        price_id = self.catalog.price_id_for(tier, interval)
        if not price_id:
            raise PlanValidationError(
                "This plan requires a custom quote. Please contact sales."
            )
        return tier, interval, price_id

    @trace_span
    async def change_plan(
        self,
        user: AuthenticatedUser,
        new_tier: Optional[str],
        billing_interval: Optional[str],
    ) -> ChangePlanResponse:
        tier, interval, price_id = self.validate_request(new_tier, billing_interval)

        if not user.factory_id:
            raise NoFactoryError()
        factory = await self.factory_repo.get(user.factory_id)
        if factory is None:
            raise NoFactoryError()

        logger.info(
            f"[change-plan] Request from factory {factory.id}: {tier.value}/{interval.value}",
            extra={"factory_id": factory.id, "user_id": user.user_id},
        )

        subscription = await self.resolver.resolve(factory, email=user.email)
        current_tier, current_interval = self._current_plan(factory, subscription)

        if current_tier is None:
            # Nothing we can compare against; a paid checkout is always safe
            change_type = ChangeType.UPGRADE
        else:
            change_type = self.catalog.classify_plan_change(
                current_tier, current_interval, tier, interval
            )

        logger.info(
            f"[change-plan] Classified as {change_type.value}",
            extra={
                "factory_id": factory.id,
                "subscription_id": subscription.id,
                "current_tier": current_tier.value if current_tier else None,
                "current_interval": current_interval.value,
                "new_tier": tier.value,
                "new_interval": interval.value,
            },
        )

        if change_type == ChangeType.UPGRADE:
            return await self._start_upgrade(
                user, factory, subscription, tier, interval, price_id
            )
        return await self._schedule_downgrade(
            factory, subscription, tier, interval, price_id
        )

    def _current_plan(
        self, factory: FactoryAccount, subscription: StripeSubscriptionData
    ) -> Tuple[Optional[PlanTier], BillingInterval]:
        """Current tier and interval, read from the live price when we know it."""
        price = subscription.price
        resolved = self.catalog.resolve_price(price.id if price else None)
        if resolved is not None:
            return resolved

        if price is not None and price.recurring and price.recurring.interval:
            try:
                interval = BillingInterval(price.recurring.interval)
            except ValueError:
                interval = factory.billing_interval or BillingInterval.MONTH
        else:
            interval = factory.billing_interval or BillingInterval.MONTH

        tier = self.catalog.tier_for_product(price.product if price else None)
        return tier or factory.subscription_tier, interval

    async def _start_upgrade(
        self,
        user: AuthenticatedUser,
        factory: FactoryAccount,
        subscription: StripeSubscriptionData,
        tier: PlanTier,
        interval: BillingInterval,
        price_id: str,
    ) -> ChangePlanResponse:
        metadata: Dict[str, str] = {
            "factory_id": factory.id,
            "user_id": user.user_id,
            "tier": tier.value,
            "interval": interval.value,
            "change_type": ChangeType.UPGRADE.value,
            "previous_subscription_id": subscription.id,
        }
        session = await self.payment.create_checkout_session(
            customer_id=subscription.customer,
            price_id=price_id,
            success_url=f"{settings.app_url}/billing?checkout=success",
            cancel_url=f"{settings.app_url}/billing?checkout=canceled",
            metadata=metadata,
            client_reference_id=factory.id,
        )
        if not session.url:
            raise PaymentProviderError()

        logger.info(
            "[change-plan] Checkout session created for upgrade",
            extra={"factory_id": factory.id, "session_id": session.id},
        )

        name = self.catalog.get(tier).name
        return ChangePlanResponse(
            success=True,
            requires_checkout=True,
            checkout_url=session.url,
            change_type=ChangeType.UPGRADE,
            message=f"Complete checkout to upgrade to {name} ({interval_label(interval)}).",
        )

    async def _schedule_downgrade(
        self,
        factory: FactoryAccount,
        subscription: StripeSubscriptionData,
        tier: PlanTier,
        interval: BillingInterval,
        price_id: str,
    ) -> ChangePlanResponse:
        effective_date = subscription.period_end
        if effective_date is None:
            logger.error(
                "[change-plan] Subscription has no current period end",
                extra={"factory_id": factory.id, "subscription_id": subscription.id},
            )
            raise PaymentProviderError(
                "Unable to determine your billing period. Please contact support."
            )

        await self.payment.schedule_downgrade(
            subscription.id,
            metadata={
                "factory_id": factory.id,
                "pending_downgrade_tier": tier.value,
                "pending_downgrade_interval": interval.value,
                "pending_downgrade_price_id": price_id,
            },
        )

        pending = PendingDowngrade(
            new_tier=tier,
            new_interval=interval,
            effective_date=effective_date,
            new_price_id=price_id,
        )
        await self.factory_repo.update(
            factory.id, FactoryAccountUpdateModel(pending_plan_change=pending)
        )

        logger.info(
            "[change-plan] Downgrade scheduled for period end",
            extra={
                "factory_id": factory.id,
                "subscription_id": subscription.id,
                "effective_date": effective_date.isoformat(),
            },
        )

        name = self.catalog.get(tier).name
        return ChangePlanResponse(
            success=True,
            change_type=ChangeType.DOWNGRADE,
            new_tier=tier,
            new_interval=interval,
            max_lines=self.catalog.max_lines(tier),
            effective_date=effective_date,
            message=(
                f"Your plan will change to {name} ({interval_label(interval)}) "
                f"on {effective_date:%B %d, %Y}. You keep your current plan until then."
            ),
        )

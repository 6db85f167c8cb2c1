"""
Stripe webhook handler for billing events.

Reconciles the factory billing record with Stripe:
- Checkout session completion (upgrades and new subscriptions)
- Subscription updates and deletions (including scheduled downgrades)
- Invoice payment success/failure (grace period)

Every write is re-derived from Stripe objects, so redelivered or reordered
events converge on the same record.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import Request, HTTPException, status
from pydantic import ValidationError

from common.core.otel_axiom_exporter import get_logger, log_span_event, trace_span
from packages.billing.catalog import TierCatalog, get_tier_catalog
from packages.billing.exceptions import (
    ProviderResourceMissingError,
    WebhookPayloadError,
    WebhookSignatureError,
)
from packages.billing.models.domain.enums import (
    BillingInterval,
    PlanTier,
    StripeSubscriptionStatus,
    SubscriptionStatus,
)
from packages.billing.models.domain.stripe_webhooks import (
    StripeWebhookPayload,
    StripeWebhookType,
    StripeCheckoutSessionData,
    StripeSubscriptionData,
    StripeInvoiceData,
    StripeMetadata,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.services.subscription_resolver import TERMINAL_STATUSES
from packages.factories.models.domain.factory_account import (
    FactoryAccount,
    FactoryAccountUpdateModel,
)
from packages.factories.repositories.factory_account_repository import (
    FactoryAccountRepository,
)
from packages.notifications.models.domain.notification import BillingNotificationType
from packages.notifications.services.billing_notification_service import (
    BillingNotificationService,
)
from packages.users.repositories.user_repository import ProfileRepository

logger = get_logger(__name__)


def map_stripe_status(stripe_status: str) -> SubscriptionStatus:
    """Map a Stripe subscription status onto the billing record's status."""
    if stripe_status in (
        StripeSubscriptionStatus.ACTIVE.value,
        StripeSubscriptionStatus.TRIALING.value,
        StripeSubscriptionStatus.PAST_DUE.value,
        StripeSubscriptionStatus.CANCELED.value,
    ):
        return SubscriptionStatus(stripe_status)
    if stripe_status == StripeSubscriptionStatus.UNPAID.value:
        return SubscriptionStatus.EXPIRED
    return SubscriptionStatus.INACTIVE


class StripeWebhookReconciler:
    """Applies Stripe events to factory billing records."""

    def __init__(
        self,
        payment: Optional[PaymentProviderInterface] = None,
        factory_repo: Optional[FactoryAccountRepository] = None,
        profile_repo: Optional[ProfileRepository] = None,
        notifications: Optional[BillingNotificationService] = None,
        catalog: Optional[TierCatalog] = None,
    ):
        self.payment = payment or get_payment_provider()
        self.factory_repo = factory_repo or FactoryAccountRepository()
        self.profile_repo = profile_repo or ProfileRepository()
        self.notifications = notifications or BillingNotificationService(
            profile_repo=self.profile_repo
        )
        self.catalog = catalog or get_tier_catalog()

    @trace_span
    async def dispatch(self, payload: StripeWebhookPayload) -> None:
        """Route an event to its handler. Unknown types are acknowledged."""
        data = payload.data.object

        if payload.type == StripeWebhookType.CHECKOUT_SESSION_COMPLETED:
            await self.handle_checkout_completed(data)
        elif payload.type == StripeWebhookType.SUBSCRIPTION_UPDATED:
            await self.handle_subscription_updated(data)
        elif payload.type == StripeWebhookType.SUBSCRIPTION_DELETED:
            await self.handle_subscription_deleted(data)
        elif payload.type == StripeWebhookType.INVOICE_PAYMENT_FAILED:
            await self.handle_invoice_payment_failed(data)
        elif payload.type in (
            StripeWebhookType.INVOICE_PAYMENT_SUCCEEDED,
            StripeWebhookType.INVOICE_PAID,
        ):
            await self.handle_invoice_payment_succeeded(data)
        else:
            logger.info(f"Unhandled Stripe webhook type: {payload.type}")

    # ========================================================================
    # Tenant resolution
    # ========================================================================

    async def resolve_factory(
        self,
        factory_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> Optional[FactoryAccount]:
        """
        Find the factory an event belongs to.

        Tried in order: factory_id metadata, stored subscription id, stored
        customer id, then the Stripe customer's e-mail matched against
        owner/admin profiles.
        """
        if factory_id:
            factory = await self.factory_repo.get(factory_id)
            if factory:
                return factory

        if subscription_id:
            factory = await self.factory_repo.get_by_stripe_subscription_id(
                subscription_id
            )
            if factory:
                return factory

        if not customer_id:
            return None

        factory = await self.factory_repo.get_by_stripe_customer_id(customer_id)
        if factory:
            return factory

        try:
            customer = await self.payment.retrieve_customer(customer_id)
        except ProviderResourceMissingError:
            return None
        if not customer.email:
            return None

        profile = await self.profile_repo.get_account_owner_by_email(customer.email)
        if profile is None or not profile.factory_id:
            return None

        logger.info(
            "Resolved factory by customer e-mail",
            extra={"customer_id": customer_id, "factory_id": profile.factory_id},
        )
        return await self.factory_repo.get(profile.factory_id)

    # ========================================================================
    # Plan derivation
    # ========================================================================

    def derive_plan(
        self,
        subscription: StripeSubscriptionData,
        metadata: Optional[StripeMetadata] = None,
    ) -> Tuple[Optional[PlanTier], Optional[BillingInterval]]:
        """Tier by product id, then price id, then metadata; interval from the price."""
        price = subscription.price
        resolved = self.catalog.resolve_price(price.id if price else None)

        tier = self.catalog.tier_for_product(price.product if price else None)
        if tier is None and resolved is not None:
            tier = resolved[0]
        if tier is None and metadata is not None and metadata.tier:
            try:
                tier = PlanTier(metadata.tier)
            except ValueError:
                tier = None

        interval = resolved[1] if resolved is not None else None
        if interval is None and price is not None and price.recurring:
            interval = self._parse_interval(price.recurring.interval)
        if interval is None and metadata is not None:
            interval = self._parse_interval(metadata.interval)
        return tier, interval

    @staticmethod
    def _parse_interval(value: Optional[str]) -> Optional[BillingInterval]:
        try:
            return BillingInterval(value) if value else None
        except ValueError:
            return None

    def _plan_fields(
        self, tier: Optional[PlanTier], interval: Optional[BillingInterval]
    ) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if tier is not None:
            fields["subscription_tier"] = tier
            fields["max_lines"] = self.catalog.max_lines(tier)
        if interval is not None:
            fields["billing_interval"] = interval
        return fields

    # ========================================================================
    # Handlers
    # ========================================================================

    @trace_span
    async def handle_checkout_completed(self, data: Dict[str, Any]) -> None:
        """
        Handle checkout.session.completed.

        The session created a new subscription (first purchase or upgrade).
        Point the billing record at it and cancel the subscription it replaced.
        """
        session = StripeCheckoutSessionData.model_validate(data)
        if not session.subscription:
            logger.info(
                "Ignoring checkout session without subscription",
                extra={"session_id": session.id},
            )
            return

        factory = await self._factory_for_checkout(session)
        if factory is None:
            logger.error(
                "Could not resolve factory for checkout session",
                extra={"session_id": session.id, "customer_id": session.customer},
            )
            return

        subscription = await self.payment.retrieve_subscription(session.subscription)
        tier, interval = self.derive_plan(subscription, session.metadata)

        await self.factory_repo.update(
            factory.id,
            FactoryAccountUpdateModel(
                stripe_customer_id=subscription.customer,
                stripe_subscription_id=subscription.id,
                subscription_status=SubscriptionStatus.ACTIVE,
                payment_failed_at=None,
                pending_plan_change=None,
                **self._plan_fields(tier, interval),
            ),
        )

        logger.info(
            f"Checkout completed for factory {factory.id}",
            extra={
                "factory_id": factory.id,
                "session_id": session.id,
                "subscription_id": subscription.id,
                "tier": tier.value if tier else None,
                "interval": interval.value if interval else None,
            },
        )

        previous_id = session.metadata.previous_subscription_id
        if previous_id and previous_id != subscription.id:
            await self._cancel_replaced_subscription(factory.id, previous_id)

    async def _factory_for_checkout(
        self, session: StripeCheckoutSessionData
    ) -> Optional[FactoryAccount]:
        factory_id = session.metadata.factory_id or session.client_reference_id
        if factory_id:
            factory = await self.factory_repo.get(factory_id)
            if factory:
                return factory

        if session.metadata.user_id:
            profile = await self.profile_repo.get(session.metadata.user_id)
            if profile and profile.factory_id:
                factory = await self.factory_repo.get(profile.factory_id)
                if factory:
                    return factory

        return await self.resolve_factory(
            subscription_id=session.subscription, customer_id=session.customer
        )

    async def _cancel_replaced_subscription(
        self, factory_id: str, subscription_id: str
    ) -> None:
        try:
            await self.payment.cancel_subscription(subscription_id)
            logger.info(
                "Cancelled subscription replaced by upgrade",
                extra={"factory_id": factory_id, "subscription_id": subscription_id},
            )
        except ProviderResourceMissingError:
            logger.info(
                "Replaced subscription already gone",
                extra={"factory_id": factory_id, "subscription_id": subscription_id},
            )
        except Exception as e:
            # The record already points at the new subscription; a leftover
            # old subscription needs manual cancellation.
            logger.error(
                f"Failed to cancel replaced subscription: {str(e)}",
                extra={
                    "factory_id": factory_id,
                    "subscription_id": subscription_id,
                    "error": str(e),
                },
            )

    @trace_span
    async def handle_subscription_updated(self, data: Dict[str, Any]) -> None:
        """Handle customer.subscription.updated by re-deriving from the live subscription."""
        event_subscription = StripeSubscriptionData.model_validate(data)
        factory = await self.resolve_factory(
            factory_id=event_subscription.metadata.factory_id,
            subscription_id=event_subscription.id,
            customer_id=event_subscription.customer,
        )
        if factory is None:
            logger.warning(
                "No factory for subscription update",
                extra={"subscription_id": event_subscription.id},
            )
            return

        if (
            factory.stripe_subscription_id
            and factory.stripe_subscription_id != event_subscription.id
        ):
            # Only a record without a subscription adopts a foreign one
            logger.info(
                "Ignoring update for superseded subscription",
                extra={
                    "factory_id": factory.id,
                    "subscription_id": event_subscription.id,
                    "current_subscription_id": factory.stripe_subscription_id,
                },
            )
            return

        try:
            subscription = await self.payment.retrieve_subscription(
                event_subscription.id
            )
        except ProviderResourceMissingError:
            subscription = event_subscription

        tier, interval = self.derive_plan(subscription, subscription.metadata)
        fields: Dict[str, Any] = {
            "subscription_status": map_stripe_status(subscription.status),
            **self._plan_fields(tier, interval),
        }
        if subscription.status not in TERMINAL_STATUSES:
            fields["stripe_customer_id"] = subscription.customer
            fields["stripe_subscription_id"] = subscription.id
        if not subscription.cancel_at_period_end and factory.pending_plan_change:
            # Downgrade withdrawn, e.g. renewed from the customer portal
            fields["pending_plan_change"] = None

        await self.factory_repo.update(factory.id, FactoryAccountUpdateModel(**fields))

        logger.info(
            f"Subscription updated for factory {factory.id}: {subscription.status}",
            extra={
                "factory_id": factory.id,
                "subscription_id": subscription.id,
                "status": subscription.status,
                "cancel_at_period_end": subscription.cancel_at_period_end,
            },
        )

    @trace_span
    async def handle_subscription_deleted(self, data: Dict[str, Any]) -> None:
        """
        Handle customer.subscription.deleted.

        A subscription carrying a pending downgrade is replaced by a new
        subscription at the downgrade price. Otherwise the factory is canceled.
        """
        subscription = StripeSubscriptionData.model_validate(data)
        factory = await self.resolve_factory(
            factory_id=subscription.metadata.factory_id,
            subscription_id=subscription.id,
            customer_id=subscription.customer,
        )
        if factory is None:
            logger.warning(
                "No factory for deleted subscription",
                extra={"subscription_id": subscription.id},
            )
            return

        if (
            factory.stripe_subscription_id
            and factory.stripe_subscription_id != subscription.id
        ):
            logger.info(
                "Ignoring deletion of superseded subscription",
                extra={
                    "factory_id": factory.id,
                    "subscription_id": subscription.id,
                    "current_subscription_id": factory.stripe_subscription_id,
                },
            )
            return

        if (
            factory.stripe_subscription_id is None
            and factory.subscription_status == SubscriptionStatus.CANCELED
        ):
            logger.info(
                "Deletion already processed",
                extra={"factory_id": factory.id, "subscription_id": subscription.id},
            )
            return

        if subscription.metadata.has_pending_downgrade:
            await self._apply_pending_downgrade(factory, subscription)
            return

        await self.factory_repo.update(
            factory.id,
            FactoryAccountUpdateModel(
                subscription_status=SubscriptionStatus.CANCELED,
                stripe_subscription_id=None,
                pending_plan_change=None,
            ),
        )
        logger.info(
            f"Subscription canceled for factory {factory.id}",
            extra={"factory_id": factory.id, "subscription_id": subscription.id},
        )
        await self.notifications.notify(
            factory, BillingNotificationType.SUBSCRIPTION_CANCELED
        )

    async def _apply_pending_downgrade(
        self, factory: FactoryAccount, subscription: StripeSubscriptionData
    ) -> None:
        metadata = subscription.metadata
        try:
            tier = PlanTier(metadata.pending_downgrade_tier)
            interval = (
                self._parse_interval(metadata.pending_downgrade_interval)
                or BillingInterval.MONTH
            )
            replacement = await self.payment.create_subscription(
                customer_id=subscription.customer,
                price_id=metadata.pending_downgrade_price_id,
                metadata={
                    "factory_id": factory.id,
                    "tier": tier.value,
                    "interval": interval.value,
                },
                idempotency_key=f"downgrade-{subscription.id}",
                default_payment_method=subscription.default_payment_method,
            )
        except Exception as e:
            logger.error(
                f"Failed to create downgrade subscription, factory needs manual follow-up: {str(e)}",
                extra={
                    "factory_id": factory.id,
                    "subscription_id": subscription.id,
                    "pending_tier": metadata.pending_downgrade_tier,
                    "pending_price_id": metadata.pending_downgrade_price_id,
                    "error": str(e),
                },
            )
            await self.factory_repo.update(
                factory.id,
                FactoryAccountUpdateModel(
                    subscription_status=SubscriptionStatus.CANCELED,
                    stripe_subscription_id=None,
                    pending_plan_change=None,
                ),
            )
            await self.notifications.notify(
                factory, BillingNotificationType.SUBSCRIPTION_CANCELED
            )
            return

        await self.factory_repo.update(
            factory.id,
            FactoryAccountUpdateModel(
                stripe_customer_id=replacement.customer,
                stripe_subscription_id=replacement.id,
                subscription_status=SubscriptionStatus.ACTIVE,
                pending_plan_change=None,
                **self._plan_fields(tier, interval),
            ),
        )
        logger.info(
            f"Applied scheduled downgrade for factory {factory.id}",
            extra={
                "factory_id": factory.id,
                "previous_subscription_id": subscription.id,
                "subscription_id": replacement.id,
                "tier": tier.value,
                "interval": interval.value,
            },
        )

    @trace_span
    async def handle_invoice_payment_failed(self, data: Dict[str, Any]) -> None:
        """Handle invoice.payment_failed: start (or continue) the grace period."""
        invoice = StripeInvoiceData.model_validate(data)
        factory = await self.resolve_factory(
            factory_id=self._invoice_factory_id(invoice),
            subscription_id=invoice.subscription_id,
            customer_id=invoice.customer,
        )
        if factory is None:
            logger.warning(
                "No factory for failed invoice",
                extra={"invoice_id": invoice.id, "customer_id": invoice.customer},
            )
            return

        fields: Dict[str, Any] = {"subscription_status": SubscriptionStatus.PAST_DUE}
        first_failure = factory.payment_failed_at is None
        if first_failure:
            fields["payment_failed_at"] = datetime.now(timezone.utc)

        await self.factory_repo.update(factory.id, FactoryAccountUpdateModel(**fields))
        logger.info(
            f"Payment failed for factory {factory.id}",
            extra={
                "factory_id": factory.id,
                "invoice_id": invoice.id,
                "first_failure": first_failure,
            },
        )

        if first_failure:
            await self.notifications.notify(
                factory, BillingNotificationType.PAYMENT_FAILED
            )

    @trace_span
    async def handle_invoice_payment_succeeded(self, data: Dict[str, Any]) -> None:
        """Handle invoice.payment_succeeded / invoice.paid: end any grace period."""
        invoice = StripeInvoiceData.model_validate(data)
        factory = await self.resolve_factory(
            factory_id=self._invoice_factory_id(invoice),
            subscription_id=invoice.subscription_id,
            customer_id=invoice.customer,
        )
        if factory is None:
            logger.warning(
                "No factory for paid invoice",
                extra={"invoice_id": invoice.id, "customer_id": invoice.customer},
            )
            return

        fields: Dict[str, Any] = {
            "subscription_status": SubscriptionStatus.ACTIVE,
            "payment_failed_at": None,
        }
        if invoice.customer and invoice.customer != factory.stripe_customer_id:
            fields["stripe_customer_id"] = invoice.customer
        if (
            invoice.subscription_id
            and invoice.subscription_id != factory.stripe_subscription_id
        ):
            fields["stripe_subscription_id"] = invoice.subscription_id

        await self.factory_repo.update(factory.id, FactoryAccountUpdateModel(**fields))
        logger.info(
            f"Payment succeeded for factory {factory.id}",
            extra={"factory_id": factory.id, "invoice_id": invoice.id},
        )

    @staticmethod
    def _invoice_factory_id(invoice: StripeInvoiceData) -> Optional[str]:
        details = (invoice.parent or {}).get("subscription_details") or {}
        return (details.get("metadata") or {}).get("factory_id")


def get_webhook_reconciler() -> StripeWebhookReconciler:
    return StripeWebhookReconciler()


async def handle_stripe_webhook(
    request: Request, reconciler: StripeWebhookReconciler
) -> dict[str, bool]:
    """
    Handle incoming webhook from Stripe.

    Validates the webhook signature and routes to the appropriate handler.
    Signature and payload problems are 400s; failures while applying the
    event are 500s so Stripe retries (handlers are idempotent).
    """
    payload_bytes = await request.body()
    sig_header = request.headers.get("stripe-signature")

    try:
        event = reconciler.payment.verify_webhook(payload_bytes, sig_header)
        payload = StripeWebhookPayload.model_validate(event)
    except WebhookSignatureError as e:
        logger.error(f"Stripe webhook signature verification failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (WebhookPayloadError, ValidationError) as e:
        logger.error(f"Invalid Stripe webhook payload: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )

    log_span_event(
        f"Received Stripe webhook: {payload.type}",
        {
            "event_id": payload.id,
            "event_type": payload.type,
            "livemode": payload.livemode,
        },
    )

    try:
        await reconciler.dispatch(payload)
    except ValidationError as e:
        logger.error(
            "Invalid Stripe object in webhook",
            extra={"event_id": payload.id, "validation_errors": e.errors()},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )
    except Exception as e:
        logger.error(
            f"Failed to process Stripe webhook: {str(e)}",
            extra={"event_id": payload.id, "event_type": payload.type, "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        )

    return {"received": True}

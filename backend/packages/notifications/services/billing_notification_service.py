"""
Billing e-mails sent to a factory's owners and admins.
"""

from html import escape
from typing import Optional, Tuple

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.factories.models.domain.factory_account import FactoryAccount
from packages.notifications.models.domain.notification import (
    BillingNotificationType,
    EmailMessage,
)
from packages.notifications.providers.email.factory import get_email_provider
from packages.notifications.providers.email.interface import EmailProviderInterface
from packages.users.repositories.user_repository import ProfileRepository

logger = get_logger(__name__)


def _button(url: str, label: str) -> str:
    return (
        f'<p style="margin: 24px 0;"><a href="{url}" style="background-color: #2563eb; '
        'color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">'
        f"{label}</a></p>"
    )


def render_billing_email(
    notification_type: BillingNotificationType, factory_name: Optional[str]
) -> Tuple[str, str]:
    """Subject and HTML body for a billing notification."""
    name = escape(factory_name or "your factory")
    billing_url = f"{settings.app_url}/billing"

    if notification_type == BillingNotificationType.PAYMENT_FAILED:
        subject = "Action required: Payment failed for ProductionPortal"
        body = (
            "<h1>Payment Failed</h1>"
            "<p>Hi there,</p>"
            f"<p>We were unable to process your payment for <strong>{name}</strong>.</p>"
            "<p>Please update your payment method to avoid service interruption. "
            f"You keep full access for {settings.payment_grace_period_days} days "
            "while we retry.</p>"
            f"{_button(billing_url, 'Update Payment Method')}"
            "<p>If you believe this is an error, please contact our support team.</p>"
        )
    else:
        subject = "Your ProductionPortal subscription has been canceled"
        body = (
            "<h1>Subscription Canceled</h1>"
            "<p>Hi there,</p>"
            f"<p>Your ProductionPortal subscription for <strong>{name}</strong> "
            "has been canceled.</p>"
            "<p>We're sorry to see you go! If you change your mind, you can "
            "resubscribe at any time.</p>"
            f"{_button(billing_url, 'Resubscribe')}"
            "<p>Thank you for using ProductionPortal.</p>"
        )

    html = (
        '<div style="font-family: sans-serif; max-width: 600px;">'
        f"{body}<p>Best regards,<br>The ProductionPortal Team</p></div>"
    )
    return subject, html


class BillingNotificationService:
    """Best-effort billing notifications."""

    def __init__(
        self,
        email_provider: Optional[EmailProviderInterface] = None,
        profile_repo: Optional[ProfileRepository] = None,
    ):
        self.email_provider = email_provider or get_email_provider()
        self.profile_repo = profile_repo or ProfileRepository()

    @trace_span
    async def notify(
        self, factory: FactoryAccount, notification_type: BillingNotificationType
    ) -> bool:
        """Send a notification to the factory's owners and admins.

        Returns True when an e-mail was handed to the provider. Never raises.
        """
        try:
            recipients = await self.profile_repo.get_account_owner_emails(factory.id)
            if not recipients:
                logger.warning(
                    f"No owner or admin e-mail for {notification_type.value} notification",
                    extra={"factory_id": factory.id},
                )
                return False

            subject, html = render_billing_email(notification_type, factory.name)
            await self.email_provider.send(
                EmailMessage(to=recipients, subject=subject, html=html)
            )
            logger.info(
                f"Sent {notification_type.value} notification",
                extra={"factory_id": factory.id, "recipients": len(recipients)},
            )
            return True
        except Exception as e:
            logger.error(
                f"Failed to send {notification_type.value} notification: {str(e)}",
                extra={"factory_id": factory.id, "error": str(e)},
            )
            return False

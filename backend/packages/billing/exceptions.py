"""
Billing exceptions.

``BillingError`` subclasses carry a message that is safe to show to the
user; routes return it verbatim. Anything else is reported generically.
"""

from common.core.exceptions import AppException, ExternalServiceError, ValidationError


class BillingError(AppException):
    """Base billing error with a user-facing message."""

    def __init__(self, user_message: str):
        super().__init__(user_message)
        self.user_message = user_message


class PlanValidationError(BillingError, ValidationError):
    """The requested plan change is malformed or not allowed."""


class AlreadyOnPlanError(PlanValidationError):
    def __init__(self):
        super().__init__("You are already on this plan")


class NoFactoryError(BillingError):
    def __init__(self):
        super().__init__("No factory associated with user")


class NoSubscriptionError(BillingError):
    def __init__(self):
        super().__init__("No active subscription found. Please subscribe first.")


class PaymentProviderError(BillingError, ExternalServiceError):
    """A Stripe call failed in a way the user can't fix by retrying differently."""

    def __init__(
        self, user_message: str = "Payment provider is unavailable. Please try again."
    ):
        super().__init__(user_message)


class ProviderResourceMissingError(ExternalServiceError):
    """A stored Stripe reference (customer or subscription) no longer exists."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"Stripe {resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class WebhookSignatureError(AppException):
    """Webhook signature is missing, invalid, or can't be checked."""


class WebhookPayloadError(AppException):
    """Webhook body could not be parsed into an event."""

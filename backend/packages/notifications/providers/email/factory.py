from common.core.config import settings
from packages.notifications.providers.email.interface import EmailProviderInterface
from packages.notifications.providers.email.noop_email import NoopEmailProvider
from packages.notifications.providers.email.resend_email import ResendEmailProvider


def get_email_provider() -> EmailProviderInterface:
    """Resend when an API key is configured, otherwise a logging no-op."""
    if settings.resend_api_key:
        return ResendEmailProvider(api_key=settings.resend_api_key)
    return NoopEmailProvider()

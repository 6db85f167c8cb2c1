from common.core.otel_axiom_exporter import get_logger
from packages.notifications.models.domain.notification import EmailMessage
from packages.notifications.providers.email.interface import EmailProviderInterface

logger = get_logger(__name__)


class NoopEmailProvider(EmailProviderInterface):
    """Logs instead of sending; used when no e-mail API key is configured."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(
            f"E-mail delivery disabled, skipping: {message.subject}",
            extra={"recipients": len(message.to)},
        )

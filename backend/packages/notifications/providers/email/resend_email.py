import httpx

from common.core.config import settings
from common.core.exceptions import ExternalServiceError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.notifications.models.domain.notification import EmailMessage
from packages.notifications.providers.email.interface import EmailProviderInterface

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class ResendEmailProvider(EmailProviderInterface):
    """Sends e-mail through the Resend HTTP API."""

    def __init__(self, api_key: str, from_email: str = None, timeout: float = 10.0):
        self.api_key = api_key
        self.from_email = from_email or settings.notification_from_email
        self.timeout = timeout

    @trace_span
    async def send(self, message: EmailMessage) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.from_email,
                        "to": message.to,
                        "subject": message.subject,
                        "html": message.html,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise ExternalServiceError(f"Resend request failed: {e}") from e

        logger.info(
            "Sent e-mail via Resend",
            extra={"subject": message.subject, "recipients": len(message.to)},
        )

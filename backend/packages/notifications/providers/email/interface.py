from abc import ABC, abstractmethod

from packages.notifications.models.domain.notification import EmailMessage


class EmailProviderInterface(ABC):
    """Interface for transactional e-mail providers"""

    @abstractmethod
    async def send(self, message: EmailMessage) -> None:
        """Send a message.

        Raises:
            ExternalServiceError: the provider rejected or failed the request
        """
        pass

"""Email transport interface consumed by the dispatcher."""

from abc import ABC, abstractmethod
from typing import Optional


class EmailTransport(ABC):
    """Hands a rendered message to an external email provider."""

    @abstractmethod
    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> str:
        """Send one message.

        Args:
            to: Recipient address
            subject: Single-line subject
            html: HTML body
            text: Optional plain text alternative

        Returns:
            Provider message id

        Raises:
            EmailDeliveryError: If the provider rejected the message or could
                not be reached
            EmailTimeoutError: If the call exceeded the transport timeout
        """
        pass

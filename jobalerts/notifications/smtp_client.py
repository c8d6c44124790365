"""SMTP transport for email delivery.

Thin wrapper around smtplib with TLS/SSL negotiation, optional
authentication and connection cleanup. Factories are injectable so tests
never open sockets.
"""

import smtplib
import ssl
from email.message import EmailMessage
from email.utils import make_msgid, parseaddr
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.logging import get_logger

from .models import EmailDeliveryError, EmailTimeoutError
from .transport import EmailTransport

logger = get_logger(__name__, component="notification")


class SMTPTransport(EmailTransport):
    """EmailTransport over SMTP.

    Port 465 uses implicit TLS; any other port uses STARTTLS when
    ``use_tls`` is set.
    """

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 30,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    @classmethod
    def from_environment(
        cls, env_config: EnvironmentConfig, use_tls: bool = True, timeout: float = 30
    ) -> "SMTPTransport":
        return cls(
            host=env_config.smtp_host,
            port=env_config.smtp_port,
            sender=env_config.sender_address,
            username=env_config.smtp_user,
            password=env_config.smtp_pass,
            use_tls=use_tls,
            timeout=timeout,
        )

    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> str:
        """Send a message via SMTP and return the generated Message-ID.

        Raises:
            EmailDeliveryError: If the recipient is invalid or delivery fails
            EmailTimeoutError: If the connection or a command timed out
        """
        recipient = validate_recipient(to)

        message = EmailMessage()
        _, sender_email = parseaddr(self.sender)
        message_id = make_msgid(domain=sender_email.split("@")[-1] if "@" in sender_email else None)
        message["Message-ID"] = message_id
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = recipient
        message.set_content(text or "This message requires an HTML-capable email client.")
        message.add_alternative(html, subtype="html")

        smtp = None
        try:
            if self.port == 465:
                logger.debug(f"Connecting to {self.host}:{self.port} with implicit TLS")
                context = ssl.create_default_context()
                smtp = self.smtp_ssl_factory(
                    self.host, self.port, timeout=self.timeout, context=context
                )
            else:
                logger.debug(f"Connecting to {self.host}:{self.port}")
                smtp = self.smtp_factory(self.host, self.port, timeout=self.timeout)

                if self.use_tls:
                    logger.debug("Upgrading connection with STARTTLS")
                    context = ssl.create_default_context()
                    smtp.starttls(context=context)

            if self.username and self.password:
                logger.debug(f"Authenticating as {self.username}")
                smtp.login(self.username, self.password)

            smtp.send_message(message)
            logger.debug(f"Message sent successfully to {recipient}")
            return message_id

        except TimeoutError as e:
            error_msg = f"SMTP timed out after {self.timeout}s: {e}"
            logger.error(error_msg)
            raise EmailTimeoutError(error_msg) from e
        except smtplib.SMTPRecipientsRefused as e:
            error_msg = f"SMTP server refused recipient {recipient}: {e}"
            logger.error(error_msg)
            raise EmailDeliveryError(error_msg, retryable=False) from e
        except smtplib.SMTPAuthenticationError as e:
            error_msg = f"SMTP authentication failed: {e}"
            logger.error(error_msg)
            raise EmailDeliveryError(error_msg, retryable=False) from e
        except smtplib.SMTPException as e:
            error_msg = f"SMTP error during message delivery: {e}"
            logger.error(error_msg)
            raise EmailDeliveryError(error_msg) from e
        except OSError as e:
            error_msg = f"Network error during SMTP connection: {e}"
            logger.error(error_msg)
            raise EmailDeliveryError(error_msg) from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def validate_recipient(address: str) -> str:
    """Validate and normalise a single recipient address.

    Raises:
        EmailDeliveryError: If the address is not a valid email (not retryable)
    """
    try:
        return validate_email(address, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise EmailDeliveryError(
            f"Invalid recipient address '{address}': {e}", retryable=False
        ) from e

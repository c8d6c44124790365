"""Transactional email over the Resend HTTP API.

A 4xx response other than 429 means the request itself is wrong (bad key,
unverified sender, invalid recipient) and is not worth retrying; 429 and
5xx responses are.
"""

import logging
from typing import Any, Dict, Optional

import requests

from jobalerts.logging import get_logger

from .models import EmailDeliveryError, EmailTimeoutError
from .smtp_client import validate_recipient
from .transport import EmailTransport

logger = get_logger(__name__, component="notification")

RESEND_API_URL = "https://api.resend.com/emails"


class ResendTransport(EmailTransport):
    """EmailTransport backed by the Resend REST API."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        timeout: float = 30,
        api_url: str = RESEND_API_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ValueError("Resend API key cannot be empty")

        self.sender = sender
        self.timeout = timeout
        self.api_url = api_url

        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key.strip()}",
                "Content-Type": "application/json",
                "User-Agent": "JobAlerts/1.0",
            }
        )

    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> str:
        """POST one message and return the id Resend assigned to it.

        Raises:
            EmailDeliveryError: On HTTP errors, connection failures or a
                response without an id
            EmailTimeoutError: If the request timed out
        """
        recipient = validate_recipient(to)
        payload: Dict[str, Any] = {
            "from": self.sender,
            "to": [recipient],
            "subject": subject,
            "html": html,
        }
        if text:
            payload["text"] = text

        logger.debug(
            "Sending message through Resend",
            extra={"event": "notification.transport.request", "url": self.api_url},
        )

        try:
            response = self._session.post(self.api_url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise EmailTimeoutError(f"Resend request timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise EmailDeliveryError(f"Resend request failed: {e}") from e

        if response.status_code >= 400:
            retryable = response.status_code == 429 or response.status_code >= 500
            logger.log(
                logging.WARNING if retryable else logging.ERROR,
                f"HTTP {response.status_code} error from Resend",
                extra={
                    "event": "notification.transport.error",
                    "status_code": response.status_code,
                    "retryable": retryable,
                },
            )
            raise EmailDeliveryError(
                f"Resend rejected message: HTTP {response.status_code}: "
                f"{_error_detail(response)}",
                retryable=retryable,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise EmailDeliveryError(f"Failed to parse Resend response: {e}") from e

        message_id = body.get("id") if isinstance(body, dict) else None
        if not message_id:
            raise EmailDeliveryError("Resend response did not include a message id")

        return message_id


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason or "unknown error"
    if isinstance(body, dict):
        return body.get("message") or body.get("name") or response.reason or "unknown error"
    return response.reason or "unknown error"

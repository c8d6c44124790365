"""Digest rendering and delivery for job alerts."""

from .models import (
    DispatchResult,
    DispatchStatus,
    EmailDeliveryError,
    EmailTimeoutError,
    NotificationError,
    NotificationTemplateError,
)
from .resend_client import ResendTransport
from .service import NotificationDispatcher
from .smtp_client import SMTPTransport
from .templates import TemplateRenderer
from .transport import EmailTransport

__all__ = [
    "NotificationDispatcher",
    "DispatchResult",
    "DispatchStatus",
    "EmailTransport",
    "SMTPTransport",
    "ResendTransport",
    "TemplateRenderer",
    "NotificationError",
    "NotificationTemplateError",
    "EmailDeliveryError",
    "EmailTimeoutError",
]

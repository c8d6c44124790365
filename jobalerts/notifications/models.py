"""Result types and exceptions for alert dispatch."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class EmailDeliveryError(NotificationError):
    """Raised by a transport when a message could not be handed off.

    Attributes:
        retryable: False when retrying the same request cannot succeed
            (rejected recipient, bad credentials)
    """

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class EmailTimeoutError(EmailDeliveryError):
    """Raised when the transport call exceeded its timeout."""

    pass


class DispatchStatus(str, Enum):
    """Outcome of one dispatch attempt for one alert."""

    NO_MATCHES = "no_matches"
    SUPPRESSED = "suppressed"
    SENT = "sent"
    DEFERRED = "deferred"
    CONFLICT = "conflict"


@dataclass
class DispatchResult:
    """Result of dispatching one alert's matches.

    Attributes:
        alert_id: Alert that was dispatched
        status: Outcome (see DispatchStatus)
        matched: Number of matched jobs handed to the dispatcher
        attempts: Transport calls made (0 when nothing was sent)
        message_id: Transport message id on success
        watermark_advanced: Whether this attempt moved last_sent_at
        job_ids: Ids of the jobs included in the digest
        error: Error message for deferred attempts
    """

    alert_id: str
    status: DispatchStatus
    matched: int = 0
    attempts: int = 0
    message_id: Optional[str] = None
    watermark_advanced: bool = False
    job_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == DispatchStatus.SENT

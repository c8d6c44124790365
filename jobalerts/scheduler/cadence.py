"""Cadence rules: when an alert is due and which jobs it should consider.

Instant alerts are event-triggered (evaluated when a job is published), so
they have no polling interval; the instant catch-up sweep treats them as
always due and relies on the watermark alone.
"""

from datetime import datetime, timedelta
from typing import Optional

from jobalerts.domain.models import AlertCriteria, Frequency
from jobalerts.utils.timestamps import ensure_utc

CADENCE_INTERVALS = {
    Frequency.INSTANT: None,
    Frequency.DAILY: timedelta(hours=24),
    Frequency.WEEKLY: timedelta(days=7),
}


def cadence_interval(frequency: Frequency) -> Optional[timedelta]:
    """Minimum time between two digests of the given tier (None for instant)."""
    return CADENCE_INTERVALS[Frequency(frequency)]


def due_before(frequency: Frequency, as_of: datetime) -> Optional[datetime]:
    """Latest last_sent_at value that still makes an alert of this tier due.

    Returns None for instant alerts, which are never held back by cadence.
    """
    interval = cadence_interval(frequency)
    if interval is None:
        return None
    return ensure_utc(as_of) - interval


def is_due(alert: AlertCriteria, as_of: datetime) -> bool:
    """Whether the alert should be evaluated at ``as_of``.

    Inactive alerts are never due. An alert that has never been sent is
    always due.
    """
    if not alert.is_active:
        return False
    if alert.last_sent_at is None:
        return True

    threshold = due_before(alert.frequency, as_of)
    if threshold is None:
        return True
    return alert.last_sent_at <= threshold


def watermark(alert: AlertCriteria) -> datetime:
    """Lower bound (exclusive) for "new since last check" job selection."""
    return alert.last_sent_at or alert.created_at

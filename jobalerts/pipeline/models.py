"""Data models for sweep execution tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from jobalerts.domain.models import Frequency
from jobalerts.notifications.models import DispatchStatus

# Per-alert outcomes that are not dispatch results
NOT_DUE = "not_due"
FAILED = "failed"


class SweepAbortedError(Exception):
    """Raised when a sweep cannot even list its due alerts.

    Nothing was dispatched; the next scheduled trigger retries.
    """

    def __init__(self, frequency: Frequency, message: str):
        self.frequency = frequency
        super().__init__(message)


@dataclass
class AlertRunStats:
    """
    Outcome of processing one alert within a sweep.

    Attributes:
        alert_id: Alert that was processed
        status: A DispatchStatus value, or "not_due" / "failed"
        candidate_count: Jobs inside the alert's window
        matched_count: Jobs that passed the matcher
        duration_seconds: Time spent on this alert
        error_message: Error message for failed or deferred alerts
    """

    alert_id: str
    status: str
    candidate_count: int = 0
    matched_count: int = 0
    duration_seconds: float = 0.0
    error_message: Optional[str] = None


@dataclass
class SweepResult:
    """
    Aggregate results of one sweep (or one job-published trigger).

    Attributes:
        frequency: Tier that was swept
        as_of: Sweep time used for due checks and as the new watermark
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        trigger: "sweep" or "job_published"
        alert_stats: Per-alert outcomes
        skipped: Whether the run was skipped (previous run of the tier still in progress)
    """

    frequency: Frequency
    as_of: datetime
    run_started_at: datetime
    run_finished_at: datetime
    trigger: str = "sweep"
    alert_stats: List[AlertRunStats] = field(default_factory=list)
    skipped: bool = False

    def count(self, status: str) -> int:
        return sum(1 for s in self.alert_stats if s.status == status)

    @property
    def alerts_processed(self) -> int:
        return len(self.alert_stats)

    @property
    def sent_count(self) -> int:
        return self.count(DispatchStatus.SENT.value)

    @property
    def suppressed_count(self) -> int:
        return self.count(DispatchStatus.SUPPRESSED.value)

    @property
    def deferred_count(self) -> int:
        return self.count(DispatchStatus.DEFERRED.value)

    @property
    def conflict_count(self) -> int:
        return self.count(DispatchStatus.CONFLICT.value)

    @property
    def failed_count(self) -> int:
        return self.count(FAILED)

    @property
    def total_matched(self) -> int:
        return sum(s.matched_count for s in self.alert_stats)

    @property
    def had_errors(self) -> bool:
        return self.failed_count > 0 or self.deferred_count > 0

    @property
    def duration_seconds(self) -> float:
        return (self.run_finished_at - self.run_started_at).total_seconds()

"""Scheduler service for periodic alert sweeps."""

import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from jobalerts.domain.models import Frequency
from jobalerts.logging import get_logger

logger = get_logger(__name__, component="scheduler")

SWEEP_JOB_NAMES = {
    Frequency.INSTANT: "Instant Alert Catch-up Sweep",
    Frequency.DAILY: "Daily Alert Sweep",
    Frequency.WEEKLY: "Weekly Alert Sweep",
}


def sweep_job_id(frequency: Frequency) -> str:
    return f"alert-sweep-{Frequency(frequency).value}"


class SchedulerService:
    """
    Wraps APScheduler to trigger one sweep per frequency tier at a fixed interval.

    Uses BackgroundScheduler to run sweeps in worker threads while the main
    thread handles signals and coordinates shutdown. Each tier is its own
    job with max_instances=1, so a slow sweep of one tier never overlaps
    itself and never blocks the other tiers.
    """

    def __init__(
        self,
        sweep_callable: Callable[[Frequency], object],
        interval_seconds: int,
        frequencies: Iterable[Frequency] = (Frequency.DAILY, Frequency.WEEKLY),
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            sweep_callable: Called with the tier on each scheduled run
            interval_seconds: Interval between runs in seconds
            frequencies: Tiers to register a sweep for
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.sweep_callable = sweep_callable
        self.interval_seconds = interval_seconds
        self.frequencies = [Frequency(f) for f in frequencies]
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """
        Register one interval job per tier and start the scheduler.

        The first run of every tier executes immediately after startup.
        """
        next_run = datetime.now(timezone.utc)
        for frequency in self.frequencies:
            self.scheduler.add_job(
                func=self._run_tier,
                args=[frequency],
                trigger=IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
                id=sweep_job_id(frequency),
                name=SWEEP_JOB_NAMES[frequency],
                replace_existing=True,
                next_run_time=next_run,
            )

        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "frequencies": [f.value for f in self.frequencies],
                "next_run_time": next_run.isoformat(),
            },
        )

    def _run_tier(self, frequency: Frequency) -> None:
        # Exceptions here would only reach APScheduler's own logger
        try:
            self.sweep_callable(frequency)
        except Exception as e:
            logger.error(
                f"Scheduled {frequency.value} sweep failed: {e}",
                exc_info=True,
                extra={
                    "event": "scheduler.job.failed",
                    "frequency": frequency.value,
                    "error_type": type(e).__name__,
                },
            )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for running sweeps to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self, frequency: Frequency) -> None:
        """Run one tier's sweep synchronously in the current thread."""
        frequency = Frequency(frequency)
        logger.info(
            f"Triggering immediate {frequency.value} sweep",
            extra={"event": "scheduler.trigger_now", "frequency": frequency.value},
        )
        self.sweep_callable(frequency)

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_times(self) -> Dict[Frequency, Optional[datetime]]:
        """Next scheduled run per tier (None if the tier is not scheduled)."""
        next_runs = {}
        for frequency in self.frequencies:
            job = self.scheduler.get_job(sweep_job_id(frequency))
            next_runs[frequency] = job.next_run_time if job else None
        return next_runs

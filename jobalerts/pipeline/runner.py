"""Sweep orchestration for alert evaluation and dispatch."""

import threading
import time
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from jobalerts.domain.models import AlertCriteria, Frequency, JobPosting
from jobalerts.logging import get_logger
from jobalerts.logging.context import log_context
from jobalerts.matching.engine import MatchEvaluator
from jobalerts.matching.models import MatchResult
from jobalerts.notifications.service import NotificationDispatcher
from jobalerts.persistence.database import get_session
from jobalerts.persistence.exceptions import PersistenceError
from jobalerts.persistence.repositories import AlertRepository, JobRepository, ProfileRepository
from jobalerts.scheduler.cadence import is_due, watermark
from jobalerts.utils.timestamps import ensure_utc, format_timestamp, utc_now

from .models import FAILED, NOT_DUE, AlertRunStats, SweepAbortedError, SweepResult

logger = get_logger(__name__, component="pipeline")

SessionFactory = Callable[[], AbstractContextManager]


class AlertSweep:
    """
    Evaluates due alerts against new jobs and dispatches digests.

    Each alert is processed in its own session so one alert's failure rolls
    back only its own writes and never stops the loop. Only failing to list
    the due alerts aborts a sweep.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        evaluator: Optional[MatchEvaluator] = None,
        session_factory: SessionFactory = get_session,
    ):
        """
        Initialize the sweep.

        Args:
            dispatcher: Dispatcher used for matched alerts
            evaluator: Match evaluator (creates default if None)
            session_factory: Callable returning a session context manager
                that commits on success and rolls back on error
        """
        self.dispatcher = dispatcher
        self.evaluator = evaluator or MatchEvaluator()
        self.session_factory = session_factory
        self._locks: Dict[Frequency, threading.Lock] = {f: threading.Lock() for f in Frequency}

    def run_sweep(self, frequency: Frequency, as_of: Optional[datetime] = None) -> SweepResult:
        """
        Evaluate every due alert of one tier.

        For instant alerts this is the catch-up sweep: it retries digests
        whose publish-time dispatch was deferred.

        Args:
            frequency: Tier to sweep
            as_of: Sweep time (defaults to now)

        Returns:
            SweepResult with per-alert outcomes; ``skipped`` is set when a
            previous sweep of the same tier is still running

        Raises:
            SweepAbortedError: If the due alerts could not be listed
        """
        frequency = Frequency(frequency)
        as_of = ensure_utc(as_of) if as_of else utc_now()
        run_started_at = utc_now()
        run_id = uuid4().hex

        lock = self._locks[frequency]
        if not lock.acquire(blocking=False):
            with log_context(run_id=run_id, frequency=frequency.value):
                logger.warning(
                    "Sweep skipped: previous sweep still in progress",
                    extra={"event": "sweep.run.skipped", "reason": "lock_held"},
                )
            return SweepResult(
                frequency=frequency,
                as_of=as_of,
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                skipped=True,
            )

        try:
            with log_context(run_id=run_id, frequency=frequency.value):
                logger.info(
                    "Sweep started",
                    extra={"event": "sweep.run.started", "as_of": format_timestamp(as_of)},
                )

                due_alerts = self._list_due(frequency, as_of)
                stats = [self._process_alert(alert, as_of) for alert in due_alerts]

                result = SweepResult(
                    frequency=frequency,
                    as_of=as_of,
                    run_started_at=run_started_at,
                    run_finished_at=utc_now(),
                    alert_stats=stats,
                )
                self._log_completed(result)
                return result
        finally:
            lock.release()

    def on_job_published(self, job: JobPosting, as_of: Optional[datetime] = None) -> SweepResult:
        """
        Evaluate instant alerts against a job that just became active.

        The candidate set for each instant alert is ``job`` plus any job
        still waiting behind the alert's watermark after a deferred send.
        A job the alert has already covered (created and last updated at or
        before the watermark) is dropped, so a catch-up sweep that ran
        before this hook does not cause a second send.

        Raises:
            SweepAbortedError: If the instant alerts could not be listed
        """
        as_of = ensure_utc(as_of) if as_of else utc_now()
        run_started_at = utc_now()
        stats: List[AlertRunStats] = []

        with log_context(run_id=uuid4().hex, frequency=Frequency.INSTANT.value, job_id=job.id):
            if not job.is_active:
                logger.debug(
                    "Published job is not active, instant alerts not evaluated",
                    extra={"event": "sweep.job_published.ignored", "status": job.status.value},
                )
            else:
                logger.info(
                    "Evaluating instant alerts for published job",
                    extra={"event": "sweep.job_published.started"},
                )
                alerts = self._list_due(Frequency.INSTANT, as_of)
                stats = [self._process_alert(alert, as_of, published=job) for alert in alerts]

            result = SweepResult(
                frequency=Frequency.INSTANT,
                as_of=as_of,
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                trigger="job_published",
                alert_stats=stats,
            )
            if job.is_active:
                self._log_completed(result)
            return result

    def _list_due(self, frequency: Frequency, as_of: datetime) -> List[AlertCriteria]:
        try:
            with self.session_factory() as session:
                return AlertRepository(session).list_active_due(frequency, as_of)
        except PersistenceError as e:
            logger.error(
                f"Sweep aborted: could not list due {frequency.value} alerts: {e}",
                exc_info=True,
                extra={"event": "sweep.run.aborted", "error_type": type(e).__name__},
            )
            raise SweepAbortedError(frequency, f"Could not list due alerts: {e}") from e

    def _process_alert(
        self,
        alert: AlertCriteria,
        as_of: datetime,
        published: Optional[JobPosting] = None,
    ) -> AlertRunStats:
        """Evaluate and dispatch one alert; never raises."""
        started = time.monotonic()
        stats = AlertRunStats(alert_id=alert.id, status=FAILED)

        with log_context(alert_id=alert.id):
            try:
                with self.session_factory() as session:
                    self._evaluate_and_dispatch(session, alert, as_of, published, stats)
            except PersistenceError as e:
                stats.status = FAILED
                stats.error_message = str(e)
                logger.error(
                    f"Store error while processing alert {alert.id}, retrying next sweep: {e}",
                    exc_info=True,
                    extra={"event": "sweep.alert.failed", "error_type": type(e).__name__},
                )
            except Exception as e:
                stats.status = FAILED
                stats.error_message = str(e)
                logger.error(
                    f"Unexpected error while processing alert {alert.id}: {e}",
                    exc_info=True,
                    extra={"event": "sweep.alert.failed", "error_type": type(e).__name__},
                )

        stats.duration_seconds = round(time.monotonic() - started, 3)
        return stats

    def _evaluate_and_dispatch(
        self,
        session: Session,
        alert: AlertCriteria,
        as_of: datetime,
        published: Optional[JobPosting],
        stats: AlertRunStats,
    ) -> None:
        # Re-read so a dispatch that finished since the listing is seen
        current = AlertRepository(session).get(alert.id)
        if current is None or not is_due(current, as_of):
            stats.status = NOT_DUE
            logger.debug(
                "Alert no longer due, skipping",
                extra={"event": "sweep.alert.not_due"},
            )
            return

        since = watermark(current)
        candidates = JobRepository(session).list_active_created_between(since, as_of)
        if published is not None and all(job.id != published.id for job in candidates):
            if _changed_after(published, since):
                candidates.append(published)
            else:
                logger.debug(
                    "Published job already covered by watermark",
                    extra={"event": "sweep.alert.already_covered", "job_id": published.id},
                )
        stats.candidate_count = len(candidates)

        matched: List[JobPosting] = []
        match_results: Dict[str, MatchResult] = {}
        for job in candidates:
            result = self.evaluator.evaluate(job, current)
            if result.is_match:
                matched.append(job)
                match_results[job.id] = result
        stats.matched_count = len(matched)

        profile = ProfileRepository(session).get(current.owner_id) if matched else None
        dispatch_result = self.dispatcher.dispatch(
            session, profile, current, matched, as_of, match_results=match_results
        )
        stats.status = dispatch_result.status.value
        stats.error_message = dispatch_result.error

    @staticmethod
    def _log_completed(result: SweepResult) -> None:
        logger.info(
            f"Sweep completed: {result.alerts_processed} alerts, "
            f"{result.total_matched} matched, {result.sent_count} sent, "
            f"{result.suppressed_count} suppressed, {result.deferred_count} deferred, "
            f"{result.failed_count} failed",
            extra={
                "event": "sweep.run.completed",
                "trigger": result.trigger,
                "alerts_processed": result.alerts_processed,
                "total_matched": result.total_matched,
                "sent": result.sent_count,
                "suppressed": result.suppressed_count,
                "deferred": result.deferred_count,
                "conflicts": result.conflict_count,
                "failed": result.failed_count,
                "duration_seconds": round(result.duration_seconds, 3),
            },
        )


def _changed_after(job: JobPosting, since: datetime) -> bool:
    """Whether the job was created or last updated after ``since``."""
    last_change = max(job.created_at, job.updated_at or job.created_at)
    return last_change > since

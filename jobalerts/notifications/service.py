"""Notification dispatcher for job alert digests.

The dispatcher turns one alert's matched jobs into at most one confirmed
digest per cadence window:

1. No matches: nothing happens
2. Job alert emails disabled for the owner: suppressed, watermark advanced
3. Render the digest and send it with retry/backoff
4. Sent: email log appended, watermark advanced
5. Send failed or timed out: deferred, nothing written, retried next sweep

The watermark is always advanced through the conditional update in
AlertRepository.advance_last_sent. Losing that race means another
dispatcher already confirmed the window; the outcome is reported as a
conflict. The dispatcher works inside the caller's session and never
commits.
"""

import logging
import time
from datetime import datetime
from typing import Dict, Optional, Sequence

from sqlalchemy.orm import Session

from jobalerts.config.models import AppSettings, EmailConfig
from jobalerts.domain.models import AlertCriteria, EmailLogEntry, JobPosting, Profile
from jobalerts.logging import get_logger
from jobalerts.matching.models import MatchResult
from jobalerts.persistence.repositories import (
    AlertRepository,
    EmailLogRepository,
    PreferenceRepository,
)
from jobalerts.utils.timestamps import ensure_utc, format_timestamp, utc_now

from .models import (
    DispatchResult,
    DispatchStatus,
    EmailDeliveryError,
    EmailTimeoutError,
    NotificationTemplateError,
)
from .payloads import build_digest_context
from .templates import TemplateRenderer
from .transport import EmailTransport

logger = get_logger(__name__, component="notification")

EMAIL_TYPE_JOB_ALERT = "job_alert"


class NotificationDispatcher:
    """Decides whether to send an alert digest, sends it, and records the outcome."""

    def __init__(
        self,
        transport: EmailTransport,
        email_config: Optional[EmailConfig] = None,
        app_settings: Optional[AppSettings] = None,
        template_renderer: Optional[TemplateRenderer] = None,
        logger_instance: Optional[logging.LoggerAdapter] = None,
    ):
        """Initialize the dispatcher.

        Args:
            transport: Email transport used for delivery
            email_config: Retry and digest settings (defaults if None)
            app_settings: Public URL and brand for links (defaults if None)
            template_renderer: Template renderer (creates default if None)
            logger_instance: Logger instance (uses module logger if None)
        """
        self.transport = transport
        self.email_config = email_config or EmailConfig()
        self.app_settings = app_settings or AppSettings()
        self.template_renderer = template_renderer or TemplateRenderer()
        self.logger = logger_instance or logger

    def dispatch(
        self,
        session: Session,
        profile: Optional[Profile],
        alert: AlertCriteria,
        matched_jobs: Sequence[JobPosting],
        as_of: datetime,
        match_results: Optional[Dict[str, MatchResult]] = None,
    ) -> DispatchResult:
        """Dispatch one alert's matched jobs.

        Args:
            session: Session the preference lookup, email log and watermark
                update run in (caller commits)
            profile: Alert owner's profile, None if it could not be found
            alert: Alert being dispatched, as read at the start of the attempt
            matched_jobs: Jobs that passed the matcher
            as_of: Sweep time; becomes the new watermark
            match_results: Optional match details keyed by job id

        Returns:
            DispatchResult describing the outcome. Transport failures are
            reported as DEFERRED, never raised.

        Raises:
            PersistenceError: If the preference lookup, email log append or
                watermark update fails
        """
        as_of = ensure_utc(as_of)
        job_ids = [job.id for job in matched_jobs]

        if not matched_jobs:
            self.logger.debug(
                "No matching jobs, nothing to dispatch",
                extra={"event": "alert.dispatch.no_matches", "alert_id": alert.id},
            )
            return DispatchResult(alert_id=alert.id, status=DispatchStatus.NO_MATCHES)

        alert_repo = AlertRepository(session)

        preference = PreferenceRepository(session).get_for_profile(alert.owner_id)
        if preference is not None and not preference.allows_job_alert_emails():
            advanced = alert_repo.advance_last_sent(alert.id, alert.last_sent_at, as_of)
            status = DispatchStatus.SUPPRESSED if advanced else DispatchStatus.CONFLICT
            self.logger.info(
                "Job alert emails disabled for owner, digest suppressed",
                extra={
                    "event": "alert.dispatch.suppressed",
                    "alert_id": alert.id,
                    "owner_id": alert.owner_id,
                    "match_count": len(matched_jobs),
                    "watermark_advanced": advanced,
                },
            )
            return DispatchResult(
                alert_id=alert.id,
                status=status,
                matched=len(matched_jobs),
                watermark_advanced=advanced,
                job_ids=job_ids,
            )

        if profile is None or not profile.email:
            return self._deferred(alert, matched_jobs, 0, "No recipient email address for alert owner")

        try:
            context = build_digest_context(
                profile,
                alert,
                matched_jobs,
                self.app_settings,
                max_jobs=self.email_config.digest_max_jobs,
                match_results=match_results,
            )
            rendered = self.template_renderer.render(context)
        except NotificationTemplateError as e:
            return self._deferred(alert, matched_jobs, 0, f"Template rendering failed: {e}")

        subject = rendered["subject"]
        message_id, attempts, error = self._send_with_retry(
            alert, profile.email, subject, rendered["html_body"], rendered["text_body"]
        )
        if message_id is None:
            return self._deferred(alert, matched_jobs, attempts, error)

        EmailLogRepository(session).append(
            EmailLogEntry(
                email_address=profile.email,
                email_type=EMAIL_TYPE_JOB_ALERT,
                subject=subject,
                status="sent",
                message_id=message_id,
                metadata={
                    "alert_id": alert.id,
                    "job_ids": job_ids,
                    "match_count": len(matched_jobs),
                    "window_end": format_timestamp(as_of),
                },
                created_at=utc_now(),
            )
        )

        advanced = alert_repo.advance_last_sent(alert.id, alert.last_sent_at, as_of)
        if not advanced:
            self.logger.warning(
                "Digest sent but watermark was already advanced by another dispatch",
                extra={
                    "event": "alert.dispatch.conflict",
                    "alert_id": alert.id,
                    "message_id": message_id,
                },
            )
            return DispatchResult(
                alert_id=alert.id,
                status=DispatchStatus.CONFLICT,
                matched=len(matched_jobs),
                attempts=attempts,
                message_id=message_id,
                job_ids=job_ids,
            )

        self.logger.info(
            f"Digest sent for alert '{alert.title}' with {len(matched_jobs)} job(s) "
            f"(attempts: {attempts})",
            extra={
                "event": "alert.dispatch.sent",
                "alert_id": alert.id,
                "match_count": len(matched_jobs),
                "attempts": attempts,
                "message_id": message_id,
            },
        )
        return DispatchResult(
            alert_id=alert.id,
            status=DispatchStatus.SENT,
            matched=len(matched_jobs),
            attempts=attempts,
            message_id=message_id,
            watermark_advanced=True,
            job_ids=job_ids,
        )

    def _send_with_retry(self, alert: AlertCriteria, to: str, subject: str, html: str, text: str):
        """Send through the transport, retrying with exponential backoff.

        Returns:
            Tuple of (message_id or None, attempts made, last error message)
        """
        max_attempts = self.email_config.max_retries + 1
        last_error = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = self.email_config.retry_initial_delay * (
                    self.email_config.retry_backoff_multiplier ** (attempt - 2)
                )
                delay = min(delay, 60.0)
                self.logger.warning(
                    f"Retrying digest for alert {alert.id} (attempt {attempt}/{max_attempts}) "
                    f"after {delay:.1f}s delay",
                    extra={"event": "alert.dispatch.attempt", "attempt": attempt},
                )
                time.sleep(delay)

            try:
                return self.transport.send(to, subject, html, text), attempt, None
            except EmailDeliveryError as e:
                last_error = str(e)
                retry_remaining = attempt < max_attempts and e.retryable
                self.logger.warning(
                    f"Digest delivery failed for alert {alert.id} "
                    f"(attempt {attempt}/{max_attempts}): {e}",
                    extra={
                        "event": "alert.dispatch.failure",
                        "alert_id": alert.id,
                        "attempt": attempt,
                        "error_type": type(e).__name__,
                        "timed_out": isinstance(e, EmailTimeoutError),
                        "retry_remaining": retry_remaining,
                    },
                )
                if not retry_remaining:
                    return None, attempt, last_error

        return None, max_attempts, last_error

    def _deferred(
        self,
        alert: AlertCriteria,
        matched_jobs: Sequence[JobPosting],
        attempts: int,
        error: Optional[str],
    ) -> DispatchResult:
        self.logger.error(
            f"Digest for alert {alert.id} deferred to next sweep: {error}",
            extra={
                "event": "alert.dispatch.deferred",
                "alert_id": alert.id,
                "owner_id": alert.owner_id,
                "match_count": len(matched_jobs),
                "attempts": attempts,
                "error": error,
            },
        )
        return DispatchResult(
            alert_id=alert.id,
            status=DispatchStatus.DEFERRED,
            matched=len(matched_jobs),
            attempts=attempts,
            job_ids=[job.id for job in matched_jobs],
            error=error,
        )

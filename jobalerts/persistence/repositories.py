"""Data access layer (repositories) for persistence operations.

Repositories wrap a SQLAlchemy session and return domain models rather than
ORM rows. Database failures surface as PersistenceError subclasses; owner
scoping failures surface as AlertNotFoundError.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from jobalerts.domain.exceptions import AlertNotFoundError, AlertValidationError
from jobalerts.domain.models import (
    AlertCriteria,
    EmailLogEntry,
    Frequency,
    JobPosting,
    JobStatus,
    NotificationPreference,
    Profile,
)
from jobalerts.logging import get_logger
from jobalerts.scheduler.cadence import due_before
from jobalerts.utils.timestamps import (
    ensure_utc,
    from_storage,
    storage_day_ceiling,
    storage_day_floor,
    to_storage,
    utc_now,
)

from .exceptions import DataIntegrityError, PersistenceError
from .schema import (
    CompanyModel,
    EmailLogModel,
    JobAlertModel,
    JobModel,
    NotificationPreferenceModel,
    ProfileModel,
    alert_columns,
    job_columns,
)

logger = get_logger(__name__, component="database")

# Fields an owner may set through create/update. The watermark, identity
# and timestamps are system-managed.
EDITABLE_ALERT_FIELDS = frozenset(
    {
        "title",
        "keywords",
        "location",
        "job_type",
        "experience_level",
        "remote_only",
        "salary_min",
        "frequency",
        "is_active",
    }
)


def _validation_messages(error: ValidationError) -> List[str]:
    messages = []
    for err in error.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "alert"
        msg = err["msg"]
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{field}: {msg}")
    return messages


class AlertRepository:
    """Owner-scoped CRUD over job alerts plus the sweep's due query."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self, owner_id: str, fields: Dict[str, Any], now: Optional[datetime] = None
    ) -> AlertCriteria:
        """Create a new alert for ``owner_id``.

        New alerts are always active and have never been sent, regardless of
        what ``fields`` contains for those keys.

        Raises:
            AlertValidationError: If title is empty, frequency unknown, or
                any other field fails validation
            PersistenceError: If the insert fails
        """
        now = ensure_utc(now) if now else utc_now()
        data = {k: v for k, v in fields.items() if k in EDITABLE_ALERT_FIELDS}
        data.update(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            is_active=True,
            last_sent_at=None,
            created_at=now,
            updated_at=now,
        )
        alert = self._build(data)

        try:
            self.session.add(JobAlertModel.from_domain(alert))
            self.session.flush()
        except IntegrityError as e:
            logger.error(f"Integrity error creating alert: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to create alert: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating alert: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create alert: {e}") from e

        logger.info(
            "Alert created",
            extra={
                "event": "alert.created",
                "alert_id": alert.id,
                "owner_id": owner_id,
                "frequency": alert.frequency.value,
            },
        )
        return alert

    def get(self, alert_id: str) -> Optional[AlertCriteria]:
        """Retrieve an alert by id regardless of owner (system use)."""
        model = self._fetch(alert_id)
        return model.to_domain() if model is not None else None

    def get_owned(self, alert_id: str, owner_id: str) -> AlertCriteria:
        """Retrieve an alert on behalf of its owner.

        Raises:
            AlertNotFoundError: If missing or owned by someone else
        """
        return self._fetch_owned(alert_id, owner_id).to_domain()

    def list_for_owner(self, owner_id: str) -> List[AlertCriteria]:
        """All alerts of one owner, newest first."""
        try:
            stmt = (
                select(JobAlertModel)
                .where(JobAlertModel.profile_id == owner_id)
                .order_by(JobAlertModel.created_at.desc())
            )
            models = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing alerts for owner {owner_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list alerts: {e}") from e

        return self._to_domain_list(models)

    def update(
        self,
        alert_id: str,
        owner_id: str,
        fields: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> AlertCriteria:
        """Apply owner edits to an alert.

        Unknown and system-managed keys in ``fields`` are ignored. Nothing is
        written when validation fails.

        Raises:
            AlertNotFoundError: If missing or owned by someone else
            AlertValidationError: If the edited alert is invalid
            PersistenceError: If the update fails
        """
        model = self._fetch_owned(alert_id, owner_id)
        current = model.to_domain()

        data = current.model_dump()
        data.update({k: v for k, v in fields.items() if k in EDITABLE_ALERT_FIELDS})
        data["updated_at"] = ensure_utc(now) if now else utc_now()
        updated = self._build(data)

        try:
            for column, value in alert_columns(updated).items():
                setattr(model, column, value)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update alert: {e}") from e

        logger.info(
            "Alert updated",
            extra={
                "event": "alert.updated",
                "alert_id": alert_id,
                "fields": sorted(set(fields) & EDITABLE_ALERT_FIELDS),
            },
        )
        return updated

    def set_active(
        self, alert_id: str, owner_id: str, is_active: bool, now: Optional[datetime] = None
    ) -> AlertCriteria:
        """Pause or resume an alert."""
        return self.update(alert_id, owner_id, {"is_active": is_active}, now=now)

    def toggle(self, alert_id: str, owner_id: str, now: Optional[datetime] = None) -> AlertCriteria:
        """Flip an alert between active and paused."""
        current = self.get_owned(alert_id, owner_id)
        return self.set_active(alert_id, owner_id, not current.is_active, now=now)

    def delete(self, alert_id: str, owner_id: str) -> bool:
        """Hard-delete an owner's alert.

        Idempotent: a missing or foreign alert is a no-op.

        Returns:
            True if a row was removed, False otherwise
        """
        try:
            stmt = delete(JobAlertModel).where(
                JobAlertModel.id == alert_id,
                JobAlertModel.profile_id == owner_id,
            )
            result = self.session.execute(stmt)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete alert: {e}") from e

        deleted = result.rowcount > 0
        logger.info(
            "Alert deleted" if deleted else "Alert delete was a no-op",
            extra={"event": "alert.deleted", "alert_id": alert_id, "deleted": deleted},
        )
        return deleted

    def list_active_due(self, frequency: Frequency, as_of: datetime) -> List[AlertCriteria]:
        """Active alerts of one tier whose cadence window has elapsed at ``as_of``.

        A null is_active column counts as active. Rows that fail to parse
        are logged and left out. The store query narrows by calendar day
        only; the exact watermark comparison runs on parsed values.

        Raises:
            PersistenceError: If the query fails
        """
        frequency = Frequency(frequency)
        threshold = due_before(frequency, as_of)

        try:
            stmt = select(JobAlertModel).where(
                JobAlertModel.frequency == frequency.value,
                or_(JobAlertModel.is_active.is_(True), JobAlertModel.is_active.is_(None)),
            )
            if threshold is not None:
                stmt = stmt.where(
                    or_(
                        JobAlertModel.last_sent_at.is_(None),
                        JobAlertModel.last_sent_at < storage_day_ceiling(threshold),
                    )
                )
            stmt = stmt.order_by(JobAlertModel.created_at.asc())
            models = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing due {frequency.value} alerts: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list due alerts: {e}") from e

        alerts = self._to_domain_list(models)
        if threshold is None:
            return alerts
        return [a for a in alerts if a.last_sent_at is None or a.last_sent_at <= threshold]

    def advance_last_sent(
        self, alert_id: str, expected: Optional[datetime], new_value: datetime
    ) -> bool:
        """Move the watermark forward only if nobody else has moved it.

        The write is a single conditional UPDATE keyed on the prior stored
        value, so two dispatchers racing on the same window confirm at most
        one send between them.

        Returns:
            True if this call advanced the watermark, False if the stored
            value no longer equals ``expected`` or ``new_value`` would move
            it backwards
        """
        new_value = ensure_utc(new_value)
        expected = ensure_utc(expected)
        if expected is not None and new_value < expected:
            logger.warning(
                "Refusing to move watermark backwards",
                extra={
                    "event": "alert.watermark.regression",
                    "alert_id": alert_id,
                    "expected": to_storage(expected),
                    "new_value": to_storage(new_value),
                },
            )
            return False

        try:
            stored = self.session.execute(
                select(JobAlertModel.last_sent_at).where(JobAlertModel.id == alert_id)
            ).one_or_none()
            if stored is None:
                return False

            raw = stored[0]
            if from_storage(raw) != expected:
                return False

            guard = (
                JobAlertModel.last_sent_at.is_(None)
                if raw is None
                else JobAlertModel.last_sent_at == raw
            )
            stmt = (
                update(JobAlertModel)
                .where(JobAlertModel.id == alert_id, guard)
                .values(last_sent_at=to_storage(new_value))
            )
            result = self.session.execute(stmt)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error advancing watermark for alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to advance watermark: {e}") from e

        return result.rowcount == 1

    def _fetch(self, alert_id: str) -> Optional[JobAlertModel]:
        try:
            stmt = select(JobAlertModel).where(JobAlertModel.id == alert_id)
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve alert: {e}") from e

    def _fetch_owned(self, alert_id: str, owner_id: str) -> JobAlertModel:
        model = self._fetch(alert_id)
        if model is None or model.profile_id != owner_id:
            if model is not None:
                logger.warning(
                    "Alert access denied",
                    extra={
                        "event": "alert.access_denied",
                        "alert_id": alert_id,
                        "owner_id": owner_id,
                    },
                )
            raise AlertNotFoundError(alert_id)
        return model

    @staticmethod
    def _build(data: Dict[str, Any]) -> AlertCriteria:
        try:
            return AlertCriteria.model_validate(data)
        except ValidationError as e:
            raise AlertValidationError(
                "Invalid alert", errors=_validation_messages(e)
            ) from e

    @staticmethod
    def _to_domain_list(models: List[JobAlertModel]) -> List[AlertCriteria]:
        alerts = []
        for model in models:
            try:
                alerts.append(model.to_domain())
            except ValidationError as e:
                logger.error(
                    f"Skipping unparseable alert row {model.id}: {e}",
                    extra={"event": "alert.parse_failed", "alert_id": model.id},
                )
        return alerts


class JobRepository:
    """Read access to job postings, plus seeding helpers."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, job_id: str) -> Optional[JobPosting]:
        try:
            stmt = (
                select(JobModel, CompanyModel.name)
                .outerjoin(CompanyModel, JobModel.company_id == CompanyModel.id)
                .where(JobModel.id == job_id)
            )
            row = self.session.execute(stmt).one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve job: {e}") from e

        if row is None:
            return None
        return row[0].to_domain(company_name=row[1])

    def list_active_created_between(self, after: datetime, until: datetime) -> List[JobPosting]:
        """Active jobs with ``after < created_at <= until``, oldest first.

        Stored timestamps are compared after parsing, so rows in any ISO 8601
        form or offset fall into the right window.

        Raises:
            PersistenceError: If the query fails
        """
        try:
            stmt = (
                select(JobModel, CompanyModel.name)
                .outerjoin(CompanyModel, JobModel.company_id == CompanyModel.id)
                .where(
                    JobModel.status == JobStatus.ACTIVE.value,
                    JobModel.created_at >= storage_day_floor(after),
                    JobModel.created_at < storage_day_ceiling(until),
                )
            )
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing candidate jobs: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list jobs: {e}") from e

        after = ensure_utc(after)
        until = ensure_utc(until)
        jobs = []
        for model, company_name in rows:
            try:
                job = model.to_domain(company_name=company_name)
            except ValidationError as e:
                logger.error(
                    f"Skipping unparseable job row {model.id}: {e}",
                    extra={"event": "job.parse_failed", "job_id": model.id},
                )
                continue
            if after < job.created_at <= until:
                jobs.append(job)
        jobs.sort(key=lambda j: j.created_at)
        return jobs

    def upsert(self, job: JobPosting, company_id: Optional[str] = None) -> JobPosting:
        """Insert or update a job row."""
        try:
            existing = self.session.get(JobModel, job.id)
            if existing is None:
                self.session.add(JobModel.from_domain(job, company_id=company_id))
            else:
                for column, value in job_columns(job).items():
                    setattr(existing, column, value)
                if company_id is not None:
                    existing.company_id = company_id
            self.session.flush()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to upsert job: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting job {job.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert job: {e}") from e
        return job

    def add_company(self, company_id: str, name: str) -> None:
        try:
            if self.session.get(CompanyModel, company_id) is None:
                self.session.add(CompanyModel(id=company_id, name=name))
                self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to add company: {e}") from e


class ProfileRepository:
    """Lookup of alert owners' recipient details."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, profile_id: str) -> Optional[Profile]:
        try:
            model = self.session.get(ProfileModel, profile_id)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving profile {profile_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve profile: {e}") from e
        return model.to_domain() if model is not None else None

    def upsert(self, profile: Profile) -> Profile:
        now = to_storage(utc_now())
        try:
            model = self.session.get(ProfileModel, profile.id)
            if model is None:
                model = ProfileModel(id=profile.id, created_at=now)
                self.session.add(model)
            model.email = profile.email
            model.full_name = profile.full_name
            model.updated_at = now
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error upserting profile {profile.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert profile: {e}") from e
        return profile


class PreferenceRepository:
    """Read access to per-profile notification gates."""

    def __init__(self, session: Session):
        self.session = session

    def get_for_profile(self, profile_id: str) -> Optional[NotificationPreference]:
        """Preference record for a profile, or None if the profile never chose."""
        try:
            stmt = select(NotificationPreferenceModel).where(
                NotificationPreferenceModel.profile_id == profile_id
            )
            model = self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving preferences for {profile_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve preferences: {e}") from e
        return model.to_domain() if model is not None else None

    def upsert(self, preference: NotificationPreference) -> NotificationPreference:
        try:
            stmt = select(NotificationPreferenceModel).where(
                NotificationPreferenceModel.profile_id == preference.profile_id
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            if model is None:
                model = NotificationPreferenceModel(profile_id=preference.profile_id)
                self.session.add(model)
            for field, value in preference.model_dump(exclude={"profile_id"}).items():
                setattr(model, field, value)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(
                f"Error upserting preferences for {preference.profile_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to upsert preferences: {e}") from e
        return preference


class EmailLogRepository:
    """Append-only email audit log."""

    def __init__(self, session: Session):
        self.session = session

    def append(self, entry: EmailLogEntry) -> EmailLogEntry:
        try:
            model = EmailLogModel(
                email_address=entry.email_address,
                email_type=entry.email_type,
                subject=entry.subject,
                status=entry.status,
                message_id=entry.message_id,
                metadata_=entry.metadata,
                created_at=to_storage(entry.created_at),
            )
            self.session.add(model)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error appending email log: {e}", exc_info=True)
            raise PersistenceError(f"Failed to append email log: {e}") from e
        return model.to_domain()

    def list_for_address(self, email_address: str) -> List[EmailLogEntry]:
        try:
            stmt = (
                select(EmailLogModel)
                .where(EmailLogModel.email_address == email_address)
                .order_by(EmailLogModel.created_at.asc(), EmailLogModel.id.asc())
            )
            models = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing email logs: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list email logs: {e}") from e
        return [model.to_domain() for model in models]

    def count(self) -> int:
        try:
            return self.session.execute(select(func.count(EmailLogModel.id))).scalar_one()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count email logs: {e}") from e

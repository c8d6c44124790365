"""Database schema definition and ORM models.

The tables mirror the job board's store: alerts live in ``job_alerts``
(owner column ``profile_id``), postings in ``jobs`` joined to ``companies``
for the display name, and delivery bookkeeping in ``email_logs``.
Timestamps are stored as ISO 8601 strings in UTC.
"""

from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from jobalerts.domain.models import (
    AlertCriteria,
    EmailLogEntry,
    JobPosting,
    NotificationPreference,
    Profile,
)
from jobalerts.logging import get_logger
from jobalerts.utils.timestamps import from_storage, to_storage

logger = get_logger(__name__, component="database")

Base = declarative_base()


class ProfileModel(Base):
    """ORM model for profiles table (alert owners and email recipients)."""

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True, nullable=False)
    email = Column(String(320), nullable=True)
    full_name = Column(String(255), nullable=True)
    created_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=True)

    def to_domain(self) -> Profile:
        return Profile(id=self.id, email=self.email, full_name=self.full_name)


class CompanyModel(Base):
    """ORM model for companies table."""

    __tablename__ = "companies"

    id = Column(String(64), primary_key=True, nullable=False)
    name = Column(String(255), nullable=False)


class JobModel(Base):
    """ORM model for jobs table.

    Postings are owned by the wider job board; this service only reads
    them, apart from the seeding helpers used by tests and scripts.
    """

    __tablename__ = "jobs"

    id = Column(String(64), primary_key=True, nullable=False)
    company_id = Column(String(64), ForeignKey("companies.id"), nullable=True)

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String(255), nullable=True)
    job_type = Column(String(50), nullable=True)
    experience_level = Column(String(50), nullable=True)
    remote = Column(Boolean, nullable=True)

    salary_min = Column(Integer, nullable=True)
    salary_max = Column(Integer, nullable=True)
    salary_currency = Column(String(10), nullable=True)

    status = Column(String(20), nullable=False, default="active")

    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_jobs_status_created", "status", "created_at"),)

    def to_domain(self, company_name: Optional[str] = None) -> JobPosting:
        """Convert ORM model to domain model.

        Raises:
            pydantic.ValidationError: If the row holds values outside the
                known vocabularies (unknown job type, status, ...)
        """
        return JobPosting(
            id=self.id,
            title=self.title,
            description=self.description or "",
            company_name=company_name,
            location=self.location,
            job_type=self.job_type,
            experience_level=self.experience_level,
            remote=bool(self.remote),
            salary_min=self.salary_min,
            salary_max=self.salary_max,
            salary_currency=self.salary_currency,
            status=self.status,
            created_at=from_storage(self.created_at),
            updated_at=from_storage(self.updated_at),
        )

    @classmethod
    def from_domain(cls, job: JobPosting, company_id: Optional[str] = None) -> "JobModel":
        return cls(
            id=job.id,
            company_id=company_id,
            **job_columns(job),
        )


class JobAlertModel(Base):
    """ORM model for job_alerts table.

    ``last_sent_at`` is the delivery watermark. It is only ever written
    through the conditional update in AlertRepository.advance_last_sent.
    """

    __tablename__ = "job_alerts"

    id = Column(String(64), primary_key=True, nullable=False)
    profile_id = Column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )

    title = Column(String(255), nullable=False)
    keywords = Column(JSON, nullable=True)
    location = Column(String(255), nullable=True)
    job_type = Column(String(50), nullable=True)
    experience_level = Column(String(50), nullable=True)
    remote_only = Column(Boolean, nullable=True)
    salary_min = Column(Integer, nullable=True)

    frequency = Column(String(20), nullable=False)
    is_active = Column(Boolean, nullable=True, default=True)
    last_sent_at = Column(String(50), nullable=True)

    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_job_alerts_profile", "profile_id"),
        Index("idx_job_alerts_due", "frequency", "is_active", "last_sent_at"),
    )

    def to_domain(self) -> AlertCriteria:
        return AlertCriteria(
            id=self.id,
            owner_id=self.profile_id,
            title=self.title,
            keywords=self.keywords,
            location=self.location,
            job_type=self.job_type,
            experience_level=self.experience_level,
            remote_only=self.remote_only,
            salary_min=self.salary_min,
            frequency=self.frequency,
            is_active=self.is_active,
            last_sent_at=from_storage(self.last_sent_at),
            created_at=from_storage(self.created_at),
            updated_at=from_storage(self.updated_at),
        )

    @classmethod
    def from_domain(cls, alert: AlertCriteria) -> "JobAlertModel":
        return cls(
            id=alert.id,
            profile_id=alert.owner_id,
            last_sent_at=to_storage(alert.last_sent_at),
            created_at=to_storage(alert.created_at),
            **alert_columns(alert),
        )


class NotificationPreferenceModel(Base):
    """ORM model for notification_preferences table.

    A null flag means the profile never chose; it is read as enabled.
    """

    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(
        String(64),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    email_job_alerts = Column(Boolean, nullable=True)
    email_application_updates = Column(Boolean, nullable=True)
    email_new_matches = Column(Boolean, nullable=True)
    email_messages = Column(Boolean, nullable=True)
    email_marketing = Column(Boolean, nullable=True)

    def to_domain(self) -> NotificationPreference:
        return NotificationPreference(
            profile_id=self.profile_id,
            email_job_alerts=self.email_job_alerts,
            email_application_updates=self.email_application_updates,
            email_new_matches=self.email_new_matches,
            email_messages=self.email_messages,
            email_marketing=self.email_marketing,
        )


class EmailLogModel(Base):
    """ORM model for email_logs table (append-only delivery record)."""

    __tablename__ = "email_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email_address = Column(String(320), nullable=False)
    email_type = Column(String(50), nullable=False)
    subject = Column(Text, nullable=False)
    status = Column(String(20), nullable=False)
    message_id = Column(String(255), nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_email_logs_address", "email_address", "created_at"),)

    def to_domain(self) -> EmailLogEntry:
        return EmailLogEntry(
            id=str(self.id) if self.id is not None else None,
            email_address=self.email_address,
            email_type=self.email_type,
            subject=self.subject,
            status=self.status,
            message_id=self.message_id,
            metadata=self.metadata_ or {},
            created_at=from_storage(self.created_at),
        )


def alert_columns(alert: AlertCriteria) -> Dict[str, Any]:
    """Owner-editable column values for an alert row."""
    return {
        "title": alert.title,
        "keywords": list(alert.keywords) or None,
        "location": alert.location,
        "job_type": _enum_value(alert.job_type),
        "experience_level": _enum_value(alert.experience_level),
        "remote_only": alert.remote_only,
        "salary_min": alert.salary_min,
        "frequency": _enum_value(alert.frequency),
        "is_active": alert.is_active,
        "updated_at": to_storage(alert.updated_at),
    }


def job_columns(job: JobPosting) -> Dict[str, Any]:
    return {
        "title": job.title,
        "description": job.description,
        "location": job.location,
        "job_type": _enum_value(job.job_type),
        "experience_level": _enum_value(job.experience_level),
        "remote": job.remote,
        "salary_min": job.salary_min,
        "salary_max": job.salary_max,
        "salary_currency": job.salary_currency,
        "status": _enum_value(job.status),
        "created_at": to_storage(job.created_at),
        "updated_at": to_storage(job.updated_at),
    }


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def create_schema(engine: Engine) -> None:
    """Create all tables if they don't exist. Idempotent."""
    logger.info("Creating database schema", extra={"event": "database.schema.creating"})
    Base.metadata.create_all(engine)
    logger.info(
        "Database schema created successfully",
        extra={"event": "database.schema.created"},
    )

"""Core domain models for alerts, jobs, and notification bookkeeping.

This module defines the data structures shared by the matcher, the sweep and
the dispatcher:
- AlertCriteria: one job seeker's saved search
- JobPosting: read-only view of a job row
- Profile: recipient details for a job seeker
- NotificationPreference: per-profile email gates
- EmailLogEntry: append-only audit record of a dispatched email

String-typed columns in the store (frequency, status, job_type, ...) are
parsed into closed enums here. Unknown values fail validation instead of
passing through.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from jobalerts.utils.timestamps import ensure_utc


class Frequency(str, Enum):
    """Notification cadence of an alert."""

    INSTANT = "instant"
    DAILY = "daily"
    WEEKLY = "weekly"


class JobType(str, Enum):
    """Employment type of a job posting."""

    FULL_TIME = "Full-Time"
    PART_TIME = "Part-Time"
    CONTRACT = "Contract"
    FREELANCE = "Freelance"


class ExperienceLevel(str, Enum):
    """Seniority of a job posting."""

    ENTRY = "Entry Level"
    MID = "Mid Level"
    SENIOR = "Senior Level"
    LEAD = "Lead"
    EXECUTIVE = "Executive"


class JobStatus(str, Enum):
    """Lifecycle status of a job posting. Only ACTIVE jobs are eligible."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"
    ARCHIVED = "archived"


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class AlertCriteria(BaseModel):
    """A job seeker's saved search.

    Empty or absent filters are vacuously true: an alert with no keywords,
    no location, no job type, no experience level, no salary floor and
    remote_only=False matches every active job.
    """

    id: str = Field(..., description="Opaque alert identifier")
    owner_id: str = Field(..., description="Owning job-seeker profile id")
    title: str = Field(..., description="Alert name shown to the user")
    keywords: List[str] = Field(default_factory=list, description="OR-combined search terms")
    location: Optional[str] = Field(None, description="Location substring filter")
    job_type: Optional[JobType] = Field(None, description="Required employment type")
    experience_level: Optional[ExperienceLevel] = Field(
        None, description="Required seniority"
    )
    remote_only: bool = Field(False, description="Only remote-flagged jobs match")
    salary_min: Optional[int] = Field(None, ge=0, description="Salary floor")
    frequency: Frequency = Field(..., description="Digest cadence")
    is_active: bool = Field(True, description="Inactive alerts are never evaluated")
    last_sent_at: Optional[datetime] = Field(
        None, description="Watermark of the last confirmed dispatch (UTC)"
    )
    created_at: datetime = Field(..., description="When the alert was created (UTC)")
    updated_at: datetime = Field(..., description="When the alert was last edited (UTC)")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Title must contain something other than whitespace."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Alert name is required")
        return stripped

    @field_validator("keywords", mode="before")
    @classmethod
    def normalize_keywords(cls, v: Any) -> List[str]:
        """Strip, drop empties, and de-duplicate case-insensitively keeping order."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")

        seen = set()
        normalized = []
        for term in v:
            stripped = str(term).strip()
            if stripped and stripped.lower() not in seen:
                seen.add(stripped.lower())
                normalized.append(stripped)
        return normalized

    @field_validator("location", mode="before")
    @classmethod
    def strip_location(cls, v: Any) -> Optional[str]:
        """Blank locations mean "any location"."""
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("job_type", "experience_level", "salary_min", mode="before")
    @classmethod
    def blank_filters_to_none(cls, v: Any) -> Any:
        """Form posts send "" for "Any"."""
        return _blank_to_none(v)

    @field_validator("remote_only", "is_active", mode="before")
    @classmethod
    def null_to_default(cls, v: Any, info) -> bool:
        """Nullable boolean columns fall back to their defaults."""
        if v is None:
            return info.field_name == "is_active"
        return v

    @field_validator("last_sent_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    @property
    def has_filters(self) -> bool:
        """Whether any filter narrows the match set."""
        return bool(
            self.keywords
            or self.location
            or self.job_type
            or self.experience_level
            or self.remote_only
            or self.salary_min is not None
        )

    model_config = {"json_schema_extra": {"example": {
        "id": "6f1c9a1e-2b8e-4a55-9d3a-1f0b5c0e7a10",
        "owner_id": "profile-42",
        "title": "GoHighLevel roles",
        "keywords": ["GoHighLevel", "GHL"],
        "location": None,
        "job_type": "Full-Time",
        "experience_level": None,
        "remote_only": True,
        "salary_min": 60000,
        "frequency": "daily",
        "is_active": True,
        "last_sent_at": None,
        "created_at": "2025-11-01T12:00:00Z",
        "updated_at": "2025-11-01T12:00:00Z",
    }}}


class JobPosting(BaseModel):
    """Read-only view of a job row as consumed by the matcher."""

    id: str = Field(..., description="Job identifier")
    title: str = Field(..., description="Job title")
    description: str = Field("", description="Full job description text")
    company_name: Optional[str] = Field(None, description="Hiring company name")
    location: Optional[str] = Field(None, description="Job location")
    job_type: Optional[JobType] = Field(None, description="Employment type")
    experience_level: Optional[ExperienceLevel] = Field(None, description="Seniority")
    remote: bool = Field(False, description="Whether the job is remote")
    salary_min: Optional[int] = Field(None, description="Advertised salary lower bound")
    salary_max: Optional[int] = Field(None, description="Advertised salary upper bound")
    salary_currency: Optional[str] = Field(None, description="ISO currency code")
    status: JobStatus = Field(..., description="Lifecycle status")
    created_at: datetime = Field(..., description="When the job was created (UTC)")
    updated_at: Optional[datetime] = Field(None, description="When the job was last edited (UTC)")

    @field_validator("description", mode="before")
    @classmethod
    def null_description(cls, v: Any) -> str:
        return v or ""

    @field_validator("job_type", "experience_level", "location", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    @property
    def is_active(self) -> bool:
        return self.status is JobStatus.ACTIVE


class Profile(BaseModel):
    """Recipient details of a job seeker."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        """First name for greetings, falling back to a neutral salutation."""
        if self.full_name and self.full_name.strip():
            return self.full_name.strip().split()[0]
        return "there"


class NotificationPreference(BaseModel):
    """Per-profile email gates. A missing record means every gate is open."""

    profile_id: str
    email_job_alerts: Optional[bool] = None
    email_application_updates: Optional[bool] = None
    email_new_matches: Optional[bool] = None
    email_messages: Optional[bool] = None
    email_marketing: Optional[bool] = None

    def allows_job_alert_emails(self) -> bool:
        """Only an explicit False suppresses; None is treated as enabled."""
        return self.email_job_alerts is not False


class EmailLogEntry(BaseModel):
    """Append-only audit record of a dispatched email."""

    id: Optional[str] = None
    email_address: str
    email_type: str = "job_alert"
    subject: str
    status: str = "sent"
    message_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

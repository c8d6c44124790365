"""Domain models for the job alert service."""

from .exceptions import AlertError, AlertNotFoundError, AlertValidationError
from .models import (
    AlertCriteria,
    EmailLogEntry,
    ExperienceLevel,
    Frequency,
    JobPosting,
    JobStatus,
    JobType,
    NotificationPreference,
    Profile,
)

__all__ = [
    "AlertCriteria",
    "JobPosting",
    "Profile",
    "NotificationPreference",
    "EmailLogEntry",
    "Frequency",
    "JobType",
    "ExperienceLevel",
    "JobStatus",
    "AlertError",
    "AlertValidationError",
    "AlertNotFoundError",
]

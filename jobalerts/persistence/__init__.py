"""Persistence layer: engine/session lifecycle, ORM schema and repositories."""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    AlertRepository,
    EmailLogRepository,
    JobRepository,
    PreferenceRepository,
    ProfileRepository,
)

__all__ = [
    "init_database",
    "get_session",
    "get_engine",
    "close_database",
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
    "AlertRepository",
    "JobRepository",
    "ProfileRepository",
    "PreferenceRepository",
    "EmailLogRepository",
]

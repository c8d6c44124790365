"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError so the sweep can
treat any store failure as one transient dependency error.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when database connection or initialization fails."""

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when a record an operation depends on is missing.

    Optional lookups return None instead of raising this.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations (duplicate key, missing foreign key)."""

    pass

"""Errors raised by alert management operations."""

from typing import List, Optional


class AlertError(Exception):
    """Base exception for alert management errors."""

    pass


class AlertValidationError(AlertError):
    """Alert fields failed validation. Nothing was written."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        detail = f"{message}: {'; '.join(self.errors)}" if self.errors else message
        super().__init__(detail)


class AlertNotFoundError(AlertError):
    """Alert does not exist or is not owned by the caller.

    Both cases raise the same error so callers cannot probe for other
    users' alert ids.
    """

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert not found: {alert_id}")

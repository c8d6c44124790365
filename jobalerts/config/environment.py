"""Environment variable loading and validation."""

import os
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError
from .models import EmailTransportType

DEFAULT_DATABASE_URL = "sqlite:///./data/job_alerts.db"


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        email_from: str,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
        resend_api_key: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        self.email_from = email_from
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender_name = smtp_sender_name or "GHL Hire"
        self.resend_api_key = resend_api_key
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL

    @property
    def sender_address(self) -> str:
        """Formatted 'From' header, e.g. ``GHL Hire <noreply@ghlhire.com>``."""
        return f"{self.smtp_sender_name} <{self.email_from}>"


def load_environment_config(transport: str = EmailTransportType.SMTP.value) -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Always required:
    - EMAIL_FROM: sender address for digests

    Required for the smtp transport:
    - SMTP_HOST, SMTP_PORT (1-65535)
    - SMTP_USER and SMTP_PASS together, or neither

    Required for the resend transport:
    - RESEND_API_KEY

    Optional:
    - SMTP_SENDER_NAME: display name for the sender
    - LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/job_alerts.db)

    Args:
        transport: Configured email transport ("smtp" or "resend")

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors = []

    email_from = os.getenv("EMAIL_FROM")
    smtp_host = os.getenv("SMTP_HOST")
    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER")
    smtp_pass = os.getenv("SMTP_PASS")
    smtp_sender_name = os.getenv("SMTP_SENDER_NAME")
    resend_api_key = os.getenv("RESEND_API_KEY")
    log_level = os.getenv("LOG_LEVEL")
    database_url = os.getenv("DATABASE_URL")

    if not email_from:
        errors.append("Missing required environment variable: EMAIL_FROM")
    else:
        try:
            email_from = validate_email(email_from, check_deliverability=False).normalized
        except EmailNotValidError as e:
            errors.append(f"Invalid email address in EMAIL_FROM: '{email_from}' - {e}")

    smtp_port = None
    if transport == EmailTransportType.SMTP.value:
        if not smtp_host:
            errors.append("Missing required environment variable: SMTP_HOST")
        if not smtp_port_str:
            errors.append("Missing required environment variable: SMTP_PORT")
        else:
            try:
                smtp_port = int(smtp_port_str)
                if smtp_port < 1 or smtp_port > 65535:
                    errors.append(
                        f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535."
                    )
            except ValueError:
                errors.append(
                    f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer."
                )

        if smtp_user and not smtp_pass:
            errors.append(
                "SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication."
            )
        elif smtp_pass and not smtp_user:
            errors.append(
                "SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication."
            )
    elif transport == EmailTransportType.RESEND.value:
        if not resend_api_key:
            errors.append("Missing required environment variable: RESEND_API_KEY")
    else:
        errors.append(f"Unknown email transport: '{transport}'")

    if log_level:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if log_level.upper() not in valid_levels:
            errors.append(
                f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(valid_levels)}"
            )
        else:
            log_level = log_level.upper()

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Ensure the variables for the configured email transport are set",
                "Verify SMTP_PORT is a number between 1 and 65535",
            ],
        )

    return EnvironmentConfig(
        email_from=email_from,
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender_name=smtp_sender_name,
        resend_api_key=resend_api_key,
        log_level=log_level,
        database_url=database_url,
    )

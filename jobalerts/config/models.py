"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range


class EmailTransportType(str, Enum):
    """Supported outbound email transports."""

    SMTP = "smtp"
    RESEND = "resend"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class EmailConfig(BaseModel):
    """Digest delivery settings."""

    transport: EmailTransportType = Field(
        EmailTransportType.SMTP, description="Outbound transport (smtp or resend)"
    )
    use_tls: bool = Field(True, description="Use TLS/STARTTLS for SMTP connections")
    max_retries: int = Field(
        2, ge=0, le=10, description="In-call retry attempts before deferring to the next sweep"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: float = Field(
        5, ge=0, le=60, description="Initial retry delay in seconds"
    )
    send_timeout: int = Field(
        30, ge=1, le=300, description="Timeout for a single transport call (seconds)"
    )
    digest_max_jobs: int = Field(
        5, ge=1, le=50, description="Jobs listed in a digest body before the remainder count"
    )

    model_config = {"use_enum_values": True}


class AppSettings(BaseModel):
    """Job board settings used to build links in digests."""

    app_url: str = Field("https://ghlhire.com", description="Public base URL of the job board")
    brand_name: str = Field("GHL Hire", min_length=1, description="Name shown in emails")

    @field_validator("app_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise the base URL so paths can be appended with '/'."""
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("app_url must start with http:// or https://")
        return stripped


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the job alert service."""

    sweep_interval: str = Field(
        "1h", description="How often the daily/weekly sweeps are triggered"
    )
    instant_retry_sweep: bool = Field(
        True, description="Also sweep instant alerts to retry deferred sends"
    )
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    app: AppSettings = Field(default_factory=AppSettings, description="Job board settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    # Computed field
    sweep_interval_seconds: Optional[int] = None

    @field_validator("sweep_interval")
    @classmethod
    def validate_sweep_interval(cls, v: str) -> str:
        """Validate the sweep interval parses and lies within bounds."""
        try:
            validate_duration_range(parse_duration(v))
            return v
        except DurationParseError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def compute_fields(self):
        """Compute derived fields."""
        self.sweep_interval_seconds = parse_duration(self.sweep_interval)
        return self

"""Configuration management for the job alert service."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config
from .models import (
    AppConfig,
    AppSettings,
    EmailConfig,
    EmailTransportType,
    LogFormat,
    LoggingConfig,
    LogLevel,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_app_config",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "AppSettings",
    "EmailConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "EmailTransportType",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]

"""Shared pytest fixtures."""

import pytest

from jobalerts.config.models import AppSettings, EmailConfig
from jobalerts.logging.context import clear_log_context
from jobalerts.notifications.service import NotificationDispatcher
from jobalerts.persistence.database import close_database, init_database
from jobalerts.pipeline import AlertSweep

from tests.helpers.fake_transport import FakeTransport


@pytest.fixture
def db():
    """Fresh in-memory database for each test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture(autouse=True)
def reset_log_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Minimal valid environment for the smtp transport."""
    values = {
        "EMAIL_FROM": "alerts@example.com",
        "SMTP_HOST": "smtp.example.com",
        "SMTP_PORT": "587",
        "SMTP_USER": "alerts@example.com",
        "SMTP_PASS": "secret",
    }
    for key in ("RESEND_API_KEY", "LOG_LEVEL", "DATABASE_URL", "SMTP_SENDER_NAME"):
        monkeypatch.delenv(key, raising=False)
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    return values


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def email_config():
    """Email configuration with no real backoff delay."""
    return EmailConfig(max_retries=2, retry_initial_delay=0, retry_backoff_multiplier=2.0)


@pytest.fixture
def dispatcher(transport, email_config):
    return NotificationDispatcher(
        transport=transport,
        email_config=email_config,
        app_settings=AppSettings(app_url="https://jobs.example.com"),
    )


@pytest.fixture
def sweep(dispatcher):
    return AlertSweep(dispatcher=dispatcher)

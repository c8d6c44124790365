"""Unit tests for the SMTP transport.

Tests SMTPTransport for:
- Connection handling (SMTP and SMTP_SSL)
- STARTTLS negotiation
- Authentication (with and without credentials)
- Message construction and Message-ID
- Error mapping and retryability
- Connection cleanup
"""

import smtplib
from unittest.mock import MagicMock

import pytest

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.notifications.models import EmailDeliveryError, EmailTimeoutError
from jobalerts.notifications.smtp_client import SMTPTransport, validate_recipient


@pytest.fixture
def smtp_conn():
    return MagicMock()


@pytest.fixture
def smtp_factory(smtp_conn):
    return MagicMock(return_value=smtp_conn)


@pytest.fixture
def make_transport(smtp_factory):
    def _make(**overrides):
        fields = {
            "host": "smtp.example.com",
            "port": 587,
            "sender": "GHL Hire <noreply@example.com>",
            "username": "user@example.com",
            "password": "secret123",
            "smtp_factory": smtp_factory,
            "smtp_ssl_factory": MagicMock(),
        }
        fields.update(overrides)
        return SMTPTransport(**fields)

    return _make


def _send(transport):
    return transport.send(
        "seeker@example.com", "1 New Job Matches Your Alert: GHL", "<p>hi</p>", "hi"
    )


def test_from_environment():
    env = EnvironmentConfig(
        email_from="noreply@example.com",
        smtp_host="smtp.example.com",
        smtp_port=2525,
        smtp_user="user",
        smtp_pass="pass",
        smtp_sender_name="Example Jobs",
    )

    transport = SMTPTransport.from_environment(env, use_tls=False, timeout=10)

    assert transport.host == "smtp.example.com"
    assert transport.port == 2525
    assert transport.sender == "Example Jobs <noreply@example.com>"
    assert transport.username == "user"
    assert transport.use_tls is False
    assert transport.timeout == 10


class TestConnection:
    def test_send_with_starttls(self, make_transport, smtp_factory, smtp_conn):
        message_id = _send(make_transport())

        smtp_factory.assert_called_once_with("smtp.example.com", 587, timeout=30)
        smtp_conn.starttls.assert_called_once()
        smtp_conn.login.assert_called_once_with("user@example.com", "secret123")
        smtp_conn.send_message.assert_called_once()
        smtp_conn.quit.assert_called_once()
        assert message_id.endswith("@example.com>")

    def test_send_with_implicit_tls(self, make_transport, smtp_factory):
        ssl_conn = MagicMock()
        ssl_factory = MagicMock(return_value=ssl_conn)

        _send(make_transport(port=465, smtp_ssl_factory=ssl_factory))

        smtp_factory.assert_not_called()
        ssl_factory.assert_called_once()
        assert ssl_factory.call_args.args == ("smtp.example.com", 465)
        ssl_conn.starttls.assert_not_called()
        ssl_conn.send_message.assert_called_once()
        ssl_conn.quit.assert_called_once()

    def test_send_without_tls(self, make_transport, smtp_conn):
        _send(make_transport(use_tls=False))

        smtp_conn.starttls.assert_not_called()
        smtp_conn.send_message.assert_called_once()

    def test_send_without_auth(self, make_transport, smtp_conn):
        _send(make_transport(username=None, password=None))

        smtp_conn.login.assert_not_called()
        smtp_conn.send_message.assert_called_once()


class TestMessage:
    def test_headers_and_parts(self, make_transport, smtp_conn):
        message_id = _send(make_transport())

        message = smtp_conn.send_message.call_args.args[0]
        assert message["To"] == "seeker@example.com"
        assert message["From"] == "GHL Hire <noreply@example.com>"
        assert message["Subject"] == "1 New Job Matches Your Alert: GHL"
        assert message["Message-ID"] == message_id
        assert message.get_body(preferencelist=("html",)).get_content().strip() == "<p>hi</p>"
        assert message.get_body(preferencelist=("plain",)).get_content().strip() == "hi"

    def test_invalid_recipient_is_not_retryable(self, make_transport, smtp_factory):
        with pytest.raises(EmailDeliveryError) as exc_info:
            make_transport().send("not-an-email", "s", "<p>x</p>")

        assert exc_info.value.retryable is False
        smtp_factory.assert_not_called()


class TestErrors:
    def test_timeout(self, make_transport, smtp_conn):
        smtp_conn.send_message.side_effect = TimeoutError("timed out")

        with pytest.raises(EmailTimeoutError):
            _send(make_transport())

        smtp_conn.quit.assert_called_once()

    def test_refused_recipient_is_not_retryable(self, make_transport, smtp_conn):
        smtp_conn.send_message.side_effect = smtplib.SMTPRecipientsRefused(
            {"seeker@example.com": (550, b"No such user")}
        )

        with pytest.raises(EmailDeliveryError) as exc_info:
            _send(make_transport())

        assert exc_info.value.retryable is False

    def test_authentication_failure_is_not_retryable(self, make_transport, smtp_conn):
        smtp_conn.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

        with pytest.raises(EmailDeliveryError) as exc_info:
            _send(make_transport())

        assert exc_info.value.retryable is False
        smtp_conn.send_message.assert_not_called()

    def test_smtp_exception_is_retryable(self, make_transport, smtp_conn):
        smtp_conn.send_message.side_effect = smtplib.SMTPServerDisconnected("gone")

        with pytest.raises(EmailDeliveryError) as exc_info:
            _send(make_transport())

        assert exc_info.value.retryable is True
        assert "SMTP error" in str(exc_info.value)

    def test_network_error(self, make_transport, smtp_factory):
        smtp_factory.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(EmailDeliveryError, match="Network error"):
            _send(make_transport())

    def test_quit_failure_does_not_mask_result(self, make_transport, smtp_conn):
        smtp_conn.quit.side_effect = smtplib.SMTPServerDisconnected("already closed")

        message_id = _send(make_transport())

        assert message_id


def test_validate_recipient_normalises_domain():
    assert validate_recipient("Seeker@Example.COM") == "Seeker@example.com"

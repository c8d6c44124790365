"""Unit tests for the Resend HTTP transport.

Tests ResendTransport for:
- Request payload and authentication headers
- Message id extraction
- HTTP error mapping (4xx vs 429/5xx retryability)
- Timeouts and connection failures
"""

from unittest.mock import Mock

import pytest
import requests

from jobalerts.notifications.models import EmailDeliveryError, EmailTimeoutError
from jobalerts.notifications.resend_client import RESEND_API_URL, ResendTransport


def _response(status_code=200, body=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.reason = reason
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body if body is not None else {"id": "re_123"}
    return response


@pytest.fixture
def http_session():
    session = Mock()
    session.headers = {}
    session.post.return_value = _response()
    return session


@pytest.fixture
def transport(http_session):
    return ResendTransport(
        api_key=" re_test_key ",
        sender="GHL Hire <noreply@example.com>",
        timeout=15,
        session=http_session,
    )


def _send(transport, text="plain"):
    return transport.send("seeker@example.com", "Subject", "<p>html</p>", text)


class TestRequest:
    def test_headers_are_set(self, transport, http_session):
        assert http_session.headers["Authorization"] == "Bearer re_test_key"
        assert http_session.headers["Content-Type"] == "application/json"

    def test_payload(self, transport, http_session):
        _send(transport)

        http_session.post.assert_called_once_with(
            RESEND_API_URL,
            json={
                "from": "GHL Hire <noreply@example.com>",
                "to": ["seeker@example.com"],
                "subject": "Subject",
                "html": "<p>html</p>",
                "text": "plain",
            },
            timeout=15,
        )

    def test_text_is_optional(self, transport, http_session):
        _send(transport, text=None)

        payload = http_session.post.call_args.kwargs["json"]
        assert "text" not in payload

    def test_returns_message_id(self, transport):
        assert _send(transport) == "re_123"

    def test_empty_api_key_rejected(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            ResendTransport(api_key="  ", sender="noreply@example.com", session=Mock())

    def test_invalid_recipient_is_not_sent(self, transport, http_session):
        with pytest.raises(EmailDeliveryError) as exc_info:
            transport.send("bogus", "Subject", "<p>x</p>")

        assert exc_info.value.retryable is False
        http_session.post.assert_not_called()


class TestErrors:
    @pytest.mark.parametrize("status_code", [400, 401, 403, 422])
    def test_client_errors_are_not_retryable(self, transport, http_session, status_code):
        http_session.post.return_value = _response(
            status_code, {"name": "validation_error", "message": "Invalid from address"}
        )

        with pytest.raises(EmailDeliveryError) as exc_info:
            _send(transport)

        assert exc_info.value.retryable is False
        assert f"HTTP {status_code}" in str(exc_info.value)
        assert "Invalid from address" in str(exc_info.value)

    @pytest.mark.parametrize("status_code", [429, 500, 503])
    def test_rate_limit_and_server_errors_are_retryable(
        self, transport, http_session, status_code
    ):
        http_session.post.return_value = _response(
            status_code, ValueError("not json"), reason="Service Unavailable"
        )

        with pytest.raises(EmailDeliveryError) as exc_info:
            _send(transport)

        assert exc_info.value.retryable is True
        assert "Service Unavailable" in str(exc_info.value)

    def test_timeout(self, transport, http_session):
        http_session.post.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(EmailTimeoutError):
            _send(transport)

    def test_connection_error(self, transport, http_session):
        http_session.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(EmailDeliveryError) as exc_info:
            _send(transport)

        assert exc_info.value.retryable is True
        assert not isinstance(exc_info.value, EmailTimeoutError)

    def test_missing_id(self, transport, http_session):
        http_session.post.return_value = _response(200, {"object": "email"})

        with pytest.raises(EmailDeliveryError, match="message id"):
            _send(transport)

    def test_unparseable_success_body(self, transport, http_session):
        http_session.post.return_value = _response(200, ValueError("bad json"))

        with pytest.raises(EmailDeliveryError, match="Failed to parse"):
            _send(transport)

"""Unit tests for notification transports - external provider error handling.

Covers:
- Provider payloads for Resend and SendGrid
- Retry on timeouts, connection errors and 5xx answers
- Immediate failure on 4xx answers
- Transport selection from configuration
"""
import pytest
import requests
from types import SimpleNamespace
from unittest.mock import patch, MagicMock

from certalert.config import settings
from certalert.exceptions import TransportError
from certalert.services.transport import (
    LogOnlyTransport,
    OutboundMessage,
    ResendTransport,
    SendGridTransport,
    available_transports,
    build_transport
)


def _config(**overrides):
    values = settings.model_dump()
    values.update({
        "resend_api_key": "re_test",
        "sendgrid_api_key": "SG.test",
        "transport_max_retries": 2,
        "transport_retry_delays": [1, 2, 5],
    })
    values.update(overrides)
    return SimpleNamespace(**values)


def _message(**overrides) -> OutboundMessage:
    values = dict(
        from_address="Acme Construction Safety <safety@acme.test>",
        recipients=["worker@acme.test", "super@acme.test"],
        subject="URGENT: Working at Heights (WAH) expires in 5 days",
        text_body="plain",
        html_body="<p>html</p>",
        reply_to="dana@acme.test",
    )
    values.update(overrides)
    return OutboundMessage(**values)


def _response(status_code: int, json_body=None, headers=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_body or {}
    response.headers = headers or {}
    response.text = ""
    response.reason = "Reason"
    return response


class TestResendTransport:
    """Resend API delivery."""

    @patch('certalert.services.transport.requests.post')
    def test_successful_send(self, mock_post):
        mock_post.return_value = _response(200, {"id": "email_123"})

        receipt = ResendTransport(_config()).send(_message())

        assert receipt.provider == "resend"
        assert receipt.message_id == "email_123"
        assert receipt.accepted == ["worker@acme.test", "super@acme.test"]

        _, kwargs = mock_post.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer re_test"
        assert kwargs["json"] == {
            "from": "Acme Construction Safety <safety@acme.test>",
            "to": ["worker@acme.test", "super@acme.test"],
            "subject": "URGENT: Working at Heights (WAH) expires in 5 days",
            "html": "<p>html</p>",
            "text": "plain",
            "reply_to": "dana@acme.test",
        }

    @patch('certalert.services.transport.time.sleep')
    @patch('certalert.services.transport.requests.post')
    def test_server_error_is_retried(self, mock_post, mock_sleep):
        mock_post.side_effect = [_response(503), _response(502), _response(200, {"id": "ok"})]

        receipt = ResendTransport(_config()).send(_message())

        assert receipt.message_id == "ok"
        assert mock_post.call_count == 3
        assert mock_sleep.call_count == 2
        mock_sleep.assert_any_call(1)
        mock_sleep.assert_any_call(2)

    @patch('certalert.services.transport.time.sleep')
    @patch('certalert.services.transport.requests.post')
    def test_retries_exhausted_raises(self, mock_post, mock_sleep):
        mock_post.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(TransportError) as exc_info:
            ResendTransport(_config()).send(_message())

        assert mock_post.call_count == 3
        assert exc_info.value.provider == "resend"
        assert "connection refused" in exc_info.value.message

    @patch('certalert.services.transport.time.sleep')
    @patch('certalert.services.transport.requests.post')
    def test_timeout_is_retried(self, mock_post, mock_sleep):
        mock_post.side_effect = [requests.Timeout(), _response(200, {"id": "ok"})]

        receipt = ResendTransport(_config()).send(_message())

        assert receipt.message_id == "ok"
        mock_sleep.assert_called_once_with(1)

    @patch('certalert.services.transport.time.sleep')
    @patch('certalert.services.transport.requests.post')
    def test_client_error_fails_immediately(self, mock_post, mock_sleep):
        mock_post.return_value = _response(422, {"message": "Invalid `to` field"})

        with pytest.raises(TransportError) as exc_info:
            ResendTransport(_config()).send(_message())

        assert mock_post.call_count == 1
        mock_sleep.assert_not_called()
        assert exc_info.value.status_code == 422
        assert exc_info.value.message == "resend error: Invalid `to` field"

    @patch('certalert.services.transport.requests.post')
    def test_missing_api_key(self, mock_post):
        with pytest.raises(TransportError, match="API key not configured"):
            ResendTransport(_config(resend_api_key="")).send(_message())
        mock_post.assert_not_called()

    @patch('certalert.services.transport.requests.post')
    def test_empty_recipients(self, mock_post):
        with pytest.raises(TransportError, match="no recipients"):
            ResendTransport(_config()).send(_message(recipients=[]))
        mock_post.assert_not_called()


class TestSendGridTransport:
    """SendGrid API delivery."""

    @patch('certalert.services.transport.requests.post')
    def test_payload_and_message_id(self, mock_post):
        mock_post.return_value = _response(202, headers={"X-Message-Id": "sg-1"})

        receipt = SendGridTransport(_config()).send(_message())

        assert receipt.provider == "sendgrid"
        assert receipt.message_id == "sg-1"

        payload = mock_post.call_args.kwargs["json"]
        assert payload["personalizations"] == [
            {"to": [{"email": "worker@acme.test"}, {"email": "super@acme.test"}]}
        ]
        assert payload["from"] == {"email": "safety@acme.test", "name": "Acme Construction Safety"}
        assert payload["content"][0] == {"type": "text/plain", "value": "plain"}
        assert payload["content"][1] == {"type": "text/html", "value": "<p>html</p>"}
        assert payload["reply_to"] == {"email": "dana@acme.test"}

    @patch('certalert.services.transport.requests.post')
    def test_bare_from_address(self, mock_post):
        mock_post.return_value = _response(202)

        SendGridTransport(_config()).send(_message(from_address="noreply@safetytracker.app", reply_to=None))

        payload = mock_post.call_args.kwargs["json"]
        assert payload["from"] == {"email": "noreply@safetytracker.app"}
        assert "reply_to" not in payload

    @patch('certalert.services.transport.requests.post')
    def test_quoted_display_name(self, mock_post):
        mock_post.return_value = _response(202)

        SendGridTransport(_config()).send(
            _message(from_address='"Smith, Jones & Co Safety" <safety@smithjones.test>')
        )

        payload = mock_post.call_args.kwargs["json"]
        assert payload["from"] == {"email": "safety@smithjones.test", "name": "Smith, Jones & Co Safety"}


class TestTransportSelection:
    """build_transport registry lookup."""

    def test_registered_names(self):
        assert {"log", "resend", "sendgrid"} <= set(available_transports())

    def test_selects_configured_provider(self):
        transport = build_transport(_config(notification_transport="SendGrid"))
        assert isinstance(transport, SendGridTransport)

    def test_missing_key_falls_back_to_log(self):
        transport = build_transport(_config(notification_transport="resend", resend_api_key=""))
        assert isinstance(transport, LogOnlyTransport)

    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown notification transport"):
            build_transport(_config(notification_transport="pigeon"))

    def test_log_transport_records_messages(self):
        transport = LogOnlyTransport()
        receipt = transport.send(_message())

        assert receipt.provider == "log"
        assert transport.sent[0].subject.startswith("URGENT")

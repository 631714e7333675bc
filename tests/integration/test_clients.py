"""Integration tests for the push and email HTTP clients"""

import httpx
import pytest
from unittest.mock import patch

from smartspend_scheduler.domain.exceptions import DeliveryError
from smartspend_scheduler.infrastructure.clients.email import EmailClient
from smartspend_scheduler.infrastructure.clients.push import PushClient
from smartspend_scheduler.services.sinks import EmailSink

PUSH_URL = "http://gateway.test/publish"
EMAIL_URL = "http://mail.test/send"


def _response(status: int, url: str) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", url))


@patch("httpx.post")
def test_push_publishes_event(mock_post):
    """Test push payload targets the user's channel"""
    mock_post.return_value = _response(202, PUSH_URL)

    PushClient(push_url=PUSH_URL, timeout=1.0).publish("user-1", {"title": "Hi"})

    kwargs = mock_post.call_args.kwargs
    assert mock_post.call_args.args[0] == PUSH_URL
    assert kwargs["json"] == {"event": "new-notification", "user_id": "user-1", "data": {"title": "Hi"}}
    assert kwargs["timeout"] == 1.0


@patch("httpx.post")
def test_push_disabled_without_url(mock_post):
    """Test no request is made when no gateway is configured"""
    client = PushClient(push_url=None)
    client.push_url = None

    client.publish("user-1", {})

    mock_post.assert_not_called()


@patch("httpx.post")
def test_push_timeout_raises_delivery_error(mock_post):
    """Test timeouts map to DeliveryError"""
    mock_post.side_effect = httpx.ReadTimeout("slow")

    with pytest.raises(DeliveryError):
        PushClient(push_url=PUSH_URL).publish("user-1", {})


@patch("httpx.post")
def test_email_http_error_raises_delivery_error(mock_post):
    """Test non-2xx responses map to DeliveryError"""
    mock_post.return_value = _response(503, EMAIL_URL)

    with pytest.raises(DeliveryError):
        EmailClient(api_url=EMAIL_URL).send("a@example.com", "Subject", "text", "<p>html</p>")


@patch("httpx.post")
def test_email_sink_swallows_delivery_error(mock_post):
    """Test email sink reports failure without raising"""
    mock_post.side_effect = httpx.ConnectError("refused")

    sent = EmailSink(EmailClient(api_url=EMAIL_URL)).send("a@example.com", "Subject", "text", "<p>html</p>")

    assert sent is False


@patch("httpx.post")
def test_email_request_body(mock_post):
    """Test email payload includes sender and both bodies"""
    mock_post.return_value = _response(200, EMAIL_URL)

    sent = EmailSink(EmailClient(api_url=EMAIL_URL, sender="SmartSpend <x@y.z>")).send(
        "a@example.com", "Subject", "text", "<p>html</p>"
    )

    assert sent is True
    body = mock_post.call_args.kwargs["json"]
    assert body == {
        "from": "SmartSpend <x@y.z>",
        "to": "a@example.com",
        "subject": "Subject",
        "text": "text",
        "html": "<p>html</p>",
    }

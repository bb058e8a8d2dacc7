"""Tests for escort_dispatch.adapters.webhook_notifier (httpx mocked)."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from escort_dispatch.adapters.webhook_notifier import WebhookNotifier
from escort_dispatch.ports.notification_port import NotificationError

RECIPIENT = {"name": "Alice", "phone": "", "email": "alice@example.com"}


def _mock_client(mock_client_cls):
    client = MagicMock()
    mock_client_cls.return_value.__enter__.return_value = client
    return client


class TestWebhookNotifier:
    @patch("escort_dispatch.adapters.webhook_notifier.httpx.Client")
    def test_posts_json_payload(self, mock_client_cls):
        client = _mock_client(mock_client_cls)

        WebhookNotifier("https://relay.example/send", timeout=3).send_message(
            RECIPIENT, "Escort assignment B-02-24", "body",
        )

        mock_client_cls.assert_called_once_with(timeout=3)
        client.post.assert_called_once_with(
            "https://relay.example/send",
            json={"to": RECIPIENT, "subject": "Escort assignment B-02-24", "text": "body"},
        )
        client.post.return_value.raise_for_status.assert_called_once()

    @patch("escort_dispatch.adapters.webhook_notifier.httpx.Client")
    def test_http_error_wrapped(self, mock_client_cls):
        client = _mock_client(mock_client_cls)
        client.post.side_effect = httpx.ConnectError("refused")

        with pytest.raises(NotificationError, match="Alice"):
            WebhookNotifier("https://relay.example/send").send_message(RECIPIENT, "s", "t")

    @patch("escort_dispatch.adapters.webhook_notifier.httpx.Client")
    def test_error_status_wrapped(self, mock_client_cls):
        client = _mock_client(mock_client_cls)
        request = httpx.Request("POST", "https://relay.example/send")
        response = httpx.Response(502, request=request)
        client.post.return_value.raise_for_status.side_effect = httpx.HTTPStatusError(
            "bad gateway", request=request, response=response,
        )

        with pytest.raises(NotificationError):
            WebhookNotifier("https://relay.example/send").send_message(RECIPIENT, "s", "t")

"""Webhook notification adapter — implements NotificationPort.

Hands each message to an outbound SMS/email relay by POSTing JSON to a
configured URL. Delivery itself is the relay's job.
"""

from __future__ import annotations

import logging

import httpx

from escort_dispatch.ports.notification_port import NotificationError

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 5


class WebhookNotifier:
    """HTTP webhook implementation of NotificationPort."""

    def __init__(self, url: str, timeout: float = _TIMEOUT_SECONDS) -> None:
        self._url = url
        self._timeout = timeout

    def send_message(self, recipient: dict, subject: str, text: str) -> None:
        payload = {
            "to": recipient,
            "subject": subject,
            "text": text,
        }
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(self._url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(f"Webhook delivery to {recipient.get('name')!r} failed: {exc}") from exc
        logger.debug("Webhook accepted message for %s", recipient.get("name"))

"""Notification port — abstract interface for messaging riders.

Core modules depend on this protocol, never on a specific SMS/email provider.
"""

from __future__ import annotations

from typing import Protocol


class NotificationError(Exception):
    """Raised when the notification transport rejects or fails a send."""


class NotificationPort(Protocol):
    """Abstract notification interface used by core modules."""

    def send_message(self, recipient: dict, subject: str, text: str) -> None: ...

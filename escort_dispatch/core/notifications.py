"""Assignment announcements sent through the NotificationPort.

Sends are paced by a fixed pause to stay under the transport's rate limit.
A failed send is logged and reported back; it never aborts the batch.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from escort_dispatch.core.timeutils import format_date, format_time

if TYPE_CHECKING:
    from escort_dispatch.data.models import Request, Rider
    from escort_dispatch.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


@dataclass
class NotificationFailure:
    rider_name: str
    assignment_id: str
    error: str


def format_assignment_message(assignment_id: str, rider_name: str, request: Request) -> str:
    lines = [
        "ESCORT ASSIGNMENT NOTIFICATION",
        "",
        f"Assignment: {assignment_id}",
        f"Request: {request.id}",
        f"Rider: {rider_name}",
        "",
    ]
    if request.event_date:
        lines.append(f"Date: {format_date(request.event_date)}")
    if request.start_time:
        lines.append(f"Time: {format_time(request.start_time)}")
    if request.start_location:
        lines.append(f"Start: {request.start_location}")
    if request.end_location:
        lines.append(f"End: {request.end_location}")
    if request.courtesy:
        lines += ["", "** COURTESY **"]
    if request.notes:
        lines += ["", f"Notes: {request.notes}"]
    return "\n".join(lines)


class AssignmentNotifier:
    """Announces newly created assignments to their riders."""

    def __init__(
        self,
        transport: NotificationPort,
        pause_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._transport = transport
        self._pause = pause_seconds
        self._sleep = sleep

    def notify(
        self,
        request: Request,
        created: list[tuple[str, str]],
        riders: dict[str, Rider | None],
    ) -> list[NotificationFailure]:
        """Send one message per ``(assignment_id, rider_name)`` pair.

        ``riders`` maps each rider name to its roster entry (None when the
        rider is not on the roster, which counts as a failure).
        """
        failures: list[NotificationFailure] = []
        for i, (assignment_id, rider_name) in enumerate(created):
            if i and self._pause:
                self._sleep(self._pause)
            rider = riders.get(rider_name)
            if rider is None or not (rider.phone or rider.email):
                failures.append(NotificationFailure(
                    rider_name, assignment_id, "no contact details on the roster",
                ))
                logger.warning("Not notifying %s for %s: no contact details", rider_name, assignment_id)
                continue

            recipient = {"name": rider.name, "phone": rider.phone, "email": rider.email}
            try:
                self._transport.send_message(
                    recipient,
                    f"Escort assignment {request.id}",
                    format_assignment_message(assignment_id, rider.name, request),
                )
            except Exception as exc:
                failures.append(NotificationFailure(rider_name, assignment_id, str(exc)))
                logger.warning("Notification for %s (%s) failed: %s", rider_name, assignment_id, exc)
            else:
                logger.info("Notified %s about %s", rider_name, assignment_id)
        return failures

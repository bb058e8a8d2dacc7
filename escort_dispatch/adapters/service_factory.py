"""Service factory — wires stores, caches, locks and the notifier from config."""

from __future__ import annotations

from typing import TYPE_CHECKING

from escort_dispatch.core.assignment_processor import AssignmentProcessor, ConflictPolicy
from escort_dispatch.core.cache import IndexedCache
from escort_dispatch.core.conflict_checker import AvailabilityChecker
from escort_dispatch.core.dispatch_service import DispatchService
from escort_dispatch.core.locks import KeyedLock
from escort_dispatch.core.notifications import AssignmentNotifier
from escort_dispatch.core.repository import DispatchRepository
from escort_dispatch.core.rotation import RotationManager
from escort_dispatch.core.status import StatusService
from escort_dispatch.core.timeutils import office_clock
from escort_dispatch.data.db import PropertyDB, TableDB
from escort_dispatch.data.models import TABLE_HEADERS

if TYPE_CHECKING:
    from escort_dispatch.config import Settings
    from escort_dispatch.ports.notification_port import NotificationPort


def create_notifier(settings: Settings) -> NotificationPort | None:
    """Return the webhook notifier, or None when no URL is configured."""
    if not settings.NOTIFY_WEBHOOK_URL:
        return None

    from escort_dispatch.adapters.webhook_notifier import WebhookNotifier

    return WebhookNotifier(settings.NOTIFY_WEBHOOK_URL)


def build_dispatch_service(
    settings: Settings | None = None,
    transport: NotificationPort | None = None,
) -> DispatchService:
    """Build a fully wired DispatchService.

    Args:
        settings: Configuration; defaults to the environment-loaded singleton.
        transport: Notification transport overriding the configured webhook.
    """
    if settings is None:
        from escort_dispatch.config import settings as loaded
        settings = loaded

    tables = TableDB(settings.DATABASE_PATH)
    for name, headers in TABLE_HEADERS.items():
        tables.ensure_table(name, headers)
    properties = PropertyDB(settings.DATABASE_PATH)

    cache = IndexedCache(default_timeout=settings.CACHE_TTL_SECONDS)
    long_cache = IndexedCache(default_timeout=settings.CACHE_LONG_TTL_SECONDS)
    locks = KeyedLock(timeout=settings.LOCK_TIMEOUT_SECONDS)

    clock = office_clock(settings.TIMEZONE)

    repository = DispatchRepository(tables, cache, long_cache)
    status_service = StatusService(repository, clock=clock)
    rotation = RotationManager(
        properties, repository, locks,
        cache=cache, property_key=settings.ROTATION_PROPERTY_KEY,
    )
    checker = AvailabilityChecker(repository, window_minutes=settings.CONFLICT_WINDOW_MINUTES)

    transport = transport or create_notifier(settings)
    notifier = (
        AssignmentNotifier(transport, pause_seconds=settings.NOTIFY_THROTTLE_SECONDS)
        if transport is not None else None
    )

    processor = AssignmentProcessor(
        repository, status_service, rotation, locks,
        checker=checker,
        notifier=notifier,
        conflict_policy=ConflictPolicy(settings.ASSIGNMENT_CONFLICT_POLICY),
        clock=clock,
    )
    return DispatchService(
        repository, processor, status_service, rotation, checker, clock=clock,
    )

"""Notification channel for transient user-facing messages.

Entries are kept in arrival order and removed either by dismiss() or by a
per-entry timer scheduled on the running event loop. Dismissing an entry
cancels its timer so no callback fires for a removed entry.
"""

from __future__ import annotations

import asyncio
import itertools

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from upscale_juicer.core.constants import MAX_NOTIFICATIONS, NOTIFICATION_DURATION_SECONDS
from upscale_juicer.models.workflow_models import Notification, Severity
from upscale_juicer.utils.logger import logger

NotificationListener = Callable[[list[Notification]], None]


@dataclass
class _Entry:
    notification: Notification
    timer: asyncio.TimerHandle | None = None


class NotificationChannel:
    """Ordered, capped collection of auto-expiring notifications.

    Attributes:
        duration: Seconds before an entry is removed automatically
        max_entries: Live entries kept; posting past the cap evicts the oldest
    """

    def __init__(
        self,
        duration: float = NOTIFICATION_DURATION_SECONDS,
        max_entries: int = MAX_NOTIFICATIONS,
    ) -> None:
        self.duration = duration
        self.max_entries = max_entries
        self._ids = itertools.count(1)
        self._entries: dict[int, _Entry] = {}
        self._listeners: list[NotificationListener] = []

    def add_listener(self, listener: NotificationListener) -> Callable[[], None]:
        """Register a callback for every change. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def post(self, message: str, severity: Severity | str = Severity.INFO) -> Notification:
        """Append a notification and schedule its removal.

        Without a running event loop the entry stays until dismissed or cleared.
        """
        notification = Notification(
            id=next(self._ids),
            message=message,
            severity=Severity(severity),
            created_at=datetime.now(UTC),
        )
        entry = _Entry(notification)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop; notification {notification.id} will not auto-expire")
        else:
            entry.timer = loop.call_later(self.duration, self._expire, notification.id)

        self._entries[notification.id] = entry

        while len(self._entries) > self.max_entries:
            oldest_id = next(iter(self._entries))
            self._remove(oldest_id)

        logger.debug(f"Notification posted [{notification.severity.value}]: {message}")
        self._publish()
        return notification

    def dismiss(self, notification_id: int) -> bool:
        """Remove a notification now. Returns False if it was already gone."""
        if not self._remove(notification_id):
            return False
        self._publish()
        return True

    def list(self) -> list[Notification]:
        """Live notifications in arrival order."""
        return [entry.notification for entry in self._entries.values()]

    def clear(self) -> None:
        """Remove every notification and cancel all timers."""
        for notification_id in list(self._entries):
            self._remove(notification_id)
        self._publish()

    def __len__(self) -> int:
        return len(self._entries)

    def _expire(self, notification_id: int) -> None:
        if self._entries.pop(notification_id, None) is not None:
            self._publish()

    def _remove(self, notification_id: int) -> bool:
        entry = self._entries.pop(notification_id, None)
        if entry is None:
            return False
        if entry.timer is not None:
            entry.timer.cancel()
        return True

    def _publish(self) -> None:
        snapshot = self.list()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Notification listener failed: {e}", exc_info=True)

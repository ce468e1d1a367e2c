"""
One-shot user notifications (toasts).

The sync core publishes here; the renderer drains or subscribes. Failure
notifications are throttled by the caller to once per failure episode.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    resource_key: Optional[str] = None
    count: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "level": self.level.value,
            "resource_key": self.resource_key,
            "count": self.count,
            "created_at": self.created_at.isoformat(),
        }


class NotificationCenter:
    """Bounded queue of pending notifications plus live subscribers."""

    def __init__(self, max_history: int = 50):
        self._pending: Deque[Notification] = deque(maxlen=max_history)
        self._subscribers: List[Callable[[Notification], None]] = []

    def publish(
        self,
        message: str,
        level: NotificationLevel = NotificationLevel.INFO,
        resource_key: Optional[str] = None,
        count: int = 0,
    ) -> Notification:
        notification = Notification(message=message, level=level, resource_key=resource_key, count=count)
        self._pending.append(notification)
        for subscriber in list(self._subscribers):
            try:
                subscriber(notification)
            except Exception as e:
                logger.error(f"Notification subscriber failed: {e}")
        return notification

    def subscribe(self, callback: Callable[[Notification], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def pending(self) -> List[Notification]:
        return list(self._pending)

    def drain(self) -> List[Notification]:
        """Return and forget everything not yet shown."""
        items = list(self._pending)
        self._pending.clear()
        return items

"""
Pending-Count Monitor.

Polls the scalar count of live trades awaiting consolidation while its panel
is visible. No diffing: the count drives a badge and gates the "process"
action. A failed poll keeps the last displayed value.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from core.exceptions import DecodeFailure
from livesync.clock import Clock, get_default_clock
from livesync.models import TrackedResource
from livesync.notifications import NotificationCenter, NotificationLevel
from livesync.scheduler import PollScheduler

logger = logging.getLogger(__name__)

PENDING_RESOURCE_KEY = "pending-count"
DEFAULT_PENDING_INTERVAL_MS = 1000


def coerce_count(value) -> int:
    """
    Validate a pending-count payload.

    Raises:
        DecodeFailure: not a non-negative integer
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeFailure("Pending count is not a number", context={"got": type(value).__name__})
    if value < 0 or value != int(value):
        raise DecodeFailure("Pending count is not a non-negative integer", context={"got": value})
    return int(value)


class PendingCountMonitor:
    """
    Visibility-gated poll of the pending trade count.

    Example:
        monitor = PendingCountMonitor(backend.fetch_pending_count, clock=clock)
        monitor.set_visible(True)    # starts polling
        monitor.can_process          # False while count == 0
        monitor.set_visible(False)   # suspends; last count is kept
    """

    def __init__(
        self,
        fetch_count: Callable[[], Awaitable[int]],
        interval_ms: float = DEFAULT_PENDING_INTERVAL_MS,
        clock: Optional[Clock] = None,
        max_interval_ms: float = 30000.0,
        on_change: Optional[Callable[[int], None]] = None,
        notifications: Optional[NotificationCenter] = None,
        label: str = "pending trade count",
    ):
        self._fetch_count = fetch_count
        self.interval_ms = interval_ms
        self._clock = clock or get_default_clock()
        self._scheduler: PollScheduler[int] = PollScheduler(
            clock=self._clock, max_interval_ms=max_interval_ms
        )
        self._on_change = on_change
        self._notifications = notifications
        self.label = label
        self.resource: Optional[TrackedResource] = None
        self.count: Optional[int] = None
        self.visible = False

    @property
    def running(self) -> bool:
        return self._scheduler.running

    @property
    def can_process(self) -> bool:
        return bool(self.count)

    @property
    def badge_text(self) -> str:
        if self.count is None:
            return "-"
        return f"{self.count:,}"

    def set_visible(self, visible: bool) -> None:
        """Start polling when shown, suspend when hidden."""
        if visible == self.visible:
            return
        self.visible = visible
        if visible:
            self.resource = self._scheduler.start(
                PENDING_RESOURCE_KEY,
                self.interval_ms,
                self._fetch,
                on_result=self._apply,
                on_error=self._report_failure,
                resource=self.resource,
            )
        else:
            self._scheduler.cancel()
            logger.debug("Pending-count polling suspended")

    def refresh(self) -> None:
        self._scheduler.refresh()

    async def aclose(self) -> None:
        self.visible = False
        await self._scheduler.aclose()

    async def _fetch(self) -> int:
        return coerce_count(await self._fetch_count())

    def _report_failure(self, error: BaseException, episode_started: bool) -> None:
        """The badge keeps its last value; toast once per episode."""
        if episode_started and self._notifications is not None:
            self._notifications.publish(
                f"Failed to load {self.label}. Retrying...",
                NotificationLevel.ERROR,
                resource_key=PENDING_RESOURCE_KEY,
            )

    def _apply(self, count: int) -> None:
        changed = count != self.count
        self.count = count
        if changed and self._on_change is not None:
            self._on_change(count)

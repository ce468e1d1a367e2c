"""
Manual clock for driving the sync core in tests.

Time only moves when a test calls advance(). Timers and sleeps fire in
deadline order, and after each one the event loop is given enough turns for
woken tasks to run up to their next await. Time is kept in integer
milliseconds so expiry boundaries are exact.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

DEFAULT_START = datetime(2025, 6, 2, 9, 0, 0, tzinfo=timezone.utc)


async def settle(rounds: int = 50) -> None:
    """Let ready tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualTimer:
    def __init__(self, deadline_ms: int, callback: Callable[[], None]):
        self.deadline_ms = deadline_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """Clock implementation whose time is advanced by hand."""

    def __init__(self, start: Optional[datetime] = None):
        self.start = start or DEFAULT_START
        self.elapsed_ms = 0
        self.sleeps: List[float] = []
        self._timers: List[Tuple[int, int, ManualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> datetime:
        return self.start + timedelta(milliseconds=self.elapsed_ms)

    def monotonic(self) -> float:
        return self.elapsed_ms / 1000.0

    def call_later(self, seconds: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.elapsed_ms + round(seconds * 1000), callback)
        heapq.heappush(self._timers, (timer.deadline_ms, next(self._seq), timer))
        return timer

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        future = asyncio.get_running_loop().create_future()

        def wake() -> None:
            if not future.done():
                future.set_result(None)

        timer = self.call_later(seconds, wake)
        try:
            await future
        finally:
            timer.cancel()

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, t in self._timers if not t.cancelled)

    async def advance_ms(self, ms: int) -> None:
        """Move time forward by `ms`, firing everything due on the way."""
        target = self.elapsed_ms + ms
        await settle()
        while self._timers and self._timers[0][0] <= target:
            deadline, _, timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self.elapsed_ms = max(self.elapsed_ms, deadline)
            timer.callback()
            await settle()
        self.elapsed_ms = target
        await settle()

    async def advance(self, seconds: float) -> None:
        await self.advance_ms(round(seconds * 1000))

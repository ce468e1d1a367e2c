"""
Highlight Lifecycle Manager.

Holds per-category sets of "recently new" ids, each with its own expiry
timer. One manager serves every panel; categories never touch each other.

Per-category state machine:

    IDLE --flash(ids)--> ACTIVE(ids, expiry) --expiry / clear()--> IDLE
                           |  ^
                           +--+ flash(ids') replaces ids and restarts expiry

Usage:
    highlights = HighlightLifecycleManager(clock)
    highlights.flash("mxml", {"7"}, duration_ms=4000)
    highlights.is_highlighted("mxml", "7")   # True for 4s
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from livesync.clock import Clock, TimerHandle, get_default_clock

logger = logging.getLogger(__name__)

DEFAULT_HIGHLIGHT_MS = 4000

ChangeListener = Callable[[str, FrozenSet[str]], None]


class HighlightState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class HighlightSet:
    """Active highlight for one category."""
    category: str
    ids: FrozenSet[str]
    expires_at: float  # clock.monotonic() seconds
    generation: int
    timer: Optional[TimerHandle] = None


class HighlightLifecycleManager:
    """
    Per-category transient highlighting with automatic expiry.

    A flash is cleared by its own timer, independent of poll cadence. Each
    flash carries a generation number; a timer only clears the set it was
    armed for, so a late timer from a replaced flash is a no-op.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or get_default_clock()
        self._active: Dict[str, HighlightSet] = {}
        self._generations = itertools.count(1)
        self._listeners: List[ChangeListener] = []

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def flash(self, category: str, ids: Iterable[str], duration_ms: float = DEFAULT_HIGHLIGHT_MS) -> Optional[HighlightSet]:
        """
        Mark `ids` active under `category` for `duration_ms`.

        Replaces (does not union with) any set already active for the
        category and restarts its expiry. Flashing no ids changes nothing.
        """
        id_set = frozenset(ids)
        if not id_set:
            return None
        if duration_ms <= 0:
            raise ValueError(f"duration_ms must be positive, got {duration_ms}")

        self._cancel_timer(category)

        generation = next(self._generations)
        seconds = duration_ms / 1000.0
        highlight = HighlightSet(
            category=category,
            ids=id_set,
            expires_at=self._clock.monotonic() + seconds,
            generation=generation,
        )
        highlight.timer = self._clock.call_later(
            seconds, lambda: self._expire(category, generation)
        )
        self._active[category] = highlight
        logger.debug(f"Highlight {category}: {len(id_set)} ids for {duration_ms:.0f}ms (gen {generation})")
        self._notify(category, id_set)
        return highlight

    def clear(self, category: str) -> None:
        """Return `category` to idle now."""
        if category not in self._active:
            return
        self._cancel_timer(category)
        del self._active[category]
        self._notify(category, frozenset())

    def clear_all(self) -> None:
        """Drop every active highlight and its timer (teardown)."""
        for category in list(self._active):
            self.clear(category)

    def _expire(self, category: str, generation: int) -> None:
        current = self._active.get(category)
        if current is None or current.generation != generation:
            return
        del self._active[category]
        logger.debug(f"Highlight {category} expired (gen {generation})")
        self._notify(category, frozenset())

    def _cancel_timer(self, category: str) -> None:
        current = self._active.get(category)
        if current is not None and current.timer is not None:
            current.timer.cancel()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def state(self, category: str) -> HighlightState:
        return HighlightState.ACTIVE if category in self._active else HighlightState.IDLE

    def active_ids(self, category: str) -> FrozenSet[str]:
        current = self._active.get(category)
        return current.ids if current else frozenset()

    def is_highlighted(self, category: str, entity_id: str) -> bool:
        return entity_id in self.active_ids(category)

    def snapshot(self) -> Dict[str, FrozenSet[str]]:
        """Currently highlighted ids per active category."""
        return {category: h.ids for category, h in self._active.items()}

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, category: str, ids: FrozenSet[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(category, ids)
            except Exception as e:
                logger.error(f"Highlight listener failed for {category}: {e}")

"""
Live Panel - one visible dashboard panel bound to one polled resource.

Wires the pieces of the sync core together for a single resource:

    PollScheduler --entities--> differ --new ids--> HighlightLifecycleManager
                                               +--> NotificationCenter (one toast)

The panel owns its TrackedResource (and so its previous snapshot) from
mount to unmount. The highlight manager and notification center are shared
across panels, but each panel only ever touches its own category.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional

from core.backoff import BackoffConfig, ExponentialBackoff
from core.structured_log import jlog
from livesync.clock import Clock, get_default_clock
from livesync.differ import advance
from livesync.highlights import DEFAULT_HIGHLIGHT_MS, HighlightLifecycleManager
from livesync.models import Entity, TrackedResource
from livesync.notifications import NotificationCenter, NotificationLevel
from livesync.scheduler import PollScheduler

logger = logging.getLogger(__name__)

FetchEntities = Callable[[], Awaitable[List[Entity]]]


class LivePanel:
    """
    A mounted panel polling one resource and flashing its arrivals.

    Example:
        panel = LivePanel(
            "imports", "imported", backend.fetch_imports,
            highlights=highlights, notifications=notifications,
            interval_ms=3000,
        )
        panel.mount()
        ...
        panel.unmount()
    """

    def __init__(
        self,
        resource_key: str,
        category: str,
        fetch_entities: FetchEntities,
        *,
        highlights: HighlightLifecycleManager,
        notifications: NotificationCenter,
        clock: Optional[Clock] = None,
        interval_ms: float = 3000,
        max_interval_ms: float = 30000,
        multiplier: float = 2.0,
        jitter_enabled: bool = False,
        highlight_duration_ms: float = DEFAULT_HIGHLIGHT_MS,
        recency_window_ms: float = 30000,
        label: Optional[str] = None,
        status_filter: Optional[str] = None,
        on_update: Optional[Callable[["LivePanel"], None]] = None,
    ):
        self.resource_key = resource_key
        self.category = category
        self.label = label or resource_key
        self.status_filter = status_filter
        self.interval_ms = interval_ms
        self.max_interval_ms = max_interval_ms
        self.highlight_duration_ms = highlight_duration_ms
        self.recency_window = timedelta(milliseconds=recency_window_ms)

        self._fetch_entities = fetch_entities
        self._highlights = highlights
        self._notifications = notifications
        self._clock = clock or get_default_clock()
        self._scheduler: PollScheduler[List[Entity]] = PollScheduler(
            clock=self._clock,
            max_interval_ms=max_interval_ms,
            multiplier=multiplier,
            jitter_enabled=jitter_enabled,
        )
        self._on_update = on_update

        self.resource: Optional[TrackedResource] = None
        # Everything the last accepted tick returned, before status_filter
        self.fetched: List[Entity] = []
        self.entities: List[Entity] = []
        self.last_new_ids: FrozenSet[str] = frozenset()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def mounted(self) -> bool:
        return self.resource is not None

    @property
    def polling(self) -> bool:
        return self._scheduler.running

    def mount(self) -> TrackedResource:
        """Create a fresh TrackedResource and start polling it."""
        if self.mounted:
            raise RuntimeError(f"Panel '{self.resource_key}' is already mounted")
        self.resource = TrackedResource(
            resource_key=self.resource_key,
            poll_interval_ms=self.interval_ms,
            max_interval_ms=self.max_interval_ms,
            backoff=ExponentialBackoff(BackoffConfig(
                base_interval_ms=self.interval_ms,
                max_interval_ms=max(self.max_interval_ms, self.interval_ms),
                multiplier=self._scheduler.multiplier,
                jitter_enabled=self._scheduler.jitter_enabled,
            )),
        )
        self._start()
        return self.resource

    def unmount(self) -> None:
        """Stop polling, drop the snapshot, and clear this panel's highlights."""
        self._scheduler.cancel()
        self._highlights.clear(self.category)
        self.resource = None
        self.last_new_ids = frozenset()

    async def aclose(self) -> None:
        self.unmount()
        await self._scheduler.aclose()

    def set_interval(self, interval_ms: float) -> None:
        """Change the base cadence, keeping the snapshot (no false arrivals)."""
        self.interval_ms = interval_ms
        if not self.mounted:
            return
        self._scheduler.cancel()
        self._start()

    def refresh(self) -> None:
        self._scheduler.refresh()

    def _start(self) -> None:
        self._scheduler.start(
            self.resource_key,
            self.interval_ms,
            self._fetch_entities,
            on_result=self.apply,
            on_error=self.report_failure,
            resource=self.resource,
        )

    # ------------------------------------------------------------------
    # Tick outcomes
    # ------------------------------------------------------------------

    def apply(self, entities: List[Entity]) -> FrozenSet[str]:
        """
        Replace the snapshot with this tick's entities and flash arrivals.

        Only entities passing status_filter are shown and diffed; on_update
        sees the full list through `fetched`.

        Returns:
            The ids classified as new on this tick
        """
        if self.resource is None:
            raise RuntimeError(f"Panel '{self.resource_key}' is not mounted")

        self.fetched = list(entities)
        if self.status_filter is not None:
            entities = [e for e in self.fetched if e.status == self.status_filter]

        snapshot, new_ids = advance(
            self.resource.snapshot,
            entities,
            self._clock.now(),
            sequence=self._scheduler.applied_sequence,
            recency_window=self.recency_window,
        )
        self.resource.snapshot = snapshot
        self.entities = list(entities)
        self.last_new_ids = new_ids

        if new_ids:
            count = len(new_ids)
            self._highlights.flash(self.category, new_ids, self.highlight_duration_ms)
            self._notifications.publish(
                f"{count} new {self.label}",
                NotificationLevel.INFO,
                resource_key=self.resource_key,
                count=count,
            )
            jlog("new_entities_detected", resource=self.resource_key, count=count, ids=sorted(new_ids))

        if self._on_update is not None:
            self._on_update(self)
        return new_ids

    def report_failure(self, error: BaseException, episode_started: bool) -> None:
        """Keep showing the last good entities; toast once per episode."""
        if episode_started:
            self._notifications.publish(
                f"Failed to load {self.label}. Retrying...",
                NotificationLevel.ERROR,
                resource_key=self.resource_key,
            )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def highlighted_ids(self) -> FrozenSet[str]:
        return self._highlights.active_ids(self.category)

    def view(self) -> Dict[str, Any]:
        """Plain-data view of the panel for the rendering layer."""
        highlighted = self.highlighted_ids()
        return {
            "key": self.resource_key,
            "category": self.category,
            "label": self.label,
            "mounted": self.mounted,
            "entities": [
                {
                    "id": e.id,
                    "status": e.status,
                    "created_at": e.created_at.isoformat() if e.created_at else None,
                    "highlighted": e.id in highlighted,
                }
                for e in self.entities
            ],
            "highlighted_ids": sorted(highlighted),
            "resource": self.resource.to_dict() if self.resource else None,
        }

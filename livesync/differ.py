"""
Snapshot Differ - classify genuinely new arrivals between two ticks.

    new_ids = ids(current) - previous.ids

with two guards:
1. The first snapshot ever observed for a resource yields nothing; initial
   population is not an arrival.
2. A candidate is surfaced only if its timestamp lies within the recency
   window of evaluation time. Ids that look new only because the visible
   filter changed (an old record scrolling into view) are suppressed.

The previous snapshot is always passed in by its owning TrackedResource;
the differ keeps no state of its own.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import FrozenSet, Iterable, Optional, Sequence, Tuple

from livesync.models import Entity, Snapshot, ids_of

DEFAULT_RECENCY_WINDOW = timedelta(seconds=30)


def is_recent(entity: Entity, now: datetime, window: timedelta = DEFAULT_RECENCY_WINDOW) -> bool:
    """
    Whether an entity was created within `window` of `now`, on either side.

    A timestamp further in the future than the window is as suspect as an
    old one (a backend reporting local time as UTC, say) and is not recent.
    Entities without a timestamp never are.
    """
    if entity.created_at is None:
        return False
    return abs(now - entity.created_at) <= window


def diff(
    previous: Optional[Snapshot],
    current: Sequence[Entity],
    now: datetime,
    recency_window: timedelta = DEFAULT_RECENCY_WINDOW,
) -> FrozenSet[str]:
    """
    Ids in `current` that are genuinely new since `previous`.

    Args:
        previous: Last snapshot of the same resource, None on first observation
        current: Entities returned by this tick
        now: Evaluation time
        recency_window: Max age for a candidate to count as an arrival

    Returns:
        Set of new ids (no ordering, no duplicates)
    """
    if previous is None:
        return frozenset()

    return frozenset(
        entity.id
        for entity in current
        if entity.id not in previous.ids and is_recent(entity, now, recency_window)
    )


def advance(
    previous: Optional[Snapshot],
    current: Iterable[Entity],
    now: datetime,
    sequence: int = 0,
    recency_window: timedelta = DEFAULT_RECENCY_WINDOW,
) -> Tuple[Snapshot, FrozenSet[str]]:
    """
    Diff and build the replacement snapshot in one step.

    The new snapshot replaces the previous one wholesale; it is never merged.
    """
    entities = list(current)
    new_ids = diff(previous, entities, now, recency_window)
    return Snapshot(ids=ids_of(entities), taken_at=now, sequence=sequence), new_ids

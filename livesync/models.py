"""
Data model for the live-sync core.

Entity/Snapshot/TrackedResource describe what is polled and what was last
seen; DemoConfig mirrors the backend's wire format.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.backoff import BackoffConfig, ExponentialBackoff
from core.exceptions import DecodeFailure


@dataclass(frozen=True)
class Entity:
    """
    One backend record as seen by the differ.

    Only id and created_at matter for arrival detection; status and raw
    are carried through untouched for the renderer.
    """
    id: str
    created_at: Optional[datetime]
    status: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Snapshot:
    """The id-set observed at one tick."""
    ids: FrozenSet[str]
    taken_at: datetime
    sequence: int = 0

    def __len__(self) -> int:
        return len(self.ids)


@dataclass
class TrackedResource:
    """
    A named, independently polled remote collection.

    Owns its backoff and its previous snapshot; nothing here is shared with
    another resource.
    """
    resource_key: str
    poll_interval_ms: float
    max_interval_ms: float = 30000.0
    backoff: Optional[ExponentialBackoff] = None
    last_fetched_at: Optional[datetime] = None
    last_error: Optional[BaseException] = None
    snapshot: Optional[Snapshot] = None
    in_failure_episode: bool = False

    def __post_init__(self):
        if self.backoff is None:
            self.backoff = ExponentialBackoff(BackoffConfig(
                base_interval_ms=self.poll_interval_ms,
                max_interval_ms=max(self.max_interval_ms, self.poll_interval_ms),
            ))

    @property
    def current_interval_ms(self) -> float:
        return self.backoff.current_interval_ms

    def record_success(self, fetched_at: datetime) -> bool:
        """
        Mark a good poll.

        Returns:
            True if this success ends a failure episode
        """
        recovered = self.in_failure_episode
        self.last_fetched_at = fetched_at
        self.last_error = None
        self.in_failure_episode = False
        self.backoff.record_success()
        return recovered

    def record_failure(self, error: BaseException) -> bool:
        """
        Mark a failed poll and grow the interval.

        Returns:
            True if this failure starts a new failure episode
        """
        started = not self.in_failure_episode
        self.last_error = error
        self.in_failure_episode = True
        self.backoff.record_failure()
        return started

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_key": self.resource_key,
            "poll_interval_ms": self.poll_interval_ms,
            "backoff": self.backoff.get_status(),
            "last_fetched_at": self.last_fetched_at.isoformat() if self.last_fetched_at else None,
            "last_error": str(self.last_error) if self.last_error else None,
            "snapshot_size": len(self.snapshot) if self.snapshot else 0,
            "in_failure_episode": self.in_failure_episode,
        }


class DemoConfig(BaseModel):
    """Demo-mode trade generator settings, camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    trades_per_second: float = Field(default=1.0, ge=0, alias="tradesPerSecond")
    grouping_interval_seconds: int = Field(default=10, ge=1, alias="groupingIntervalSeconds")
    auto_mxml_enabled: bool = Field(default=False, alias="autoMxmlEnabled")
    mxml_generation_interval_seconds: int = Field(default=30, ge=1, alias="mxmlGenerationIntervalSeconds")
    auto_murex_enabled: bool = Field(default=False, alias="autoMurexEnabled")
    murex_push_interval_seconds: int = Field(default=60, ge=1, alias="murexPushIntervalSeconds")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# =============================================================================
# PAYLOAD DECODING
# =============================================================================

# Jackson trims trailing zeros ("09:00:00.12") or emits nanoseconds
_FRACTION_RE = re.compile(r"\.(\d+)")


def _six_digit_fraction(text: str) -> str:
    return _FRACTION_RE.sub(lambda m: "." + m.group(1).ljust(6, "0")[:6], text, count=1)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a backend timestamp.

    Accepts ISO-8601 strings (with or without offset, trailing 'Z' allowed,
    any number of fractional-second digits), epoch milliseconds, and
    datetimes. Values without an offset are taken as UTC. Returns None for
    anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = _six_digit_fraction(value.strip())
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_entities(
    payload: Any,
    id_field: str = "id",
    timestamp_field: str = "createdAt",
    status_filter: Optional[str] = None,
) -> List[Entity]:
    """
    Decode a JSON list payload into entities.

    Args:
        payload: Decoded JSON body
        id_field: Key holding the entity id
        timestamp_field: Key holding the time the entity entered this view
        status_filter: Keep only entities whose "status" equals this

    Raises:
        DecodeFailure: payload is not a list of objects with ids
    """
    if not isinstance(payload, list):
        raise DecodeFailure(
            "Expected a JSON list",
            context={"got": type(payload).__name__},
        )

    entities: List[Entity] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise DecodeFailure("Entity is not an object", context={"index": index})
        raw_id = item.get(id_field)
        if raw_id is None or raw_id == "":
            raise DecodeFailure(
                f"Entity missing '{id_field}'",
                context={"index": index},
            )
        status = item.get("status")
        if status_filter is not None and status != status_filter:
            continue
        entities.append(Entity(
            id=str(raw_id),
            created_at=parse_timestamp(item.get(timestamp_field)),
            status=status,
            raw=item,
        ))
    return entities


def ids_of(entities: Iterable[Entity]) -> FrozenSet[str]:
    return frozenset(e.id for e in entities)

"""
Structured event log.

Sync events worth auditing after the fact (arrivals, failure episodes,
discarded responses, submissions) are appended as one JSON object per line
to $LIVESYNC_LOG_DIR/events.jsonl, rotated by size, and echoed to the
console. Ordinary diagnostics go through logging.getLogger(__name__) instead.
"""
from __future__ import annotations

import json
import logging
import os
from collections import deque
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict


LOG_DIR = Path(os.getenv("LIVESYNC_LOG_DIR", "logs"))
LOG_FILE = LOG_DIR / "events.jsonl"

# Rotation (configurable via environment)
MAX_LOG_BYTES = int(os.getenv("LIVESYNC_LOG_MAX_BYTES", 5 * 1024 * 1024))
LOG_BACKUP_COUNT = int(os.getenv("LIVESYNC_LOG_BACKUP_COUNT", 3))

_EVENT_LOGGER = "livesync.events"


def _event_logger() -> logging.Logger:
    """Dedicated non-propagating logger writing raw JSON lines."""
    events = logging.getLogger(_EVENT_LOGGER)
    if not events.handlers:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(LOG_FILE),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        events.addHandler(handler)
        events.setLevel(logging.DEBUG)
        events.propagate = False
    return events


def jlog(event: str, level: str = "INFO", **fields: Any) -> None:
    """
    Append one structured event.

    Args:
        event: Event name, e.g. "new_entities_detected"
        level: DEBUG, INFO, WARNING or ERROR
        **fields: Extra JSON fields; non-JSON values are stringified
    """
    level = level.upper()
    record: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
        **fields,
    }
    numeric_level = getattr(logging, level, logging.INFO)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    _event_logger().log(numeric_level, json.dumps(record, default=str))

    print(f"[{level}] {event} | {fields}")


def read_recent_logs(count: int = 100, level: str | None = None) -> list[Dict[str, Any]]:
    """
    Return up to `count` of the newest events, oldest first.

    Lines that are not valid JSON are skipped.
    """
    if not LOG_FILE.exists():
        return []

    recent: deque = deque(maxlen=count)
    with LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if level is None or entry.get("level") == level:
                recent.append(entry)
    return list(recent)

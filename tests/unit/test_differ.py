"""
Tests for livesync/differ.py - arrival detection between snapshots.
"""

from datetime import datetime, timedelta, timezone

from livesync.differ import DEFAULT_RECENCY_WINDOW, advance, diff, is_recent
from livesync.models import Snapshot
from tests.fixtures.fetch_mocks import make_entity

NOW = datetime(2025, 6, 2, 9, 0, 0, tzinfo=timezone.utc)


def snapshot(*ids):
    return Snapshot(ids=frozenset(str(i) for i in ids), taken_at=NOW - timedelta(seconds=3))


class TestIsRecent:
    """Tests for the recency guard."""

    def test_fresh_entity_is_recent(self):
        assert is_recent(make_entity(1, NOW - timedelta(seconds=2)), NOW)

    def test_window_boundary_is_inclusive(self):
        assert is_recent(make_entity(1, NOW - DEFAULT_RECENCY_WINDOW), NOW)
        assert not is_recent(make_entity(1, NOW - DEFAULT_RECENCY_WINDOW - timedelta(milliseconds=1)), NOW)

    def test_slightly_future_timestamp_is_recent(self):
        """Backend clock a few seconds ahead of ours."""
        assert is_recent(make_entity(1, NOW + timedelta(seconds=5)), NOW)

    def test_future_window_boundary_is_inclusive(self):
        assert is_recent(make_entity(1, NOW + DEFAULT_RECENCY_WINDOW), NOW)
        assert not is_recent(make_entity(1, NOW + DEFAULT_RECENCY_WINDOW + timedelta(milliseconds=1)), NOW)

    def test_far_future_timestamp_is_not_recent(self):
        """Local server time read as UTC on a UTC+8 backend."""
        assert not is_recent(make_entity(1, NOW + timedelta(hours=8)), NOW)

    def test_missing_timestamp_is_never_recent(self):
        assert not is_recent(make_entity(1, None), NOW)

    def test_custom_window(self):
        entity = make_entity(1, NOW - timedelta(seconds=10))
        assert not is_recent(entity, NOW, timedelta(seconds=5))
        assert is_recent(entity, NOW, timedelta(seconds=15))


class TestDiff:
    """Tests for diff()."""

    def test_first_observation_yields_nothing(self):
        current = [make_entity(i, NOW) for i in (1, 2, 3)]
        assert diff(None, current, NOW) == frozenset()

    def test_new_recent_id_is_surfaced(self):
        current = [make_entity(1, NOW), make_entity(2, NOW), make_entity(3, NOW)]
        assert diff(snapshot(1, 2), current, NOW) == {"3"}

    def test_old_record_scrolling_into_view_is_suppressed(self):
        current = [make_entity(1, NOW), make_entity(9, NOW - timedelta(minutes=5))]
        assert diff(snapshot(1), current, NOW) == frozenset()

    def test_far_future_record_is_suppressed(self):
        current = [make_entity(1, NOW), make_entity(2, NOW), make_entity(3, NOW + timedelta(hours=8))]
        assert diff(snapshot(1, 2), current, NOW) == frozenset()

    def test_removed_ids_are_not_reported(self):
        assert diff(snapshot(1, 2, 3), [make_entity(1, NOW)], NOW) == frozenset()

    def test_no_change_yields_nothing(self):
        current = [make_entity(1, NOW), make_entity(2, NOW)]
        assert diff(snapshot(1, 2), current, NOW) == frozenset()

    def test_empty_previous_snapshot_is_not_first_observation(self):
        """An empty list observed earlier is still an observation."""
        assert diff(snapshot(), [make_entity(5, NOW)], NOW) == {"5"}

    def test_duplicate_ids_collapse(self):
        current = [make_entity(4, NOW), make_entity(4, NOW)]
        assert diff(snapshot(), current, NOW) == {"4"}


class TestAdvance:
    """Tests for advance()."""

    def test_replaces_snapshot_wholesale(self):
        previous = snapshot(1, 2, 3)
        new_snapshot, new_ids = advance(previous, [make_entity(3, NOW), make_entity(4, NOW)], NOW, sequence=7)
        assert new_snapshot.ids == {"3", "4"}
        assert new_snapshot.taken_at == NOW
        assert new_snapshot.sequence == 7
        assert new_ids == {"4"}

    def test_accepts_generator(self):
        new_snapshot, new_ids = advance(None, (make_entity(i, NOW) for i in range(3)), NOW)
        assert len(new_snapshot) == 3
        assert new_ids == frozenset()

"""
Tests for livesync/models.py - entities, tracked resources, payload decoding.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import DecodeFailure, NetworkFailure
from livesync.models import (
    DemoConfig,
    Entity,
    Snapshot,
    TrackedResource,
    ids_of,
    parse_entities,
    parse_timestamp,
)

UTC = timezone.utc


class TestParseTimestamp:
    """Tests for backend timestamp decoding."""

    def test_iso_with_z(self):
        assert parse_timestamp("2025-06-02T09:00:00Z") == datetime(2025, 6, 2, 9, 0, tzinfo=UTC)

    def test_iso_with_offset(self):
        parsed = parse_timestamp("2025-06-02T11:00:00+02:00")
        assert parsed == datetime(2025, 6, 2, 9, 0, tzinfo=UTC)

    def test_naive_iso_is_utc(self):
        assert parse_timestamp("2025-06-02T09:00:00").tzinfo == UTC

    def test_epoch_millis(self):
        assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=UTC)
        assert parse_timestamp(1500) == datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=UTC)

    def test_naive_datetime_is_utc(self):
        assert parse_timestamp(datetime(2025, 1, 1)).tzinfo == UTC

    @pytest.mark.parametrize("text,micros", [
        ("2025-06-02T09:00:00.12", 120000),
        ("2025-06-02T09:00:00.5Z", 500000),
        ("2025-06-02T09:00:00.1234+00:00", 123400),
        ("2025-06-02T09:00:00.123456789", 123456),
    ])
    def test_any_fraction_length(self, text, micros):
        """Jackson LocalDateTime output trims zeros or carries nanoseconds."""
        assert parse_timestamp(text) == datetime(2025, 6, 2, 9, 0, 0, micros, tzinfo=UTC)

    @pytest.mark.parametrize("value", [None, "", "yesterday", True, {}, 10 ** 20])
    def test_unparseable_is_none(self, value):
        assert parse_timestamp(value) is None


class TestParseEntities:
    """Tests for list payload decoding."""

    def test_decodes_ids_as_strings(self):
        payload = [
            {"id": 1, "status": "IMPORTED", "createdAt": "2025-06-02T09:00:00Z"},
            {"id": "2", "status": "CONSOLIDATED", "createdAt": None},
        ]
        entities = parse_entities(payload)
        assert [e.id for e in entities] == ["1", "2"]
        assert entities[0].created_at == datetime(2025, 6, 2, 9, 0, tzinfo=UTC)
        assert entities[1].created_at is None
        assert entities[0].raw is payload[0]

    def test_status_filter(self):
        payload = [{"id": 1, "status": "IMPORTED"}, {"id": 2, "status": "CONSOLIDATED"}]
        assert [e.id for e in parse_entities(payload, status_filter="CONSOLIDATED")] == ["2"]

    def test_custom_fields(self):
        payload = [{"tradeId": "T-9", "timestamp": "2025-06-02T09:00:00Z"}]
        entity = parse_entities(payload, id_field="tradeId", timestamp_field="timestamp")[0]
        assert entity.id == "T-9"
        assert entity.created_at is not None

    def test_per_panel_timestamp_field(self):
        payload = [{"id": 3, "createdAt": "2020-01-01T00:00:00Z", "mxmlGeneratedAt": "2025-06-02T09:00:00Z"}]
        entity = parse_entities(payload, timestamp_field="mxmlGeneratedAt")[0]
        assert entity.created_at.year == 2025

    def test_empty_list(self):
        assert parse_entities([]) == []

    @pytest.mark.parametrize("payload", [None, {"id": 1}, "[]", [1, 2], [{"name": "no id"}], [{"id": ""}]])
    def test_malformed_payload_raises(self, payload):
        with pytest.raises(DecodeFailure):
            parse_entities(payload)

    def test_ids_of(self):
        entities = [Entity("1", None), Entity("2", None), Entity("1", None)]
        assert ids_of(entities) == {"1", "2"}

    def test_raw_excluded_from_equality(self):
        assert Entity("1", None, raw={"a": 1}) == Entity("1", None, raw={"b": 2})


class TestTrackedResource:
    """Tests for per-resource poll state."""

    def test_builds_its_own_backoff(self):
        resource = TrackedResource(resource_key="imports", poll_interval_ms=3000)
        assert resource.current_interval_ms == 3000
        assert resource.backoff.max_interval_ms == 30000

    def test_backoffs_are_not_shared(self):
        a = TrackedResource(resource_key="a", poll_interval_ms=1000)
        b = TrackedResource(resource_key="b", poll_interval_ms=1000)
        a.record_failure(NetworkFailure("x"))
        assert b.current_interval_ms == 1000

    def test_failure_episode_transitions(self):
        resource = TrackedResource(resource_key="imports", poll_interval_ms=3000)
        now = datetime(2025, 6, 2, tzinfo=UTC)
        assert resource.record_failure(NetworkFailure("x")) is True
        assert resource.record_failure(NetworkFailure("x")) is False
        assert resource.current_interval_ms == 12000
        assert resource.record_success(now) is True
        assert resource.record_success(now) is False
        assert resource.current_interval_ms == 3000
        assert resource.last_fetched_at == now
        assert resource.last_error is None

    def test_to_dict(self):
        resource = TrackedResource(resource_key="imports", poll_interval_ms=3000)
        resource.snapshot = Snapshot(ids=frozenset({"1", "2"}), taken_at=datetime(2025, 6, 2, tzinfo=UTC))
        data = resource.to_dict()
        assert data["resource_key"] == "imports"
        assert data["snapshot_size"] == 2
        assert data["backoff"]["current_interval_ms"] == 3000
        assert data["last_fetched_at"] is None


class TestDemoConfig:
    """Tests for the camelCase wire model."""

    def test_from_wire(self):
        config = DemoConfig.model_validate({"enabled": True, "tradesPerSecond": 5, "autoMurexEnabled": True})
        assert config.enabled
        assert config.trades_per_second == 5
        assert config.auto_murex_enabled

    def test_to_wire_uses_aliases(self):
        wire = DemoConfig(enabled=True, grouping_interval_seconds=15).to_wire()
        assert wire["groupingIntervalSeconds"] == 15
        assert "grouping_interval_seconds" not in wire

    def test_rejects_negative_rate(self):
        with pytest.raises(ValueError):
            DemoConfig(trades_per_second=-1)

"""
Pytest configuration and shared fixtures for live-sync tests.
"""

import os
import sys
import tempfile
from pathlib import Path

# Structured logs go to a scratch dir; must be set before core.structured_log is imported
os.environ.setdefault("LIVESYNC_LOG_DIR", tempfile.mkdtemp(prefix="livesync-logs-"))

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings_loader import reset_settings_cache
from config.settings_schema import PanelConfig, Settings
from tests.fixtures.clock import ManualClock
from tests.fixtures.backend_mocks import FakeBackend


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Every test starts from the packaged base.yaml with no env overrides."""
    monkeypatch.delenv("LIVESYNC_CONFIG_PATH", raising=False)
    monkeypatch.delenv("LIVESYNC_API_BASE_URL", raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def clock():
    """Hand-driven clock starting at 2025-06-02 09:00 UTC."""
    return ManualClock()


@pytest.fixture
def fake_backend(clock):
    """In-memory backend whose records are stamped with the manual clock."""
    return FakeBackend(clock)


@pytest.fixture
def dashboard_settings():
    """Two import panels plus the pending panel, with short test cadences."""
    return Settings(
        api={"base_url": "http://backend.test/api"},
        polling={"base_interval_ms": 3000, "demo_interval_ms": 1000, "max_interval_ms": 30000},
        highlight={"duration_ms": 4000, "recency_window_ms": 30000},
        pending={"interval_ms": 1000, "visible": True},
        panels=[
            PanelConfig(key="imports", category="imported", status="IMPORTED"),
            PanelConfig(
                key="consolidated",
                category="consolidated",
                status="CONSOLIDATED",
                timestamp_field="consolidatedAt",
            ),
            PanelConfig(
                key="live-trades",
                category="pending",
                label="pending trades",
                source="pending_trades",
                id_field="tradeId",
                timestamp_field="timestamp",
            ),
        ],
    )

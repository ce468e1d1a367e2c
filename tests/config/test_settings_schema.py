"""
Tests for config/settings_schema.py - typed config validation.
"""
from __future__ import annotations

from unittest.mock import patch

import pytest

from config.settings_schema import (
    PanelConfig,
    PollingConfig,
    Settings,
    SettingsValidationError,
    load_validated_settings,
    validate_settings,
)


class TestLoadValidatedSettings:
    """Tests for loading the packaged base.yaml."""

    def test_packaged_settings_are_valid(self):
        settings = load_validated_settings(force_reload=True)
        assert settings.polling.base_interval_ms == 3000
        assert settings.polling.demo_interval_ms == 1000
        assert settings.polling.max_interval_ms == 30000
        assert settings.highlight.duration_ms == 4000
        assert settings.pending.interval_ms == 1000

    def test_packaged_panels(self):
        settings = load_validated_settings(force_reload=True)
        by_key = {p.key: p for p in settings.panels}
        assert set(by_key) == {"imports", "consolidated", "mxml", "murex", "live-trades", "trades"}
        assert by_key["mxml"].timestamp_field == "mxmlGeneratedAt"
        assert by_key["murex"].status == "PUSHED_TO_MUREX"
        assert by_key["live-trades"].source == "pending_trades"
        assert by_key["live-trades"].id_field == "tradeId"
        assert by_key["trades"].source == "trades"
        assert by_key["trades"].interval_ms == 5000
        assert by_key["trades"].highlight_duration_ms == 3000

    def test_env_overrides_base_url(self, monkeypatch):
        monkeypatch.setenv("LIVESYNC_API_BASE_URL", "http://other:9000/api/")
        settings = load_validated_settings(force_reload=True)
        assert settings.api.base_url == "http://other:9000/api"

    def test_empty_file_gives_defaults(self):
        with patch("config.settings_schema.load_settings", return_value={}):
            settings = load_validated_settings()
        assert settings.panels == []
        assert settings.api.timeout_seconds == 10


class TestValidation:
    """Tests for schema rules."""

    def test_ceiling_below_interval_rejected(self):
        with pytest.raises(SettingsValidationError):
            validate_settings({"polling": {"base_interval_ms": 5000, "max_interval_ms": 4000}})

    def test_duplicate_panel_keys_rejected(self):
        panel = {"key": "imports", "category": "imported"}
        with pytest.raises(SettingsValidationError):
            validate_settings({"panels": [panel, dict(panel, category="other")]})

    def test_duplicate_categories_rejected(self):
        with pytest.raises(SettingsValidationError):
            validate_settings({"panels": [
                {"key": "a", "category": "imported"},
                {"key": "b", "category": "imported"},
            ]})

    def test_panel_interval_above_ceiling_rejected(self):
        with pytest.raises(SettingsValidationError):
            validate_settings({
                "polling": {"max_interval_ms": 30000},
                "panels": [{"key": "trades", "category": "trades", "source": "trades", "interval_ms": 60000}],
            })

    def test_unknown_source_rejected(self):
        with pytest.raises(SettingsValidationError):
            validate_settings({"panels": [{"key": "a", "category": "x", "source": "ftp"}]})

    def test_error_wraps_pydantic(self):
        with pytest.raises(SettingsValidationError) as exc_info:
            validate_settings({"highlight": {"duration_ms": 0}})
        assert exc_info.value.context["errors"] >= 1
        assert exc_info.value.cause is not None

    def test_unknown_sections_allowed(self):
        settings = validate_settings({"ui": {"theme": "dark"}})
        assert isinstance(settings, Settings)

    def test_panel_display_label(self):
        assert PanelConfig(key="mxml", category="mxml").display_label == "mxml"
        assert PanelConfig(key="live-trades", category="pending", label="pending trades").display_label == "pending trades"

    def test_polling_defaults(self):
        polling = PollingConfig()
        assert polling.multiplier == 2.0
        assert polling.jitter_enabled is False

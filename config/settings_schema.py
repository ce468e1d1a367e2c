"""
Typed Settings Schema (Pydantic)
================================

Provides typed, validated configuration for the live-sync dashboard core.

Usage:
    from config.settings_schema import load_validated_settings

    settings = load_validated_settings()

    base_ms = settings.polling.base_interval_ms
    for panel in settings.panels:
        print(panel.key, panel.category)
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from config.settings_loader import get_api_base_url, load_settings
from core.exceptions import SettingsValidationError

logger = logging.getLogger(__name__)


# ============================================================================
# Schema Definitions
# ============================================================================

class ApiConfig(BaseModel):
    """Backend connection configuration."""
    base_url: str = Field(default="http://localhost:8081/api", description="Backend API root")
    timeout_seconds: float = Field(default=10, gt=0, le=120)
    max_retries: int = Field(default=1, ge=0, le=5)


class PollingConfig(BaseModel):
    """Poll cadence and backoff."""
    base_interval_ms: int = Field(default=3000, ge=100)
    demo_interval_ms: int = Field(default=1000, ge=100)
    max_interval_ms: int = Field(default=30000, ge=100)
    multiplier: float = Field(default=2.0, ge=1.0, le=10.0)
    jitter_enabled: bool = False

    @model_validator(mode="after")
    def _ceiling_above_base(self) -> "PollingConfig":
        floor = max(self.base_interval_ms, self.demo_interval_ms)
        if self.max_interval_ms < floor:
            raise ValueError(
                f"max_interval_ms ({self.max_interval_ms}) must be >= poll intervals ({floor})"
            )
        return self


class HighlightConfig(BaseModel):
    """Highlight flash duration and arrival recency window."""
    duration_ms: int = Field(default=4000, gt=0)
    recency_window_ms: int = Field(default=30000, gt=0)


class PendingConfig(BaseModel):
    """Pending-count monitor configuration."""
    interval_ms: int = Field(default=1000, ge=100)
    visible: bool = True


class NotificationConfig(BaseModel):
    max_history: int = Field(default=50, ge=1, le=1000)


class PanelConfig(BaseModel):
    """One polled dashboard panel."""
    key: str = Field(min_length=1)
    category: str = Field(min_length=1)
    label: Optional[str] = None
    source: Literal["imports", "pending_trades", "trades"] = "imports"
    status: Optional[str] = Field(default=None, description="Import status filter")
    id_field: str = "id"
    timestamp_field: str = "createdAt"
    interval_ms: Optional[int] = Field(default=None, ge=100, description="Overrides polling.base_interval_ms")
    highlight_duration_ms: Optional[int] = Field(default=None, gt=0, description="Overrides highlight.duration_ms")

    @property
    def display_label(self) -> str:
        return self.label or self.key


class Settings(BaseModel):
    """Complete settings schema."""
    model_config = ConfigDict(extra="allow")

    api: ApiConfig = Field(default_factory=ApiConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    highlight: HighlightConfig = Field(default_factory=HighlightConfig)
    pending: PendingConfig = Field(default_factory=PendingConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    panels: List[PanelConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_panels(self) -> "Settings":
        keys = [p.key for p in self.panels]
        categories = [p.category for p in self.panels]
        if len(set(keys)) != len(keys):
            raise ValueError(f"duplicate panel keys: {keys}")
        if len(set(categories)) != len(categories):
            raise ValueError(f"duplicate highlight categories: {categories}")
        for panel in self.panels:
            if panel.interval_ms is not None and panel.interval_ms > self.polling.max_interval_ms:
                raise ValueError(
                    f"panel '{panel.key}' interval_ms ({panel.interval_ms}) exceeds "
                    f"polling.max_interval_ms ({self.polling.max_interval_ms})"
                )
        return self


# ============================================================================
# Validation Functions
# ============================================================================

def validate_settings(raw: Dict[str, Any]) -> Settings:
    """
    Validate a raw settings mapping.

    Raises:
        SettingsValidationError: If settings are invalid
    """
    try:
        return Settings(**(raw or {}))
    except ValidationError as e:
        logger.error(f"Settings validation failed: {e}")
        raise SettingsValidationError(
            "Settings validation failed",
            context={"errors": len(e.errors())},
            cause=e,
        ) from e


def load_validated_settings(force_reload: bool = False) -> Settings:
    """
    Load and validate settings from base.yaml.

    The LIVESYNC_API_BASE_URL environment variable overrides api.base_url.
    """
    settings = validate_settings(load_settings(force_reload=force_reload))
    settings.api.base_url = get_api_base_url()
    return settings

"""
Settings for the live-sync dashboard core.

base.yaml (or the file named by LIVESYNC_CONFIG_PATH) is parsed once and
cached; get_setting() reads nested keys by dot path, and the accessors below
add the code defaults used when a key is absent.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_API_BASE_URL = "http://localhost:8081/api"
CONFIG_PATH_ENV = "LIVESYNC_CONFIG_PATH"
API_BASE_URL_ENV = "LIVESYNC_API_BASE_URL"

_cached: Optional[Dict[str, Any]] = None


def get_config_path() -> Path:
    override = os.getenv(CONFIG_PATH_ENV)
    return Path(override) if override else Path(__file__).with_name("base.yaml")


def load_settings(force_reload: bool = False) -> Dict[str, Any]:
    """Parsed settings mapping; a missing file yields {}."""
    global _cached
    if _cached is None or force_reload:
        path = get_config_path()
        if path.exists():
            with path.open("r", encoding="utf-8") as f:
                _cached = yaml.safe_load(f) or {}
        else:
            _cached = {}
    return _cached


def reset_settings_cache() -> None:
    """Forget the parsed file so the next read hits disk (tests, CLI overrides)."""
    global _cached
    _cached = None


def get_setting(path: str, default: Any = None) -> Any:
    """
    Nested lookup, e.g. get_setting("polling.max_interval_ms", 30000).

    Returns `default` as soon as a segment is missing or not a mapping.
    """
    node: Any = load_settings()
    for key in path.split("."):
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


# Typed accessors

def get_api_base_url() -> str:
    """Backend base URL; the environment wins over the YAML file."""
    url = os.getenv(API_BASE_URL_ENV) or get_setting("api.base_url", DEFAULT_API_BASE_URL)
    return str(url).rstrip("/")


def get_api_timeout_seconds() -> float:
    return float(get_setting("api.timeout_seconds", 10))

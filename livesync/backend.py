"""
Backend API client.

Async facade over the blocking HTTPClient: each call runs in a worker thread
via asyncio.to_thread, so the event loop only suspends at the network
boundary. Transport problems and non-2xx statuses become NetworkFailure;
unreadable bodies become DecodeFailure.

Endpoints (relative to the API base URL):
    GET  /imports                         -> list of trade imports
    POST /imports/{id}/consolidate        <- {"criteria": "..."}
    GET  /trades?limit=50&portfolioId=... -> most recent booked trades
    GET  /live-trades/pending             -> list of pending live trades
    GET  /live-trades/pending-count       -> integer
    POST /live-trades/process             -> created import or null
    GET  /live-trades/demo-config         -> DemoConfig
    PUT  /live-trades/demo-config         <- DemoConfig
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from config.settings_loader import get_api_base_url, get_api_timeout_seconds
from core.exceptions import DecodeFailure, NetworkFailure
from core.http_client import HTTPClient, get_http_client
from livesync.criteria import ConsolidationCriteria
from livesync.models import DemoConfig, Entity, parse_entities

logger = logging.getLogger(__name__)


class BackendClient:
    """Typed async access to the trade-processing backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        http: Optional[HTTPClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or get_api_base_url()).rstrip("/")
        self.http = http or get_http_client()
        self.timeout = timeout if timeout is not None else get_api_timeout_seconds()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        """Blocking request returning the decoded JSON body (None if empty)."""
        url = self._url(path)
        try:
            response = self.http.request(method, url, json=json, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise NetworkFailure(
                f"{method} {path} failed",
                context={"url": url},
                cause=e,
            ) from e

        if not 200 <= response.status_code < 300:
            raise NetworkFailure(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                context={"url": url},
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodeFailure(
                f"{method} {path} returned a non-JSON body",
                context={"url": url},
                cause=e,
            ) from e

    async def _call(
        self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        return await asyncio.to_thread(self._request, method, path, json, params)

    # ------------------------------------------------------------------
    # Polled resources
    # ------------------------------------------------------------------

    async def fetch_import_payload(self) -> List[Dict[str, Any]]:
        payload = await self._call("GET", "/imports")
        if not isinstance(payload, list):
            raise DecodeFailure("Imports payload is not a list", context={"got": type(payload).__name__})
        return payload

    async def fetch_imports(
        self,
        status: Optional[str] = None,
        timestamp_field: str = "createdAt",
    ) -> List[Entity]:
        """Trade imports, optionally restricted to one pipeline status."""
        payload = await self.fetch_import_payload()
        return parse_entities(payload, timestamp_field=timestamp_field, status_filter=status)

    async def fetch_pending_trades(self) -> List[Entity]:
        """Live trades awaiting consolidation (keyed by tradeId)."""
        payload = await self._call("GET", "/live-trades/pending")
        return parse_entities(payload, id_field="tradeId", timestamp_field="timestamp")

    async def fetch_recent_trades(
        self,
        limit: int = 50,
        offset: int = 0,
        portfolio_id: str = "DEFAULT",
    ) -> List[Entity]:
        """The newest booked trades of one portfolio."""
        params = {"limit": limit, "offset": offset, "portfolioId": portfolio_id}
        payload = await self._call("GET", "/trades", params=params)
        return parse_entities(payload)

    async def fetch_pending_count(self) -> int:
        return await self._call("GET", "/live-trades/pending-count")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def consolidate(self, import_id: Any, criteria: ConsolidationCriteria) -> Dict[str, Any]:
        body = {"criteria": ConsolidationCriteria(criteria).value}
        logger.info(f"Consolidating import {import_id} by {body['criteria']}")
        return await self._call("POST", f"/imports/{import_id}/consolidate", json=body)

    async def process_pending(self) -> Optional[Dict[str, Any]]:
        """Consolidate all pending live trades into a new import."""
        return await self._call("POST", "/live-trades/process")

    async def get_demo_config(self) -> DemoConfig:
        payload = await self._call("GET", "/live-trades/demo-config")
        return _decode_demo_config(payload)

    async def update_demo_config(self, config: DemoConfig) -> DemoConfig:
        payload = await self._call("PUT", "/live-trades/demo-config", json=config.to_wire())
        return _decode_demo_config(payload)


def _decode_demo_config(payload: Any) -> DemoConfig:
    if not isinstance(payload, dict):
        raise DecodeFailure("Demo config payload is not an object", context={"got": type(payload).__name__})
    try:
        return DemoConfig.model_validate(payload)
    except ValueError as e:
        raise DecodeFailure("Demo config payload is invalid", cause=e) from e

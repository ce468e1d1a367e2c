"""
Live Dashboard API - FastAPI Application
========================================

Exposes the live-sync core to the rendering layer as JSON: which ids are
highlighted per category, the one-shot notifications to toast, the pending
badge, and the consolidation criteria literal for the current toggles.

Usage:
    uvicorn web.main:app --port 8000

    Then open http://localhost:8000/docs for the API documentation.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from core.exceptions import BackendError, NoCriteriaSelectedError, NothingToProcessError
from livesync.criteria import CriteriaSelection
from livesync.dashboard import LiveDashboard
from livesync.models import DemoConfig

logger = logging.getLogger(__name__)


class CriteriaToggles(BaseModel):
    """Consolidation dialog toggles, camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    currency_pair: bool = Field(default=True, alias="currencyPair")
    counterparty: bool = False
    book: bool = False

    def to_selection(self) -> CriteriaSelection:
        return CriteriaSelection(
            currency_pair=self.currency_pair,
            counterparty=self.counterparty,
            book=self.book,
        )


class Visibility(BaseModel):
    visible: bool


def create_app(dashboard_factory: Optional[Callable[[], LiveDashboard]] = None) -> FastAPI:
    """
    Build the API around a dashboard.

    The dashboard is created lazily on first use; the lifespan starts its
    poll loops and stops them on shutdown.
    """
    factory = dashboard_factory or LiveDashboard

    def get_dashboard(request: Request) -> LiveDashboard:
        state = request.app.state
        if getattr(state, "dashboard", None) is None:
            state.dashboard = factory()
        return state.dashboard

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.dashboard = factory()
        await app.state.dashboard.start()
        try:
            yield
        finally:
            await app.state.dashboard.stop()

    app = FastAPI(
        title="Live Dashboard API",
        description="Live-sync state of the trade-processing dashboard.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.dashboard = None

    @app.get("/health", summary="Liveness check")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/state", summary="Panels, highlights and pending badge")
    async def get_state(request: Request) -> Dict[str, Any]:
        return get_dashboard(request).view()

    @app.get("/api/notifications", summary="Drain pending one-shot notifications")
    async def get_notifications(request: Request) -> List[Dict[str, Any]]:
        return get_dashboard(request).drain_notifications()

    @app.post("/api/criteria/preview", summary="Criteria literal for the given toggles")
    async def preview_criteria(toggles: CriteriaToggles) -> Dict[str, Any]:
        selection = toggles.to_selection()
        return {
            "criteria": selection.criteria.value if selection.is_submittable else None,
            "preview": selection.preview_text,
            "submittable": selection.is_submittable,
        }

    @app.post("/api/imports/{import_id}/consolidate", summary="Consolidate an import")
    async def consolidate(import_id: int, toggles: CriteriaToggles, request: Request) -> Dict[str, Any]:
        dashboard = get_dashboard(request)
        try:
            result = await dashboard.submit_consolidation(import_id, toggles.to_selection())
        except NoCriteriaSelectedError as e:
            raise HTTPException(status_code=422, detail=e.message)
        except BackendError as e:
            logger.error(f"Consolidation of import {import_id} failed: {e}")
            raise HTTPException(status_code=502, detail=e.message)
        return {"import_id": import_id, "result": result}

    @app.post("/api/live-trades/process", summary="Process pending live trades")
    async def process_pending(request: Request) -> Dict[str, Any]:
        dashboard = get_dashboard(request)
        try:
            result = await dashboard.process_pending()
        except NothingToProcessError as e:
            raise HTTPException(status_code=409, detail=e.message)
        except BackendError as e:
            logger.error(f"Processing pending trades failed: {e}")
            raise HTTPException(status_code=502, detail=e.message)
        return {"result": result}

    @app.get("/api/demo-config", summary="Current demo configuration")
    async def get_demo_config(request: Request) -> Dict[str, Any]:
        try:
            config = await get_dashboard(request).load_demo_config()
        except BackendError as e:
            raise HTTPException(status_code=502, detail=e.message)
        return config.to_wire()

    @app.put("/api/demo-config", summary="Update demo configuration")
    async def put_demo_config(config: DemoConfig, request: Request) -> Dict[str, Any]:
        try:
            saved = await get_dashboard(request).save_demo_config(config)
        except BackendError as e:
            raise HTTPException(status_code=502, detail=e.message)
        return saved.to_wire()

    @app.post("/api/panels/pending/visibility", summary="Show or hide the pending badge panel")
    async def set_pending_visibility(body: Visibility, request: Request) -> Dict[str, Any]:
        dashboard = get_dashboard(request)
        dashboard.set_pending_visible(body.visible)
        return {"visible": dashboard.pending.visible}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)

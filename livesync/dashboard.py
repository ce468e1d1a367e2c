"""
Live dashboard - composition root of the sync core.

Builds one LivePanel per configured panel, the pending-count monitor, and the
shared highlight manager and notification center, and exposes the handful of
user actions that go back to the backend (consolidate, process, demo config).
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from functools import partial
from typing import Any, Dict, List, Optional

from config.settings_schema import PanelConfig, Settings, load_validated_settings
from core.exceptions import NothingToProcessError
from core.http_client import get_http_client
from core.structured_log import jlog
from livesync.backend import BackendClient
from livesync.clock import Clock, get_default_clock
from livesync.criteria import CriteriaSelection
from livesync.highlights import HighlightLifecycleManager
from livesync.models import DemoConfig, Entity, parse_entities
from livesync.notifications import NotificationCenter, NotificationLevel
from livesync.panel import LivePanel
from livesync.pending import PendingCountMonitor

logger = logging.getLogger(__name__)


class LiveDashboard:
    """
    All live panels of the dashboard plus its user actions.

    Example:
        dashboard = LiveDashboard()
        await dashboard.start()
        ...
        await dashboard.submit_consolidation(42, CriteriaSelection(book=True))
        await dashboard.stop()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        backend: Optional[BackendClient] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings or load_validated_settings()
        self.backend = backend or BackendClient(
            base_url=self.settings.api.base_url,
            http=get_http_client(
                timeout=self.settings.api.timeout_seconds,
                max_retries=self.settings.api.max_retries,
            ),
            timeout=self.settings.api.timeout_seconds,
        )
        self.clock = clock or get_default_clock()
        self.highlights = HighlightLifecycleManager(self.clock)
        self.notifications = NotificationCenter(max_history=self.settings.notifications.max_history)
        self.demo_config: Optional[DemoConfig] = None
        self._status_counts: Counter = Counter()

        polling = self.settings.polling
        self.panels: Dict[str, LivePanel] = {
            panel_cfg.key: self._build_panel(panel_cfg) for panel_cfg in self.settings.panels
        }
        self.pending = PendingCountMonitor(
            self.backend.fetch_pending_count,
            interval_ms=self.settings.pending.interval_ms,
            clock=self.clock,
            max_interval_ms=polling.max_interval_ms,
            notifications=self.notifications,
        )

    def _build_panel(self, cfg: PanelConfig) -> LivePanel:
        polling = self.settings.polling
        imports = cfg.source == "imports"
        return LivePanel(
            cfg.key,
            cfg.category,
            partial(self._fetch_panel, cfg),
            highlights=self.highlights,
            notifications=self.notifications,
            clock=self.clock,
            interval_ms=self.poll_interval_ms(False, cfg),
            max_interval_ms=polling.max_interval_ms,
            multiplier=polling.multiplier,
            jitter_enabled=polling.jitter_enabled,
            highlight_duration_ms=cfg.highlight_duration_ms or self.settings.highlight.duration_ms,
            recency_window_ms=self.settings.highlight.recency_window_ms,
            label=cfg.display_label,
            status_filter=cfg.status if imports else None,
            on_update=self._count_statuses if imports else None,
        )

    async def _fetch_panel(self, cfg: PanelConfig) -> List[Entity]:
        if cfg.source == "pending_trades":
            return await self.backend.fetch_pending_trades()
        if cfg.source == "trades":
            return await self.backend.fetch_recent_trades()
        # Unfiltered: the panel applies its status filter to accepted results only
        payload = await self.backend.fetch_import_payload()
        return parse_entities(payload, id_field=cfg.id_field, timestamp_field=cfg.timestamp_field)

    def _count_statuses(self, panel: LivePanel) -> None:
        """Stat cards count every status in the latest accepted imports payload."""
        self._status_counts = Counter(str(e.status) for e in panel.fetched)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Mount every panel and show the pending badge."""
        for panel in self.panels.values():
            if not panel.mounted:
                panel.mount()
        self.pending.set_visible(self.settings.pending.visible)
        logger.info(f"Live dashboard started with {len(self.panels)} panels")

    async def stop(self) -> None:
        """Unmount everything; no timer or loop survives."""
        await asyncio.gather(
            *(panel.aclose() for panel in self.panels.values()),
            self.pending.aclose(),
        )
        self.highlights.clear_all()
        logger.info("Live dashboard stopped")

    def set_pending_visible(self, visible: bool) -> None:
        self.pending.set_visible(visible)

    # ------------------------------------------------------------------
    # Demo mode
    # ------------------------------------------------------------------

    def poll_interval_ms(self, demo_enabled: bool, panel: Optional[PanelConfig] = None) -> int:
        """Demo cadence for every panel, else the panel's own interval or the base one."""
        polling = self.settings.polling
        if demo_enabled:
            return polling.demo_interval_ms
        if panel is not None and panel.interval_ms is not None:
            return panel.interval_ms
        return polling.base_interval_ms

    def apply_demo_config(self, config: DemoConfig) -> None:
        """Switch every panel to the demo or normal cadence."""
        self.demo_config = config
        for cfg in self.settings.panels:
            panel = self.panels[cfg.key]
            interval = self.poll_interval_ms(config.enabled, cfg)
            if panel.interval_ms != interval:
                panel.set_interval(interval)
        logger.info(f"Demo mode {'on' if config.enabled else 'off'}")

    async def load_demo_config(self) -> DemoConfig:
        config = await self.backend.get_demo_config()
        self.apply_demo_config(config)
        return config

    async def save_demo_config(self, config: DemoConfig) -> DemoConfig:
        saved = await self.backend.update_demo_config(config)
        self.apply_demo_config(saved)
        self.notifications.publish("Demo configuration saved", NotificationLevel.SUCCESS)
        return saved

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def submit_consolidation(self, import_id: Any, selection: CriteriaSelection) -> Dict[str, Any]:
        """
        Consolidate an import by the selected criteria.

        Raises:
            NoCriteriaSelectedError: no toggle is on (nothing is sent)
            BackendError: the backend refused or was unreachable
        """
        criteria = selection.criteria
        result = await self.backend.consolidate(import_id, criteria)
        jlog("consolidation_submitted", import_id=import_id, criteria=criteria.value)
        self.notifications.publish("Import consolidated successfully", NotificationLevel.SUCCESS)
        self._refresh_panels()
        return result

    async def process_pending(self) -> Optional[Dict[str, Any]]:
        """
        Turn pending live trades into an import.

        Raises:
            NothingToProcessError: the pending count is zero or unknown
        """
        if not self.pending.can_process:
            raise NothingToProcessError(context={"pending": self.pending.count})
        result = await self.backend.process_pending()
        self.notifications.publish("Pending trades processed", NotificationLevel.SUCCESS)
        self.pending.refresh()
        self._refresh_panels()
        return result

    def _refresh_panels(self) -> None:
        for panel in self.panels.values():
            panel.refresh()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def status_counts(self) -> Dict[str, int]:
        """Imports per pipeline status from the most recent imports payload."""
        counts = dict(self._status_counts)
        counts["total"] = sum(self._status_counts.values())
        return counts

    def view(self) -> Dict[str, Any]:
        return {
            "panels": [panel.view() for panel in self.panels.values()],
            "highlights": {k: sorted(v) for k, v in self.highlights.snapshot().items()},
            "pending": {
                "count": self.pending.count,
                "badge": self.pending.badge_text,
                "can_process": self.pending.can_process,
                "visible": self.pending.visible,
            },
            "status_counts": self.status_counts(),
            "demo_mode": bool(self.demo_config and self.demo_config.enabled),
        }

    def drain_notifications(self) -> List[Dict[str, Any]]:
        return [n.to_dict() for n in self.notifications.drain()]

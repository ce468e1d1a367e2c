"""
End-to-end tests of one live panel: poll -> diff -> highlight -> notify.

Timeline-driven on a ManualClock so every assertion is pinned to an exact
millisecond.
"""

import asyncio

import pytest

from core.exceptions import NetworkFailure
from livesync.highlights import HighlightLifecycleManager, HighlightState
from livesync.notifications import NotificationCenter, NotificationLevel
from livesync.panel import LivePanel
from tests.fixtures.clock import settle
from tests.fixtures.fetch_mocks import GatedFetch, ScriptedFetch, make_entity


@pytest.fixture
def highlights(clock):
    return HighlightLifecycleManager(clock)


@pytest.fixture
def notifications():
    return NotificationCenter()


def imports_panel(clock, highlights, notifications, fetch):
    return LivePanel(
        "imports", "imported", fetch,
        highlights=highlights,
        notifications=notifications,
        clock=clock,
        interval_ms=3000,
        highlight_duration_ms=4000,
    )


class TestImportArrival:
    """Tick 1 sees {1, 2}; tick 2 sees {1, 2, 3} with 3 created just now."""

    def test_new_import_is_highlighted_then_expires(self, clock, highlights, notifications):
        async def scenario():
            fetch = ScriptedFetch([
                lambda: [make_entity(1, clock.now()), make_entity(2, clock.now())],
                lambda: [make_entity(1, clock.now()), make_entity(2, clock.now()), make_entity(3, clock.now())],
            ])
            panel = imports_panel(clock, highlights, notifications, fetch)
            panel.mount()
            await settle()

            # t=0: initial population, nothing new
            assert panel.last_new_ids == frozenset()
            assert highlights.state("imported") == HighlightState.IDLE

            # t=3000: id 3 arrives
            await clock.advance_ms(3000)
            assert panel.last_new_ids == {"3"}
            assert highlights.active_ids("imported") == {"3"}
            sent = notifications.drain()
            assert len(sent) == 1
            assert sent[0].level == NotificationLevel.INFO
            assert sent[0].count == 1

            # t=6000: steady state, still highlighted from the t=3000 flash
            await clock.advance_ms(3000)
            assert panel.last_new_ids == frozenset()
            assert highlights.active_ids("imported") == {"3"}

            # t=7000: flash expires
            await clock.advance_ms(1000)
            assert highlights.state("imported") == HighlightState.IDLE
            assert notifications.pending() == []

            await panel.aclose()

        asyncio.run(scenario())

    def test_backend_outage_keeps_last_good_view(self, clock, highlights, notifications):
        async def scenario():
            down = NetworkFailure("GET /imports returned 503", status_code=503)
            fetch = ScriptedFetch([
                lambda: [make_entity(1, clock.now())],
                down, down,
                lambda: [make_entity(1, clock.now()), make_entity(2, clock.now())],
            ])
            panel = imports_panel(clock, highlights, notifications, fetch)
            panel.mount()
            await settle()

            await clock.advance_ms(3000)   # t=3000 fails, next in 6s
            await clock.advance_ms(6000)   # t=9000 fails, next in 12s
            assert [e.id for e in panel.entities] == ["1"]
            assert panel.resource.in_failure_episode
            assert panel.resource.current_interval_ms == 12000

            await clock.advance_ms(12000)  # t=21000 recovers
            assert not panel.resource.in_failure_episode
            assert panel.resource.current_interval_ms == 3000
            assert panel.last_new_ids == {"2"}

            levels = [n.level for n in notifications.drain()]
            assert levels == [NotificationLevel.ERROR, NotificationLevel.INFO]
            await panel.aclose()

        asyncio.run(scenario())


class TestUnmountDuringFetch:
    """A fetch that resolves after unmount must not touch anything."""

    def test_late_result_is_dropped(self, clock, highlights, notifications):
        async def scenario():
            fetch = GatedFetch()
            panel = imports_panel(clock, highlights, notifications, fetch)
            panel.mount()
            await settle()
            fetch.resolve(0, [make_entity(1, clock.now())])
            await settle()

            await clock.advance_ms(3000)
            assert fetch.calls == 2
            panel.unmount()

            fetch.resolve(1, [make_entity(1, clock.now()), make_entity(2, clock.now())])
            await settle()
            assert highlights.state("imported") == HighlightState.IDLE
            assert notifications.pending() == []
            assert panel.resource is None

            await clock.advance_ms(60000)
            assert fetch.calls == 2
            assert clock.pending_timers == 0
            await panel.aclose()

        asyncio.run(scenario())

    def test_late_failure_is_dropped(self, clock, highlights, notifications):
        async def scenario():
            fetch = GatedFetch()
            panel = imports_panel(clock, highlights, notifications, fetch)
            panel.mount()
            await settle()
            panel.unmount()
            fetch.fail(0, NetworkFailure("late"))
            await settle()
            assert notifications.pending() == []
            await panel.aclose()

        asyncio.run(scenario())

"""
Shared test doubles for the live-sync core.

- clock: ManualClock, a hand-advanced Clock
- fetch_mocks: scripted and gated fetch callables for the poll scheduler
- backend_mocks: in-memory stand-in for BackendClient
"""

from .clock import ManualClock, settle
from .fetch_mocks import GatedFetch, ScriptedFetch, make_entity
from .backend_mocks import FakeBackend

__all__ = [
    'ManualClock',
    'settle',
    'GatedFetch',
    'ScriptedFetch',
    'make_entity',
    'FakeBackend',
]

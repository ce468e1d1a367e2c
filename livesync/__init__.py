"""
Live-data synchronization core for the trade-processing dashboard.

Components:
- scheduler: Adaptive, cancelable poll loop per resource
- differ: Arrival detection between consecutive snapshots
- highlights: Per-category auto-expiring "recently new" flags
- criteria: Consolidation toggles -> grouping criteria literal
- pending: Visibility-gated pending-count poll
- panel / dashboard: Composition of the above over the backend client
"""

from .criteria import ConsolidationCriteria, CriteriaSelection, combine
from .differ import diff
from .highlights import HighlightLifecycleManager, HighlightState
from .models import Entity, Snapshot, TrackedResource
from .notifications import Notification, NotificationCenter, NotificationLevel
from .panel import LivePanel
from .pending import PendingCountMonitor
from .scheduler import PollScheduler

__all__ = [
    'ConsolidationCriteria',
    'CriteriaSelection',
    'combine',
    'diff',
    'HighlightLifecycleManager',
    'HighlightState',
    'Entity',
    'Snapshot',
    'TrackedResource',
    'Notification',
    'NotificationCenter',
    'NotificationLevel',
    'LivePanel',
    'PendingCountMonitor',
    'PollScheduler',
]

"""
Core Infrastructure
====================

Foundational components for the live-sync dashboard core.

Components:
- exceptions: Error taxonomy (network/decode/stale/submission)
- backoff: Exponential poll backoff
- http_client: Shared requests session for the backend
- structured_log: JSON event logging
"""

from .backoff import BackoffConfig, ExponentialBackoff
from .exceptions import (
    LiveSyncError,
    BackendError,
    NetworkFailure,
    DecodeFailure,
    StaleResponse,
    SubmissionError,
    NoCriteriaSelectedError,
    NothingToProcessError,
)
from .structured_log import jlog, read_recent_logs

__all__ = [
    # Backoff
    'BackoffConfig',
    'ExponentialBackoff',
    # Errors
    'LiveSyncError',
    'BackendError',
    'NetworkFailure',
    'DecodeFailure',
    'StaleResponse',
    'SubmissionError',
    'NoCriteriaSelectedError',
    'NothingToProcessError',
    # Structured Logging
    'jlog',
    'read_recent_logs',
]

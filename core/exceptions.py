"""
Unified Exception Hierarchy for the live-sync dashboard core.

All exceptions inherit from LiveSyncError, enabling consistent handling at
the two boundaries that matter: the HTTP transport (where failures are
raised) and the poll scheduler (where they are absorbed into backoff).

Usage:
    from core.exceptions import LiveSyncError, NetworkFailure, DecodeFailure

    try:
        entities = await backend.fetch_imports()
    except (NetworkFailure, DecodeFailure) as e:
        # Recoverable - back off and retry on the next tick
        backoff.record_failure()
    except LiveSyncError as e:
        log_error(e)

Taxonomy:
    NetworkFailure and DecodeFailure are handled identically (backoff, never
    fatal). StaleResponse describes a result discarded after cancellation or
    after a newer result was applied; it is logged, never shown to the user.
    SubmissionError covers user actions the core refuses to send.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================

class LiveSyncError(Exception):
    """
    Base exception for all live-sync errors.

    Attributes:
        error_code: Unique identifier for this error type
        is_recoverable: Whether retrying later can succeed
        context: Additional context about the error
        timestamp: When the error occurred
    """
    error_code: str = "LIVESYNC_ERROR"
    is_recoverable: bool = True

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(message)

    def __str__(self) -> str:
        base = f"[{self.error_code}] {self.message}"
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "is_recoverable": self.is_recoverable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# BACKEND ERRORS (recoverable - drive backoff)
# =============================================================================

class BackendError(LiveSyncError):
    """
    Base class for failures talking to the trade-processing backend.

    Never fatal: the scheduler keeps the last good state and retries.
    """
    error_code = "BACKEND_ERROR"


class NetworkFailure(BackendError):
    """
    Raised when a request is rejected, times out, or returns a non-2xx status.
    """
    error_code = "NETWORK_FAILURE"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        self.status_code = status_code
        context = dict(context or {})
        if status_code is not None:
            context.setdefault("status_code", status_code)
        super().__init__(message, context, cause)


class DecodeFailure(BackendError):
    """
    Raised when a payload cannot be decoded into the expected shape.

    Examples:
    - Body is not valid JSON
    - A list endpoint returned an object
    - An entity carries no id
    """
    error_code = "DECODE_FAILURE"


class StaleResponse(LiveSyncError):
    """
    Describes a result that arrived too late to be applied.

    Either its scheduler was cancelled while the call was in flight, or a
    result with a higher sequence number was already applied.
    """
    error_code = "STALE_RESPONSE"


# =============================================================================
# SUBMISSION ERRORS (user action blocked)
# =============================================================================

class SubmissionError(LiveSyncError):
    """
    Base class for user actions the core refuses to submit.
    """
    error_code = "SUBMISSION_BLOCKED"
    is_recoverable = False


class NoCriteriaSelectedError(SubmissionError):
    """
    Raised when a consolidation is submitted with every criterion off.
    """
    error_code = "NO_CRITERIA_SELECTED"

    def __init__(
        self,
        reason: str = "No criteria selected",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(reason, context)


class NothingToProcessError(SubmissionError):
    """
    Raised when the process action is requested with zero pending trades.
    """
    error_code = "NOTHING_TO_PROCESS"

    def __init__(
        self,
        reason: str = "No pending trades to process",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(reason, context)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(LiveSyncError):
    """
    Base class for configuration-related errors.
    """
    error_code = "CONFIG_ERROR"
    is_recoverable = False


class SettingsValidationError(ConfigurationError):
    """
    Raised when settings fail schema validation.

    Uses Pydantic validation under the hood.
    """
    error_code = "SETTINGS_INVALID"


# =============================================================================
# HELPERS
# =============================================================================

def is_recoverable(exc: BaseException) -> bool:
    """
    Whether an exception should be retried rather than surfaced.

    Foreign exceptions (requests, json, ...) escaping a fetch are treated as
    transport failures and are therefore recoverable.
    """
    if isinstance(exc, LiveSyncError):
        return exc.is_recoverable
    return isinstance(exc, Exception)


def get_error_code(exc: BaseException) -> str:
    """Return the error code for any exception."""
    if isinstance(exc, LiveSyncError):
        return exc.error_code
    return type(exc).__name__.upper()

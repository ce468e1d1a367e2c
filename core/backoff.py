"""
Exponential Backoff for Poll Intervals.

Grows a poll interval after consecutive failures and snaps it back to the
base value on the first success, so a struggling backend is not hammered
at the normal cadence.

Usage:
    from core.backoff import BackoffConfig, ExponentialBackoff

    backoff = ExponentialBackoff(BackoffConfig(base_interval_ms=3000))

    try:
        await fetch()
        backoff.record_success()
    except NetworkFailure:
        backoff.record_failure()

    await clock.sleep(backoff.current_interval_ms / 1000)
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict

logger = logging.getLogger(__name__)


@dataclass
class BackoffConfig:
    """Configuration for poll backoff."""

    base_interval_ms: float = 3000.0
    max_interval_ms: float = 30000.0  # 30s ceiling
    multiplier: float = 2.0
    jitter_enabled: bool = False
    jitter_factor: float = 0.1  # +/- 10% jitter

    def __post_init__(self):
        if self.base_interval_ms <= 0:
            raise ValueError(f"base_interval_ms must be positive, got {self.base_interval_ms}")
        if self.max_interval_ms < self.base_interval_ms:
            raise ValueError(
                f"max_interval_ms ({self.max_interval_ms}) must be >= "
                f"base_interval_ms ({self.base_interval_ms})"
            )
        if self.multiplier < 1.0:
            raise ValueError(f"multiplier must be >= 1.0, got {self.multiplier}")


@dataclass
class ExponentialBackoff:
    """
    Mutable backoff state for one polled resource.

    Formula after n consecutive failures:
        interval = min(base * multiplier ** n, max)
    """

    config: BackoffConfig = field(default_factory=BackoffConfig)
    current_interval_ms: float = 0.0
    consecutive_failures: int = 0

    def __post_init__(self):
        if not self.current_interval_ms:
            self.current_interval_ms = self.config.base_interval_ms

    @property
    def base_interval_ms(self) -> float:
        return self.config.base_interval_ms

    @property
    def max_interval_ms(self) -> float:
        return self.config.max_interval_ms

    @property
    def is_backing_off(self) -> bool:
        return self.current_interval_ms > self.config.base_interval_ms

    def record_failure(self) -> float:
        """
        Grow the interval after a failed poll.

        Returns:
            The new interval in milliseconds
        """
        self.consecutive_failures += 1
        self.current_interval_ms = min(
            self.current_interval_ms * self.config.multiplier,
            self.config.max_interval_ms,
        )
        logger.debug(
            f"Backoff: failure #{self.consecutive_failures}, "
            f"interval now {self.current_interval_ms:.0f}ms"
        )
        return self.current_interval_ms

    def record_success(self) -> None:
        """Reset to the base interval after a successful poll."""
        if self.consecutive_failures:
            logger.debug(
                f"Backoff: success after {self.consecutive_failures} failures, "
                f"interval reset to {self.config.base_interval_ms:.0f}ms"
            )
        self.reset()

    def reset(self) -> None:
        self.consecutive_failures = 0
        self.current_interval_ms = self.config.base_interval_ms

    def rebase(self, base_interval_ms: float) -> None:
        """Change the base interval (e.g. demo mode) and reset."""
        self.config = BackoffConfig(
            base_interval_ms=base_interval_ms,
            max_interval_ms=max(self.config.max_interval_ms, base_interval_ms),
            multiplier=self.config.multiplier,
            jitter_enabled=self.config.jitter_enabled,
            jitter_factor=self.config.jitter_factor,
        )
        self.reset()

    def next_delay_seconds(self) -> float:
        """Delay before the next tick, with optional jitter applied."""
        delay = self.current_interval_ms
        if self.config.jitter_enabled:
            jitter = delay * self.config.jitter_factor
            delay = delay + random.uniform(-jitter, jitter)
        return max(0.0, delay) / 1000.0

    def get_status(self) -> Dict[str, Any]:
        """Get current backoff status for monitoring."""
        return {
            "current_interval_ms": self.current_interval_ms,
            "base_interval_ms": self.config.base_interval_ms,
            "max_interval_ms": self.config.max_interval_ms,
            "multiplier": self.config.multiplier,
            "consecutive_failures": self.consecutive_failures,
            "backing_off": self.is_backing_off,
        }

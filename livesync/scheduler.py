"""
Poll Scheduler - adaptive, cancelable polling of one resource.

Each tick awaits the fetch to completion, then sleeps for the resource's
current interval measured from completion, so slow responses never stack
requests. Failures double the interval up to a ceiling; the first success
resets it.

Cancellation is enforced with a generation token rather than by trusting
task cancellation alone: every outcome is checked against the generation
it was started under (and against the highest applied sequence number)
before it may touch any state. A fetch that resolves after cancel() is
discarded.

Usage:
    scheduler = PollScheduler(clock=clock, max_interval_ms=30000)
    resource = scheduler.start(
        "imports", 3000, backend.fetch_imports,
        on_result=panel.apply,
        on_error=panel.report_failure,
    )
    ...
    scheduler.cancel()
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, FrozenSet, Generic, Optional, Set, TypeVar

from core.backoff import BackoffConfig, ExponentialBackoff
from core.exceptions import StaleResponse, get_error_code
from core.structured_log import jlog
from livesync.clock import Clock, get_default_clock
from livesync.models import TrackedResource

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchFn = Callable[[], Awaitable[T]]
ResultHandler = Callable[[T], None]
# (error, episode_started)
ErrorHandler = Callable[[BaseException, bool], None]
RecoverHandler = Callable[[], None]


class PollScheduler(Generic[T]):
    """
    Repeatedly invokes a fetch for one named resource.

    Never runs two ticks of its resource at once. All state mutations
    happen in the caller's event loop between awaits, so no locks are
    needed.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        max_interval_ms: float = 30000.0,
        multiplier: float = 2.0,
        jitter_enabled: bool = False,
    ):
        self._clock = clock or get_default_clock()
        self.max_interval_ms = max_interval_ms
        self.multiplier = multiplier
        self.jitter_enabled = jitter_enabled

        self.resource: Optional[TrackedResource] = None
        self._fetch_fn: Optional[FetchFn] = None
        self._on_result: Optional[ResultHandler] = None
        self._on_error: Optional[ErrorHandler] = None
        self._on_recover: Optional[RecoverHandler] = None

        self._generation = 0
        self._sequence = itertools.count(1)
        self._applied_sequence = 0
        self._in_flight: Set[int] = set()
        self._task: Optional[asyncio.Task] = None
        self._orphans: Set[asyncio.Task] = set()
        self._wake: Optional[asyncio.Event] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def applied_sequence(self) -> int:
        return self._applied_sequence

    def start(
        self,
        resource_key: str,
        interval_ms: float,
        fetch_fn: FetchFn,
        on_result: ResultHandler,
        on_error: Optional[ErrorHandler] = None,
        on_recover: Optional[RecoverHandler] = None,
        resource: Optional[TrackedResource] = None,
    ) -> TrackedResource:
        """
        Begin polling. The first tick runs immediately.

        Args:
            resource_key: Name of the polled resource
            interval_ms: Base interval between ticks
            fetch_fn: Async callable returning the resource payload
            on_result: Called with each accepted result
            on_error: Called with each accepted failure
            on_recover: Called on the first success after a failure episode
            resource: Existing TrackedResource to resume (keeps its snapshot)

        Returns:
            The TrackedResource this scheduler drives

        Raises:
            RuntimeError: already running
        """
        if self.running:
            raise RuntimeError(f"Scheduler for '{resource_key}' is already running")

        if resource is None:
            resource = TrackedResource(
                resource_key=resource_key,
                poll_interval_ms=interval_ms,
                max_interval_ms=self.max_interval_ms,
                backoff=ExponentialBackoff(BackoffConfig(
                    base_interval_ms=interval_ms,
                    max_interval_ms=max(self.max_interval_ms, interval_ms),
                    multiplier=self.multiplier,
                    jitter_enabled=self.jitter_enabled,
                )),
            )
        elif resource.poll_interval_ms != interval_ms:
            resource.poll_interval_ms = interval_ms
            resource.backoff.rebase(interval_ms)

        self.resource = resource
        self._fetch_fn = fetch_fn
        self._on_result = on_result
        self._on_error = on_error
        self._on_recover = on_recover

        self._generation += 1
        generation = self._generation
        self._wake = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._run(generation, self._wake, frozenset(self._orphans)),
            name=f"poll:{resource_key}:{generation}",
        )
        logger.info(f"Polling '{resource_key}' every {interval_ms:.0f}ms (gen {generation})")
        return resource

    def cancel(self) -> None:
        """
        Halt future scheduling.

        A sleeping loop is cancelled outright. A loop with a fetch in flight
        is left to finish that fetch; its outcome fails the generation check
        and is dropped, and the loop exits. A later start() holds its first
        tick until that fetch has finished.
        """
        task = self._task
        if task is None:
            return
        cancelled_generation = self._generation
        self._generation += 1
        self._task = None
        self._wake = None

        if cancelled_generation in self._in_flight:
            self._orphans.add(task)
            task.add_done_callback(self._orphans.discard)
        else:
            task.cancel()

        key = self.resource.resource_key if self.resource else "?"
        logger.info(f"Polling '{key}' cancelled (gen {cancelled_generation})")

    async def aclose(self) -> None:
        """Cancel and wait for every loop task, in flight or not."""
        tasks = [t for t in [self._task, *self._orphans] if t is not None]
        self.cancel()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def refresh(self) -> None:
        """Run the next tick as soon as the current one (if any) completes."""
        if self._wake is not None:
            self._wake.set()

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run(
        self,
        generation: int,
        wake: asyncio.Event,
        predecessors: FrozenSet[asyncio.Task] = frozenset(),
    ) -> None:
        if predecessors:
            # A cancelled generation still has a fetch in flight; one request at a time
            await asyncio.wait(predecessors)
            wake.clear()
        while self._is_current(generation):
            await self._tick(generation)
            if not self._is_current(generation):
                break
            await self._pause(self.resource.backoff.next_delay_seconds(), wake)

    async def _pause(self, seconds: float, wake: asyncio.Event) -> None:
        if wake.is_set():
            wake.clear()
            return
        sleeper = asyncio.ensure_future(self._clock.sleep(seconds))
        waiter = asyncio.ensure_future(wake.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waiter.cancel()
        wake.clear()

    async def _tick(self, generation: int) -> None:
        sequence = next(self._sequence)
        self._in_flight.add(generation)
        try:
            result = await self._fetch_fn()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self._accept(generation, sequence, "failure"):
                self._apply_failure(exc)
            return
        finally:
            self._in_flight.discard(generation)

        if self._accept(generation, sequence, "result"):
            self._apply_result(result)

    def _accept(self, generation: int, sequence: int, outcome: str) -> bool:
        """Generation and sequence checks, run before any state mutation."""
        key = self.resource.resource_key
        if not self._is_current(generation):
            reason = "cancelled"
        elif sequence <= self._applied_sequence:
            reason = "superseded"
        else:
            self._applied_sequence = sequence
            return True

        stale = StaleResponse(
            f"Discarding {outcome} for '{key}'",
            context={"reason": reason, "generation": generation, "sequence": sequence},
        )
        logger.debug(str(stale))
        jlog("stale_response_discarded", level="DEBUG", resource=key, reason=reason, sequence=sequence)
        return False

    def _apply_result(self, result: Any) -> None:
        resource = self.resource
        recovered = resource.record_success(self._clock.now())
        if recovered:
            logger.info(f"Polling '{resource.resource_key}' recovered")
            jlog("poll_recovered", resource=resource.resource_key)
            if self._on_recover is not None:
                self._on_recover()
        self._on_result(result)

    def _apply_failure(self, exc: BaseException) -> None:
        resource = self.resource
        episode_started = resource.record_failure(exc)
        interval = resource.backoff.current_interval_ms
        if episode_started:
            logger.warning(
                f"Polling '{resource.resource_key}' failed: {exc}; "
                f"backing off to {interval:.0f}ms"
            )
            jlog(
                "poll_failure_episode_started",
                level="WARNING",
                resource=resource.resource_key,
                error_code=get_error_code(exc),
                error=str(exc),
            )
        else:
            logger.debug(
                f"Polling '{resource.resource_key}' still failing "
                f"(#{resource.backoff.consecutive_failures}): {exc}; interval {interval:.0f}ms"
            )
        if self._on_error is not None:
            self._on_error(exc, episode_started)

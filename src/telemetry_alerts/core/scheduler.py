"""Periodic evaluator scheduling."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from telemetry_alerts.core.errors import (
    SchedulerAlreadyRunningError,
    SchedulerNotRunningError,
)

logger = logging.getLogger(__name__)

Evaluator = Callable[[], Awaitable[object]]
ErrorHandler = Callable[[Exception], None]


class Scheduler:
    """Runs an evaluator immediately and then every ``interval`` seconds.

    Two states: stopped (initial) and running. Invocations are fire-and-forget
    background tasks. A slow evaluation does not delay the next tick, so
    invocations may overlap. Stopping cancels only the ticker; invocations
    already in flight run to completion.
    """

    def __init__(self) -> None:
        self._ticker: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()

    def is_running(self) -> bool:
        return self._ticker is not None

    @property
    def in_flight(self) -> int:
        """Number of evaluator invocations that have not finished yet."""
        return len(self._in_flight)

    def start(
        self,
        evaluator: Evaluator,
        interval: float,
        on_error: ErrorHandler | None = None,
    ) -> None:
        """Start the schedule. Must be called from a running event loop.

        Args:
            evaluator: Async callable invoked on every tick.
            interval: Seconds between invocations.
            on_error: Receives exceptions raised by the evaluator. When absent
                they are logged.

        Raises:
            SchedulerAlreadyRunningError: The scheduler is already running.
        """
        if self._ticker is not None:
            raise SchedulerAlreadyRunningError()
        if interval <= 0:
            raise ValueError("interval must be positive")

        self._spawn(evaluator, on_error)
        self._ticker = asyncio.create_task(self._tick(evaluator, interval, on_error))

    def stop(self) -> None:
        """Stop future invocations.

        Raises:
            SchedulerNotRunningError: The scheduler is not running.
        """
        if self._ticker is None:
            raise SchedulerNotRunningError()
        self._ticker.cancel()
        self._ticker = None

    async def wait_idle(self) -> None:
        """Wait until every in-flight invocation has finished.

        Meant to be called after stop(); while running, new ticks keep adding
        invocations.
        """
        while self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _tick(
        self,
        evaluator: Evaluator,
        interval: float,
        on_error: ErrorHandler | None,
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            self._spawn(evaluator, on_error)

    def _spawn(self, evaluator: Evaluator, on_error: ErrorHandler | None) -> None:
        task = asyncio.create_task(self._run_evaluation(evaluator, on_error))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run_evaluation(
        self, evaluator: Evaluator, on_error: ErrorHandler | None
    ) -> None:
        try:
            await evaluator()
        except Exception as e:
            if on_error is None:
                logger.exception("Error during evaluation")
                return
            try:
                on_error(e)
            except Exception:
                logger.exception("Scheduler error handler raised")

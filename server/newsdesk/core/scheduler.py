"""
Repeating Task Scheduler

Cancellable fixed-rate ticker built on asyncio tasks. Each tick awaits one
unit of work; the next tick is scheduled relative to the start of the
previous one, so a run that overshoots the interval starts the next
immediately.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Work = Callable[[], Awaitable[None]]


class RepeatingTask:
    """
    Runs ``work`` every ``interval`` seconds until cancelled.

    Exceptions raised by ``work`` are logged and the loop keeps ticking.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        work: Work,
        *,
        run_immediately: bool = True,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._name = name
        self._interval = interval
        self._work = work
        self._run_immediately = run_immediately
        self._task: Optional[asyncio.Task[None]] = None
        self._cancelled = asyncio.Event()
        self._runs = 0
        self._failures = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def runs(self) -> int:
        """Number of completed ticks (successful or not)."""
        return self._runs

    @property
    def failures(self) -> int:
        return self._failures

    def start(self) -> None:
        """Schedule the loop on the running event loop."""
        if self._task is not None:
            raise RuntimeError(f"RepeatingTask {self._name!r} already started")
        self._task = asyncio.create_task(self._loop(), name=self._name)

    async def cancel(self) -> None:
        """Stop ticking and wait for the loop to unwind. Idempotent."""
        self._cancelled.set()
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        if not self._run_immediately:
            await asyncio.sleep(self._interval)

        while not self._cancelled.is_set():
            started = loop.time()
            try:
                await self._work()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._failures += 1
                logger.error(
                    f"Repeating task {self._name} failed: {e}",
                    extra={"task": self._name, "error": str(e)},
                    exc_info=True,
                )
            self._runs += 1

            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self._interval - elapsed))

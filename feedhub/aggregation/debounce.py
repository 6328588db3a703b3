from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesce rapid triggers into one callback per quiet period.

    Each ``trigger`` restarts the timer; only the last value is delivered.
    A callback that has already started is left to finish.
    """

    def __init__(self, delay: float, callback: Callable[[Any], Awaitable[None]]) -> None:
        self._delay = delay
        self._callback = callback
        self._timer: asyncio.Task | None = None
        self._value: Any = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def trigger(self, value: Any) -> None:
        self.cancel()
        self._value = value
        self._timer = asyncio.get_running_loop().create_task(self._wait_and_fire())

    def cancel(self) -> None:
        if self.pending:
            self._timer.cancel()
        self._timer = None

    async def flush(self) -> None:
        """Fire a pending value now instead of waiting out the delay."""
        if not self.pending:
            return
        self.cancel()
        await self._callback(self._value)

    async def wait(self) -> None:
        """Wait for the pending timer and any callbacks it started."""
        while self.pending:
            await asyncio.wait({self._timer})
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def _wait_and_fire(self) -> None:
        await asyncio.sleep(self._delay)
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._callback(self._value))
        self._running.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced callback failed: %s", task.exception())

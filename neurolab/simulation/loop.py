"""Cooperative tick scheduling on the running asyncio loop.

Every :meth:`TickLoop.start` bumps a generation counter.  A tick or delayed
callback captured under an older generation is discarded, so stopping or
resetting a chapter can never be followed by a stale write.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set, Union

LOGGER = logging.getLogger(__name__)

TickCallback = Callable[[], Union[bool, Awaitable[bool]]]


class TickLoop:
    """Run ``callback`` every ``interval`` seconds until it returns ``True``."""

    def __init__(self, interval: float, callback: TickCallback, *, name: str = "tick") -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name
        self.generation = 0
        self.ticks = 0
        self._task: Optional[asyncio.Task[None]] = None
        self._pending: Set["asyncio.Task[bool]"] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_actions(self) -> int:
        return len(self._pending)

    def start(self) -> int:
        """Begin ticking; returns the generation token of this run."""

        self.stop()
        self.generation += 1
        self._task = asyncio.get_running_loop().create_task(self._run(self.generation))
        LOGGER.debug("%s loop started (generation %d)", self.name, self.generation)
        return self.generation

    def stop(self) -> None:
        self.generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def _run(self, generation: int) -> None:
        while self.is_current(generation):
            await asyncio.sleep(self.interval)
            if not self.is_current(generation):
                break
            outcome = self.callback()
            if asyncio.iscoroutine(outcome):
                outcome = await outcome
            self.ticks += 1
            if outcome:
                LOGGER.debug("%s loop finished after %d ticks", self.name, self.ticks)
                break

    async def wait(self) -> None:
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    def schedule_once(self, delay: float, action: Callable[[], None]) -> "asyncio.Task[bool]":
        """Run ``action`` after ``delay`` seconds unless the loop restarts or stops first.

        The returned task resolves to ``True`` when the action ran.  The loop
        holds a reference to it until it completes.
        """

        generation = self.generation

        async def _delayed() -> bool:
            await asyncio.sleep(delay)
            if not self.is_current(generation):
                LOGGER.debug("%s: dropped stale delayed action", self.name)
                return False
            action()
            return True

        task = asyncio.get_running_loop().create_task(_delayed())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task


__all__ = ["TickCallback", "TickLoop"]

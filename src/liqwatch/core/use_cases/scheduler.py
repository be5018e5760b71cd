"""Fixed-rate polling scheduler.

Every `period_s` the scheduler reads the chain head, computes the lookback
window and runs one dispatch cycle in a background task.

Overlap policy: if the previous cycle is still running when a tick is due,
that tick is skipped (counted in `skipped_ticks`); the following ticks keep
their original schedule. A failing tick is logged and never stops the loop.

`clock` and `sleep` are injectable so tests can drive many ticks without
wall-clock delay.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from liqwatch.constants import DEFAULT_LOOKBACK, DEFAULT_PERIOD_S
from liqwatch.core.interfaces import ILogSource
from liqwatch.core.models import BlockWindow
from liqwatch.core.use_cases.dispatch import DispatchStats, EventDispatcher

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


def compute_window(head: int, lookback: int) -> BlockWindow:
    """[max(0, head - lookback), head]."""
    if head < 0:
        raise ValueError("head must be >= 0")
    if lookback < 0:
        raise ValueError("lookback must be >= 0")
    return BlockWindow(from_block=max(0, head - lookback), to_block=head)


@dataclass(kw_only=True)
class TickResult:
    tick: int
    window: BlockWindow | None = None
    stats: DispatchStats | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class WindowScheduler:
    def __init__(
        self,
        source: ILogSource,
        dispatcher: EventDispatcher,
        *,
        period_s: float = DEFAULT_PERIOD_S,
        lookback: int = DEFAULT_LOOKBACK,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        history: int = 100,
    ) -> None:
        if period_s <= 0:
            raise ValueError("period_s must be > 0")
        self._source = source
        self._dispatcher = dispatcher
        self._period_s = period_s
        self._lookback = lookback
        self._clock = clock
        self._sleep = sleep

        self._current: asyncio.Task[None] | None = None
        self._sleeper: asyncio.Future[None] | None = None
        self._stopping = False

        self.skipped_ticks = 0
        self.results: deque[TickResult] = deque(maxlen=history)

    @property
    def running_cycle(self) -> bool:
        return self._current is not None and not self._current.done()

    async def tick(self, n: int = 0) -> TickResult:
        """Run one cycle now: head lookup → window → dispatch."""
        result = TickResult(tick=n)
        head = await self._source.latest_block()
        result.window = compute_window(head, self._lookback)
        logger.info("tick %d: fetching blocks %d..%d", n, result.window.from_block, result.window.to_block)
        result.stats = await self._dispatcher.run(result.window)
        return result

    async def _guarded_tick(self, n: int) -> None:
        try:
            result = await self.tick(n)
        except asyncio.CancelledError:
            logger.info("tick %d cancelled", n)
            raise
        except Exception as e:
            logger.exception("tick %d failed", n)
            result = TickResult(tick=n, error=f"{type(e).__name__}: {e}")
        self.results.append(result)

    async def _wait(self, delay: float) -> bool:
        """Sleep until the next tick; False when interrupted by `stop()`."""
        self._sleeper = asyncio.ensure_future(self._sleep(delay))
        try:
            await self._sleeper
        except asyncio.CancelledError:
            if self._stopping:
                return False
            raise
        finally:
            self._sleeper = None
        return True

    async def run(self, max_ticks: int | None = None) -> None:
        """Tick every `period_s` until `stop()` (or `max_ticks` ticks were due)."""
        self._stopping = False
        start = self._clock()
        fired = 0
        try:
            while not self._stopping and (max_ticks is None or fired < max_ticks):
                delay = start + fired * self._period_s - self._clock()
                if delay > 0 and not await self._wait(delay):
                    break
                fired += 1
                if self.running_cycle:
                    self.skipped_ticks += 1
                    logger.warning("tick %d skipped: previous cycle still running", fired)
                    continue
                self._current = asyncio.create_task(self._guarded_tick(fired))
        except asyncio.CancelledError:
            self._stopping = True
            raise
        finally:
            await self._drain()

    async def _drain(self) -> None:
        task = self._current
        if task is None or task.done():
            return
        if self._stopping:
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def stop(self) -> None:
        """Stop ticking and abandon the in-flight cycle."""
        self._stopping = True
        if self._sleeper is not None:
            self._sleeper.cancel()
        if self._current is not None and not self._current.done():
            self._current.cancel()

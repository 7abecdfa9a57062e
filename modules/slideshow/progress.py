"""
Progress reporting for the slideshow module.

Drains the engine's progress channel for the lifetime of one job and
republishes each sample as an integer percentage.
"""
import asyncio
import inspect
import math
from typing import Awaitable, Callable, Optional, Union

from shared.logging import get_logger

logger = get_logger("slideshow.progress")

ProgressCallback = Callable[[int], Union[None, Awaitable[None]]]

_STOP = None


def to_percent(fraction: float) -> int:
    """Convert a 0.0-1.0 fraction to a 0-100 integer (round half up)."""
    return max(0, min(100, math.floor(fraction * 100 + 0.5)))


class ProgressReporter:
    """
    Async context manager scoped to one engine invocation.

    Samples are forwarded in the order the engine produced them, including
    regressions and repeats. Only the latest value is kept.
    """

    def __init__(self, engine, on_progress: Optional[ProgressCallback] = None):
        self.engine = engine
        self.on_progress = on_progress
        self.latest = 0
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "ProgressReporter":
        self.latest = 0
        await self._emit(0)
        self._queue = self.engine.subscribe()
        self._task = asyncio.create_task(self._drain(self._queue))
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        queue, task = self._queue, self._task
        self._queue = self._task = None
        self.engine.unsubscribe(queue)
        # Deliver everything already received before stopping
        queue.put_nowait(_STOP)
        await task

    async def _drain(self, queue: asyncio.Queue) -> None:
        while True:
            sample = await queue.get()
            if sample is _STOP:
                return
            self.latest = to_percent(sample)
            await self._emit(self.latest)

    async def _emit(self, percent: int) -> None:
        if self.on_progress is None:
            return
        try:
            result = self.on_progress(percent)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(
                f"Progress callback failed: {e}",
                extra={"progress": percent, "error": str(e)}
            )

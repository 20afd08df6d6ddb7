"""Stopwatch for timing a brew."""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from espressobox.models.base import utc_now

logger = logging.getLogger(__name__)


def format_elapsed(seconds: float) -> str:
    """``SS.t`` under a minute, ``M:SS.t`` from one minute on."""
    # Whole tenths; float remainders such as 27.9 % 1 fall just short
    minutes, rem = divmod(int(round(seconds * 10)), 600)
    secs, tenths = divmod(rem, 10)
    if minutes > 0:
        return f"{minutes}:{secs:02d}.{tenths}"
    return f"{secs:02d}.{tenths}"


class BrewTimer:
    """Asyncio stopwatch with a repeating tick.

    While running, a single background task calls ``on_tick`` with the
    elapsed seconds every ``tick_interval``. Each start measures from zero;
    after ``stop`` the elapsed time stays readable until ``reset`` or the
    next ``start``.

    ``start`` must be called from inside a running event loop.
    """

    def __init__(
        self,
        tick_interval: float = 0.1,
        on_tick: Optional[Callable[[float], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        self.tick_interval = tick_interval
        self.on_tick = on_tick
        self._clock = clock
        self._started: Optional[float] = None
        self._elapsed = 0.0
        self._task: Optional[asyncio.Task] = None
        self.started_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    @property
    def elapsed(self) -> float:
        if self._started is not None:
            return self._clock() - self._started
        return self._elapsed

    @property
    def elapsed_label(self) -> str:
        return format_elapsed(self.elapsed)

    def start(self) -> None:
        if self.is_running:
            return
        self._started = self._clock()
        self._elapsed = 0.0
        self.started_at = utc_now()
        self._task = asyncio.get_running_loop().create_task(self._tick())

    def stop(self) -> None:
        if not self.is_running:
            return
        self._elapsed = self.elapsed
        self._started = None
        self._task.cancel()
        self._task = None
        logger.debug("Timer stopped at %s", self.elapsed_label)

    def reset(self) -> None:
        self.stop()
        self._elapsed = 0.0
        self.started_at = None

    def toggle(self) -> None:
        if self.is_running:
            self.stop()
        else:
            self.start()

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            if self.on_tick is None:
                continue
            try:
                self.on_tick(self.elapsed)
            except Exception:
                logger.exception("Timer tick callback failed")

"""
Recurring timer for asyncio loops, independent of any UI toolkit timer.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Set

from streampulse_core.streampulse_core import logger as app_logger

_LOGGER = app_logger.get_logger()


class IntervalTimer:
    """
    Invokes an async callback every ``interval_seconds`` once started.

    Each tick runs as its own task, so a slow callback does not delay the
    following tick. Callers are responsible for guarding against overlap.
    """

    def __init__(self, interval_seconds: float, callback: Callable[[], Awaitable[Any]]) -> None:
        self._interval_seconds = interval_seconds
        self._callback = callback
        self._runner: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @interval_seconds.setter
    def interval_seconds(self, value: float) -> None:
        self._interval_seconds = value
        if self.is_active:
            # Restart the wait so the new interval applies from now.
            self.stop()
            self.start()

    @property
    def is_active(self) -> bool:
        return self._runner is not None and not self._runner.done()

    def start(self) -> None:
        """Begin ticking. Must be called from a running event loop."""
        if self.is_active:
            return
        self._runner = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Stop ticking. Ticks already running are left to finish."""
        if self._runner is None:
            return
        self._runner.cancel()
        self._runner = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            tick = asyncio.ensure_future(self._callback())
            self._ticks.add(tick)
            tick.add_done_callback(self._on_tick_done)

    def _on_tick_done(self, tick: asyncio.Task) -> None:
        self._ticks.discard(tick)
        if tick.cancelled():
            return
        exc = tick.exception()
        if exc is not None:
            _LOGGER.opt(exception=exc).error("Timer callback failed")

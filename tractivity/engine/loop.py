from __future__ import annotations

import asyncio
import math
from typing import Callable

from loguru import logger

from .monitor import InactivityMonitor


class EvaluationLoop:
    """Drives `InactivityMonitor.evaluate()` on a fixed cadence.

    Each tick schedules an evaluation without waiting for the previous one.
    While an evaluation is stuck on a slow idle query, the monitor drops the
    ticks that overlap it.
    """

    def __init__(
        self,
        monitor: InactivityMonitor,
        poll_seconds: float,
        on_tick: Callable[[], None] | None = None,
    ):
        if not math.isfinite(poll_seconds) or poll_seconds <= 0:
            raise ValueError("poll_seconds must be a positive finite number")

        self._monitor = monitor
        self._poll_seconds = float(poll_seconds)
        self._on_tick = on_tick
        self._pending: set[asyncio.Task] = set()
        self._stopped = asyncio.Event()

    @property
    def poll_seconds(self) -> float:
        return self._poll_seconds

    @property
    def pending(self) -> int:
        return len(self._pending)

    def forward_activity(self, timestamp: float | None = None) -> None:
        self._monitor.mark_activity(timestamp)

    def tick(self) -> asyncio.Task:
        task = asyncio.ensure_future(self._monitor.evaluate())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        if self._on_tick is not None:
            task.add_done_callback(self._after_tick)
        return task

    def _after_tick(self, task: asyncio.Task) -> None:
        # Called once the evaluation settles; cancelled ticks are not rendered.
        if task.cancelled():
            return
        try:
            self._on_tick()
        except Exception:
            logger.exception("Tick hook failed")

    async def run(self) -> None:
        while not self._stopped.is_set():
            self.tick()
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._poll_seconds)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        self._stopped.set()

    async def aclose(self) -> None:
        self.stop()
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

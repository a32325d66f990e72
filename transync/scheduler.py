"""Periodic trigger for fetch + refresh cycles."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

_log = structlog.get_logger(component="scheduler")


class PeriodicScheduler:
    """Invokes an async zero-argument callback every *interval* seconds.

    The first call happens one interval after ``start()``.  The next wait
    only begins once the callback returned, so ticks never overlap.
    Callback errors are logged and the loop keeps going; the callback is
    responsible for escalating anything fatal.
    """

    def __init__(self, interval: float, callback: Callable[[], Awaitable[None]], name: str = "refresh") -> None:
        if interval <= 0:
            raise ValueError("Scheduler interval must be positive")
        self._interval = interval
        self._callback = callback
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"scheduler-{self._name}")
        _log.info("scheduler_started", name=self._name, interval_seconds=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        _log.info("scheduler_stopped", name=self._name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._callback()
            except Exception as exc:
                _log.error("scheduled_callback_failed", name=self._name, error=str(exc))

"""
OCGP Lobby Client - Clock and Timer Primitives

Repeating and one-shot callbacks on the asyncio event loop, and a
wall clock. Every handle is cancelled explicitly by its owner.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Coroutine, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Clock plus timer factory. All callbacks run on one thread."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...

    def call_every(self, interval: float, callback: Callable[[], Any]) -> TimerHandle: ...

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Any: ...


class _LoopTimer:
    """One-shot or repeating timer driven by ``loop.call_later``."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        delay: float,
        callback: Callable[[], Any],
        repeat: bool,
    ) -> None:
        self._loop = loop
        self._delay = delay
        self._callback = callback
        self._repeat = repeat
        self._handle: asyncio.TimerHandle | None = loop.call_later(delay, self._fire)

    @property
    def active(self) -> bool:
        return self._handle is not None

    def _fire(self) -> None:
        if self._repeat:
            self._handle = self._loop.call_later(self._delay, self._fire)
        else:
            self._handle = None
        try:
            self._callback()
        except Exception:
            logger.exception("Timer callback failed")

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        # The loop only holds weak references to tasks
        self._tasks: set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _LoopTimer:
        return _LoopTimer(self.loop, delay, callback, repeat=False)

    def call_every(self, interval: float, callback: Callable[[], Any]) -> _LoopTimer:
        return _LoopTimer(self.loop, interval, callback, repeat=True)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = self.loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(_log_task_failure)
        return task

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background task failed", exc_info=exc)


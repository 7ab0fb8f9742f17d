from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from chefscript.services.clock import Clock, SystemClock

log = logging.getLogger("image_scheduler")

T = TypeVar("T")

DEFAULT_CAPACITY = 100
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_SPACING_SECONDS = 0.6


@dataclass(slots=True)
class _Operation:
    factory: Callable[[], Awaitable[Any]]
    future: "asyncio.Future[Any]"
    label: str


class RateLimitedScheduler:
    """
    FIFO queue that runs one operation at a time and never starts more than
    `capacity` operations inside any rolling `window_seconds` window.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        spacing_seconds: float = DEFAULT_SPACING_SECONDS,
        clock: Optional[Clock] = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.window_seconds = window_seconds
        self.spacing_seconds = spacing_seconds
        self._clock = clock or SystemClock()
        self._queue: "asyncio.Queue[Optional[_Operation]]" = asyncio.Queue()
        self._starts: deque[float] = deque()
        self._worker: Optional[asyncio.Task[None]] = None
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def operations_in_window(self) -> int:
        self._prune(self._clock.monotonic())
        return len(self._starts)

    async def start(self) -> None:
        async with self._lock:
            if self._worker and not self._worker.done():
                return
            self._worker = asyncio.create_task(self._run(), name="image-scheduler")

    async def stop(self) -> None:
        async with self._lock:
            if not self._worker:
                return
            await self._queue.put(None)
            try:
                await self._worker
            finally:
                self._worker = None

    async def submit(self, factory: Callable[[], Awaitable[T]], label: str = "operation") -> T:
        await self.start()
        future: "asyncio.Future[T]" = asyncio.get_running_loop().create_future()
        await self._queue.put(_Operation(factory=factory, future=future, label=label))
        log.debug("scheduler.enqueued label=%s pending=%s", label, self._queue.qsize())
        return await future

    def _prune(self, now: float) -> None:
        while self._starts and now - self._starts[0] >= self.window_seconds:
            self._starts.popleft()

    async def _wait_for_slot(self) -> None:
        now = self._clock.monotonic()
        self._prune(now)
        while len(self._starts) >= self.capacity:
            wait = self._starts[0] + self.window_seconds - now
            log.info("scheduler.rate_limited wait=%.2fs in_window=%s", wait, len(self._starts))
            await self._clock.sleep(wait)
            now = self._clock.monotonic()
            self._prune(now)

    async def _run(self) -> None:
        while True:
            operation = await self._queue.get()
            if operation is None:
                self._queue.task_done()
                break
            try:
                if operation.future.cancelled():
                    continue
                await self._wait_for_slot()
                self._starts.append(self._clock.monotonic())
                try:
                    result = await operation.factory()
                except Exception as exc:
                    if not operation.future.done():
                        operation.future.set_exception(exc)
                else:
                    if not operation.future.done():
                        operation.future.set_result(result)
                await self._clock.sleep(self.spacing_seconds)
            finally:
                self._queue.task_done()

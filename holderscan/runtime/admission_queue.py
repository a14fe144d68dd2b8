# runtime/admission_queue.py
# ------------------------------------------------------------------
# FIFO request admission under a hard requests-per-second ceiling.
# One dispatcher task drains the queue; callers only ever enqueue.
# ------------------------------------------------------------------

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Tuple

Task = Callable[[], Awaitable[Any]]
Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[Any]]

WINDOW_S = 1.0


class AdmissionQueue:
    """
    Serializes outbound requests against a fixed per-second ceiling.

      - submit(task) -> Future resolving to the task's result or exception
      - run(task)    -> awaitable shortcut for submit()
      - close()      -> stop the dispatcher, cancel anything still queued

    Dispatch policy:
      - a rolling count of dispatches inside the trailing one-second window;
        once it reaches the ceiling, dispatch waits out the rest of the window
      - the count resets once a full second passes since the last dispatch
      - after every task a fixed spacing of 1s / ceiling is enforced
    """

    def __init__(
        self,
        max_per_second: int = 8,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        if int(max_per_second) < 1:
            raise ValueError("max_per_second must be at least 1")
        self.max_per_second = int(max_per_second)
        self.min_interval = WINDOW_S / self.max_per_second
        self._clock = clock
        self._sleep = sleep
        self._queue: asyncio.Queue[Tuple[Task, asyncio.Future]] = asyncio.Queue()
        self._dispatcher: Optional[asyncio.Task] = None
        self._closed = False

        # dispatcher-owned state
        self.window_count = 0
        self.last_dispatch: Optional[float] = None
        self.dispatched = 0

    # --- caller side ---
    def submit(self, task: Task) -> asyncio.Future:
        if self._closed:
            raise RuntimeError("AdmissionQueue is closed")
        loop = asyncio.get_running_loop()
        fut = loop.create_future()
        self._queue.put_nowait((task, fut))
        self._ensure_dispatcher()
        return fut

    async def run(self, task: Task) -> Any:
        return await self.submit(task)

    async def close(self):
        self._closed = True
        if self._dispatcher and not self._dispatcher.done():
            self._dispatcher.cancel()
            try:
                await self._dispatcher
            except asyncio.CancelledError:
                pass
        while not self._queue.empty():
            _, fut = self._queue.get_nowait()
            if not fut.done():
                fut.cancel()
        logging.debug(f"[AdmissionQueue] Closed after {self.dispatched} dispatches")

    async def __aenter__(self) -> "AdmissionQueue":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # --- dispatcher side ---
    def _ensure_dispatcher(self):
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.create_task(self._dispatch_loop(), name="admission_queue")

    async def _wait_for_window(self):
        now = self._clock()
        if self.window_count >= self.max_per_second and self.last_dispatch is not None:
            wait = WINDOW_S - (now - self.last_dispatch)
            if wait > 0:
                logging.debug(f"[AdmissionQueue] Ceiling of {self.max_per_second}/s reached, waiting {wait:.3f}s")
                await self._sleep(wait)
            self.window_count = 0
            now = self._clock()

        if self.last_dispatch is not None and now - self.last_dispatch >= WINDOW_S:
            self.window_count = 0

    async def _dispatch_loop(self):
        while True:
            task, fut = await self._queue.get()
            try:
                if fut.cancelled():
                    continue

                await self._wait_for_window()

                self.window_count += 1
                self.dispatched += 1
                self.last_dispatch = self._clock()

                try:
                    result = await task()
                except asyncio.CancelledError:
                    if not fut.done():
                        fut.cancel()
                    raise
                except Exception as e:
                    if not fut.done():
                        fut.set_exception(e)
                else:
                    if not fut.done():
                        fut.set_result(result)

                await self._sleep(self.min_interval)
            finally:
                self._queue.task_done()

"""Inference concurrency layer.

Architecture:
    pipeline stage (async) -> asyncio.Semaphore(N) -> ThreadPoolExecutor(N) -> backend call

Synchronous backends run in the thread pool; coroutine backends are awaited
on the loop under the same semaphore. Calls that cannot acquire a slot within
``queue_timeout`` seconds raise ``TimeoutError``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, TypeVar, cast

from facechain.errors import InferenceError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from facechain.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InferencePool:
    """Manages the semaphore and thread pool for backend calls."""

    def __init__(self, settings: Settings) -> None:
        self._max_concurrent = settings.max_concurrent
        self._semaphore: asyncio.Semaphore | None = None
        self._semaphore_loop: asyncio.AbstractEventLoop | None = None
        self._executor = ThreadPoolExecutor(
            max_workers=settings.max_concurrent,
            thread_name_prefix="facechain-inference",
        )
        self._queue_timeout = settings.queue_timeout
        self._active_count: int = 0
        self._queue_depth: int = 0
        self._counter_lock = threading.Lock()

    async def run(self, func: Callable[..., Any], *args: object) -> Any:
        """Run one backend call.

        Acquires the semaphore (with timeout), then either awaits ``func`` if it
        is a coroutine function or runs it in the executor, then releases.

        Raises:
            TimeoutError: If the semaphore cannot be acquired within the timeout.
        """
        semaphore = self._loop_semaphore()
        with self._counter_lock:
            self._queue_depth += 1
        try:
            await asyncio.wait_for(semaphore.acquire(), timeout=self._queue_timeout)
        finally:
            with self._counter_lock:
                self._queue_depth -= 1

        with self._counter_lock:
            self._active_count += 1
        try:
            if inspect.iscoroutinefunction(func):
                return await func(*args)
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, func, *args)
        finally:
            semaphore.release()
            with self._counter_lock:
                self._active_count -= 1

    def _loop_semaphore(self) -> asyncio.Semaphore:
        # asyncio primitives bind to one loop
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
            self._semaphore_loop = loop
        return self._semaphore

    async def map(self, func: Callable[[Any], T], items: Sequence[Any], *, stage: str) -> list[T]:
        """Run ``func`` on every item concurrently, returning results in item order.

        Every call is allowed to finish before the first failure is raised, so
        callers can release the items afterwards without racing a running call.

        Raises:
            InferenceError: For the lowest-index item whose call failed.
        """
        outcomes = await asyncio.gather(*(self.run(func, item) for item in items), return_exceptions=True)
        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, Exception):
                logger.debug("%s failed for face %d: %r", stage, index, outcome)
                raise InferenceError(stage, str(outcome) or type(outcome).__name__, face_index=index) from outcome
            if isinstance(outcome, BaseException):
                raise outcome
        return cast("list[T]", outcomes)

    @property
    def active_count(self) -> int:
        """Number of currently running backend calls."""
        with self._counter_lock:
            return self._active_count

    @property
    def queue_depth(self) -> int:
        """Number of calls waiting for a semaphore slot."""
        with self._counter_lock:
            return self._queue_depth

    def shutdown(self) -> None:
        """Shut down the thread pool executor."""
        self._executor.shutdown(wait=True)

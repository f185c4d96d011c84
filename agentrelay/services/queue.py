"""Per-key serialized job queue."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[Any]]


class KeyedQueue:
    """Runs async jobs one at a time per key, concurrently across keys.

    Each key with pending work gets a worker task that drains that key's
    jobs in submission order. A failing job only fails its own future. The
    worker and its bookkeeping are dropped as soon as the key is empty.
    Jobs whose caller gave up before they started are skipped; a job that
    has started always runs to completion.
    """

    def __init__(self) -> None:
        self._pending: dict[str, deque[tuple[TaskFactory, asyncio.Future]]] = {}
        self._workers: dict[str, asyncio.Task] = {}

    def submit(self, key: str, factory: TaskFactory) -> asyncio.Future:
        """Queue a job and return a future for its result."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._pending.setdefault(key, deque()).append((factory, future))
        if key not in self._workers:
            self._workers[key] = loop.create_task(self._drain_key(key))
        return future

    async def enqueue(self, key: str, factory: TaskFactory) -> Any:
        """Queue a job and wait for its result."""
        return await self.submit(key, factory)

    def is_busy(self, key: str) -> bool:
        return key in self._workers

    def pending(self, key: str) -> int:
        """Jobs waiting under a key, not counting the one running."""
        return len(self._pending.get(key, ()))

    @property
    def active_keys(self) -> list[str]:
        return list(self._workers)

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for all queued work. Returns False if the timeout hit first."""
        workers = list(self._workers.values())
        if not workers:
            return True
        done, still_running = await asyncio.wait(workers, timeout=timeout)
        if still_running:
            logger.warning("Queue drain timed out with %d busy keys", len(still_running))
            return False
        return True

    async def _drain_key(self, key: str) -> None:
        jobs = self._pending[key]
        try:
            while jobs:
                factory, future = jobs.popleft()
                if future.cancelled():
                    continue
                # A job's own CancelledError fails only its future
                job = asyncio.ensure_future(self._run_job(factory))
                try:
                    await asyncio.wait([job])
                except asyncio.CancelledError:
                    job.cancel()
                    future.cancel()
                    raise
                if job.cancelled():
                    logger.debug("Queued job for %s was cancelled", key)
                    future.cancel()
                elif job.exception() is not None:
                    logger.debug("Queued job for %s failed: %s", key, job.exception())
                    if not future.done():
                        future.set_exception(job.exception())
                elif not future.done():
                    future.set_result(job.result())
        finally:
            for _, future in jobs:
                future.cancel()
            self._pending.pop(key, None)
            self._workers.pop(key, None)

    @staticmethod
    async def _run_job(factory: TaskFactory) -> Any:
        return await factory()

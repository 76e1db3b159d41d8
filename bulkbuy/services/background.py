from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BackgroundJob:
    name: str
    func: Callable[[], object]


class BackgroundTaskSink:
    """Supervised queue for best-effort side effects the request path never awaits."""

    def __init__(self, *, max_workers: int = 1) -> None:
        self._max_workers = max(1, max_workers)
        self._queue: Optional[asyncio.Queue[Optional[BackgroundJob]]] = None
        self._workers: List[asyncio.Task[None]] = []
        self._shutdown = asyncio.Event()

    @property
    def running(self) -> bool:
        return bool(self._workers) and not self._shutdown.is_set()

    async def start(self) -> None:
        if self._workers:
            return
        logger.info("Starting background task sink with %s workers.", self._max_workers)
        self._queue = asyncio.Queue()
        self._shutdown = asyncio.Event()
        loop = asyncio.get_running_loop()
        for _ in range(self._max_workers):
            task = loop.create_task(self._worker(), name="background-task-sink")
            self._workers.append(task)

    async def stop(self) -> None:
        if not self._workers or self._queue is None:
            return
        logger.info("Stopping background task sink.")
        self._shutdown.set()
        for _ in self._workers:
            await self._queue.put(None)
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

    def submit(self, name: str, func: Callable[[], object]) -> bool:
        """Queue ``func`` for execution; returns False when the job was dropped."""
        if not self.running or self._queue is None:
            logger.warning("Background task sink is not running; dropping job %s.", name)
            return False
        self._queue.put_nowait(BackgroundJob(name=name, func=func))
        return True

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def _worker(self) -> None:
        assert self._queue is not None
        while True:
            job = await self._queue.get()
            if job is None:
                self._queue.task_done()
                break
            try:
                job.func()
            except Exception:
                logger.exception("Background job %s failed.", job.name)
            finally:
                self._queue.task_done()

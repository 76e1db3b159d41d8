"""User presence: per-request activity stamps and the idle-user sweep."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from ..core.clock import Clock, utcnow
from ..domain.ports.persistence import UserRepository
from .background import BackgroundTaskSink

logger = logging.getLogger(__name__)


class ActivityTracker:
    """Submits the ``last_activity`` stamp for authenticated requests."""

    def __init__(self, users: UserRepository, sink: BackgroundTaskSink, *, clock: Clock = utcnow) -> None:
        self._users = users
        self._sink = sink
        self._clock = clock

    def record(self, user_id: str) -> bool:
        now = self._clock()
        return self._sink.submit(
            f"touch-activity:{user_id}",
            lambda: self._users.touch_user_activity(user_id, now),
        )


class PresenceSweeper:
    """Periodically flips users idle past the threshold to offline."""

    def __init__(
        self,
        users: UserRepository,
        *,
        interval_seconds: float = 60,
        idle_minutes: int = 5,
        clock: Clock = utcnow,
    ) -> None:
        self._users = users
        self._interval = interval_seconds
        self._idle = timedelta(minutes=idle_minutes)
        self._clock = clock
        self._task: Optional[asyncio.Task[None]] = None
        self._stopping: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        logger.info(
            "Starting presence sweeper (interval=%ss, idle threshold=%s).",
            self._interval,
            self._idle,
        )
        self._stopping = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run(), name="presence-sweeper")

    async def stop(self) -> None:
        if not self._task or not self._stopping:
            return
        logger.info("Stopping presence sweeper.")
        self._stopping.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    def sweep_once(self, now: Optional[datetime] = None) -> int:
        cutoff = (now or self._clock()) - self._idle
        flipped = self._users.mark_inactive_users_offline(cutoff)
        if flipped:
            logger.info("Marked %s inactive users offline.", flipped)
        return flipped

    async def _run(self) -> None:
        assert self._stopping is not None
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
                break
            except asyncio.TimeoutError:
                pass
            try:
                self.sweep_once()
            except Exception:
                logger.exception("Presence sweep failed; retrying on next tick.")

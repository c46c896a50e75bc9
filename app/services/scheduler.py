"""Daily scheduling of the refresh pipeline with single-flight execution."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from datetime import datetime, time, timedelta, timezone
from typing import Callable

from ..utils import utcnow
from .cache_store import CacheStore
from .refresh import RefreshPipeline

logger = logging.getLogger(__name__)


def next_run_at(now: datetime, hour: int, minute: int) -> datetime:
    """Return the next wall-clock occurrence of ``hour:minute`` strictly after ``now``."""

    candidate = datetime.combine(
        now.date(), time(hour=hour, minute=minute), tzinfo=now.tzinfo
    )
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def seconds_until(target: datetime, now: datetime) -> float:
    """Return the real time left before ``target``, never negative.

    Both values are compared in UTC, so a daylight saving change between
    ``now`` and ``target`` shortens or lengthens the wait accordingly. Naive
    values are read as server local time.
    """

    remaining = target.astimezone(timezone.utc) - now.astimezone(timezone.utc)
    return max(remaining.total_seconds(), 0.0)


def _local_now() -> datetime:
    # naive on purpose: astimezone() later applies the offset valid at the target
    return datetime.now()


class RefreshScheduler:
    """Triggers the pipeline once a day and at startup when the cache is stale.

    At most one pipeline run is in flight. Triggers arriving during a run
    collapse into a single follow-up run.
    """

    def __init__(
        self,
        pipeline: RefreshPipeline,
        store: CacheStore,
        *,
        hour: int = 0,
        minute: int = 0,
        max_age: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
        local_clock: Callable[[], datetime] = _local_now,
    ):
        self._pipeline = pipeline
        self._store = store
        self._hour = hour
        self._minute = minute
        self._max_age = max_age
        self._clock = clock
        self._local_clock = local_clock
        self._timer_task: asyncio.Task[None] | None = None
        self._run_task: asyncio.Task[None] | None = None
        self._rerun_requested = False

    @property
    def is_refreshing(self) -> bool:
        return self._run_task is not None and not self._run_task.done()

    async def start(self) -> None:
        """Kick off a startup refresh if needed and launch the daily timer."""

        snapshot = self._store.current().snapshot
        if snapshot.is_stale(self._clock(), self._max_age):
            logger.info("Initial cache refresh needed")
            self.trigger()
        else:
            logger.info(
                "Cache is up to date. Next refresh scheduled for %02d:%02d",
                self._hour,
                self._minute,
            )
        if self._timer_task is None:
            self._timer_task = asyncio.create_task(self._timer_loop())

    async def stop(self) -> None:
        """Cancel the timer and any in-flight run."""

        for task in (self._timer_task, self._run_task):
            if task is None:
                continue
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        self._timer_task = None
        self._run_task = None
        self._rerun_requested = False

    def trigger(self) -> bool:
        """Start a run, or queue one behind the run in flight.

        Returns ``True`` when a new run was started.
        """

        if self.is_refreshing:
            if not self._rerun_requested:
                logger.info("Refresh already running; queueing one follow-up run")
            self._rerun_requested = True
            return False
        self._run_task = asyncio.create_task(self._run())
        return True

    async def wait_idle(self) -> None:
        """Wait until no run is in flight or queued."""

        while self._run_task is not None and not self._run_task.done():
            await asyncio.shield(self._run_task)

    async def _run(self) -> None:
        while True:
            self._rerun_requested = False
            try:
                await self._pipeline.run()
            except Exception as exc:  # pragma: no cover - background safety net
                logger.exception("Scheduled refresh failed: %s", exc)
            if not self._rerun_requested:
                return
            logger.info("Running queued refresh")

    async def _timer_loop(self) -> None:
        last_target: datetime | None = None
        while True:
            now = self._local_clock()
            if last_target is not None and now < last_target:
                # sleep may return marginally before the wall clock catches up
                now = last_target
            target = next_run_at(now, self._hour, self._minute)
            last_target = target
            delay = seconds_until(target, now)
            logger.debug("Next scheduled refresh at %s", target.isoformat())
            await asyncio.sleep(delay)
            logger.info("Scheduled update: Refreshing catalog and meta cache")
            self.trigger()

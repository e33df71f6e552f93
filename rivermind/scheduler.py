"""
Scheduler — the external clock that wakes the agents.

Each named job runs in its own asyncio task on a fixed interval. Runs of the
same job never overlap: the next run is scheduled only after the previous one
returns. A job that raises is logged and simply runs again at its next tick;
the loop itself never dies from a job failure.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class PeriodicJob:
    name: str
    interval: float
    func: Callable[[], Awaitable[Any]]
    run_immediately: bool = True
    runs: int = 0
    failures: int = 0
    last_run_at: Optional[float] = None
    last_error: Optional[str] = None


class Scheduler:
    def __init__(self, jobs: Optional[list[PeriodicJob]] = None):
        self._jobs: dict[str, PeriodicJob] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._running = False
        for job in jobs or []:
            self.add(job)

    @property
    def jobs(self) -> dict[str, PeriodicJob]:
        return dict(self._jobs)

    @property
    def running(self) -> bool:
        return self._running

    def add(self, job: PeriodicJob) -> None:
        if job.name in self._jobs:
            raise ValueError(f"Job already registered: {job.name}")
        self._jobs[job.name] = job

    async def start(self) -> None:
        if self._running:
            logger.warning("scheduler.already_running")
            return
        self._running = True
        for name, job in self._jobs.items():
            self._tasks[name] = asyncio.create_task(self._loop(job), name=f"job:{name}")
        logger.info("scheduler.started", jobs=sorted(self._jobs))

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks.values():
            task.cancel()
        for task in self._tasks.values():
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        logger.info(
            "scheduler.stopped",
            runs={name: job.runs for name, job in self._jobs.items()},
        )

    async def run_forever(self) -> None:
        """Start every job and block until cancelled."""
        await self.start()
        try:
            await asyncio.gather(*self._tasks.values())
        finally:
            await self.stop()

    async def run_once(self, name: str) -> bool:
        """Run one job now, outside its schedule. Returns False on failure."""
        return await self._run_job(self._jobs[name])

    async def _loop(self, job: PeriodicJob) -> None:
        if not job.run_immediately:
            await asyncio.sleep(job.interval)
        while self._running:
            try:
                await self._run_job(job)
            except asyncio.CancelledError:
                break
            await asyncio.sleep(job.interval)

    async def _run_job(self, job: PeriodicJob) -> bool:
        job.last_run_at = time.time()
        start = time.monotonic()
        try:
            await job.func()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            job.failures += 1
            job.last_error = str(e)
            logger.error(
                "scheduler.job_failed",
                job=job.name,
                error=str(e),
                failures=job.failures,
                exc_info=True,
            )
            return False
        job.runs += 1
        job.last_error = None
        logger.debug(
            "scheduler.job_complete",
            job=job.name,
            runs=job.runs,
            elapsed_seconds=round(time.monotonic() - start, 2),
        )
        return True

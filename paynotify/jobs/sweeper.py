"""Background sweeper expiring staged jobs that were never confirmed."""
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

from paynotify.config import JOB_SETTINGS
from paynotify.utils import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from paynotify.services.lifecycle import JobLifecycleController

logger = get_logger(__name__)


class StagedJobSweeper:
    def __init__(self, controller: "JobLifecycleController", *, interval_seconds: Optional[float] = None):
        self.controller = controller
        self.interval_seconds = float(
            interval_seconds if interval_seconds is not None else JOB_SETTINGS["sweep_interval_seconds"]  # type: ignore[arg-type]
        )
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:  # pragma: no cover
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name="staged-job-sweeper")
        logger.info("Staged job sweeper started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Staged job sweeper stopped")

    async def run_once(self) -> list[str]:
        expired = await self.controller.expire_stale_jobs()
        if expired:
            logger.info("Expired staged jobs", count=len(expired), job_ids=expired)
        return expired

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass
            try:
                await self.run_once()
            except Exception as e:  # keep sweeping after a failed pass
                logger.error("Sweeper pass failed", error=str(e), exc_info=True)


__all__ = ["StagedJobSweeper"]

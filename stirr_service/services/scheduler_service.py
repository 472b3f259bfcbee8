from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from stirr_service.services.refresh_service import RefreshService


logger = logging.getLogger(__name__)

JOB_ID = "snapshot_refresh"


class RefreshScheduler:
    """Scheduler for periodic snapshot refreshes"""

    def __init__(
        self,
        refresh_service: RefreshService,
        *,
        interval_minutes: int = 30,
        misfire_grace_sec: int = 300
    ):
        self.refresh_service = refresh_service
        self.interval_minutes = interval_minutes
        self.misfire_grace_sec = misfire_grace_sec
        self.scheduler: AsyncIOScheduler | None = None

    async def _refresh_job(self) -> None:
        """Background job that runs a refresh; failures keep the previous snapshot"""
        logger.info("Scheduled refresh triggered")
        try:
            result = await self.refresh_service.trigger()
            if result.status == "failed":
                logger.error(f"Scheduled refresh failed, serving previous snapshot: {result.message}")
            elif result.status == "skipped":
                logger.info(f"Scheduled refresh skipped: {result.message}")
        except Exception as e:
            logger.error(f"Exception in scheduled refresh: {e}", exc_info=True)

    def start(self) -> None:
        """Start ticking; the first tick is one interval from now"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        # IntervalTrigger starts counting from now, so the startup refresh is not repeated
        trigger = IntervalTrigger(minutes=self.interval_minutes, timezone="UTC")

        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.scheduler.add_job(
            self._refresh_job,
            trigger=trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.misfire_grace_sec
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started (every %s minutes). Next refresh: %s",
            self.interval_minutes,
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Stop the timer; a refresh already running finishes or is cancelled before its swap"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self.scheduler = None

    @property
    def running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled refresh time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

"""
Refresh Coordination

Runs refresh cycles one at a time: build a snapshot, then hand it to the
cache as a unit. A failed cycle leaves the cache exactly as it was.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from stirr_service.errors import RefreshError, RefreshTimeout
from stirr_service.models import Snapshot
from stirr_service.schemas import RefreshResult

if TYPE_CHECKING:
    from stirr_service.services.snapshot_builder import SnapshotBuilder
    from stirr_service.services.snapshot_cache import SnapshotCache


logger = logging.getLogger(__name__)


class RefreshService:
    """
    Coordinates refresh cycles to prevent concurrent executions.

    Uses an internal asyncio.Lock so only one build runs at a time, and
    records the outcome of every attempt for health reporting.
    """

    def __init__(
        self,
        builder: SnapshotBuilder,
        cache: SnapshotCache,
        station_id: str,
        *,
        timeout_sec: float | None = None
    ):
        self.builder = builder
        self.cache = cache
        self.station_id = station_id
        self.timeout_sec = timeout_sec if timeout_sec and timeout_sec > 0 else None
        self._refresh_lock = asyncio.Lock()

        self.last_success_at: datetime | None = None
        self.last_failure_at: datetime | None = None
        self.last_error: str | None = None
        self.consecutive_failures = 0

    def is_refreshing(self) -> bool:
        """
        Check if a refresh is currently in progress.

        Returns:
            True if a refresh is running, False otherwise
        """
        return self._refresh_lock.locked()

    async def refresh(self) -> Snapshot:
        """
        Build a new snapshot and install it in the cache.

        Waits for any refresh already in flight, then runs its own.

        Returns:
            The snapshot now held by the cache

        Raises:
            RefreshError: If the build failed; the cache is unchanged
        """
        async with self._refresh_lock:
            logger.info("Refresh started at %s", datetime.now(timezone.utc).isoformat())
            try:
                snapshot = await self._build()
            except RefreshError as exc:
                self._record_failure(exc)
                raise
            except Exception as exc:
                self._record_failure(exc)
                raise RefreshError(f"Unexpected error during refresh: {exc}") from exc

            self.cache.replace(snapshot)
            self.last_success_at = snapshot.last_updated
            self.last_error = None
            self.consecutive_failures = 0
            logger.info("Refresh completed successfully")
            return snapshot

    async def trigger(self) -> RefreshResult:
        """
        Run a refresh unless one is already in progress.

        Never raises RefreshError; the outcome is reported in the result.
        """
        if self.is_refreshing():
            logger.warning("Refresh already in progress, skipping this request")
            return RefreshResult(
                status="skipped",
                timestamp=_now_iso(),
                message="Refresh already in progress",
            )

        try:
            snapshot = await self.refresh()
        except RefreshError as exc:
            return RefreshResult(status="failed", timestamp=_now_iso(), message=str(exc))

        return RefreshResult(
            status="success",
            timestamp=_now_iso(),
            channels=snapshot.channel_count,
            programs=snapshot.program_count,
            duration_seconds=round(snapshot.duration_seconds, 3),
        )

    async def _build(self) -> Snapshot:
        build = self.builder.build(self.station_id)
        if not self.timeout_sec:
            return await build
        try:
            return await asyncio.wait_for(build, timeout=self.timeout_sec)
        except asyncio.TimeoutError as exc:
            raise RefreshTimeout(self.timeout_sec) from exc

    def _record_failure(self, exc: Exception) -> None:
        self.last_failure_at = datetime.now(timezone.utc)
        self.last_error = str(exc)
        self.consecutive_failures += 1
        retained = self.cache.read_snapshot()
        logger.error(
            "Refresh failed (%s consecutive): %s; keeping %s",
            self.consecutive_failures,
            exc,
            f"snapshot from {retained.last_updated.isoformat()}" if retained else "empty cache",
            exc_info=not isinstance(exc, RefreshError),
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

"""
Snapshot Builder

Runs the fetch sequence for one refresh cycle: the lineup, then live status
and guide for every channel. The result is a complete Snapshot or an
exception; nothing outside the builder is touched either way.
"""
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime, timezone
from operator import attrgetter
from time import perf_counter
from typing import TYPE_CHECKING, Sequence

from stirr_service.errors import InconsistentLineup, RefreshError
from stirr_service.models import ChannelDescriptor, ChannelStatus, Snapshot

if TYPE_CHECKING:
    from stirr_service.services.stirr_client import StirrClient


logger = logging.getLogger(__name__)


class SnapshotBuilder:
    """Builds one immutable snapshot per call."""

    def __init__(
        self,
        source: StirrClient,
        *,
        channel_id_prefix: str = "stirr",
        max_concurrency: int = 1
    ) -> None:
        self.source = source
        self.channel_id_prefix = channel_id_prefix
        self._concurrency = max(1, max_concurrency)

    def channel_id(self, source_id: str) -> str:
        return f"{self.channel_id_prefix}-{source_id}"

    async def build(self, station_id: str) -> Snapshot:
        """
        Fetch everything for ``station_id`` and assemble a snapshot.

        Raises:
            SourceUnavailable: If the lineup cannot be fetched
            DecodeFailure: If the lineup payload is malformed
            InconsistentLineup: If any per-channel status or guide fetch fails
        """
        started = perf_counter()
        logger.info("Beginning snapshot build for station %s", station_id)

        lineup = await self.source.get_lineup(station_id)
        logger.info(
            "Found %s channels in lineup, getting channel metadata and guide (concurrency: %s)",
            len(lineup),
            self._concurrency,
        )
        _warn_on_duplicate_ids(lineup)

        channels = await self._collect_channels(lineup, station_id)

        # Already in fetch order; sorting keeps numbering and ordering tied together
        channels.sort(key=attrgetter("number"))
        self._check_consistency(channels)

        program_count = sum(len(channel.programs) for channel in channels)
        duration = perf_counter() - started
        logger.info(
            "Snapshot build complete, loaded %s channels with %s programs in guide (%.2fs)",
            len(channels),
            program_count,
            duration,
        )

        return Snapshot(
            station_id=station_id,
            channels=tuple(channels),
            program_count=program_count,
            last_updated=datetime.now(timezone.utc),
            duration_seconds=duration,
        )

    async def _collect_channels(
        self,
        lineup: Sequence[ChannelDescriptor],
        station_id: str
    ) -> list[ChannelStatus]:
        semaphore = asyncio.Semaphore(self._concurrency)
        tasks = [
            asyncio.create_task(self._build_channel(number, descriptor, station_id, semaphore))
            for number, descriptor in enumerate(lineup, start=1)
        ]

        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # One channel failed; the rest of the lineup is discarded with it
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _build_channel(
        self,
        number: int,
        descriptor: ChannelDescriptor,
        station_id: str,
        semaphore: asyncio.Semaphore
    ) -> ChannelStatus:
        async with semaphore:
            logger.debug("[Channel %s] Fetching status for '%s'", number, descriptor.name)
            try:
                live = await self.source.get_channel_status(descriptor.name, station_id)
            except RefreshError as exc:
                logger.error("[Channel %s] Status fetch for '%s' failed: %s", number, descriptor.name, exc)
                raise InconsistentLineup(descriptor.name, "status", exc) from exc

            logger.debug("[Channel %s] Fetching guide for '%s'", number, descriptor.name)
            try:
                programs = await self.source.get_channel_programs(
                    descriptor.name,
                    descriptor.source_id,
                    station_id,
                )
            except RefreshError as exc:
                logger.error("[Channel %s] Guide fetch for '%s' failed: %s", number, descriptor.name, exc)
                raise InconsistentLineup(descriptor.name, "guide", exc) from exc

        logger.debug("[Channel %s] '%s' ready with %s programs", number, descriptor.name, len(programs))

        return ChannelStatus(
            id=self.channel_id(descriptor.source_id),
            source_id=descriptor.source_id,
            number=number,
            name=descriptor.name,
            title=live.title,
            link=live.link,
            logo_url=live.logo_url,
            icon_url=descriptor.icon_url,
            description=live.description,
            is_live=live.is_live,
            programs=tuple(programs),
        )

    @staticmethod
    def _check_consistency(channels: Sequence[ChannelStatus]) -> None:
        """Numbers must be dense 1..N and programs must belong to their channel."""
        for expected, channel in enumerate(channels, start=1):
            if channel.number != expected:
                raise InconsistentLineup(
                    channel.name,
                    "numbering",
                    ValueError(f"expected display number {expected}, got {channel.number}"),
                )
            stray = [p for p in channel.programs if p.channel_source_id != channel.source_id]
            if stray:
                raise InconsistentLineup(
                    channel.name,
                    "guide",
                    ValueError(f"{len(stray)} program(s) reference another channel"),
                )


def _warn_on_duplicate_ids(lineup: Sequence[ChannelDescriptor]) -> None:
    duplicates = [source_id for source_id, count in Counter(c.source_id for c in lineup).items() if count > 1]
    if duplicates:
        logger.warning("Lineup repeats channel id(s): %s", ", ".join(sorted(duplicates)))

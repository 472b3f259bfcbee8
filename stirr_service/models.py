"""
Normalized data model shared by the refresh pipeline and the renderers.

Instances are frozen; a refresh builds new ones instead of patching old ones.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ChannelDescriptor:
    """One lineup entry as returned by the provider."""
    source_id: str
    name: str  # Lookup key for status and guide calls
    icon_url: str | None = None


@dataclass(frozen=True, slots=True)
class LiveStatus:
    """Live-stream metadata for one channel, before numbering."""
    title: str
    link: str
    logo_url: str | None = None
    description: str | None = None
    is_live: bool = False


@dataclass(frozen=True, slots=True)
class Program:
    """One scheduled guide entry."""
    title: str
    start: datetime
    stop: datetime
    channel_source_id: str
    description: str | None = None
    categories: tuple[str, ...] = ()
    title_lang: str | None = None
    description_lang: str | None = None
    category_lang: str | None = None
    is_live: bool = False


@dataclass(frozen=True, slots=True)
class ChannelStatus:
    """A numbered channel together with its live metadata and programs."""
    id: str  # Derived identifier, "<prefix>-<source_id>"
    source_id: str
    number: int
    name: str
    title: str
    link: str
    logo_url: str | None = None
    icon_url: str | None = None
    description: str | None = None
    is_live: bool = False
    programs: tuple[Program, ...] = ()


@dataclass(frozen=True, slots=True)
class Snapshot:
    """The atomic unit of cache state produced by one refresh cycle."""
    station_id: str
    channels: tuple[ChannelStatus, ...]
    program_count: int
    last_updated: datetime
    duration_seconds: float = field(default=0.0, compare=False)

    @property
    def channel_count(self) -> int:
        return len(self.channels)

    def iter_programs(self):
        """Yield (channel, program) pairs in snapshot order."""
        for channel in self.channels:
            for program in channel.programs:
                yield channel, program


__all__ = ["ChannelDescriptor", "LiveStatus", "Program", "ChannelStatus", "Snapshot"]

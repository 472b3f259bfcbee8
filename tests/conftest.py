"""
Pytest configuration and fixtures for Stirr service tests.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from stirr_service.config import Settings
from stirr_service.errors import SourceUnavailable
from stirr_service.models import (
    ChannelDescriptor,
    ChannelStatus,
    LiveStatus,
    Program,
    Snapshot,
)


GUIDE_START = datetime(2021, 4, 22, 3, 0, 0, tzinfo=timezone.utc)


class FakeSource:
    """In-memory stand-in for StirrClient."""

    def __init__(self, channels: int = 3, programs_per_channel: int = 2, station: str = "detected-station"):
        self.station = station
        self.programs_per_channel = programs_per_channel
        self.set_lineup(channels)
        self.fail_lineup: Exception | None = None
        self.fail_detect = False
        self.fail_status: set[str] = set()
        self.fail_guide: set[str] = set()
        self.delays: dict[str, float] = {}
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, str, str | None]] = []

    def set_lineup(self, count: int) -> None:
        self.lineup = [
            ChannelDescriptor(
                source_id=f"ch{i}",
                name=f"Channel {i}",
                icon_url=f"https://img.example.com/ch{i}.png",
            )
            for i in range(1, count + 1)
        ]

    async def detect_station(self) -> str:
        self.calls.append(("detect", "", None))
        if self.fail_detect:
            raise SourceUnavailable("https://detect.example.com", "connection refused")
        return self.station

    async def get_lineup(self, station_id=None):
        self.calls.append(("lineup", "", station_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_lineup is not None:
            raise self.fail_lineup
        return list(self.lineup)

    async def get_channel_status(self, channel_key, station_id=None):
        self.calls.append(("status", channel_key, station_id))
        if channel_key in self.delays:
            await asyncio.sleep(self.delays[channel_key])
        if channel_key in self.fail_status:
            raise SourceUnavailable(f"https://api.example.com/status/{channel_key}", "unexpected response HTTP 500")
        slug = channel_key.replace(" ", "-").lower()
        return LiveStatus(
            title=f"{channel_key} Live",
            link=f"https://stream.example.com/{slug}.m3u8",
            logo_url=f"https://img.example.com/{slug}-logo.png",
            is_live=True,
        )

    async def get_channel_programs(self, channel_key, channel_source_id, station_id=None):
        self.calls.append(("guide", channel_key, station_id))
        if channel_key in self.fail_guide:
            raise SourceUnavailable(f"https://api.example.com/program/{channel_key}", "ReadTimeout")
        return [
            Program(
                title=f"{channel_key} Show {j}",
                start=GUIDE_START + timedelta(hours=j),
                stop=GUIDE_START + timedelta(hours=j + 1),
                channel_source_id=channel_source_id,
                description=f"Episode {j} of the show",
                categories=("News", "Local"),
                title_lang="en",
            )
            for j in range(self.programs_per_channel)
        ]


def build_snapshot(channels: int = 3, programs_per_channel: int = 2, station_id: str = "test-station") -> Snapshot:
    """Construct a snapshot directly, without the builder."""
    statuses = []
    for number in range(1, channels + 1):
        source_id = f"ch{number}"
        programs = tuple(
            Program(
                title=f"Show {number}.{j}",
                start=GUIDE_START + timedelta(hours=j),
                stop=GUIDE_START + timedelta(hours=j + 1),
                channel_source_id=source_id,
                description=f"Description {number}.{j}",
                categories=("News",),
            )
            for j in range(programs_per_channel)
        )
        statuses.append(ChannelStatus(
            id=f"stirr-{source_id}",
            source_id=source_id,
            number=number,
            name=f"Channel {number}",
            title=f"Channel {number} Live",
            link=f"https://stream.example.com/{source_id}.m3u8",
            logo_url=f"https://img.example.com/{source_id}.png",
            programs=programs,
        ))
    return Snapshot(
        station_id=station_id,
        channels=tuple(statuses),
        program_count=channels * programs_per_channel,
        last_updated=datetime(2021, 4, 22, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def settings():
    """Settings isolated from the environment and .env files."""
    return Settings(
        _env_file=None,
        stirr_station_id="test-station",
        request_max_retries=3,
        request_backoff_initial_sec=0,
        request_timeout_sec=5.0,
        station_detection_url="https://detect.example.com/stationAutoSelection",
        api_base_url="https://api.example.com/api/rest/v3",
    )


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def make_snapshot():
    return build_snapshot


@pytest.fixture
def sample_lineup_json():
    return {
        "channel": [
            {
                "display-name": "WJLA",
                "icon": {"src": "https://img.example.com/wjla.png"},
                "id": "1001",
                "categories": [{"value": "Local"}],
            },
            {
                "display-name": "STIRR City",
                "icon": {"src": "https://img.example.com/city.png"},
                "id": "1002",
            },
        ]
    }


@pytest.fixture
def sample_status_json():
    return {
        "rss": {
            "xmlns:sinclair": "http://www.sinclairstoryline.com",
            "channel": {
                "title": "WJLA 24/7",
                "description": "Washington news around the clock",
                "id": "wjla",
                "item": {
                    "link": "https://stream.example.com/wjla/master.m3u8",
                    "category": "news",
                    "media:content": {
                        "sinclair:logo": {
                            "url": "https://img.example.com/wjla-logo.png",
                            "width": "340",
                            "height": "255",
                            "text": "",
                        },
                        "sinclair:isLive": "true",
                        "sinclair:isLiveProgram": "false",
                        "url": "https://stream.example.com/wjla/master.m3u8",
                    },
                },
            },
            "version": "2.0",
        }
    }


@pytest.fixture
def sample_guide_json():
    return {
        "channel": [{"display-name": "WJLA", "id": "1001"}],
        "programme": [
            {
                "title": {"value": "Good Morning Washington", "lang": "en"},
                "desc": {"value": "Morning news", "lang": "en"},
                "category": [{"value": "News", "lang": "en"}],
                "start": "20210422030000",
                "stop": "20210422040000",
                "channel": "1001",
                "sinclair:isLiveProgram": "true",
            },
            {
                "title": {"value": "Weather Update"},
                "start": "20210422040000",
                "stop": "20210422043000",
                "channel": "1001",
            },
        ],
    }

"""
Tests for the snapshot builder.
"""
import pytest

from stirr_service.errors import DecodeFailure, InconsistentLineup, SourceUnavailable
from stirr_service.services.snapshot_builder import SnapshotBuilder


class TestBuildSnapshot:

    @pytest.mark.asyncio
    async def test_three_channel_lineup(self, fake_source):
        builder = SnapshotBuilder(fake_source)

        snapshot = await builder.build("test-station")

        assert snapshot.station_id == "test-station"
        assert snapshot.channel_count == 3
        assert [c.number for c in snapshot.channels] == [1, 2, 3]
        assert [c.id for c in snapshot.channels] == ["stirr-ch1", "stirr-ch2", "stirr-ch3"]
        assert snapshot.program_count == 6
        assert snapshot.last_updated.tzinfo is not None

    @pytest.mark.asyncio
    async def test_channel_carries_lineup_and_status_fields(self, fake_source):
        snapshot = await SnapshotBuilder(fake_source).build("test-station")

        first = snapshot.channels[0]
        assert first.source_id == "ch1"
        assert first.name == "Channel 1"
        assert first.title == "Channel 1 Live"
        assert first.link == "https://stream.example.com/channel-1.m3u8"
        assert first.icon_url == "https://img.example.com/ch1.png"
        assert first.is_live is True

    @pytest.mark.asyncio
    async def test_programs_reference_their_channel(self, fake_source):
        snapshot = await SnapshotBuilder(fake_source).build("test-station")

        for channel in snapshot.channels:
            assert channel.programs
            assert all(p.channel_source_id == channel.source_id for p in channel.programs)
        source_ids = {c.source_id for c in snapshot.channels}
        assert all(p.channel_source_id in source_ids for _, p in snapshot.iter_programs())

    @pytest.mark.asyncio
    async def test_empty_lineup(self, fake_source):
        fake_source.set_lineup(0)

        snapshot = await SnapshotBuilder(fake_source).build("test-station")

        assert snapshot.channels == ()
        assert snapshot.program_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [1, 7, 25])
    async def test_numbering_is_dense_for_any_size(self, fake_source, count):
        fake_source.set_lineup(count)

        snapshot = await SnapshotBuilder(fake_source, max_concurrency=4).build("test-station")

        assert [c.number for c in snapshot.channels] == list(range(1, count + 1))
        assert [c.source_id for c in snapshot.channels] == [f"ch{i}" for i in range(1, count + 1)]

    @pytest.mark.asyncio
    async def test_concurrent_fetches_keep_lineup_order(self, fake_source):
        # Earlier channels answer last
        fake_source.delays = {"Channel 1": 0.03, "Channel 2": 0.02, "Channel 3": 0.0}

        snapshot = await SnapshotBuilder(fake_source, max_concurrency=3).build("test-station")

        assert [c.source_id for c in snapshot.channels] == ["ch1", "ch2", "ch3"]
        assert [c.number for c in snapshot.channels] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_call_pattern(self, fake_source):
        await SnapshotBuilder(fake_source).build("test-station")

        kinds = [call[0] for call in fake_source.calls]
        assert kinds.count("lineup") == 1
        assert kinds.count("status") == 3
        assert kinds.count("guide") == 3
        # Every call is scoped to the station
        assert {call[2] for call in fake_source.calls} == {"test-station"}

    @pytest.mark.asyncio
    async def test_custom_prefix(self, fake_source):
        snapshot = await SnapshotBuilder(fake_source, channel_id_prefix="demo").build("test-station")

        assert snapshot.channels[0].id == "demo-ch1"


class TestBuildFailures:

    @pytest.mark.asyncio
    async def test_lineup_failure_propagates(self, fake_source):
        fake_source.fail_lineup = SourceUnavailable("https://api.example.com/channels", "ConnectError")

        with pytest.raises(SourceUnavailable):
            await SnapshotBuilder(fake_source).build("test-station")

    @pytest.mark.asyncio
    async def test_lineup_decode_failure_propagates(self, fake_source):
        fake_source.fail_lineup = DecodeFailure("https://api.example.com/channels", "bad payload")

        with pytest.raises(DecodeFailure):
            await SnapshotBuilder(fake_source).build("test-station")

    @pytest.mark.asyncio
    async def test_status_failure_fails_whole_build(self, fake_source):
        fake_source.set_lineup(2)
        fake_source.fail_status = {"Channel 2"}

        with pytest.raises(InconsistentLineup) as exc_info:
            await SnapshotBuilder(fake_source).build("test-station")

        assert exc_info.value.channel == "Channel 2"
        assert exc_info.value.stage == "status"
        assert isinstance(exc_info.value.cause, SourceUnavailable)

    @pytest.mark.asyncio
    async def test_guide_failure_fails_whole_build(self, fake_source):
        fake_source.fail_guide = {"Channel 1"}

        with pytest.raises(InconsistentLineup) as exc_info:
            await SnapshotBuilder(fake_source, max_concurrency=3).build("test-station")

        assert exc_info.value.stage == "guide"

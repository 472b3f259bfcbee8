"""
Tests for the snapshot cache.
"""
import threading

import pytest

from stirr_service.services.snapshot_cache import SnapshotCache


class TestSnapshotCache:

    def test_starts_empty(self):
        cache = SnapshotCache()

        assert cache.read_snapshot() is None
        assert cache.is_populated is False
        assert cache.generation == 0

    def test_replace_installs_snapshot(self, make_snapshot):
        cache = SnapshotCache()
        snapshot = make_snapshot()

        cache.replace(snapshot)

        assert cache.read_snapshot() is snapshot
        assert cache.is_populated is True
        assert cache.generation == 1

    def test_replace_supersedes_previous(self, make_snapshot):
        cache = SnapshotCache()
        old = make_snapshot(channels=2)
        new = make_snapshot(channels=4)
        cache.replace(old)

        held_by_reader = cache.read_snapshot()
        cache.replace(new)

        assert cache.read_snapshot() is new
        # A reader holding the old snapshot keeps a complete, unchanged value
        assert held_by_reader is old
        assert held_by_reader.channel_count == 2

    def test_replace_rejects_non_snapshots(self):
        cache = SnapshotCache()

        with pytest.raises(TypeError):
            cache.replace({"channels": []})

        assert cache.read_snapshot() is None

    def test_concurrent_reads_never_see_a_mix(self, make_snapshot):
        cache = SnapshotCache()
        small = make_snapshot(channels=2, programs_per_channel=2)
        large = make_snapshot(channels=5, programs_per_channel=3)
        cache.replace(small)

        stop = threading.Event()
        observed: list[tuple[int, int, int]] = []
        errors: list[str] = []

        def reader():
            while not stop.is_set():
                snapshot = cache.read_snapshot()
                programs = sum(len(c.programs) for c in snapshot.channels)
                observed.append((snapshot.channel_count, snapshot.program_count, programs))
                if programs != snapshot.program_count:
                    errors.append(f"torn read: {snapshot.program_count} vs {programs}")

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()

        for i in range(500):
            cache.replace(large if i % 2 == 0 else small)

        stop.set()
        for thread in readers:
            thread.join()

        assert not errors
        assert observed
        assert set((c, p) for c, p, _ in observed) <= {(2, 4), (5, 15)}

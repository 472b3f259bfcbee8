"""
Snapshot Cache

Holds the current Snapshot for the process.
"""
import logging
import threading

from stirr_service.models import Snapshot


logger = logging.getLogger(__name__)


class SnapshotCache:
    """
    Guarded holder of the current snapshot.

    Snapshots are immutable, so the lock only protects the reference itself:
    readers take it long enough to copy the reference and render outside it,
    and replace() swaps the reference in one step. Threadpool renderers and
    event-loop handlers share it; neither critical section contains an await.
    """

    def __init__(self):
        """Start empty; the first successful refresh populates the cache."""
        self._lock = threading.Lock()
        self._snapshot: Snapshot | None = None
        self._generation = 0

    def read_snapshot(self) -> Snapshot | None:
        """
        Return the current snapshot.

        Returns:
            The current Snapshot, or None before the first successful refresh
        """
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: Snapshot) -> None:
        """
        Install a fully built snapshot as current.

        Args:
            snapshot: Complete snapshot produced by the builder
        """
        if not isinstance(snapshot, Snapshot):
            raise TypeError(f"Expected Snapshot, got {type(snapshot).__name__}")

        with self._lock:
            previous = self._snapshot
            self._snapshot = snapshot
            self._generation += 1
            generation = self._generation

        logger.info(
            "Cache replaced (generation %s): %s channels, %s programs (previous: %s)",
            generation,
            snapshot.channel_count,
            snapshot.program_count,
            f"{previous.channel_count} channels" if previous else "empty",
        )

    @property
    def is_populated(self) -> bool:
        with self._lock:
            return self._snapshot is not None

    @property
    def generation(self) -> int:
        """Number of snapshots installed since startup."""
        with self._lock:
            return self._generation

"""In-memory storage adapter for per-minute counter logs."""

import threading
import time
from collections.abc import Callable

from rpcstats.core.models import StoreKey, StoreLine


class InMemoryStore:
    """In-memory implementation of StorePort.

    Keeps every log as a list of encoded lines keyed by its path segments,
    with the time of its last append. Suitable for testing and embedding
    where persistence is not required.

    Args:
        clock: Source of modification times. Defaults to time.time.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._logs: dict[tuple[str, ...], list[str]] = {}
        self._modified: dict[tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def append(self, key: StoreKey, line: StoreLine) -> None:
        """Append one sample to the log addressed by key."""
        segments = key.segments
        with self._lock:
            self._logs.setdefault(segments, []).append(line.encode())
            self._modified[segments] = self._clock()

    def append_raw(self, segments: tuple[str, ...], text: str) -> None:
        """Append raw text to a log, bypassing line encoding."""
        with self._lock:
            self._logs.setdefault(segments, []).append(text)
            self._modified[segments] = self._clock()

    def children(self, *segments: str) -> list[str]:
        """List the names directly below a prefix, sorted."""
        depth = len(segments)
        with self._lock:
            names = {
                path[depth]
                for path in self._logs
                if len(path) > depth and path[:depth] == segments
            }
        return sorted(names)

    def modified_time(self, *segments: str) -> float:
        """Return the time of the last append to a log, 0.0 when missing."""
        with self._lock:
            return self._modified.get(segments, 0.0)

    def read(self, *segments: str) -> list[StoreLine]:
        """Read the well-formed samples of a log."""
        with self._lock:
            text = "".join(self._logs.get(segments, []))
        lines = (StoreLine.parse(raw) for raw in text.splitlines(keepends=True))
        return [line for line in lines if line is not None]

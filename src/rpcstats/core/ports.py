"""Port interfaces for storage and sink adapters.

These protocols define the contracts that adapters must implement.
The core domain depends only on these interfaces, not concrete implementations.
"""

from typing import Protocol, runtime_checkable

from rpcstats.core.models import AggregatedSeries, Record, StoreKey, StoreLine


@runtime_checkable
class StorePort(Protocol):
    """Port for the hierarchical per-minute counter store.

    Every log is addressed by path segments
    (day, service, method, role, peer, file name) and is append-only.
    Examples: FileSystemStore, InMemoryStore.
    """

    def append(self, key: StoreKey, line: StoreLine) -> None:
        """Append one sample to the log addressed by key."""
        ...

    def children(self, *segments: str) -> list[str]:
        """List the names directly below a path prefix.

        Returns:
            Names sorted lexicographically, empty when the prefix is missing.
        """
        ...

    def modified_time(self, *segments: str) -> float:
        """Return the last modification time of a log, 0.0 when missing."""
        ...

    def read(self, *segments: str) -> list[StoreLine]:
        """Read every well-formed sample of a log in append order.

        Malformed or partially written lines are skipped. A missing log
        reads as empty.
        """
        ...


@runtime_checkable
class PersistenceSinkPort(Protocol):
    """Port for best-effort forwarding of records to an external store."""

    def send(self, record: Record) -> bool:
        """Forward a record.

        Returns:
            True when the external store accepted it. Never raises.
        """
        ...


@runtime_checkable
class ChartSinkPort(Protocol):
    """Port for rendering aggregated series into artifacts."""

    def render(self, series: AggregatedSeries, path: str) -> None:
        """Render a series to the artifact at path."""
        ...

    def modified_time(self, path: str) -> float:
        """Return when the artifact at path was last rendered, 0.0 if never."""
        ...

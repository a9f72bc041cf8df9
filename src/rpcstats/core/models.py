"""Core domain models for RPC call statistics."""

from dataclasses import dataclass, field
from enum import StrEnum

# Legacy protocol tag that some reporters use to request a writer shutdown
POISON_PROTOCOL = "poison"


class Role(StrEnum):
    """Side of the call pair that reported a statistics record."""

    CONSUMER = "consumer"
    PROVIDER = "provider"


class MetricType(StrEnum):
    """Counters carried by every statistics record, in persistence order."""

    SUCCESS = "success"
    FAILURE = "failure"
    ELAPSED = "elapsed"
    CONCURRENT = "concurrent"
    MAX_ELAPSED = "max_elapsed"
    MAX_CONCURRENT = "max_concurrent"


# Parameter keys used by reporters
INTERFACE_KEY = "interface"
METHOD_KEY = "method"
TIMESTAMP_KEY = "timestamp"


@dataclass(frozen=True)
class Record:
    """One reported statistics event for an RPC call pair.

    Attributes:
        protocol: Protocol tag of the report (e.g., "count").
        host: Address of the reporting side.
        parameters: String parameters of the report. Identifies the call
            (interface, method), the remote peer (provider or consumer) and
            carries one value per MetricType.
        port: Port of the reporting side.
        path: Service path, used when no interface parameter is present.
    """

    protocol: str
    host: str
    parameters: dict[str, str] = field(default_factory=dict)
    port: int = 0
    path: str = ""

    @property
    def service(self) -> str:
        return self.parameters.get(INTERFACE_KEY) or self.path

    @property
    def method(self) -> str | None:
        return self.parameters.get(METHOD_KEY)

    @property
    def timestamp(self) -> str | None:
        return self.parameters.get(TIMESTAMP_KEY)

    @property
    def is_shutdown(self) -> bool:
        """True when the record uses the legacy poison protocol tag."""
        return self.protocol == POISON_PROTOCOL


class Shutdown:
    """Marker queued to wake the writer and end its loop.

    Queue items are either a Record or this marker, so a real record can
    never be mistaken for the shutdown signal.
    """

    _instance: "Shutdown | None" = None

    def __new__(cls) -> "Shutdown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SHUTDOWN"


SHUTDOWN = Shutdown()

QueueItem = Record | Shutdown


@dataclass(frozen=True)
class StoreKey:
    """Address of one append-only counter log.

    Attributes:
        day: Day of the samples as yyyyMMdd.
        service: Service interface name.
        method: Method name.
        role: Role of the reporting side.
        peer: Host of the remote side, without port.
        metric: Counter kept in the log.
    """

    day: str
    service: str
    method: str
    role: Role
    peer: str
    metric: MetricType

    @property
    def filename(self) -> str:
        return f"{self.role}.{self.metric}"

    @property
    def segments(self) -> tuple[str, ...]:
        """Path segments from the store root down to the log file."""
        return (
            self.day,
            self.service,
            self.method,
            str(self.role),
            self.peer,
            self.filename,
        )


@dataclass(frozen=True)
class StoreLine:
    """One persisted sample: minute of day (HHmm) and counter value."""

    minute: str
    value: int

    def encode(self) -> str:
        """Encode as a single text line, newline terminated."""
        return f"{self.minute} {self.value}\n"

    @classmethod
    def parse(cls, line: str) -> "StoreLine | None":
        """Parse a persisted line.

        Returns:
            The sample, or None for blank, partial or otherwise malformed
            lines (e.g., a trailing line still being appended).
        """
        if not line.endswith("\n"):
            return None
        minute, sep, raw_value = line.strip().partition(" ")
        if not sep or not minute:
            return None
        try:
            value = int(raw_value.strip())
        except ValueError:
            return None
        return cls(minute=minute, value=value)


@dataclass(frozen=True)
class Summary:
    """Summary statistics of an aggregated series.

    Attributes:
        max: Largest value.
        min: Smallest value, or None when not meaningful.
        avg: Average value.
        sum: Total, or None when not meaningful.
    """

    max: float
    min: float | None
    avg: float
    sum: float | None

    def as_tuple(self) -> tuple[float, float, float, float]:
        """Return (max, min, avg, sum) with unknown parts as -1."""
        return (
            self.max,
            -1 if self.min is None else self.min,
            self.avg,
            -1 if self.sum is None else self.sum,
        )


@dataclass(frozen=True)
class AggregatedSeries:
    """Per-minute series for one (service, method, day) and family.

    Attributes:
        family: Underlying counter (success or elapsed).
        unit: Unit of the derived values (t/s or ms/t).
        service: Service interface name.
        method: Method name.
        day: Day as yyyyMMdd.
        points: Minute (HHmm) to (consumer, provider) values, minute order.
        summary: Summary statistics of the series.
    """

    family: MetricType
    unit: str
    service: str
    method: str
    day: str
    points: dict[str, tuple[float, float]]
    summary: Summary

    @property
    def label(self) -> str:
        return str(self.family)

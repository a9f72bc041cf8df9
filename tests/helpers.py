"""Fakes and builders shared by unit, integration and BDD tests."""

import itertools
import time
from collections.abc import Callable

from rpcstats.core.models import AggregatedSeries, Record

SERVICE = "com.example.Bar"
METHOD = "foo"
# 2024-03-05 10:42:17
TIMESTAMP = "20240305104217"
DAY = "20240305"
MINUTE = "1042"


class FakeClock:
    """Clock advancing by one second on every read."""

    def __init__(self, start: float = 1_000.0) -> None:
        self._ticks = itertools.count(start)

    def __call__(self) -> float:
        return float(next(self._ticks))


class RecordingChartSink:
    """ChartSinkPort fake remembering what was rendered and when."""

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self.rendered: list[tuple[AggregatedSeries, str]] = []
        self._times: dict[str, float] = {}

    def render(self, series: AggregatedSeries, path: str) -> None:
        self.rendered.append((series, path))
        self._times[path] = self._clock()

    def modified_time(self, path: str) -> float:
        return self._times.get(path, 0.0)

    def paths(self) -> list[str]:
        return [path for _, path in self.rendered]


class RecordingPersistenceSink:
    """PersistenceSinkPort fake collecting forwarded records."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.sent: list[Record] = []

    def send(self, record: Record) -> bool:
        self.sent.append(record)
        return self.result


def make_record(
    role_param: str = "provider",
    peer: str = "10.0.0.1:20880",
    host: str = "10.0.0.2",
    service: str = SERVICE,
    method: str = METHOD,
    timestamp: str | None = TIMESTAMP,
    **metrics: int | str,
) -> Record:
    """Build a statistics record.

    role_param "provider" makes a consumer-reported record naming its
    provider; "consumer" makes a provider-reported one.
    """
    parameters = {"interface": service, "method": method, role_param: peer}
    if timestamp is not None:
        parameters["timestamp"] = timestamp
    parameters.update({name: str(value) for name, value in metrics.items()})
    return Record(protocol="count", host=host, parameters=parameters)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll predicate until it holds or timeout seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()

"""Rollup of per-peer counters into per-method series.

The aggregator walks the store day by day, service by service and method by
method. Below each method, every leaf two levels down holds the counter logs
of one peer. Logs of the same family (success or elapsed) are merged per
minute into (consumer, provider) buckets and summarised, then handed to the
chart sink. A family is only recomputed when one of its logs changed after
its artifact was last rendered.
"""

import logging
import os
from dataclasses import dataclass, field

from rpcstats.core.models import (
    AggregatedSeries,
    MetricType,
    Role,
    StoreLine,
    Summary,
)
from rpcstats.core.ports import ChartSinkPort, StorePort

logger = logging.getLogger(__name__)

# Width of a bucket in seconds
BUCKET_SECONDS = 60

RATE_UNIT = "t/s"
LATENCY_UNIT = "ms/t"

# Bucket index per role
_ROLES = (Role.CONSUMER, Role.PROVIDER)

Leaf = tuple[str, ...]


@dataclass
class _Rollup:
    """Per-minute buckets and running summary for one family."""

    buckets: dict[str, list[float]] = field(default_factory=dict)
    max: float = 0.0
    min: float | None = None
    avg: float = 0.0
    sum: float = 0.0

    def add(self, lines: list[StoreLine], index: int) -> None:
        """Merge the samples of one log into the buckets.

        Max, sum and the running average only follow consumer-side logs
        (index 0). The average blends each log's mean into the accumulator,
        so the result depends on traversal order.
        """
        total = 0
        count = 0
        for line in lines:
            bucket = self.buckets.setdefault(line.minute, [0.0, 0.0])
            bucket[index] += line.value
            value = bucket[index]
            if index == 0:
                self.max = max(self.max, value)
            self.min = value if self.min is None else min(self.min, value)
            total += line.value
            count += 1
        if index == 0 and count:
            self.sum += total
            self.avg = (self.avg + total / count) / 2


class Aggregator:
    """Recompute per-method rate and latency series from the store.

    Args:
        store: Store holding the raw counter logs.
        chart_sink: Sink rendering the series and reporting render times.
        charts_directory: Root under which artifacts are addressed.
    """

    def __init__(
        self,
        store: StorePort,
        chart_sink: ChartSinkPort,
        charts_directory: str,
    ) -> None:
        self._store = store
        self._chart_sink = chart_sink
        self._charts_directory = charts_directory

    def chart_path(
        self, day: str, service: str, method: str, family: MetricType
    ) -> str:
        """Return the artifact path of a family's chart."""
        return os.path.join(
            self._charts_directory, day, service, method, f"{family}.png"
        )

    def run(self) -> list[AggregatedSeries]:
        """Run one rollup pass over the whole store.

        A failure while aggregating one method is logged and the pass moves
        on to the next method.

        Returns:
            The series recomputed during this pass.
        """
        produced: list[AggregatedSeries] = []
        for day in self._store.children():
            for service in self._store.children(day):
                for method in self._store.children(day, service):
                    try:
                        produced.extend(self.aggregate_method(day, service, method))
                    except Exception:
                        logger.exception(
                            "Failed to aggregate %s.%s on %s", service, method, day
                        )
        return produced

    def aggregate_method(
        self, day: str, service: str, method: str
    ) -> list[AggregatedSeries]:
        """Recompute the stale families of one method."""
        leaves = self._leaves(day, service, method)
        success_path = self.chart_path(day, service, method, MetricType.SUCCESS)
        elapsed_path = self.chart_path(day, service, method, MetricType.ELAPSED)
        success_changed = self._changed(leaves, MetricType.SUCCESS, success_path)
        elapsed_changed = self._changed(leaves, MetricType.ELAPSED, elapsed_path)
        if not success_changed and not elapsed_changed:
            logger.debug("No changes for %s.%s on %s", service, method, day)
            return []

        success = _Rollup()
        elapsed = _Rollup()
        elapsed_max = 0.0
        for leaf in leaves:
            self._read_family(leaf, MetricType.SUCCESS, success)
            self._read_family(leaf, MetricType.ELAPSED, elapsed)
            for role in _ROLES:
                for line in self._store.read(*leaf, f"{role}.{MetricType.MAX_ELAPSED}"):
                    elapsed_max = max(elapsed_max, line.value)

        produced: list[AggregatedSeries] = []
        # Latency needs the raw success counts, before the rate conversion
        if elapsed_changed:
            series = AggregatedSeries(
                family=MetricType.ELAPSED,
                unit=LATENCY_UNIT,
                service=service,
                method=method,
                day=day,
                points=latency_points(elapsed.buckets, success.buckets),
                summary=Summary(
                    max=elapsed_max,
                    min=None,
                    avg=elapsed.sum / success.sum if success.sum else 0.0,
                    sum=None,
                ),
            )
            self._emit(series, elapsed_path)
            produced.append(series)
        if success_changed:
            series = AggregatedSeries(
                family=MetricType.SUCCESS,
                unit=RATE_UNIT,
                service=service,
                method=method,
                day=day,
                points=rate_points(success.buckets),
                summary=Summary(
                    max=success.max / BUCKET_SECONDS,
                    min=(success.min or 0.0) / BUCKET_SECONDS,
                    avg=success.avg / BUCKET_SECONDS,
                    sum=success.sum,
                ),
            )
            self._emit(series, success_path)
            produced.append(series)
        return produced

    def _leaves(self, day: str, service: str, method: str) -> list[Leaf]:
        """Return the peer directories below a method, in sorted order."""
        return [
            (day, service, method, group, peer)
            for group in self._store.children(day, service, method)
            for peer in self._store.children(day, service, method, group)
        ]

    def _changed(self, leaves: list[Leaf], family: MetricType, artifact: str) -> bool:
        rendered = self._chart_sink.modified_time(artifact)
        return any(
            self._store.modified_time(*leaf, f"{role}.{family}") > rendered
            for leaf in leaves
            for role in _ROLES
        )

    def _read_family(self, leaf: Leaf, family: MetricType, rollup: _Rollup) -> None:
        for index, role in enumerate(_ROLES):
            lines = self._store.read(*leaf, f"{role}.{family}")
            if lines:
                rollup.add(lines, index)

    def _emit(self, series: AggregatedSeries, path: str) -> None:
        logger.info(
            "Rendering %s chart for %s.%s on %s",
            series.label,
            series.service,
            series.method,
            series.day,
        )
        try:
            self._chart_sink.render(series, path)
        except Exception:
            logger.exception("Failed to render chart %s", path)


def rate_points(buckets: dict[str, list[float]]) -> dict[str, tuple[float, float]]:
    """Convert per-minute counts into per-second rates."""
    return {
        minute: (values[0] / BUCKET_SECONDS, values[1] / BUCKET_SECONDS)
        for minute, values in sorted(buckets.items())
    }


def latency_points(
    elapsed: dict[str, list[float]],
    success: dict[str, list[float]],
) -> dict[str, tuple[float, float]]:
    """Divide elapsed time by call count per minute and role.

    Buckets without successful calls map to 0.
    """
    points: dict[str, tuple[float, float]] = {}
    for minute, values in sorted(elapsed.items()):
        calls = success.get(minute, [0.0, 0.0])
        points[minute] = (
            values[0] / calls[0] if calls[0] else 0.0,
            values[1] / calls[1] if calls[1] else 0.0,
        )
    return points

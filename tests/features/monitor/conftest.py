"""BDD step definitions for the statistics monitor feature."""

from dataclasses import dataclass, field

import pytest
from pytest_bdd import given, parsers, then, when

from rpcstats.adapters.storage import InMemoryStore
from rpcstats.core.config import MonitorConfig
from rpcstats.core.models import AggregatedSeries, MetricType, Record
from rpcstats.runtime.monitor import MonitorService
from tests.helpers import (
    FakeClock,
    RecordingChartSink,
    RecordingPersistenceSink,
    make_record,
    wait_until,
)


@dataclass
class MonitorScenarioContext:
    """State shared between the steps of one scenario."""

    store: InMemoryStore | None = None
    chart_sink: RecordingChartSink | None = None
    monitor: MonitorService | None = None
    accepted: list[bool] = field(default_factory=list)
    produced: list[AggregatedSeries] = field(default_factory=list)


@pytest.fixture
def ctx() -> MonitorScenarioContext:
    """Fresh scenario context for each test."""
    return MonitorScenarioContext()


def _report(
    role_param: str, peer: str, target: str, timestamp: str, **metrics: int
) -> Record:
    service, _, method = target.rpartition(".")
    return make_record(
        role_param, peer, service=service, method=method, timestamp=timestamp, **metrics
    )


def _chart(ctx: MonitorScenarioContext, family: str, target: str, day: str):
    service, _, method = target.rpartition(".")
    matches = [
        series
        for series, _ in ctx.chart_sink.rendered
        if series.family == MetricType(family)
        and (series.service, series.method, series.day) == (service, method, day)
    ]
    assert matches, f"no {family} chart rendered for {target} on {day}"
    return matches[-1]


# === Background Steps ===
@given(parsers.parse("an in-memory monitor with queue capacity {capacity:d}"))
def step_monitor(ctx: MonitorScenarioContext, capacity: int) -> None:
    clock = FakeClock()
    ctx.store = InMemoryStore(clock=clock)
    ctx.chart_sink = RecordingChartSink(clock)
    ctx.monitor = MonitorService(
        MonitorConfig(queue_capacity=capacity),
        store=ctx.store,
        persistence_sink=RecordingPersistenceSink(),
        chart_sink=ctx.chart_sink,
    )


# === Collection Steps ===
@when(
    parsers.parse(
        'a consumer reports {count:d} successful calls to "{target}" at "{timestamp}"'
    )
)
def when_consumer_reports(
    ctx: MonitorScenarioContext, count: int, target: str, timestamp: str
) -> None:
    record = _report("provider", "10.0.0.1:20880", target, timestamp, success=count)
    ctx.accepted.append(ctx.monitor.collect(record))


@when(
    parsers.parse(
        'a consumer reports {count:d} successful calls taking {elapsed:d} ms '
        'to "{target}" at "{timestamp}"'
    )
)
def when_consumer_reports_latency(
    ctx: MonitorScenarioContext, count: int, elapsed: int, target: str, timestamp: str
) -> None:
    record = _report(
        "provider", "10.0.0.1:20880", target, timestamp, success=count, elapsed=elapsed
    )
    ctx.accepted.append(ctx.monitor.collect(record))


@when(
    parsers.parse(
        'a provider reports {count:d} successful calls to "{target}" at "{timestamp}"'
    )
)
def when_provider_reports(
    ctx: MonitorScenarioContext, count: int, target: str, timestamp: str
) -> None:
    record = _report("consumer", "10.0.0.2:51000", target, timestamp, success=count)
    ctx.accepted.append(ctx.monitor.collect(record))


@when(parsers.parse("{n:d} reports are collected"))
def when_n_reports(ctx: MonitorScenarioContext, n: int) -> None:
    for value in range(n):
        ctx.accepted.append(ctx.monitor.collect(make_record(success=value)))


# === Processing Steps ===
@when("the statistics are written")
def when_written(ctx: MonitorScenarioContext) -> None:
    queue = ctx.monitor.queue
    while queue.size:
        ctx.monitor.writer.process(queue.take())


@when("the statistics are aggregated")
def when_aggregated(ctx: MonitorScenarioContext) -> None:
    ctx.produced = ctx.monitor.scheduler.run_now()


@when("the monitor is started")
def when_started(ctx: MonitorScenarioContext) -> None:
    ctx.monitor.start()
    assert wait_until(lambda: ctx.monitor.writer.running)


@when("the monitor is closed")
def when_closed(ctx: MonitorScenarioContext) -> None:
    ctx.monitor.close(timeout=2)


# === Assertions ===
@then(
    parsers.parse(
        'the {family} chart of "{target}" on "{day}" has a point at "{minute}" '
        "of {consumer:g} and {provider:g} {unit}"
    )
)
def then_chart_point(
    ctx: MonitorScenarioContext,
    family: str,
    target: str,
    day: str,
    minute: str,
    consumer: float,
    provider: float,
    unit: str,
) -> None:
    series = _chart(ctx, family, target, day)
    assert series.unit == unit
    assert series.points[minute] == pytest.approx((consumer, provider), abs=1e-4)


@then(parsers.parse("{n:d} reports are queued"))
def then_queued(ctx: MonitorScenarioContext, n: int) -> None:
    assert ctx.monitor.queue.size == n
    assert ctx.accepted.count(True) == n


@then(parsers.parse("{n:d} reports are dropped"))
def then_dropped(ctx: MonitorScenarioContext, n: int) -> None:
    assert ctx.monitor.queue.dropped == n
    assert ctx.accepted.count(False) == n


@then(parsers.parse("{n:d} charts have been rendered"))
def then_rendered(ctx: MonitorScenarioContext, n: int) -> None:
    assert len(ctx.chart_sink.rendered) == n
    assert ctx.produced == []


@then("the writer is stopped")
def then_writer_stopped(ctx: MonitorScenarioContext) -> None:
    assert not ctx.monitor.writer.running
    assert ctx.accepted == [False]


@then("no statistics have been written")
def then_nothing_written(ctx: MonitorScenarioContext) -> None:
    assert ctx.monitor.writer.processed == 0
    assert ctx.store.children() == []

"""Shared test fixtures for all test modules."""

from pathlib import Path

import httpx
import pytest

from rpcstats.adapters.storage import FileSystemStore, InMemoryStore
from rpcstats.core.config import MonitorConfig
from rpcstats.runtime.monitor import MonitorService
from tests.helpers import FakeClock, RecordingChartSink, RecordingPersistenceSink


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryStore:
    """In-memory store driven by the shared fake clock."""
    return InMemoryStore(clock=clock)


@pytest.fixture
def chart_sink(clock: FakeClock) -> RecordingChartSink:
    """Chart sink driven by the same clock as memory_store."""
    return RecordingChartSink(clock)


@pytest.fixture
def persistence_sink() -> RecordingPersistenceSink:
    return RecordingPersistenceSink()


@pytest.fixture
def statistics_dir(tmp_path: Path) -> Path:
    """Provide a temporary root for the counter store."""
    return tmp_path / "statistics"


@pytest.fixture
def charts_dir(tmp_path: Path) -> Path:
    """Provide a temporary root for chart artifacts."""
    return tmp_path / "charts"


@pytest.fixture
def file_store(statistics_dir: Path) -> FileSystemStore:
    return FileSystemStore(statistics_dir)


@pytest.fixture
def memory_monitor(
    memory_store: InMemoryStore,
    persistence_sink: RecordingPersistenceSink,
    chart_sink: RecordingChartSink,
) -> MonitorService:
    """Monitor wired to in-memory fakes, not started."""
    config = MonitorConfig(queue_capacity=10, retry_delay_seconds=0.01)
    return MonitorService(
        config,
        store=memory_store,
        persistence_sink=persistence_sink,
        chart_sink=chart_sink,
    )


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_monitor_app(monitor=monitor)
            async with asgi_test_client(app) as client:
                response = await client.get("/statistics/queue")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client

"""Monitor service wiring ingestion, persistence and rollups together."""

import logging
from types import TracebackType

from rpcstats.adapters.charts import MatplotlibChartSink
from rpcstats.adapters.persistence import HttpPersistenceSink, NullPersistenceSink
from rpcstats.adapters.storage import FileSystemStore
from rpcstats.core.aggregation import Aggregator
from rpcstats.core.config import MonitorConfig
from rpcstats.core.ingest import IngestQueue
from rpcstats.core.models import Record
from rpcstats.core.ports import ChartSinkPort, PersistenceSinkPort, StorePort
from rpcstats.runtime.scheduler import AggregationScheduler
from rpcstats.runtime.writer import WriterLoop

logger = logging.getLogger(__name__)


class MonitorService:
    """Collect statistics records and keep their charts up to date.

    Producers call collect() from any thread; it never blocks and never
    raises. A writer thread persists queued records and a scheduler thread
    periodically rolls them up into charts.

    Example:
        ```python
        config = MonitorConfig(statistics_directory="/var/stats")
        with MonitorService.from_config(config) as monitor:
            monitor.collect(record)
        ```
    """

    def __init__(
        self,
        config: MonitorConfig,
        store: StorePort,
        persistence_sink: PersistenceSinkPort,
        chart_sink: ChartSinkPort,
    ) -> None:
        self._config = config
        self._store = store
        self._persistence_sink = persistence_sink
        self._queue = IngestQueue(config.queue_capacity)
        self._aggregator = Aggregator(store, chart_sink, config.charts_directory)
        self._scheduler = AggregationScheduler(
            self._aggregator,
            interval_ms=config.aggregation_interval_ms,
            initial_delay_ms=config.initial_delay_ms,
        )
        self._writer = WriterLoop(
            self._queue,
            store,
            persistence_sink,
            retry_delay_seconds=config.retry_delay_seconds,
            after_write=(
                self._scheduler.run_now if config.aggregate_after_write else None
            ),
        )

    @classmethod
    def from_config(cls, config: MonitorConfig | None = None) -> "MonitorService":
        """Create a service backed by the filesystem, HTTP and PNG adapters."""
        config = config or MonitorConfig()
        persistence_sink: PersistenceSinkPort
        if config.persist_url:
            persistence_sink = HttpPersistenceSink(
                config.persist_url, timeout=config.persist_timeout_seconds
            )
        else:
            logger.warning(
                "No persist URL configured, statistics will not be forwarded"
            )
            persistence_sink = NullPersistenceSink()
        return cls(
            config,
            store=FileSystemStore(config.statistics_directory),
            persistence_sink=persistence_sink,
            chart_sink=MatplotlibChartSink(),
        )

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def queue(self) -> IngestQueue:
        return self._queue

    @property
    def store(self) -> StorePort:
        return self._store

    @property
    def aggregator(self) -> Aggregator:
        return self._aggregator

    @property
    def scheduler(self) -> AggregationScheduler:
        return self._scheduler

    @property
    def writer(self) -> WriterLoop:
        return self._writer

    def start(self) -> None:
        """Start the writer and the rollup scheduler."""
        self._writer.start()
        self._scheduler.start()

    def close(self, timeout: float | None = None) -> None:
        """Stop accepting records and cancel background work.

        Args:
            timeout: If given, wait up to this many seconds for each thread
                and release the persistence sink afterwards.
        """
        try:
            self._writer.stop(timeout)
        except Exception:
            logger.warning("Failed to stop statistics writer", exc_info=True)
        try:
            self._scheduler.stop(timeout)
        except Exception:
            logger.warning("Failed to stop aggregation scheduler", exc_info=True)
        if timeout is not None and not self._writer.running:
            close = getattr(self._persistence_sink, "close", None)
            if close is not None:
                close()

    def collect(self, record: Record) -> bool:
        """Queue a record for persistence without blocking.

        Returns:
            True if queued, False if dropped because the queue is full or
            closed.
        """
        try:
            accepted = self._queue.offer(record)
        except Exception:
            logger.exception("Unexpected error while collecting statistics")
            return False
        if accepted:
            logger.debug("Collected statistics: %s", record)
        else:
            logger.debug("Dropped statistics: %s", record)
        return accepted

    def count(self, record: Record) -> bool:
        """Alias of collect() kept for reporters using the older name."""
        return self.collect(record)

    def lookup(self, query: Record) -> list[Record]:
        """Query collected statistics. Not supported: always empty."""
        return []

    def __enter__(self) -> "MonitorService":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

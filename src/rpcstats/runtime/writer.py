"""Single background writer persisting queued records."""

import logging
import threading
from collections.abc import Callable
from datetime import datetime

from rpcstats.core.ingest import IngestQueue
from rpcstats.core.models import MetricType, Record, Shutdown
from rpcstats.core.ports import PersistenceSinkPort, StorePort
from rpcstats.core.records import place, store_line

logger = logging.getLogger(__name__)


class WriterLoop:
    """Drain the ingestion queue into the store in a daemon thread.

    The writer is the only component appending to the store. Each record is
    forwarded to the persistence sink, then one sample per metric type is
    appended. A failing record, metric or sink call is logged and skipped;
    the loop only ends on shutdown.

    Args:
        queue: Queue to drain.
        store: Store receiving the samples.
        persistence_sink: Best-effort external forwarding.
        retry_delay_seconds: Pause after an unexpected failure in take().
        after_write: Called after every persisted record (e.g., a rollup).
        clock: Source of the current time for records without timestamp.
    """

    def __init__(
        self,
        queue: IngestQueue,
        store: StorePort,
        persistence_sink: PersistenceSinkPort,
        retry_delay_seconds: float = 5.0,
        after_write: Callable[[], object] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._queue = queue
        self._store = store
        self._persistence_sink = persistence_sink
        self._retry_delay = retry_delay_seconds
        self._after_write = after_write
        self._clock = clock
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None
        self._processed = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def processed(self) -> int:
        """Number of records persisted so far."""
        return self._processed

    def start(self) -> None:
        """Start the writer thread. Does nothing if already started."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="rpcstats-writer", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal shutdown and wake the writer.

        Records still queued are not drained.

        Args:
            timeout: If given, wait up to this many seconds for the thread.
        """
        self._stopping.set()
        self._queue.close()
        if timeout is not None and self._thread is not None:
            self._thread.join(timeout)

    def process(self, record: Record) -> None:
        """Forward and persist one record."""
        self._forward(record)
        placement = place(record, self._clock())
        for metric in MetricType:
            try:
                key, line = store_line(record, placement, metric)
                self._store.append(key, line)
            except Exception:
                logger.exception("Failed to append %s statistics of %s", metric, record)
        self._processed += 1
        if self._after_write is not None:
            self._after_write()

    def _forward(self, record: Record) -> None:
        try:
            self._persistence_sink.send(record)
        except Exception:
            logger.exception("Unexpected error while persisting statistics")

    def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                item = self._queue.take()
            except Exception:
                logger.exception(
                    "Unexpected error while taking statistics from the queue"
                )
                if self._stopping.wait(self._retry_delay):
                    break
                continue
            if item is None:
                continue
            if isinstance(item, Shutdown):
                logger.info("Statistics writer shutting down")
                break
            if item.is_shutdown:
                # Forwarded like any other record before stopping
                self._forward(item)
                logger.info("Statistics writer shutting down")
                break
            logger.debug("Writing statistics %s", item)
            try:
                self.process(item)
            except Exception:
                logger.exception("Unexpected error while writing statistics %s", item)

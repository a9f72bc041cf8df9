"""Background scheduling of rollup passes."""

import logging
import threading

from rpcstats.core.aggregation import Aggregator
from rpcstats.core.models import AggregatedSeries

logger = logging.getLogger(__name__)


class AggregationScheduler:
    """Run the aggregator on a fixed delay in a daemon thread.

    The first pass starts after the initial delay; each following pass starts
    one interval after the previous pass finished. Scheduled passes and
    passes requested through run_now() never overlap.

    Args:
        aggregator: Aggregator to run.
        interval_ms: Delay between the end of a pass and the next one.
        initial_delay_ms: Delay before the first pass.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        interval_ms: int,
        initial_delay_ms: int = 1,
    ) -> None:
        self._aggregator = aggregator
        self._interval = interval_ms / 1000
        self._initial_delay = initial_delay_ms / 1000
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None
        self._passes = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def passes(self) -> int:
        """Number of completed passes."""
        return self._passes

    def start(self) -> None:
        """Start the scheduling thread. Does nothing if already started."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="rpcstats-aggregation", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Cancel future passes.

        Args:
            timeout: If given, wait up to this many seconds for the thread.
        """
        self._stopped.set()
        if timeout is not None and self._thread is not None:
            self._thread.join(timeout)

    def run_now(self) -> list[AggregatedSeries]:
        """Run one pass synchronously, waiting for any pass in progress."""
        with self._lock:
            try:
                return self._aggregator.run()
            except Exception:
                logger.exception("Unexpected error while aggregating statistics")
                return []
            finally:
                self._passes += 1

    def _run(self) -> None:
        if self._stopped.wait(self._initial_delay):
            return
        while True:
            self.run_now()
            if self._stopped.wait(self._interval):
                return

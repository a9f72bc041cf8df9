"""Background runtime: writer thread, rollup scheduler and monitor service."""

from rpcstats.runtime.monitor import MonitorService
from rpcstats.runtime.scheduler import AggregationScheduler
from rpcstats.runtime.writer import WriterLoop

__all__ = [
    "AggregationScheduler",
    "MonitorService",
    "WriterLoop",
]

"""Ingestion, per-minute persistence and chart rollups for RPC call statistics."""

from rpcstats.adapters.storage import FileSystemStore, InMemoryStore
from rpcstats.core.aggregation import Aggregator
from rpcstats.core.config import MonitorConfig
from rpcstats.core.ingest import IngestQueue
from rpcstats.core.models import (
    SHUTDOWN,
    AggregatedSeries,
    MetricType,
    Record,
    Role,
    StoreKey,
    StoreLine,
    Summary,
)
from rpcstats.core.records import parse_url
from rpcstats.runtime import AggregationScheduler, MonitorService, WriterLoop

__all__ = [
    "SHUTDOWN",
    "AggregatedSeries",
    "AggregationScheduler",
    "Aggregator",
    "FileSystemStore",
    "InMemoryStore",
    "IngestQueue",
    "MetricType",
    "MonitorConfig",
    "MonitorService",
    "Record",
    "Role",
    "StoreKey",
    "StoreLine",
    "Summary",
    "WriterLoop",
    "parse_url",
]

"""Monitor configuration."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

_ENV_PREFIX = "RPCSTATS_"

# Property names understood by from_properties, mapped to config fields
_PROPERTY_NAMES = {
    "dubbo.monitor.queue": "queue_capacity",
    "dubbo.monitor.draw-interval": "aggregation_interval_ms",
    "dubbo.monitor.draw-after-write": "aggregate_after_write",
    "dubbo.statistics.directory": "statistics_directory",
    "dubbo.charts.directory": "charts_directory",
    "statistics-persist-url": "persist_url",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {name}: {raw!r}")


def _coerce(name: str, annotation: Any, raw: str) -> Any:
    """Convert a raw string option to the type of a config field."""
    if annotation is bool or annotation == "bool":
        return _parse_bool(name, raw)
    if annotation is int or annotation == "int":
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"Invalid integer for {name}: {raw!r}") from None
    if annotation is float or annotation == "float":
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"Invalid number for {name}: {raw!r}") from None
    if "None" in str(annotation):
        # Optional string: blank means unset
        return raw.strip() or None
    return raw


@dataclass(frozen=True)
class MonitorConfig:
    """Immutable monitor configuration passed to every component.

    Attributes:
        queue_capacity: Maximum number of records buffered for the writer.
        aggregation_interval_ms: Delay between two scheduled rollups.
        initial_delay_ms: Delay before the first scheduled rollup.
        statistics_directory: Root of the per-minute counter store.
        charts_directory: Root of the rendered chart artifacts.
        persist_url: Endpoint receiving every record as JSON. None disables
            forwarding.
        persist_timeout_seconds: Upper bound for one forwarding call.
        aggregate_after_write: Run a rollup after every persisted record.
        retry_delay_seconds: Pause after an unexpected queue failure.
    """

    queue_capacity: int = 100_000
    aggregation_interval_ms: int = 100_000
    initial_delay_ms: int = 1
    statistics_directory: str = "statistics"
    charts_directory: str = "charts"
    persist_url: str | None = None
    persist_timeout_seconds: float = 5.0
    aggregate_after_write: bool = False
    retry_delay_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.queue_capacity <= 0:
            raise ValueError("queue_capacity must be positive")
        if self.aggregation_interval_ms <= 0:
            raise ValueError("aggregation_interval_ms must be positive")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must not be negative")
        if self.persist_timeout_seconds <= 0:
            raise ValueError("persist_timeout_seconds must be positive")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must not be negative")

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> "MonitorConfig":
        """Build a config from raw string options keyed by field name.

        Unknown keys are ignored.

        Raises:
            ValueError: If an option cannot be converted.
        """
        values: dict[str, Any] = {}
        for config_field in fields(cls):
            if config_field.name in options:
                values[config_field.name] = _coerce(
                    config_field.name,
                    config_field.type,
                    options[config_field.name],
                )
        return cls(**values)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "MonitorConfig":
        """Build a config from RPCSTATS_* environment variables.

        Example: RPCSTATS_QUEUE_CAPACITY=5000 sets queue_capacity.
        """
        env = os.environ if environ is None else environ
        options = {
            name[len(_ENV_PREFIX) :].lower(): value
            for name, value in env.items()
            if name.startswith(_ENV_PREFIX)
        }
        return cls.from_options(options)

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> "MonitorConfig":
        """Build a config from monitor properties (dubbo.monitor.queue, ...)."""
        options = {
            _PROPERTY_NAMES[name]: value
            for name, value in properties.items()
            if name in _PROPERTY_NAMES
        }
        return cls.from_options(options)

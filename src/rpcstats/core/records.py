"""Helpers for interpreting statistics records."""

import logging
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import parse_qsl, urlsplit

from rpcstats.core.models import (
    INTERFACE_KEY,
    MetricType,
    Record,
    Role,
    StoreKey,
    StoreLine,
)

logger = logging.getLogger(__name__)

_FULL_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
_FULL_TIMESTAMP_LENGTH = len("yyyyMMddHHmmss")

# Path segment used when a record does not name its service, method or peer
NULL_SEGMENT = "null"
NULL_PEER = NULL_SEGMENT


def resolve_timestamp(value: str | None, now: datetime | None = None) -> datetime:
    """Resolve a reported timestamp.

    Args:
        value: Either a 14-digit yyyyMMddHHmmss literal or epoch milliseconds.
        now: Fallback time. Defaults to the current local time.

    Returns:
        The reported time, or the fallback when the value is missing or
        cannot be parsed.
    """
    fallback = now or datetime.now()
    if not value:
        return fallback
    try:
        if len(value) == _FULL_TIMESTAMP_LENGTH:
            return datetime.strptime(value, _FULL_TIMESTAMP_FORMAT)
        return datetime.fromtimestamp(int(value) / 1000)
    except (ValueError, OverflowError, OSError):
        logger.warning("Unparseable timestamp %r, using current time", value)
        return fallback


def format_day(moment: datetime) -> str:
    return moment.strftime("%Y%m%d")


def format_minute(moment: datetime) -> str:
    return moment.strftime("%H%M")


def strip_port(address: str | None) -> str:
    """Return the host part of a host:port address."""
    if not address:
        return NULL_PEER
    host, _, _ = address.partition(":")
    return host or NULL_PEER


def resolve_role(record: Record) -> tuple[Role, str]:
    """Derive the reporting role and remote peer host of a record.

    A record naming its provider was reported by the consumer side;
    otherwise it was reported by the provider and names its consumer.
    """
    if Role.PROVIDER in record.parameters:
        return Role.CONSUMER, strip_port(record.parameters[Role.PROVIDER])
    return Role.PROVIDER, strip_port(record.parameters.get(Role.CONSUMER))


def metric_value(record: Record, metric: MetricType) -> int:
    """Return the reported value of a metric, 0 when absent or malformed."""
    raw = record.parameters.get(metric)
    if raw is None or raw == "":
        return 0
    try:
        return int(raw)
    except ValueError:
        try:
            return int(float(raw))
        except (ValueError, OverflowError):
            return 0


@dataclass(frozen=True)
class Placement:
    """Where and when a record's samples are persisted."""

    day: str
    minute: str
    role: Role
    peer: str

    def key(self, record: Record, metric: MetricType) -> StoreKey:
        return StoreKey(
            day=self.day,
            service=record.service or NULL_SEGMENT,
            method=record.method or NULL_SEGMENT,
            role=self.role,
            peer=self.peer,
            metric=metric,
        )


def place(record: Record, now: datetime | None = None) -> Placement:
    """Resolve the day, minute, role and peer a record is stored under."""
    moment = resolve_timestamp(record.timestamp, now)
    role, peer = resolve_role(record)
    return Placement(
        day=format_day(moment),
        minute=format_minute(moment),
        role=role,
        peer=peer,
    )


def store_line(
    record: Record, placement: Placement, metric: MetricType
) -> tuple[StoreKey, StoreLine]:
    """Build the (key, line) pair of one metric type for a record."""
    return (
        placement.key(record, metric),
        StoreLine(minute=placement.minute, value=metric_value(record, metric)),
    )


def parse_url(url: str) -> Record:
    """Parse a URL-encoded statistics report into a Record.

    Reports look like
    ``count://10.0.0.2:0/com.example.Bar?method=foo&provider=10.0.0.1:20880&success=5``.

    Raises:
        ValueError: If the URL has no protocol or host.
    """
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.hostname:
        raise ValueError(f"Not a statistics URL: {url!r}")
    parameters = dict(parse_qsl(parts.query, keep_blank_values=True))
    path = parts.path.lstrip("/")
    if path and INTERFACE_KEY not in parameters:
        parameters[INTERFACE_KEY] = path
    return Record(
        protocol=parts.scheme,
        host=parts.hostname,
        parameters=parameters,
        port=parts.port or 0,
        path=path,
    )

"""Persistence sink adapters forwarding records to an external store."""

import logging

import httpx

from rpcstats.core.models import Record

logger = logging.getLogger(__name__)


class HttpPersistenceSink:
    """Forward records as JSON to an HTTP endpoint.

    Every call is bounded by the configured timeout so that a slow endpoint
    cannot stall the writer for long. Failures are logged and reported as
    False, never raised.

    Args:
        url: Endpoint receiving a POST per record.
        timeout: Upper bound in seconds for one call.
        client: Optional preconfigured client (e.g., with a mock transport).
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def url(self) -> str:
        return self._url

    def send(self, record: Record) -> bool:
        """POST the record parameters as JSON."""
        logger.debug("Persisting statistics to %s", self._url)
        try:
            response = self._client.post(self._url, json=dict(record.parameters))
        except httpx.HTTPError as e:
            logger.error("Failed to persist statistics to %s: %s", self._url, e)
            return False
        if response.is_success:
            logger.info("Persisted statistics to %s", self._url)
            return True
        logger.error(
            "Failed to persist statistics to %s: HTTP %d",
            self._url,
            response.status_code,
        )
        return False

    def close(self) -> None:
        self._client.close()


class NullPersistenceSink:
    """Persistence sink used when forwarding is disabled."""

    def send(self, record: Record) -> bool:
        return False

    def close(self) -> None:
        pass

"""FastAPI adapter exposing statistics ingestion over HTTP."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from rpcstats.core.config import MonitorConfig
from rpcstats.core.models import Record
from rpcstats.core.records import parse_url
from rpcstats.runtime.monitor import MonitorService


class RecordPayload(BaseModel):
    """JSON body of a statistics report."""

    protocol: str = "count"
    host: str
    port: int = 0
    path: str = ""
    parameters: dict[str, str | int | float] = Field(default_factory=dict)

    def to_record(self) -> Record:
        return Record(
            protocol=self.protocol,
            host=self.host,
            port=self.port,
            path=self.path,
            parameters={key: str(value) for key, value in self.parameters.items()},
        )


def create_monitor_router(monitor: MonitorService) -> APIRouter:
    """Create a FastAPI router with the /statistics endpoints.

    Args:
        monitor: Service receiving the collected records.

    Returns:
        APIRouter with collection, lookup and queue status endpoints.
    """
    router = APIRouter(prefix="/statistics")

    @router.post("", status_code=202)
    async def collect(payload: RecordPayload) -> dict[str, bool]:
        """Queue a JSON statistics report."""
        return {"accepted": monitor.collect(payload.to_record())}

    @router.post("/url", status_code=202)
    async def collect_url(request: Request) -> JSONResponse:
        """Queue a URL-encoded statistics report sent as plain text."""
        body = (await request.body()).decode("utf-8", errors="replace")
        try:
            record = parse_url(body)
        except ValueError as e:
            return JSONResponse(content={"error": str(e)}, status_code=400)
        return JSONResponse(
            content={"accepted": monitor.collect(record)}, status_code=202
        )

    @router.get("/lookup")
    async def lookup(request: Request) -> list[dict[str, str]]:
        """Query collected statistics. Not supported: always empty."""
        query = Record(
            protocol="query",
            host=request.client.host if request.client else "",
            parameters=dict(request.query_params),
        )
        return [dict(record.parameters) for record in monitor.lookup(query)]

    @router.get("/queue")
    async def queue_status() -> dict[str, int]:
        """Return the ingestion queue occupancy and drop count."""
        queue = monitor.queue
        return {
            "size": queue.size,
            "capacity": queue.capacity,
            "dropped": queue.dropped,
        }

    return router


def create_monitor_app(
    config: MonitorConfig | None = None,
    monitor: MonitorService | None = None,
) -> FastAPI:
    """Create a FastAPI app whose lifespan runs a MonitorService.

    Args:
        config: Configuration used when no monitor is given.
        monitor: Preconfigured service (e.g., with in-memory adapters).
    """
    service = monitor or MonitorService.from_config(config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        """Start the monitor on startup and close it on shutdown."""
        service.start()
        yield
        service.close()

    app = FastAPI(title="RPC Statistics Monitor", lifespan=lifespan)
    app.state.monitor = service
    app.include_router(create_monitor_router(service))
    return app

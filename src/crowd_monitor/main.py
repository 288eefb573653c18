"""
Crowd Monitor Main Application
==============================

FastAPI entry point for the crowd monitor.

Every tick (default 5 s) the scheduler simulates zone activity, clusters
the zones, classifies them, appends the readings to the store and pushes
the snapshot to every connected WebSocket client.

Endpoints:
    GET  /                      - Service information
    GET  /health                - Liveness probe
    GET  /metrics               - Pipeline, store and hub counters
    GET  /api/zones             - Latest reading per zone
    GET  /api/history/{zone_id} - Zone history (?minutes=15)
    GET  /api/summary           - System-wide totals
    GET  /api/refresh           - Fresh, non-persisted snapshot
    WS   /ws/zones              - Live snapshots; send {"event": "requestUpdate"}
                                  for an on-demand refresh
"""

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crowd_monitor.broadcast.subscription import Subscription
from crowd_monitor.config import settings
from crowd_monitor.errors import PersistenceError
from crowd_monitor.models.output import ErrorResponse
from crowd_monitor.runtime import Runtime, build_runtime


logger = logging.getLogger(__name__)


# WebSocket event names
ZONE_UPDATE_EVENT = "zoneUpdate"
REQUEST_UPDATE_EVENT = "requestUpdate"


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False
_runtime: Optional[Runtime] = None
_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_runtime() -> Optional[Runtime]:
    return _runtime


def _require_runtime() -> Runtime:
    if _runtime is None:
        raise RuntimeError("Service not started")
    return _runtime


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _runtime, _startup_time, _shutdown_flag

    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.service.name} {settings.service.version}")

    # Raises ConfigurationError before the server accepts requests
    _runtime = build_runtime(settings)
    await _runtime.scheduler.start()

    logger.info("All components started")

    yield

    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    # Scheduler first: no append may race the store close
    await _runtime.scheduler.stop()
    _runtime.store.close()
    _runtime = None

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Crowd Monitor",
    description="Real-time crowd density monitoring with spatial clustering",
    version=settings.service.version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.server.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error(f"Store failure on {request.url.path}: {exc}")
    return JSONResponse(
        ErrorResponse(error=str(exc)).model_dump(mode="json"),
        status_code=500,
    )


def _json(model) -> JSONResponse:
    return JSONResponse(model.model_dump(mode="json", by_alias=True))


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "Crowd Monitor",
        "version": settings.service.version,
        "name": settings.service.name,
        "status": "running",
        "zones": len(settings.zones),
        "tick_interval_seconds": settings.scheduler.interval_seconds,
        "store_backend": settings.store.backend,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return _json(_require_runtime().query_service.health())


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Counters for observability."""
    runtime = _require_runtime()
    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "scheduler_running": runtime.scheduler.running,
        "tick_errors": runtime.scheduler.tick_errors,
        "stored_readings": await asyncio.to_thread(runtime.store.count),
        **runtime.pipeline.get_metrics(),
        **runtime.hub.metrics(),
    })


@app.get("/api/zones")
async def latest_zones() -> JSONResponse:
    """Latest reading of every zone."""
    runtime = _require_runtime()
    return _json(await asyncio.to_thread(runtime.query_service.latest))


@app.get("/api/history/{zone_id}")
async def zone_history(
    zone_id: str,
    minutes: Optional[float] = Query(default=None, gt=0, description="Window in minutes"),
) -> JSONResponse:
    """History of one zone, ascending. Unknown zones return an empty list."""
    runtime = _require_runtime()
    response = await asyncio.to_thread(runtime.query_service.history, zone_id, minutes)
    return _json(response)


@app.get("/api/summary")
async def summary() -> JSONResponse:
    """System-wide totals over the latest readings."""
    runtime = _require_runtime()
    return _json(await asyncio.to_thread(runtime.query_service.summary))


@app.get("/api/refresh")
async def refresh() -> JSONResponse:
    """Fresh snapshot for this caller only; not stored, not broadcast."""
    runtime = _require_runtime()
    return _json(await asyncio.to_thread(runtime.query_service.refresh))


# =============================================================================
# WebSocket Endpoints
# =============================================================================

def _zone_update(snapshot) -> dict:
    return {
        "event": ZONE_UPDATE_EVENT,
        "data": [reading.to_dict() for reading in snapshot],
    }


async def _send_snapshots(websocket: WebSocket, subscription: Subscription) -> None:
    """Forward queued snapshots to one client until it goes away."""
    while not _shutdown_flag:
        snapshot = await subscription.get()
        if snapshot is None:
            continue
        await websocket.send_json(_zone_update(snapshot))


@app.websocket("/ws/zones")
async def zone_stream(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for live zone snapshots.

    The subscription is registered before the handshake completes, so
    every tick after a successful connect reaches the client.
    """
    runtime = get_runtime()
    if runtime is None:
        await websocket.close(code=1013)
        return

    hub = runtime.hub
    client = websocket.client
    label = f"ws:{client.host}:{client.port}" if client else "ws:unknown"
    subscription = hub.subscribe(label=label)

    await websocket.accept()
    logger.info(f"Client connected to /ws/zones: {label}")

    sender = asyncio.create_task(
        _send_snapshots(websocket, subscription),
        name=f"sender-{subscription.subscriber_id}",
    )

    try:
        while not _shutdown_flag:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring non-JSON message from {label}")
                continue

            if isinstance(message, dict) and message.get("event") == REQUEST_UPDATE_EVENT:
                # Only this client's queue; never stored or broadcast
                snapshot = await asyncio.to_thread(hub.refresh_on_demand)
                subscription.deliver(snapshot)
            else:
                logger.debug(f"Ignoring message from {label}: {message!r}")

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error ({label}): {e}")
    finally:
        hub.unsubscribe(subscription)
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(f"Sender for {label} ended with: {e}")
        logger.info(f"Client disconnected from /ws/zones: {label}")


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    import uvicorn

    uvicorn.run(
        "crowd_monitor.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    main()

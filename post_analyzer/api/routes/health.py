from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Returns a simple status response to verify the process is serving HTTP.
    Not throttled.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
def readiness_check(request: Request) -> JSONResponse:
    """Readiness probe: 200 once the startup sequence completed, 503 otherwise."""

    container = getattr(request.app.state, "container", None)
    started = bool(container and container.started)
    body = {
        "status": "ok" if started else "starting",
        "queue_connected": bool(container and container.queue_client.is_connected),
        "scheduler_running": bool(container and container.scheduler.running),
    }
    return JSONResponse(status_code=200 if started else 503, content=body)

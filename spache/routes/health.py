"""Health and readiness check routes."""

import logging

from fastapi import APIRouter, Request

from spache.errors import StoreError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/ready")
async def ready(request: Request) -> dict:
    """Lightweight readiness check — no external calls."""
    return {"status": "ok", "service": "spache", "commit": request.app.state.settings.git_sha}


@router.get("/health")
async def health(request: Request) -> dict:
    """Deep health check that verifies the day store answers."""
    state = request.app.state
    result = {
        "status": "ok",
        "service": "spache",
        "commit": state.settings.git_sha,
        "store": "not_tested",
        "pending_writes": state.writer.pending,
    }

    try:
        await state.store.ping()
        result["store"] = "connected"
    except StoreError as e:
        logger.exception("Day store health check failed")
        result["status"] = "degraded"
        result["store"] = "error"
        result["store_error"] = str(e)

    return result

"""Custom exceptions and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SpacheError(Exception):
    """Base exception with HTTP status code."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(SpacheError):
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class UpstreamError(SpacheError):
    """Non-success answer (or no answer at all) from the NEO feed."""

    def __init__(self, upstream_status: int | None, body: str):
        status = upstream_status if upstream_status is not None else "transport error"
        super().__init__(f"NEO API responded with {status}: {body}", status_code=502)
        self.upstream_status = upstream_status
        self.body = body


class StoreError(SpacheError):
    def __init__(self, message: str):
        super().__init__(f"Day store failure: {message}", status_code=500)


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(SpacheError)
    async def handle_spache_error(_request: Request, exc: SpacheError):
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=500,
        )

"""FastAPI application entry point for the spache close-approach cache."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from spache.config import Settings, settings as default_settings
from spache.errors import register_error_handlers
from spache.services.aggregations import CloseApproachAggregationsService
from spache.services.close_approach import CloseApproachService
from spache.services.day_store import DayStore
from spache.services.neo_api import NeoApiClient
from spache.services.write_behind import WriteBehind

# Structured logging: JSON for production, human-readable for local
if default_settings.is_production:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
        stream=sys.stdout,
    )
else:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    neo_api: NeoApiClient | None = None,
    store: DayStore | None = None,
) -> FastAPI:
    settings = settings or default_settings

    # One store, one upstream client and one write-behind runner per app
    neo_api = neo_api or NeoApiClient(
        api_key=settings.nasa_api_key,
        base_url=settings.neo_api_base_url,
        timeout=settings.upstream_timeout_seconds,
    )
    store = store or DayStore(settings.database_url)
    writer = WriteBehind(store)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        store.create_schema()
        missing = settings.validate()
        if missing:
            logger.warning("Env vars on demo defaults: %s", ", ".join(missing))
        logger.info("Serving links as %s, caching in %s", settings.public_origin, store.engine.url)
        yield
        if writer.pending:
            logger.info("Waiting for %d pending cache writes", writer.pending)
        await writer.drain()
        await neo_api.aclose()

    app = FastAPI(title="Spache API", version="1.0.0", lifespan=lifespan)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # Centralized error handlers
    register_error_handlers(app)

    app.state.settings = settings
    app.state.store = store
    app.state.writer = writer
    app.state.close_approach_service = CloseApproachService(settings.public_origin, neo_api, store, writer)
    app.state.aggregations_service = CloseApproachAggregationsService(neo_api, store, writer)

    from spache.routes.aggregations import router as aggregations_router
    from spache.routes.feed import router as feed_router
    from spache.routes.health import router as health_router

    app.include_router(health_router)
    app.include_router(feed_router)
    app.include_router(aggregations_router)

    return app


app = create_app()


def main() -> None:
    """Run the module-level app under uvicorn on HOST:PORT."""
    import uvicorn

    uvicorn.run(app, host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    main()

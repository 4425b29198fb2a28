"""Application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from prometheus_client import make_asgi_app

from wthr import __version__
from wthr.api.dependencies import get_cache_store, get_engine, get_session_factory
from wthr.api.routes import api_router, health_router, root_router
from wthr.config import get_settings
from wthr.middleware.logging import LoggingMiddleware, configure_logging
from wthr.services.cache import CacheError

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the schema and drop stale cache rows before serving."""
    settings = get_settings()
    cache = get_cache_store(get_session_factory(get_engine(settings)))
    try:
        purged = await run_in_threadpool(cache.purge_expired)
    except CacheError as e:
        logger.warning("Failed to purge expired cache entries", error=str(e))
    else:
        logger.info("Purged expired cache entries", count=purged)
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    configure_logging(settings)

    app = FastAPI(
        title="wthr",
        description="Cached weather.gov conditions, forecast and alerts for any US point",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)

    app.include_router(root_router)
    app.include_router(api_router)
    app.include_router(health_router)

    # Mount Prometheus metrics endpoint
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    return app


# Create app instance for ASGI servers
app = create_app()


def run() -> None:
    """Run the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "wthr.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

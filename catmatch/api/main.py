"""
ASGI application for the CatMatch HTTP API.

Run with `python manage.py serve` or any ASGI server pointed at
catmatch.api.main:app.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catmatch.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from catmatch.api.middleware.error_handler import setup_exception_handlers
from catmatch.api.routes import (
    catalog_router,
    health_router,
    matches_router,
    stats_router,
    uploads_router,
)
from catmatch.config import configure_logging, get_logger, get_settings

logger = get_logger(__name__)

ROUTERS = (health_router, uploads_router, matches_router, catalog_router, stats_router)


async def _startup() -> None:
    from catmatch.application.services import get_processing_orchestrator
    from catmatch.infrastructure.storage.sqlite import get_pool
    from catmatch.infrastructure.storage.sqlite.migrations import run_migrations

    settings = get_settings()
    results = await run_migrations()
    failed = [r.version for r in results if not r.success]
    if failed:
        logger.error("startup_aborted", failed_migrations=failed)
        raise RuntimeError(f"Database migration {failed[0]} failed")
    await get_pool()

    if settings.processing.resume_on_start:
        orchestrator = await get_processing_orchestrator()
        resumed = await orchestrator.resume_interrupted()
        if resumed:
            logger.info("uploads_resumed", count=resumed)


async def _shutdown() -> None:
    from catmatch.application.services import shutdown_services
    from catmatch.infrastructure.storage.sqlite import close_pool

    # Tasks still write progress, so they stop before the pool closes
    await shutdown_services()
    await close_pool()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info(
        "api_starting",
        environment=settings.environment,
        db_path=str(settings.storage.db_path),
    )
    await _startup()
    logger.info("api_ready")
    try:
        yield
    finally:
        await _shutdown()
        logger.info("api_stopped")


def create_app() -> FastAPI:
    """Build the app: logging, middleware, error handlers and routers."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title="CatMatch API",
        description="Material spreadsheet ingestion, catalog matching and review",
        version=settings.app_version,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Starlette runs the last-added middleware first
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_methods=["GET", "POST", "PATCH"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID"],
        )

    setup_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router)
    return app


app = create_app()

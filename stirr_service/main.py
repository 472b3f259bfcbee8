from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stirr_service.config import Settings, get_settings, setup_logging
from stirr_service.routers import main_router
from stirr_service.services import (
    RefreshScheduler,
    RefreshService,
    SnapshotBuilder,
    SnapshotCache,
    StirrClient,
)


setup_logging()
logger = logging.getLogger(__name__)


async def resolve_station_id(settings: Settings, source: StirrClient) -> str:
    """Use the configured station, or ask the provider once."""
    if settings.stirr_station_id:
        logger.info("Using configured station %s", settings.stirr_station_id)
        return settings.stirr_station_id

    logger.info("STIRR_STATION_ID not set, attempting to auto detect local station")
    station_id = await source.detect_station()
    logger.info("Local station identified as %s", station_id)
    return station_id


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    settings: Settings = app.state.settings
    logger.info("Starting Stirr Service...")

    try:
        station_id = await resolve_station_id(settings, app.state.source)

        builder = SnapshotBuilder(
            app.state.source,
            channel_id_prefix=settings.channel_id_prefix,
            max_concurrency=settings.channel_fetch_concurrency,
        )
        refresh_service = RefreshService(
            builder,
            app.state.cache,
            station_id,
            timeout_sec=settings.refresh_timeout_sec,
        )
        app.state.refresh_service = refresh_service

        # No stale snapshot exists yet, so a failure here aborts startup
        logger.info("Running initial refresh...")
        await refresh_service.refresh()

        scheduler = RefreshScheduler(
            refresh_service,
            interval_minutes=settings.refresh_interval_minutes,
            misfire_grace_sec=settings.refresh_misfire_grace_sec,
        )
        scheduler.start()
        app.state.scheduler = scheduler

        logger.info("Stirr Service started successfully")
    except Exception as e:
        logger.error(f"Failed to start Stirr Service: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Stirr Service...")
    try:
        app.state.scheduler.shutdown()
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)
    logger.info("Stirr Service stopped")


def create_app(settings: Settings | None = None, source: StirrClient | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; loaded from the environment when omitted
        source: Remote source; a StirrClient over ``settings`` when omitted
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level)

    app = FastAPI(
        title="Stirr Service",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.source = source or StirrClient(settings)
    app.state.cache = SnapshotCache()
    app.state.refresh_service = None
    app.state.scheduler = None

    app.include_router(main_router)
    app.add_exception_handler(Exception, global_exception_handler)

    return app


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


app = create_app()

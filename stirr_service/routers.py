import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, Response
from starlette.concurrency import run_in_threadpool

from stirr_service.dependencies import (
    CacheDep,
    RefreshServiceDep,
    SchedulerDep,
    SettingsDep,
    SnapshotDep,
)
from stirr_service.schemas import HealthResponse, RefreshResult
from stirr_service.services import (
    STATUS_PAGE_TEMPLATE,
    render_guide,
    render_playlist,
    status_page_context,
    templates,
)


logger = logging.getLogger(__name__)

main_router = APIRouter()


@main_router.get("/", response_class=HTMLResponse)
async def index(request: Request, snapshot: SnapshotDep, settings: SettingsDep) -> HTMLResponse:
    """Status page with station, counts and links"""
    return templates.TemplateResponse(
        request,
        STATUS_PAGE_TEMPLATE,
        status_page_context(snapshot, source_url=settings.generator_info_url),
    )


@main_router.get("/playlist.m3u")
async def playlist(snapshot: SnapshotDep) -> Response:
    """M3U playlist, one entry per channel in display-number order"""
    return Response(content=render_playlist(snapshot), media_type="audio/x-mpegurl")


@main_router.get("/epg.xml")
async def epg(snapshot: SnapshotDep, settings: SettingsDep) -> Response:
    """XMLTV guide for every channel in the current snapshot"""
    # Large guides are rendered off the event loop
    body = await run_in_threadpool(
        render_guide,
        snapshot,
        settings.generator_info_name,
        settings.generator_info_url,
    )
    return Response(content=body, media_type="application/xml")


@main_router.get("/health", response_model=HealthResponse)
async def health_check(
    cache: CacheDep,
    refresh_service: RefreshServiceDep,
    scheduler: SchedulerDep
) -> HealthResponse:
    """Health check endpoint"""
    snapshot = cache.read_snapshot()
    next_run = scheduler.get_next_run_time() if scheduler else None

    return HealthResponse(
        status="degraded" if refresh_service.consecutive_failures else "ok",
        station_id=refresh_service.station_id,
        channel_count=snapshot.channel_count if snapshot else 0,
        program_count=snapshot.program_count if snapshot else 0,
        last_updated=snapshot.last_updated.isoformat() if snapshot else None,
        refreshing=refresh_service.is_refreshing(),
        scheduler_running=scheduler.running if scheduler else False,
        next_refresh=next_run.isoformat() if next_run else None,
        last_error=refresh_service.last_error,
        consecutive_failures=refresh_service.consecutive_failures,
    )


@main_router.post("/refresh", response_model=RefreshResult)
async def trigger_refresh(refresh_service: RefreshServiceDep) -> RefreshResult:
    """
    Manually trigger a refresh

    The previous snapshot stays in force if the refresh fails.
    """
    logger.info("Manual refresh triggered via API")
    result = await refresh_service.trigger()

    if result.status == "failed":
        raise HTTPException(status_code=502, detail=result.message)

    return result

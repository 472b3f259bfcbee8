"""
FastAPI dependencies

Components are created once per application in the lifespan handler and kept
on ``app.state``; these getters hand them to the endpoints.
"""
import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from stirr_service.config import Settings
from stirr_service.models import Snapshot
from stirr_service.services.refresh_service import RefreshService
from stirr_service.services.scheduler_service import RefreshScheduler
from stirr_service.services.snapshot_cache import SnapshotCache


logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_snapshot_cache(request: Request) -> SnapshotCache:
    return request.app.state.cache


def get_refresh_service(request: Request) -> RefreshService:
    refresh_service = getattr(request.app.state, "refresh_service", None)
    if refresh_service is None:
        raise HTTPException(status_code=503, detail="Service is starting")
    return refresh_service


def get_refresh_scheduler(request: Request) -> RefreshScheduler | None:
    return getattr(request.app.state, "scheduler", None)


def get_current_snapshot(
    cache: Annotated[SnapshotCache, Depends(get_snapshot_cache)]
) -> Snapshot:
    """
    Current snapshot for rendering.

    Startup blocks on the first refresh, so an empty cache should never be
    seen by a live listener.
    """
    snapshot = cache.read_snapshot()
    if snapshot is None:
        logger.error("Request served before the first snapshot was built")
        raise HTTPException(status_code=503, detail="Channel data not loaded yet")
    return snapshot


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
CacheDep = Annotated[SnapshotCache, Depends(get_snapshot_cache)]
SnapshotDep = Annotated[Snapshot, Depends(get_current_snapshot)]
RefreshServiceDep = Annotated[RefreshService, Depends(get_refresh_service)]
SchedulerDep = Annotated[RefreshScheduler | None, Depends(get_refresh_scheduler)]

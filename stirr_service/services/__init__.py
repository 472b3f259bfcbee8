"""
Services package for Stirr Service

This package contains the refresh pipeline and the renderers.
"""
from stirr_service.services.playlist_service import render_playlist
from stirr_service.services.refresh_service import RefreshService
from stirr_service.services.scheduler_service import RefreshScheduler
from stirr_service.services.snapshot_builder import SnapshotBuilder
from stirr_service.services.snapshot_cache import SnapshotCache
from stirr_service.services.status_page_service import STATUS_PAGE_TEMPLATE, status_page_context, templates
from stirr_service.services.stirr_client import StirrClient
from stirr_service.services.xmltv_service import render_guide

__all__ = [
    'render_playlist',
    'render_guide',
    'STATUS_PAGE_TEMPLATE',
    'status_page_context',
    'templates',
    'RefreshService',
    'RefreshScheduler',
    'SnapshotBuilder',
    'SnapshotCache',
    'StirrClient',
]

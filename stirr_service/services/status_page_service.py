"""
HTML status page rendering
"""
from pathlib import Path

from fastapi.templating import Jinja2Templates

from stirr_service.models import Snapshot


TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
STATUS_PAGE_TEMPLATE = "index.html"
LAST_UPDATED_FORMAT = "%a %b %d %H:%M:%S %Z %Y"

# Autoescaping is on for every template
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def status_page_context(snapshot: Snapshot, title: str = "Stirr for Channels", source_url: str = "") -> dict:
    """Template variables for the status page."""
    return {
        "title": title,
        "station_id": snapshot.station_id,
        "channel_count": snapshot.channel_count,
        "program_count": snapshot.program_count,
        "last_updated": snapshot.last_updated.strftime(LAST_UPDATED_FORMAT),
        "source_url": source_url,
    }

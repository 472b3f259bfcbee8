"""
Pydantic schemas

Decode contracts for the provider's JSON payloads, plus the JSON response
models served by the API. Provider payloads carry many optional, namespaced
fields; only the ones the data model needs are declared and everything else
is ignored.
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stirr_service.models import ChannelDescriptor, LiveStatus, Program
from stirr_service.utils.text import strip_invalid_xml_chars
from stirr_service.utils.timestamps import parse_stirr_time


def _coerce_flag(value):
    """Provider booleans arrive as "true"/"false" strings, sometimes empty."""
    if value is None or value == "":
        return False
    return value


def _as_list(value):
    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    return value


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class WireModel(BaseModel):
    """Base for provider payloads"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def sanitize_text(cls, value):
        """Drop characters the playlist and guide documents cannot carry"""
        if isinstance(value, str):
            return strip_invalid_xml_chars(value)
        if isinstance(value, list):
            return [strip_invalid_xml_chars(v) if isinstance(v, str) else v for v in value]
        return value


class TextElement(WireModel):
    """Text node with optional language, as used for titles and categories"""
    value: str | None = None
    lang: str | None = None


# Station auto-detection

class StationActionConfig(WireModel):
    station: list[str] = Field(default_factory=list)
    city: str | None = None

    @field_validator("station", mode="before")
    @classmethod
    def parse_station(cls, value):
        return _as_list(value)


class StationMediaContent(WireModel):
    action_config: StationActionConfig | None = Field(None, alias="sinclair:action_config")


class StationButton(WireModel):
    media_content: StationMediaContent | None = Field(None, alias="media:content")


class StationPage(WireModel):
    button: StationButton | None = None


class StationDetectionPayload(WireModel):
    page: list[StationPage] = Field(default_factory=list)

    @field_validator("page", mode="before")
    @classmethod
    def parse_page(cls, value):
        return _as_list(value)

    def first_station(self) -> str | None:
        """Station id suggested by the first page entry, if any."""
        if not self.page:
            return None
        button = self.page[0].button
        if not button or not button.media_content or not button.media_content.action_config:
            return None
        stations = [s.strip() for s in button.media_content.action_config.station if s and s.strip()]
        return stations[0] if stations else None


# Channel lineup

class IconPayload(WireModel):
    src: str | None = None


class LineupChannelPayload(WireModel):
    id: str = Field(..., min_length=1)
    display_name: str = Field(..., alias="display-name", min_length=1)
    icon: IconPayload | None = None

    def to_descriptor(self) -> ChannelDescriptor:
        return ChannelDescriptor(
            source_id=self.id,
            name=self.display_name,
            icon_url=_clean(self.icon.src) if self.icon else None,
        )


class LineupPayload(WireModel):
    channels: list[LineupChannelPayload] = Field(default_factory=list, alias="channel")

    @field_validator("channels", mode="before")
    @classmethod
    def parse_channels(cls, value):
        return _as_list(value)


# Channel live status

class ImagePayload(WireModel):
    url: str | None = None
    width: int | None = None
    height: int | None = None

    @field_validator("width", "height", mode="before")
    @classmethod
    def parse_dimension(cls, value):
        return None if value == "" else value


class StatusMediaContent(WireModel):
    logo: ImagePayload | None = Field(None, alias="sinclair:logo")
    is_live: bool = Field(False, alias="sinclair:isLive")
    url: str | None = None

    @field_validator("is_live", mode="before")
    @classmethod
    def parse_is_live(cls, value):
        return _coerce_flag(value)


class StatusItem(WireModel):
    link: str | None = None
    media_content: StatusMediaContent | None = Field(None, alias="media:content")


class StatusChannel(WireModel):
    title: str | None = None
    description: str | None = None
    link: str | None = None
    item: StatusItem | None = None


class StatusRss(WireModel):
    channel: StatusChannel


class ChannelStatusPayload(WireModel):
    rss: StatusRss

    def to_live_status(self, fallback_title: str) -> LiveStatus:
        channel = self.rss.channel
        item = channel.item or StatusItem()
        media = item.media_content or StatusMediaContent()
        return LiveStatus(
            title=_clean(channel.title) or fallback_title,
            link=_clean(item.link) or "",
            logo_url=_clean(media.logo.url) if media.logo else None,
            description=_clean(channel.description),
            is_live=media.is_live,
        )


# Channel program guide

class ProgramPayload(WireModel):
    title: TextElement | None = None
    desc: TextElement | None = None
    category: list[TextElement] = Field(default_factory=list)
    start: datetime
    stop: datetime
    channel: str | None = None
    is_live: bool = Field(False, alias="sinclair:isLiveProgram")

    @field_validator("start", "stop", mode="before")
    @classmethod
    def parse_times(cls, value):
        """Timestamps use the provider's 14-digit UTC layout"""
        return parse_stirr_time(value)

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, value):
        return _as_list(value)

    @field_validator("is_live", mode="before")
    @classmethod
    def parse_is_live(cls, value):
        return _coerce_flag(value)

    def to_program(self, channel_source_id: str) -> Program:
        categories = [_clean(c.value) for c in self.category]
        category_lang = next((c.lang for c in self.category if c.lang), None)
        return Program(
            title=(_clean(self.title.value) if self.title else None) or "",
            start=self.start,
            stop=self.stop,
            channel_source_id=channel_source_id,
            description=_clean(self.desc.value) if self.desc else None,
            categories=tuple(c for c in categories if c),
            title_lang=self.title.lang if self.title else None,
            description_lang=self.desc.lang if self.desc else None,
            category_lang=category_lang,
            is_live=self.is_live,
        )


class GuidePayload(WireModel):
    programs: list[ProgramPayload] = Field(default_factory=list, alias="programme")

    @field_validator("programs", mode="before")
    @classmethod
    def parse_programs(cls, value):
        return _as_list(value)


# API responses

class RefreshResult(BaseModel):
    """Outcome of one refresh attempt"""
    status: str = Field(..., description="One of 'success', 'failed', 'skipped'")
    timestamp: str = Field(..., description="ISO8601 UTC time the attempt finished")
    message: str | None = Field(None, description="Skip reason or error message")
    channels: int | None = Field(None, description="Channels in the new snapshot")
    programs: int | None = Field(None, description="Programs in the new snapshot")
    duration_seconds: float | None = None


class HealthResponse(BaseModel):
    """Service health"""
    status: str = Field(..., description="'ok', or 'degraded' when the last refresh failed")
    station_id: str | None
    channel_count: int
    program_count: int
    last_updated: str | None = Field(None, description="ISO8601 UTC time of the current snapshot")
    refreshing: bool
    scheduler_running: bool
    next_refresh: str | None = None
    last_error: str | None = None
    consecutive_failures: int = 0

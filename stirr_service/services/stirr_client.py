"""
Stirr API client

Performs the four remote lookups the refresh pipeline needs (station
auto-detection, channel lineup, per-channel live status, per-channel guide)
and decodes them into the normalized data model. Transport problems surface
as SourceUnavailable, malformed payloads as DecodeFailure.
"""
import asyncio
import logging
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from stirr_service.config import Settings
from stirr_service.errors import DecodeFailure, SourceUnavailable
from stirr_service.models import ChannelDescriptor, LiveStatus, Program
from stirr_service.schemas import (
    ChannelStatusPayload,
    GuidePayload,
    LineupPayload,
    StationDetectionPayload,
)


logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class StirrClient:
    """Client for the Stirr station-selection and gateway APIs."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.detection_url = settings.station_detection_url
        self.base_url = settings.api_base_url
        self.timeout = settings.request_timeout_sec
        self.max_retries = settings.request_max_retries
        self.backoff_initial = settings.request_backoff_initial_sec
        self.backoff_factor = settings.request_backoff_factor
        self._transport = transport

    async def detect_station(self) -> str:
        """Ask the provider which local station serves this host."""
        payload = await self._get_payload(self.detection_url, StationDetectionPayload)
        station_id = payload.first_station()
        if not station_id:
            raise DecodeFailure(self.detection_url, "no station in auto-detection response")
        return station_id

    async def get_lineup(self, station_id: str | None = None) -> list[ChannelDescriptor]:
        """Fetch the ordered channel lineup for a station."""
        url = f"{self.base_url}/channels/stirr"
        payload = await self._get_payload(url, LineupPayload, station_id)
        return [channel.to_descriptor() for channel in payload.channels]

    async def get_channel_status(self, channel_key: str, station_id: str | None = None) -> LiveStatus:
        """Fetch live-stream metadata for one channel."""
        url = f"{self.base_url}/status/{quote(channel_key, safe='')}"
        payload = await self._get_payload(url, ChannelStatusPayload, station_id)
        return payload.to_live_status(fallback_title=channel_key)

    async def get_channel_programs(
        self,
        channel_key: str,
        channel_source_id: str,
        station_id: str | None = None
    ) -> list[Program]:
        """
        Fetch the program guide for one channel.

        Programs are bound to ``channel_source_id``, the channel they were
        requested for.
        """
        url = f"{self.base_url}/program/stirr/ott/{quote(channel_key, safe='')}"
        payload = await self._get_payload(url, GuidePayload, station_id)

        mismatched = sum(
            1 for program in payload.programs
            if program.channel and program.channel != channel_source_id
        )
        if mismatched:
            logger.debug(
                "%s of %s program(s) for '%s' name channel other than %s",
                mismatched,
                len(payload.programs),
                channel_key,
                channel_source_id,
            )

        return [program.to_program(channel_source_id) for program in payload.programs]

    async def _get_payload(
        self,
        url: str,
        model: type[PayloadT],
        station_id: str | None = None
    ) -> PayloadT:
        data = await self._get_json(url, station_id)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error("Payload from %s failed validation: %s", url, e.errors()[:3])
            raise DecodeFailure(url, f"{e.error_count()} validation error(s)") from e

    async def _get_json(self, url: str, station_id: str | None = None) -> Any:
        """
        GET a JSON document with exponential backoff retry logic

        Retries on transient network errors (timeouts, connection errors) and
        5xx responses. Does NOT retry on 4xx HTTP errors (client errors).

        Args:
            url: URL to fetch
            station_id: Appended as the ``station`` query parameter when set

        Returns:
            Decoded JSON document

        Raises:
            SourceUnavailable: If the request fails after all retries
            DecodeFailure: If the response body is not JSON
        """
        params = {"station": station_id} if station_id else None
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    logger.debug("GET %s (station=%s)", url, station_id)
                    response = await client.get(url, params=params)
                    response.raise_for_status()

            except httpx.TransportError as e:
                # Transient network errors - retry
                last_error = e
                if attempt < self.max_retries - 1:
                    wait_time = self._backoff(attempt)
                    logger.warning(
                        f"Request attempt {attempt + 1}/{self.max_retries} for {url} failed "
                        f"(transient error): {type(e).__name__}. Retrying in {wait_time:.1f}s..."
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(f"Request to {url} failed after {self.max_retries} attempts (transient error)")
                continue

            except httpx.HTTPStatusError as e:
                # HTTP errors - don't retry on 4xx (client error), retry on 5xx (server error)
                status = e.response.status_code
                if 400 <= status < 500:
                    logger.error(f"HTTP {status} (client error) from {url}")
                    raise SourceUnavailable(url, f"unexpected response HTTP {status}") from e

                last_error = e
                if attempt < self.max_retries - 1:
                    wait_time = self._backoff(attempt)
                    logger.warning(
                        f"Request attempt {attempt + 1}/{self.max_retries} for {url} failed "
                        f"(HTTP {status} server error). Retrying in {wait_time:.1f}s..."
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(f"Request to {url} failed after {self.max_retries} attempts (HTTP {status})")
                continue

            try:
                return response.json()
            except ValueError as e:
                raise DecodeFailure(url, f"invalid JSON: {e}") from e

        if isinstance(last_error, httpx.HTTPStatusError):
            reason = f"unexpected response HTTP {last_error.response.status_code}"
        else:
            reason = f"{type(last_error).__name__}: {last_error}"
        raise SourceUnavailable(url, reason) from last_error

    def _backoff(self, attempt: int) -> float:
        return self.backoff_initial * (self.backoff_factor ** attempt)

"""Client for listing a channel's recent uploads via the YouTube Data API."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime
from functools import lru_cache
from typing import Any, Protocol

import httpx

from curator.core.config import ConfigurationError, settings
from curator.services.cache import TTLCache, cache
from curator.services.channel_resolver import YOUTUBE_API_BASE

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
_DETAILS_CHUNK = 50
_DEFAULT_THUMB_WIDTH = 480
_DEFAULT_THUMB_HEIGHT = 360


class ProviderError(RuntimeError):
    """Raised when uploads for a single channel cannot be fetched."""


class ProviderQuotaError(ProviderError):
    """Raised when the YouTube Data API quota is exhausted."""


@dataclass(frozen=True, slots=True)
class Upload:
    """One video from a channel's uploads playlist."""

    id: str
    title: str
    channel_title: str
    thumbnail_url: str
    width: int = _DEFAULT_THUMB_WIDTH
    height: int = _DEFAULT_THUMB_HEIGHT
    duration_seconds: int | None = None
    view_count: int | None = None
    published_at: datetime | None = None


class UploadsProvider(Protocol):
    async def list_uploads(self, channel_id: str, max_results: int, *, with_details: bool = False) -> list[Upload]:
        ...


def parse_duration(value: str) -> int:
    """Convert an ISO 8601 duration (``PT1H2M3S``) to seconds."""

    match = _DURATION_RE.match(value or "")
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Failed to parse datetime", extra={"value": value})
        return None


def uploads_playlist_id(channel_id: str) -> str:
    """Return the uploads playlist id (``UU...``) for a ``UC...`` channel id."""

    return "UU" + channel_id[2:]


def _upload_from_item(item: dict[str, Any]) -> Upload | None:
    snippet = item.get("snippet") or {}
    video_id = (snippet.get("resourceId") or {}).get("videoId")
    if not video_id:
        return None

    thumbnails = snippet.get("thumbnails") or {}
    thumb = thumbnails.get("high") or thumbnails.get("medium") or thumbnails.get("default") or {}
    return Upload(
        id=video_id,
        title=snippet.get("title") or "",
        channel_title=snippet.get("channelTitle") or "",
        thumbnail_url=thumb.get("url") or "",
        width=thumb.get("width") or _DEFAULT_THUMB_WIDTH,
        height=thumb.get("height") or _DEFAULT_THUMB_HEIGHT,
        published_at=_parse_datetime(snippet.get("publishedAt")),
    )


def _details_from_payload(payload: dict[str, Any]) -> dict[str, tuple[int, int | None]]:
    """Map video id to ``(duration_seconds, view_count)`` for a ``/videos`` response."""

    details: dict[str, tuple[int, int | None]] = {}
    try:
        for item in payload.get("items") or []:
            duration = parse_duration((item.get("contentDetails") or {}).get("duration") or "")
            raw_views = (item.get("statistics") or {}).get("viewCount")
            views = int(raw_views) if raw_views is not None else None
            details[item["id"]] = (duration, views)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ProviderError("Invalid video details from YouTube Data API") from exc
    return details


class YouTubeUploadsProvider:
    """Fetch uploads playlists and video details from the YouTube Data API."""

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=YOUTUBE_API_BASE,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": "channel-curator/0.1"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._client.get(path, params={**params, "key": self._api_key})
        except httpx.HTTPError as exc:
            raise ProviderError(f"Unable to contact YouTube Data API: {exc.__class__.__name__}") from exc

        if response.status_code == 200:
            try:
                payload = response.json()
            except ValueError as exc:
                raise ProviderError("Invalid response from YouTube Data API") from exc
            if not isinstance(payload, dict):
                raise ProviderError("Invalid response from YouTube Data API")
            return payload

        lowered = response.text.lower()
        if response.status_code in {403, 429} and ("quotaexceeded" in lowered or "quota exceeded" in lowered):
            raise ProviderQuotaError("YouTube API quota exceeded")
        if response.status_code == 404:
            raise ProviderError("Uploads playlist not found")
        raise ProviderError(f"YouTube Data API returned HTTP {response.status_code}")

    async def _fetch_video_details(self, video_ids: list[str]) -> dict[str, tuple[int, int | None]]:
        details: dict[str, tuple[int, int | None]] = {}
        for start in range(0, len(video_ids), _DETAILS_CHUNK):
            chunk = video_ids[start:start + _DETAILS_CHUNK]
            try:
                payload = await self._get("/videos", {"part": "contentDetails,statistics", "id": ",".join(chunk)})
                details.update(_details_from_payload(payload))
            except ProviderError as exc:
                logger.warning("Video details unavailable: %s", exc, extra={"video_count": len(chunk)})
        return details

    async def list_uploads(self, channel_id: str, max_results: int, *, with_details: bool = False) -> list[Upload]:
        """Return up to ``max_results`` of the channel's newest uploads."""

        payload = await self._get(
            "/playlistItems",
            {
                "part": "snippet",
                "playlistId": uploads_playlist_id(channel_id),
                "maxResults": str(min(max_results, 50)),
            },
        )
        uploads: list[Upload] = []
        try:
            for item in payload.get("items") or []:
                upload = _upload_from_item(item)
                if upload is not None:
                    uploads.append(upload)
        except (AttributeError, TypeError) as exc:
            raise ProviderError("Invalid playlist items from YouTube Data API") from exc

        if with_details and uploads:
            details = await self._fetch_video_details([upload.id for upload in uploads])
            enriched: list[Upload] = []
            for upload in uploads:
                duration, views = details.get(upload.id, (None, None))
                enriched.append(replace(upload, duration_seconds=duration, view_count=views))
            uploads = enriched

        return uploads


def uploads_cache_key(channel_id: str, max_results: int, with_details: bool) -> str:
    return f"yt-uploads-{channel_id}-{max_results}-{'dur' if with_details else 'nodur'}"


async def get_channel_uploads(
    provider: UploadsProvider,
    channel_id: str,
    max_results: int = 5,
    *,
    with_details: bool = False,
    skip_cache: bool = False,
    upload_cache: TTLCache = cache,
) -> list[Upload]:
    """Return cached uploads for a channel, fetching on miss or when ``skip_cache`` is set."""

    key = uploads_cache_key(channel_id, max_results, with_details)
    if not skip_cache:
        cached = upload_cache.get(key)
        if cached is not None:
            return list(cached)

    uploads = await provider.list_uploads(channel_id, max_results, with_details=with_details)
    upload_cache.set(key, uploads)
    return list(uploads)


@lru_cache
def get_uploads_provider() -> YouTubeUploadsProvider:
    """Return the shared provider; missing credentials are a startup error."""

    if not settings.youtube_api_key:
        raise ConfigurationError("Fetching channel uploads requires APP_YOUTUBE_API_KEY")
    return YouTubeUploadsProvider(settings.youtube_api_key, timeout=settings.youtube_timeout_seconds)

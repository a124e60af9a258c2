"""Utilities for normalising pasted or bookmarked YouTube channel identifiers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

import httpx

from curator.core.config import settings

CHANNEL_ID_REGEX = re.compile(r"^UC[0-9A-Za-z_-]{22}$")
YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"


class ChannelResolutionError(ValueError):
    """Raised when a channel identifier cannot be normalised."""


@dataclass(slots=True)
class ResolvedChannel:
    """Canonical channel id plus the title when the lookup provided one."""

    channel_id: str
    title: str | None = None


def _fetch_channel_for_handle(handle: str) -> ResolvedChannel:
    """Resolve a YouTube `@handle` into a canonical channel via the Data API."""

    api_key = settings.youtube_api_key
    if not api_key:
        raise ChannelResolutionError("Channel handle resolution requires APP_YOUTUBE_API_KEY")

    normalised_handle = handle.lstrip("@").strip()
    if not normalised_handle:
        raise ChannelResolutionError("Invalid YouTube channel handle")

    params = {
        "part": "id,snippet",
        "forHandle": normalised_handle,
        "key": api_key,
    }

    try:
        response = httpx.get(f"{YOUTUBE_API_BASE}/channels", params=params, timeout=10)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise ChannelResolutionError("Unable to contact YouTube Data API") from exc

    try:
        payload = response.json()
    except ValueError as exc:  # pragma: no cover - defensive for invalid JSON
        raise ChannelResolutionError("Invalid response from YouTube Data API") from exc

    for item in payload.get("items", []):
        channel_id = item.get("id")
        if channel_id and CHANNEL_ID_REGEX.match(channel_id):
            title = (item.get("snippet") or {}).get("title")
            return ResolvedChannel(channel_id=channel_id, title=title)

    raise ChannelResolutionError("Channel handle not found")


def resolve_channel(raw: str) -> ResolvedChannel:
    """Normalise a user-supplied channel identifier.

    Supports:
      * Raw channel IDs (starting with UC)
      * Feed URLs containing `channel_id`
      * Channel URLs (`/channel/UC...`)
      * Handles (`@name`) and handle URLs (`youtube.com/@name`) via the Data API
    """

    identifier = raw.strip()
    if not identifier:
        raise ChannelResolutionError("Empty channel identifier")

    if CHANNEL_ID_REGEX.match(identifier):
        return ResolvedChannel(channel_id=identifier)

    if identifier.startswith("@"):
        return _fetch_channel_for_handle(identifier)

    if identifier.startswith("http://") or identifier.startswith("https://"):
        parsed = urlparse(identifier)
        channel_ids = parse_qs(parsed.query).get("channel_id")
        if channel_ids and CHANNEL_ID_REGEX.match(channel_ids[-1]):
            return ResolvedChannel(channel_id=channel_ids[-1])

        parts = [part for part in parsed.path.split("/") if part]
        if len(parts) >= 2 and parts[0] == "channel" and CHANNEL_ID_REGEX.match(parts[1]):
            return ResolvedChannel(channel_id=parts[1])
        if parts and parts[0].startswith("@"):
            return _fetch_channel_for_handle(parts[0])

        raise ChannelResolutionError("Unsupported YouTube URL format")

    raise ChannelResolutionError("Unsupported channel identifier format")

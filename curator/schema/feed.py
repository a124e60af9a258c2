"""Pydantic models for the discovery feeds."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from curator.services.discovery_pool import Feed


class CardOut(BaseModel):
    id: str
    name: str
    artist: str
    album: str
    image: str
    image_small: str
    source_url: str
    video_id: str
    duration_seconds: int | None
    view_count: int | None
    published_at: datetime | None
    source: str
    genres: list[str]
    channel_labels: list[str]


class FeedPageResponse(BaseModel):
    cards: list[CardOut]
    has_more: bool


class InvalidateRequest(BaseModel):
    """Feeds to drop; every feed when empty."""

    feeds: list[Feed] = []


class InvalidateResponse(BaseModel):
    invalidated: list[Feed]

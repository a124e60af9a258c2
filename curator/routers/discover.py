"""Paginated discovery feeds built from approved channels."""

from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from curator.db.session import get_session
from curator.schema.feed import CardOut, FeedPageResponse, InvalidateRequest, InvalidateResponse
from curator.services import feed_paginator
from curator.services.discovery_pool import Feed, invalidate_pools
from curator.services.feed_paginator import SortOrder
from curator.services.youtube_uploads import UploadsProvider, get_uploads_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/discover", tags=["discover"])

MAX_PAGE_SIZE = 50


async def _serve(
    session: AsyncSession,
    feed: Feed,
    provider: UploadsProvider,
    *,
    limit: int,
    offset: int,
    sort: SortOrder | None,
    genre: str | None = None,
) -> FeedPageResponse:
    try:
        page = await feed_paginator.page(session, feed, provider, limit=limit, offset=offset, sort=sort, genre=genre)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Failed to build %s pool", feed.value)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Unable to build the {feed.value} feed; please retry",
        ) from exc

    return FeedPageResponse(cards=[CardOut(**asdict(card)) for card in page.cards], has_more=page.has_more)


@router.get("", response_model=FeedPageResponse)
async def general_feed(
    limit: int = Query(30, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    sort: SortOrder | None = None,
    genre: str | None = None,
    session: AsyncSession = Depends(get_session),
    provider: UploadsProvider = Depends(get_uploads_provider),
) -> FeedPageResponse:
    return await _serve(session, Feed.GENERAL, provider, limit=limit, offset=offset, sort=sort, genre=genre)


@router.get("/mixes", response_model=FeedPageResponse)
async def mixes_feed(
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    sort: SortOrder | None = None,
    session: AsyncSession = Depends(get_session),
    provider: UploadsProvider = Depends(get_uploads_provider),
) -> FeedPageResponse:
    return await _serve(session, Feed.MIXES, provider, limit=limit, offset=offset, sort=sort)


@router.get("/samples", response_model=FeedPageResponse)
async def samples_feed(
    limit: int = Query(30, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    sort: SortOrder | None = None,
    session: AsyncSession = Depends(get_session),
    provider: UploadsProvider = Depends(get_uploads_provider),
) -> FeedPageResponse:
    return await _serve(session, Feed.SAMPLES, provider, limit=limit, offset=offset, sort=sort)


@router.post("/invalidate", response_model=InvalidateResponse)
async def invalidate(payload: InvalidateRequest | None = None) -> InvalidateResponse:
    feeds = (payload.feeds if payload else None) or list(Feed)
    invalidate_pools(feeds)
    logger.info("Invalidated feed pools", extra={"feeds": [feed.value for feed in feeds]})
    return InvalidateResponse(invalidated=feeds)

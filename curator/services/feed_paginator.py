"""Serve stable offset/limit slices out of the cached feed pools."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from curator.services.cache import TTLCache, cache
from curator.services.cards import CardData
from curator.services.discovery_pool import Feed, get_pool
from curator.services.youtube_uploads import UploadsProvider


class SortOrder(str, Enum):
    TOP = "top"


@dataclass(slots=True)
class FeedPage:
    cards: list[CardData]
    has_more: bool


def _matches_genre(card: CardData, genre: str) -> bool:
    needle = genre.lower()
    return any(needle in value.lower() for value in [*card.genres, *card.channel_labels])


def page_pool(
    pool: Sequence[CardData],
    limit: int,
    offset: int = 0,
    sort: SortOrder | None = None,
    genre: str | None = None,
) -> FeedPage:
    """Slice ``pool`` without mutating it.

    ``has_more`` is only a hint: it is true whenever the slice came back full,
    so the last full page is followed by one empty page.
    """

    cards = list(pool)
    if genre:
        cards = [card for card in cards if _matches_genre(card, genre)]
    if sort is SortOrder.TOP:
        cards = sorted(
            (card for card in cards if card.view_count and card.view_count > 0),
            key=lambda card: card.view_count,
            reverse=True,
        )

    sliced = cards[offset:offset + limit]
    return FeedPage(cards=sliced, has_more=len(sliced) == limit)


async def page(
    session: AsyncSession,
    feed: Feed,
    provider: UploadsProvider,
    *,
    limit: int,
    offset: int = 0,
    sort: SortOrder | None = None,
    genre: str | None = None,
    pool_cache: TTLCache = cache,
) -> FeedPage:
    pool = await get_pool(session, feed, provider, pool_cache=pool_cache)
    return page_pool(pool, limit, offset, sort=sort, genre=genre)

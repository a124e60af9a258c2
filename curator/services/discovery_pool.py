"""Build and cache the per-feed pools of playable cards.

A build runs eligibility -> fetch -> per-video filter -> project -> dedupe ->
shuffle -> cache. Pools are only rebuilt once their cache entry expires or is
invalidated; pagination always reads the cached pool.
"""

from __future__ import annotations

import asyncio
import logging
import random
import weakref
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from curator.core.config import Settings, settings
from curator.db.collections import ApprovedChannel, Collections
from curator.services.cache import TTLCache, cache
from curator.services.cards import CardData, upload_to_card
from curator.services.feed_filters import (
    FeedRules,
    accept_general_upload,
    accept_mix_upload,
    accept_sample_upload,
    is_general_channel,
    is_mix_channel,
    is_sample_channel,
)
from curator.services.youtube_uploads import Upload, UploadsProvider, get_channel_uploads

logger = logging.getLogger(__name__)


class Feed(str, Enum):
    GENERAL = "general"
    MIXES = "mixes"
    SAMPLES = "samples"


POOL_CACHE_KEYS = {
    Feed.GENERAL: "yt-discover-pool",
    Feed.MIXES: "yt-mixes-pool",
    Feed.SAMPLES: "yt-samples-pool",
}


@dataclass(frozen=True, slots=True)
class FetchPlan:
    """One channel to fetch and how many of its uploads to request."""

    channel: ApprovedChannel
    max_results: int
    from_sample_channel: bool = False


def plan_fetches(
    feed: Feed,
    approved: Sequence[ApprovedChannel],
    *,
    rules: FeedRules,
    config: Settings = settings,
    rng: random.Random | None = None,
) -> list[FetchPlan]:
    """Select the approved channels eligible for ``feed``."""

    if feed is Feed.GENERAL:
        return [
            FetchPlan(channel, config.general_uploads_per_channel)
            for channel in approved
            if is_general_channel(channel.labels, rules)
        ]

    if feed is Feed.MIXES:
        return [
            FetchPlan(channel, config.mixes_uploads_per_channel)
            for channel in approved
            if is_mix_channel(channel.labels, rules)
        ]

    rng = rng or random.Random()
    sample_channels = [channel for channel in approved if is_sample_channel(channel.labels, rules)]
    other_channels = [channel for channel in approved if not is_sample_channel(channel.labels, rules)]
    picked_sample = rng.sample(sample_channels, min(config.samples_max_sample_channels, len(sample_channels)))
    picked_other = rng.sample(other_channels, min(config.samples_max_other_channels, len(other_channels)))
    return [
        FetchPlan(channel, config.samples_uploads_per_sample_channel, from_sample_channel=True)
        for channel in picked_sample
    ] + [FetchPlan(channel, config.samples_uploads_per_other_channel) for channel in picked_other]


async def fetch_in_batches(
    plans: Sequence[FetchPlan],
    provider: UploadsProvider,
    *,
    batch_size: int,
    upload_cache: TTLCache = cache,
) -> list[tuple[FetchPlan, list[Upload]]]:
    """Fetch uploads ``batch_size`` channels at a time; failed channels are dropped."""

    batch_size = max(batch_size, 1)
    fetched: list[tuple[FetchPlan, list[Upload]]] = []
    for start in range(0, len(plans), batch_size):
        batch = plans[start:start + batch_size]
        outcomes = await asyncio.gather(
            *(
                get_channel_uploads(
                    provider,
                    plan.channel.id,
                    plan.max_results,
                    with_details=True,
                    upload_cache=upload_cache,
                )
                for plan in batch
            ),
            return_exceptions=True,
        )
        for plan, outcome in zip(batch, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(
                    "Dropping channel from pool build: %s",
                    outcome,
                    extra={"channel_id": plan.channel.id},
                )
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            fetched.append((plan, outcome))
    return fetched


def _accepts(feed: Feed, upload: Upload, plan: FetchPlan, rules: FeedRules) -> bool:
    if feed is Feed.GENERAL:
        return accept_general_upload(upload, rules)
    if feed is Feed.MIXES:
        return accept_mix_upload(upload, rules)
    return accept_sample_upload(upload, rules, from_sample_channel=plan.from_sample_channel)


async def build_pool_from_plans(
    feed: Feed,
    plans: Sequence[FetchPlan],
    provider: UploadsProvider,
    *,
    rules: FeedRules,
    config: Settings = settings,
    upload_cache: TTLCache = cache,
    rng: random.Random | None = None,
) -> list[CardData]:
    fetched = await fetch_in_batches(plans, provider, batch_size=config.pool_batch_size, upload_cache=upload_cache)

    cards: list[CardData] = []
    seen: set[str] = set()
    for plan, uploads in fetched:
        for upload in uploads:
            if not _accepts(feed, upload, plan, rules):
                continue
            card = upload_to_card(upload, plan.channel.labels)
            if card.id in seen:
                continue
            seen.add(card.id)
            cards.append(card)

    (rng or random.Random()).shuffle(cards)
    logger.info(
        "Built %s pool",
        feed.value,
        extra={"channels": len(plans), "fetched": len(fetched), "cards": len(cards)},
    )
    return cards


async def build_pool(
    feed: Feed,
    approved: Sequence[ApprovedChannel],
    provider: UploadsProvider,
    *,
    rules: FeedRules | None = None,
    config: Settings = settings,
    upload_cache: TTLCache = cache,
    rng: random.Random | None = None,
) -> list[CardData]:
    """Build a feed pool from the given approved channels without caching it."""

    rules = rules or FeedRules.from_settings(config)
    plans = plan_fetches(feed, approved, rules=rules, config=config, rng=rng)
    if not plans:
        return []
    return await build_pool_from_plans(
        feed, plans, provider, rules=rules, config=config, upload_cache=upload_cache, rng=rng
    )


_pool_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[Feed, asyncio.Lock]] = (
    weakref.WeakKeyDictionary()
)


def _pool_lock(feed: Feed) -> asyncio.Lock:
    """One build at a time per feed; locks are scoped to the running loop."""

    locks = _pool_locks.setdefault(asyncio.get_running_loop(), {})
    return locks.setdefault(feed, asyncio.Lock())


async def get_pool(
    session: AsyncSession,
    feed: Feed,
    provider: UploadsProvider,
    *,
    config: Settings = settings,
    pool_cache: TTLCache = cache,
    rng: random.Random | None = None,
) -> list[CardData]:
    """Return the cached pool for ``feed``, building it from fresh Approved on a miss."""

    key = POOL_CACHE_KEYS[feed]
    cached = pool_cache.get(key)
    if cached is not None:
        return cached

    async with _pool_lock(feed):
        # Another request may have built the pool while we waited.
        cached = pool_cache.get(key)
        if cached is not None:
            return cached

        rules = FeedRules.from_settings(config)
        approved = await Collections(session).approved.load()
        plans = plan_fetches(feed, approved, rules=rules, config=config, rng=rng)
        if not plans:
            return []

        pool = await build_pool_from_plans(
            feed, plans, provider, rules=rules, config=config, upload_cache=pool_cache, rng=rng
        )
        pool_cache.set(key, pool, config.pool_cache_ttl_seconds)
        return pool


def invalidate_pools(feeds: Sequence[Feed] | None = None, *, pool_cache: TTLCache = cache) -> None:
    for feed in feeds or list(Feed):
        pool_cache.delete(POOL_CACHE_KEYS[feed])

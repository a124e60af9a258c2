"""Tests for building and caching the discovery pools."""

from __future__ import annotations

import asyncio
import random

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from curator.core.config import settings
from curator.db.collections import ApprovedChannel, Collections
from curator.services import discovery_pool
from curator.services.cache import TTLCache
from curator.services.discovery_pool import Feed, FetchPlan
from curator.services.feed_filters import FeedRules
from curator.services.youtube_uploads import ProviderError
from curator.tests.fakes import FakeUploadsProvider, SlowUploadsProvider, make_upload

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def rules() -> FeedRules:
    return FeedRules.from_settings()


def _approved(count: int, labels: list[str] | None) -> list[ApprovedChannel]:
    return [ApprovedChannel(id=f"UC{index}", name=f"Channel {index}", labels=labels) for index in range(count)]


def test_plan_general_and_mixes(rules: FeedRules) -> None:
    approved = [
        ApprovedChannel(id="UCtech", name="Tech", labels=["Techno"]),
        ApprovedChannel(id="UCsamp", name="Samp", labels=["Samples"]),
        ApprovedChannel(id="UCsets", name="Sets", labels=["DJ Sets"]),
        ApprovedChannel(id="UCnone", name="None"),
    ]

    general = discovery_pool.plan_fetches(Feed.GENERAL, approved, rules=rules)
    mixes = discovery_pool.plan_fetches(Feed.MIXES, approved, rules=rules)

    assert [plan.channel.id for plan in general] == ["UCtech", "UCsets"]
    assert all(plan.max_results == settings.general_uploads_per_channel for plan in general)
    assert [plan.channel.id for plan in mixes] == ["UCsets"]
    assert mixes[0].max_results == settings.mixes_uploads_per_channel


def test_plan_samples_caps_channels(rules: FeedRules) -> None:
    approved = _approved(20, ["Samples"]) + [
        ApprovedChannel(id=f"UCother{index}", name="Other", labels=["Techno"]) for index in range(15)
    ]

    plans = discovery_pool.plan_fetches(Feed.SAMPLES, approved, rules=rules, rng=random.Random(3))

    sample_plans = [plan for plan in plans if plan.from_sample_channel]
    other_plans = [plan for plan in plans if not plan.from_sample_channel]
    assert len(sample_plans) == settings.samples_max_sample_channels
    assert len(other_plans) == settings.samples_max_other_channels
    assert all(plan.max_results == settings.samples_uploads_per_sample_channel for plan in sample_plans)
    assert all(plan.max_results == settings.samples_uploads_per_other_channel for plan in other_plans)


@pytest.mark.asyncio
async def test_fetch_in_batches_drops_failed_channels() -> None:
    plans = [FetchPlan(channel, 5) for channel in _approved(5, ["Techno"])]
    provider = FakeUploadsProvider(
        {f"UC{index}": [make_upload(f"v{index}")] for index in range(5)},
        failures={"UC2": ProviderError("boom")},
    )

    fetched = await discovery_pool.fetch_in_batches(plans, provider, batch_size=2, upload_cache=TTLCache(60))

    assert [plan.channel.id for plan, _ in fetched] == ["UC0", "UC1", "UC3", "UC4"]
    assert all(with_details for _, _, with_details in provider.calls)
    assert len(provider.calls) == 5


@pytest.mark.asyncio
async def test_fetch_in_batches_limits_concurrent_calls() -> None:
    plans = [FetchPlan(channel, 5) for channel in _approved(7, ["Techno"])]
    provider = SlowUploadsProvider({f"UC{index}": [make_upload(f"v{index}")] for index in range(7)})

    fetched = await discovery_pool.fetch_in_batches(plans, provider, batch_size=3, upload_cache=TTLCache(60))

    assert len(fetched) == 7
    assert len(provider.calls) == 7
    assert provider.peak == 3


@pytest.mark.asyncio
async def test_build_pool_filters_dedupes_and_projects(rules: FeedRules) -> None:
    approved = [
        ApprovedChannel(id="UCa", name="A", labels=["Techno"]),
        ApprovedChannel(id="UCb", name="B", labels=["House"]),
    ]
    shared = make_upload("shared", "Artist - Shared")
    provider = FakeUploadsProvider(
        {
            "UCa": [shared, make_upload("a1", "Artist - One"), make_upload("a2", "Private video")],
            "UCb": [shared, make_upload("b1", "Artist - Two", duration_seconds=60)],
        }
    )

    pool = await discovery_pool.build_pool(
        Feed.GENERAL, approved, provider, rules=rules, upload_cache=TTLCache(60), rng=random.Random(0)
    )

    assert sorted(card.id for card in pool) == ["yt-a1", "yt-shared"]
    shared_card = next(card for card in pool if card.id == "yt-shared")
    assert shared_card.channel_labels == ["Techno"]


@pytest.mark.asyncio
async def test_build_pool_without_eligible_channels_skips_provider(rules: FeedRules) -> None:
    provider = FakeUploadsProvider()

    pool = await discovery_pool.build_pool(Feed.MIXES, _approved(3, ["Techno"]), provider, rules=rules)

    assert pool == []
    assert provider.calls == []


@pytest.mark.asyncio
async def test_get_pool_caches_until_invalidated(session: AsyncSession) -> None:
    await Collections(session).approved.save([ApprovedChannel(id="UCa", name="A", labels=["Techno"])])
    provider = FakeUploadsProvider({"UCa": [make_upload("a1"), make_upload("a2")]})
    pool_cache = TTLCache(60)

    first = await discovery_pool.get_pool(session, Feed.GENERAL, provider, pool_cache=pool_cache)
    second = await discovery_pool.get_pool(session, Feed.GENERAL, provider, pool_cache=pool_cache)

    assert second is first
    assert len(provider.calls) == 1

    discovery_pool.invalidate_pools([Feed.GENERAL], pool_cache=pool_cache)
    # Uploads stay cached, so only the pool is rebuilt
    rebuilt = await discovery_pool.get_pool(session, Feed.GENERAL, provider, pool_cache=pool_cache)
    assert sorted(card.id for card in rebuilt) == ["yt-a1", "yt-a2"]
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_concurrent_get_pool_builds_once(session: AsyncSession) -> None:
    await Collections(session).approved.save([ApprovedChannel(id="UCa", name="A", labels=["Techno"])])
    provider = SlowUploadsProvider({"UCa": [make_upload("a1"), make_upload("a2")]})
    pool_cache = TTLCache(60)

    first, second = await asyncio.gather(
        discovery_pool.get_pool(session, Feed.GENERAL, provider, pool_cache=pool_cache),
        discovery_pool.get_pool(session, Feed.GENERAL, provider, pool_cache=pool_cache),
    )

    assert second is first
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_get_pool_empty_eligible_set_is_not_cached(session: AsyncSession) -> None:
    pool_cache = TTLCache(60)

    pool = await discovery_pool.get_pool(session, Feed.SAMPLES, FakeUploadsProvider(), pool_cache=pool_cache)

    assert pool == []
    assert len(pool_cache) == 0


@pytest.mark.asyncio
async def test_invalidating_one_feed_keeps_the_others(session: AsyncSession) -> None:
    pool_cache = TTLCache(60)
    pool_cache.set(discovery_pool.POOL_CACHE_KEYS[Feed.GENERAL], ["general"])
    pool_cache.set(discovery_pool.POOL_CACHE_KEYS[Feed.MIXES], ["mixes"])

    discovery_pool.invalidate_pools([Feed.MIXES], pool_cache=pool_cache)

    assert pool_cache.get(discovery_pool.POOL_CACHE_KEYS[Feed.GENERAL]) == ["general"]
    assert pool_cache.get(discovery_pool.POOL_CACHE_KEYS[Feed.MIXES]) is None

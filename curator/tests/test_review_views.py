"""Tests for the read-only review summaries."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from curator.db.collections import ApprovedChannel, Channel, Collections, ImportSource
from curator.services import review_views
from curator.services.channel_registry import import_channels, record_scan

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 1, tzinfo=timezone.utc)


async def _populate(session: AsyncSession, now: datetime) -> None:
    await import_channels(
        session,
        [Channel(id=f"UC{index}", name=f"Channel {index}") for index in range(1, 7)],
        source=ImportSource.SUBSCRIPTION,
        now=now,
    )
    collections = Collections(session)
    await collections.approved.save(
        [
            ApprovedChannel(id="UC1", name="Channel 1", labels=["Techno"]),
            ApprovedChannel(id="UC2", name="Channel 2"),
            ApprovedChannel(id="UC3", name="Channel 3", labels=["House"]),
        ]
    )
    # UC3 is a conflict, UC4 is unsubscribed
    await collections.rejected.save([Channel(id="UC3", name="Channel 3"), Channel(id="UC4", name="Channel 4")])
    await collections.unsub.save([Channel(id="UC4", name="Channel 4")])
    await collections.starred.save([Channel(id="UC1", name="Channel 1")])
    await collections.skipped.save(["UC5", "UC1"])


@pytest.mark.asyncio
async def test_stats(session: AsyncSession, now: datetime) -> None:
    await _populate(session, now)

    stats = await review_views.stats(session)
    assert stats.imported == 6
    assert stats.approved == 3
    assert stats.rejected == 2
    assert stats.unsub == 1
    assert stats.starred == 1
    assert stats.skipped == 1
    assert stats.pending == 2
    assert stats.conflicts == 1
    assert stats.labeled == 2
    assert stats.no_labels == 1


@pytest.mark.asyncio
async def test_coverage_segments(session: AsyncSession, now: datetime) -> None:
    await _populate(session, now)

    coverage = await review_views.coverage(session)
    segments = {name: [channel.id for channel in segment.channels] for name, segment in coverage.segments.items()}

    assert coverage.total == 6
    assert segments["approved"] == ["UC1", "UC2", "UC3"]
    assert segments["rejected"] == ["UC3"]
    assert segments["unsub"] == ["UC4"]
    assert segments["skipped"] == ["UC5"]
    assert segments["unreviewed"] == ["UC5", "UC6"]
    assert segments["conflict"] == ["UC3"]
    assert coverage.segments["approved"].channels[0].is_starred is True
    assert coverage.segments["approved"].count == 3


@pytest.mark.asyncio
async def test_health(session: AsyncSession, now: datetime) -> None:
    await _populate(session, now)
    await record_scan(session, "UC1", uploads_fetched=50, scan_error=None, now=now)
    await record_scan(session, "UC6", uploads_fetched=0, scan_error="Uploads playlist not found", now=now)

    report = await review_views.health(session)

    assert [(item.id, item.issue) for item in report.conflicts] == [("UC3", review_views.CONFLICT_ISSUE)]
    assert [channel.id for channel in report.no_labels] == ["UC2"]
    assert [(item.id, item.issue) for item in report.scan_errors] == [("UC6", "Uploads playlist not found")]
    assert sorted(channel.id for channel in report.never_scanned) == ["UC2", "UC3"]


@pytest.mark.asyncio
async def test_listing_views(session: AsyncSession, now: datetime) -> None:
    await _populate(session, now)

    approved = await review_views.list_approved(session)
    assert [(channel.id, channel.is_starred) for channel in approved] == [
        ("UC1", True),
        ("UC2", False),
        ("UC3", False),
    ]
    assert [channel.id for channel in await review_views.list_rejected(session)] == ["UC3", "UC4"]
    assert [channel.id for channel in await review_views.list_skipped(session)] == ["UC1", "UC5"]
    assert [channel.id for channel in await review_views.list_untagged(session)] == ["UC2"]

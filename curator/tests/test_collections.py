"""Tests for the JSON document collections."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from curator.db.collections import ApprovedChannel, Channel, Collections, ImportSource, RegistryEntry

pytest_plugins = ("pytest_asyncio",)


@pytest.mark.asyncio
async def test_empty_collections_load_as_empty(session: AsyncSession) -> None:
    collections = Collections(session)
    assert await collections.candidates.load() == []
    assert await collections.skipped.load() == []
    assert await collections.registry.load() == {}


@pytest.mark.asyncio
async def test_channel_store_keeps_order(session: AsyncSession) -> None:
    collections = Collections(session)
    await collections.candidates.save([Channel(id="UC2", name="Two"), Channel(id="UC1", name="One")])

    loaded = await collections.candidates.load()
    assert [channel.id for channel in loaded] == ["UC2", "UC1"]


@pytest.mark.asyncio
async def test_approved_labels_round_trip_and_empty_labels_are_omitted(session: AsyncSession) -> None:
    collections = Collections(session)
    await collections.approved.save(
        [ApprovedChannel(id="UC1", name="One", labels=["Techno"]), ApprovedChannel(id="UC2", name="Two", labels=[])]
    )

    loaded = await collections.approved.load()
    assert loaded[0].labels == ["Techno"]
    assert loaded[1].labels is None
    assert "labels" not in loaded[1].to_document()


@pytest.mark.asyncio
async def test_save_replaces_whole_snapshot(session: AsyncSession) -> None:
    collections = Collections(session)
    await collections.skipped.save(["UC1", "UC2"])
    await collections.skipped.save(["UC3"])

    assert await collections.skipped.load() == ["UC3"]


@pytest.mark.asyncio
async def test_registry_round_trips_timestamps(session: AsyncSession) -> None:
    imported = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    collections = Collections(session)
    await collections.registry.save(
        {
            "UC1": RegistryEntry(
                id="UC1",
                name="One",
                imported_at=imported,
                import_source=ImportSource.BOOKMARKS,
                uploads_fetched=12,
                scan_error="quota",
            )
        }
    )

    entry = (await collections.registry.load())["UC1"]
    assert entry.imported_at == imported
    assert entry.import_source is ImportSource.BOOKMARKS
    assert entry.reviewed_at is None
    assert entry.uploads_fetched == 12
    assert entry.scan_error == "quota"


@pytest.mark.asyncio
async def test_rollback_restores_previous_snapshot(session: AsyncSession) -> None:
    collections = Collections(session)
    await collections.rejected.save([Channel(id="UC1", name="One")])
    await session.commit()

    await collections.rejected.save([])
    await session.rollback()

    assert [channel.id for channel in await collections.rejected.load()] == ["UC1"]

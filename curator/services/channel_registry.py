"""Helpers for importing candidate channels and maintaining the registry."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from curator.db.collections import Channel, Collections, ImportSource, RegistryEntry
from curator.services.channel_resolver import ChannelResolutionError, resolve_channel

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportResult:
    """Outcome of an import run."""

    added: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


async def get_candidate(session: AsyncSession, channel_id: str) -> Channel | None:
    """Fetch an imported channel by id."""

    for channel in await Collections(session).candidates.load():
        if channel.id == channel_id:
            return channel
    return None


async def import_channels(
    session: AsyncSession,
    channels: Iterable[Channel],
    *,
    source: ImportSource,
    now: datetime | None = None,
) -> ImportResult:
    """Append unseen channels to the candidates list and create their registry entries."""

    now = now or datetime.now(timezone.utc)
    collections = Collections(session)
    candidates = await collections.candidates.load()
    registry = await collections.registry.load()
    known = {channel.id for channel in candidates}

    result = ImportResult()
    for channel in channels:
        if channel.id in known:
            result.existing.append(channel.id)
            continue
        known.add(channel.id)
        candidates.append(Channel(id=channel.id, name=channel.name))
        registry.setdefault(
            channel.id,
            RegistryEntry(id=channel.id, name=channel.name, imported_at=now, import_source=source),
        )
        result.added.append(channel.id)

    if result.added:
        await collections.candidates.save(candidates)
        await collections.registry.save(registry)
        logger.info("Imported channels", extra={"source": source.value, "count": len(result.added)})
    return result


async def import_identifiers(
    session: AsyncSession,
    lines: Iterable[str],
    *,
    source: ImportSource = ImportSource.PASTE,
    now: datetime | None = None,
) -> ImportResult:
    """Resolve pasted ids, URLs or handles and import the channels they name."""

    resolved: list[Channel] = []
    failed: list[str] = []
    for line in lines:
        raw = line.strip()
        if not raw:
            continue
        try:
            channel = resolve_channel(raw)
        except ChannelResolutionError as exc:
            logger.warning("Could not resolve channel identifier %s: %s", raw, exc)
            failed.append(raw)
            continue
        resolved.append(Channel(id=channel.channel_id, name=channel.title or channel.channel_id))

    result = await import_channels(session, resolved, source=source, now=now)
    result.failed.extend(failed)
    return result


async def record_scan(
    session: AsyncSession,
    channel_id: str,
    *,
    uploads_fetched: int,
    scan_error: str | None,
    now: datetime | None = None,
) -> bool:
    """Store the outcome of an uploads fetch; returns False for unregistered channels."""

    collections = Collections(session)
    registry = await collections.registry.load()
    entry = registry.get(channel_id)
    if entry is None:
        return False

    entry.last_scanned_at = now or datetime.now(timezone.utc)
    entry.uploads_fetched = uploads_fetched
    entry.scan_error = scan_error
    await collections.registry.save(registry)
    return True


async def backfill_registry(
    session: AsyncSession,
    *,
    source: ImportSource = ImportSource.SUBSCRIPTION,
    now: datetime | None = None,
) -> int:
    """Create registry entries for candidates that lack one; returns how many were added."""

    now = now or datetime.now(timezone.utc)
    collections = Collections(session)
    registry = await collections.registry.load()
    decided: set[str] = set()
    for store in (collections.approved, collections.rejected, collections.unsub):
        decided.update(channel.id for channel in await store.load())

    added = 0
    for channel in await collections.candidates.load():
        if channel.id in registry:
            continue
        registry[channel.id] = RegistryEntry(
            id=channel.id,
            name=channel.name,
            imported_at=now,
            import_source=source,
            reviewed_at=now if channel.id in decided else None,
        )
        added += 1

    if added:
        await collections.registry.save(registry)
    return added

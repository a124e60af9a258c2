"""Review queue: present undecided channels one at a time and record decisions.

The engine keeps no state of its own between calls. Progress lives entirely in
the collections, so a restarted process resumes at the same channel. Undo
history belongs to the caller (see ``review_history``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from curator.core.config import settings
from curator.db.collections import ApprovedChannel, Channel, ChannelStore, Collections
from curator.services.cache import TTLCache, cache
from curator.services.channel_registry import get_candidate, record_scan
from curator.services.upload_sampler import SampledUpload, sample_uploads
from curator.services.youtube_uploads import ProviderError, Upload, UploadsProvider, get_channel_uploads

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    UNSUBSCRIBE = "unsubscribe"


class ConflictSide(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class ChannelNotFoundError(LookupError):
    """Raised when an operation needs a channel that was never imported."""


class UnknownLabelError(ValueError):
    """Raised when labels fall outside the genre vocabulary."""


@dataclass(slots=True)
class CurationSnapshot:
    """All decision collections loaded together for read-only computations."""

    candidates: list[Channel]
    approved: list[ApprovedChannel]
    rejected: list[Channel]
    unsub: list[Channel]
    starred: list[Channel]
    skipped: list[str]
    approved_ids: set[str] = field(init=False)
    rejected_ids: set[str] = field(init=False)
    unsub_ids: set[str] = field(init=False)
    starred_ids: set[str] = field(init=False)
    skipped_ids: set[str] = field(init=False)
    decided_ids: set[str] = field(init=False)

    def __post_init__(self) -> None:
        self.approved_ids = {channel.id for channel in self.approved}
        self.rejected_ids = {channel.id for channel in self.rejected}
        self.unsub_ids = {channel.id for channel in self.unsub}
        self.starred_ids = {channel.id for channel in self.starred}
        self.skipped_ids = set(self.skipped)
        self.decided_ids = self.approved_ids | self.rejected_ids | self.unsub_ids

    @property
    def unreviewed(self) -> list[Channel]:
        return [channel for channel in self.candidates if channel.id not in self.decided_ids]

    @property
    def effectively_skipped(self) -> list[Channel]:
        # A skipped id that has since been decided no longer counts as skipped
        return [channel for channel in self.unreviewed if channel.id in self.skipped_ids]

    @property
    def reviewed_count(self) -> int:
        return sum(1 for channel in self.candidates if channel.id in self.decided_ids)

    @property
    def conflicts(self) -> list[ApprovedChannel]:
        return [channel for channel in self.approved if channel.id in self.rejected_ids]


async def load_snapshot(session: AsyncSession) -> CurationSnapshot:
    collections = Collections(session)
    return CurationSnapshot(
        candidates=await collections.candidates.load(),
        approved=await collections.approved.load(),
        rejected=await collections.rejected.load(),
        unsub=await collections.unsub.load(),
        starred=await collections.starred.load(),
        skipped=await collections.skipped.load(),
    )


@dataclass(slots=True)
class QueueItem:
    """The single channel currently up for review."""

    channel: Channel
    reviewed: int
    total: int
    remaining: int
    approved_count: int
    unsub_count: int
    starred_count: int
    is_starred: bool


@dataclass(slots=True)
class QueueDone:
    """Terminal result once every candidate is decided or skipped."""

    reviewed: int
    total: int
    approved_count: int
    rejected_count: int
    unsub_count: int
    starred_count: int
    skipped_count: int
    starred_channels: list[Channel]
    approved_channels: list[ApprovedChannel]
    unsub_channels: list[Channel]
    done: bool = True


@dataclass(slots=True)
class UndoResult:
    removed_from: Decision | None
    channel: ApprovedChannel | None


@dataclass(slots=True)
class StarResult:
    starred: bool
    starred_count: int


@dataclass(slots=True)
class ScanResult:
    """Uploads shown for a channel plus the recorded scan outcome."""

    channel: Channel
    uploads: list[SampledUpload]
    uploads_fetched: int
    scan_error: str | None


def normalise_labels(labels: Iterable[str] | None, vocabulary: Iterable[str] | None = None) -> list[str] | None:
    """Map labels onto the vocabulary's spelling; ``None`` when nothing remains."""

    lookup = {label.lower(): label for label in (vocabulary or settings.genre_labels)}
    result: list[str] = []
    unknown: list[str] = []
    for label in labels or []:
        canonical = lookup.get(label.strip().lower())
        if canonical is None:
            unknown.append(label)
        elif canonical not in result:
            result.append(canonical)

    if unknown:
        raise UnknownLabelError(f"Unknown labels: {', '.join(unknown)}")
    return result or None


def _contains(records: Iterable[Channel | ApprovedChannel], channel_id: str) -> bool:
    return any(record.id == channel_id for record in records)


async def _remove(store: ChannelStore, channel_id: str) -> Channel | ApprovedChannel | None:
    records = await store.load()
    removed = next((record for record in records if record.id == channel_id), None)
    if removed is not None:
        await store.save([record for record in records if record.id != channel_id])
    return removed


async def _insert(store: ChannelStore, record: Channel | ApprovedChannel) -> bool:
    records = await store.load()
    if _contains(records, record.id):
        return False
    records.append(record)
    await store.save(records)
    return True


async def _withdraw_approval(collections: Collections, channel_id: str) -> None:
    await _remove(collections.approved, channel_id)
    await _remove(collections.starred, channel_id)


async def _withdraw_rejection(collections: Collections, channel_id: str) -> None:
    await _remove(collections.rejected, channel_id)
    await _remove(collections.unsub, channel_id)


async def _drop_skip(collections: Collections, channel_id: str) -> None:
    skipped = await collections.skipped.load()
    if channel_id in skipped:
        await collections.skipped.save([item for item in skipped if item != channel_id])


async def _stamp_reviewed(collections: Collections, channel_id: str, now: datetime) -> None:
    registry = await collections.registry.load()
    entry = registry.get(channel_id)
    if entry is None:
        logger.debug("No registry entry to stamp", extra={"channel_id": channel_id})
        return
    entry.reviewed_at = now
    await collections.registry.save(registry)


async def next_channel(session: AsyncSession) -> QueueItem | QueueDone:
    """Return the first undecided, unskipped candidate in import order."""

    snapshot = await load_snapshot(session)
    unreviewed = snapshot.unreviewed
    available = [channel for channel in unreviewed if channel.id not in snapshot.skipped_ids]
    reviewed = snapshot.reviewed_count
    total = len(snapshot.candidates)

    if not available:
        return QueueDone(
            reviewed=reviewed,
            total=total,
            approved_count=len(snapshot.approved),
            rejected_count=len(snapshot.rejected),
            unsub_count=len(snapshot.unsub),
            starred_count=len(snapshot.starred),
            skipped_count=len(snapshot.effectively_skipped),
            starred_channels=snapshot.starred,
            approved_channels=snapshot.approved,
            unsub_channels=snapshot.unsub,
        )

    channel = available[0]
    return QueueItem(
        channel=channel,
        reviewed=reviewed,
        total=total,
        remaining=len(unreviewed),
        approved_count=len(snapshot.approved),
        unsub_count=len(snapshot.unsub),
        starred_count=len(snapshot.starred),
        is_starred=channel.id in snapshot.starred_ids,
    )


async def decide(
    session: AsyncSession,
    channel_id: str,
    name: str,
    decision: Decision,
    labels: Iterable[str] | None = None,
    *,
    now: datetime | None = None,
) -> None:
    """Record a review decision.

    Inserts are membership-tested, so repeating a decision writes nothing new.
    The opposing segment is withdrawn so a channel never ends up approved and
    rejected at once.
    """

    now = now or datetime.now(timezone.utc)
    collections = Collections(session)

    if decision is Decision.APPROVE:
        normalised = normalise_labels(labels)
        await _withdraw_rejection(collections, channel_id)
        await _insert(collections.approved, ApprovedChannel(id=channel_id, name=name, labels=normalised))
    else:
        await _withdraw_approval(collections, channel_id)
        await _insert(collections.rejected, Channel(id=channel_id, name=name))
        if decision is Decision.UNSUBSCRIBE:
            await _insert(collections.unsub, Channel(id=channel_id, name=name))
        else:
            await _remove(collections.unsub, channel_id)

    await _stamp_reviewed(collections, channel_id, now)
    await _drop_skip(collections, channel_id)
    logger.info("Recorded decision", extra={"channel_id": channel_id, "decision": decision.value})


async def undo(session: AsyncSession, channel_id: str, *, restore_starred: bool | None = None) -> UndoResult:
    """Remove a channel from every decision collection.

    ``restore_starred`` is the caller's record of the star state before the
    decision; when given, Starred is set back to it.
    """

    collections = Collections(session)
    approved = await _remove(collections.approved, channel_id)
    rejected = await _remove(collections.rejected, channel_id)
    unsub = await _remove(collections.unsub, channel_id)
    await _drop_skip(collections, channel_id)

    if approved is not None:
        removed_from = Decision.APPROVE
        channel = approved
    elif unsub is not None:
        removed_from = Decision.UNSUBSCRIBE
        channel = ApprovedChannel(id=unsub.id, name=unsub.name)
    elif rejected is not None:
        removed_from = Decision.REJECT
        channel = ApprovedChannel(id=rejected.id, name=rejected.name)
    else:
        removed_from = None
        channel = None

    if restore_starred is not None:
        starred = await collections.starred.load()
        is_starred = _contains(starred, channel_id)
        if restore_starred and not is_starred:
            starred.append(Channel(id=channel_id, name=channel.name if channel else ""))
            await collections.starred.save(starred)
        elif not restore_starred and is_starred:
            await collections.starred.save([record for record in starred if record.id != channel_id])

    return UndoResult(removed_from=removed_from, channel=channel)


async def skip(session: AsyncSession, channel_id: str) -> int:
    """Park a channel until the skip list is cleared; returns the skip count."""

    collections = Collections(session)
    skipped = await collections.skipped.load()
    if channel_id not in skipped:
        skipped.append(channel_id)
        await collections.skipped.save(skipped)
    return len(skipped)


async def unskip(session: AsyncSession, channel_id: str) -> int:
    collections = Collections(session)
    await _drop_skip(collections, channel_id)
    return len(await collections.skipped.load())


async def clear_skipped(session: AsyncSession) -> None:
    await Collections(session).skipped.save([])


async def toggle_star(session: AsyncSession, channel_id: str, name: str) -> StarResult:
    collections = Collections(session)
    starred = await collections.starred.load()
    if _contains(starred, channel_id):
        starred = [record for record in starred if record.id != channel_id]
        is_starred = False
    else:
        starred.append(Channel(id=channel_id, name=name))
        is_starred = True
    await collections.starred.save(starred)
    return StarResult(starred=is_starred, starred_count=len(starred))


async def set_labels(session: AsyncSession, channel_id: str, labels: Iterable[str]) -> bool:
    """Overwrite an approved channel's labels; False when the channel is not approved."""

    normalised = normalise_labels(labels)
    collections = Collections(session)
    approved = await collections.approved.load()
    for record in approved:
        if record.id == channel_id:
            record.labels = normalised
            await collections.approved.save(approved)
            return True
    return False


async def change_decision(
    session: AsyncSession,
    channel_id: str,
    name: str,
    new_decision: Decision,
    *,
    now: datetime | None = None,
) -> None:
    """Walk back an approval into a rejection or unsubscribe."""

    if new_decision is Decision.APPROVE:
        raise ValueError("change_decision only moves channels out of Approved")

    await _withdraw_approval(Collections(session), channel_id)
    await decide(session, channel_id, name, new_decision, now=now)


async def resolve_conflict(session: AsyncSession, channel_id: str, keep: ConflictSide) -> None:
    """Drop a channel found in both Approved and Rejected from the side not kept."""

    collections = Collections(session)
    if keep is ConflictSide.APPROVED:
        await _withdraw_rejection(collections, channel_id)
    else:
        await _withdraw_approval(collections, channel_id)
    logger.info("Resolved conflict", extra={"channel_id": channel_id, "keep": keep.value})


async def rescue(
    session: AsyncSession,
    channel_id: str,
    name: str | None = None,
    labels: Iterable[str] | None = None,
) -> None:
    """Move a wrongly rejected channel into Approved."""

    normalised = normalise_labels(labels)
    collections = Collections(session)
    rejected = await _remove(collections.rejected, channel_id)
    await _remove(collections.unsub, channel_id)
    if not name and rejected is not None:
        name = rejected.name
    await _insert(collections.approved, ApprovedChannel(id=channel_id, name=name or "", labels=normalised))


async def scan_channel(
    session: AsyncSession,
    channel_id: str,
    *,
    provider: UploadsProvider,
    skip_cache: bool = False,
    upload_cache: TTLCache = cache,
    now: datetime | None = None,
) -> ScanResult:
    """Fetch a candidate's uploads, record the scan on its registry entry and sample them.

    Provider failures are recorded as the scan error and yield an empty
    upload list.
    """

    channel = await get_candidate(session, channel_id)
    if channel is None:
        raise ChannelNotFoundError(channel_id)

    uploads: list[Upload] = []
    scan_error: str | None = None
    try:
        uploads = await get_channel_uploads(
            provider,
            channel.id,
            settings.review_uploads_per_channel,
            with_details=True,
            skip_cache=skip_cache,
            upload_cache=upload_cache,
        )
    except ProviderError as exc:
        logger.warning("Failed to fetch uploads for %s: %s", channel.name, exc, extra={"channel_id": channel.id})
        scan_error = str(exc)

    await record_scan(session, channel.id, uploads_fetched=len(uploads), scan_error=scan_error, now=now)
    return ScanResult(
        channel=channel,
        uploads=sample_uploads(uploads),
        uploads_fetched=len(uploads),
        scan_error=scan_error,
    )

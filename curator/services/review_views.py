"""Read-only summaries over the curation collections."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from curator.db.collections import ApprovedChannel, Channel, Collections, RegistryEntry
from curator.services.review_queue import load_snapshot

CONFLICT_ISSUE = "In both approved & rejected"


@dataclass(slots=True)
class ReviewStats:
    imported: int
    approved: int
    rejected: int
    unsub: int
    starred: int
    skipped: int
    pending: int
    conflicts: int
    labeled: int
    no_labels: int


@dataclass(slots=True)
class ListedChannel:
    id: str
    name: str
    labels: list[str] | None = None
    is_starred: bool = False


@dataclass(slots=True)
class CoverageSegment:
    count: int
    channels: list[ListedChannel]


@dataclass(slots=True)
class Coverage:
    total: int
    segments: dict[str, CoverageSegment]


@dataclass(slots=True)
class HealthIssue:
    id: str
    name: str
    issue: str


@dataclass(slots=True)
class HealthReport:
    conflicts: list[HealthIssue] = field(default_factory=list)
    no_labels: list[ListedChannel] = field(default_factory=list)
    scan_errors: list[HealthIssue] = field(default_factory=list)
    never_scanned: list[ListedChannel] = field(default_factory=list)


def _listed(channel: Channel | ApprovedChannel, starred_ids: set[str] | None = None) -> ListedChannel:
    return ListedChannel(
        id=channel.id,
        name=channel.name,
        labels=getattr(channel, "labels", None),
        is_starred=channel.id in (starred_ids or set()),
    )


def _segment(channels: list[ListedChannel]) -> CoverageSegment:
    return CoverageSegment(count=len(channels), channels=channels)


def _unlabeled(approved: list[ApprovedChannel]) -> list[ApprovedChannel]:
    return [channel for channel in approved if not channel.labels]


async def stats(session: AsyncSession) -> ReviewStats:
    snapshot = await load_snapshot(session)
    no_labels = len(_unlabeled(snapshot.approved))
    return ReviewStats(
        imported=len(snapshot.candidates),
        approved=len(snapshot.approved),
        rejected=len(snapshot.rejected),
        unsub=len(snapshot.unsub),
        starred=len(snapshot.starred),
        skipped=len(snapshot.effectively_skipped),
        pending=len(snapshot.unreviewed),
        conflicts=len(snapshot.conflicts),
        labeled=len(snapshot.approved) - no_labels,
        no_labels=no_labels,
    )


async def coverage(session: AsyncSession) -> Coverage:
    """Break every collection down into the segments of the coverage bar."""

    snapshot = await load_snapshot(session)
    rejected_only = [channel for channel in snapshot.rejected if channel.id not in snapshot.unsub_ids]
    return Coverage(
        total=len(snapshot.candidates),
        segments={
            "approved": _segment([_listed(channel, snapshot.starred_ids) for channel in snapshot.approved]),
            "rejected": _segment([_listed(channel) for channel in rejected_only]),
            "unsub": _segment([_listed(channel) for channel in snapshot.unsub]),
            "skipped": _segment([_listed(channel) for channel in snapshot.effectively_skipped]),
            "unreviewed": _segment([_listed(channel) for channel in snapshot.unreviewed]),
            "conflict": _segment([_listed(channel) for channel in snapshot.conflicts]),
        },
    )


async def health(session: AsyncSession) -> HealthReport:
    snapshot = await load_snapshot(session)
    registry: dict[str, RegistryEntry] = await Collections(session).registry.load()

    report = HealthReport(
        conflicts=[
            HealthIssue(id=channel.id, name=channel.name, issue=CONFLICT_ISSUE) for channel in snapshot.conflicts
        ],
        no_labels=[_listed(channel) for channel in _unlabeled(snapshot.approved)],
    )
    for entry in registry.values():
        if entry.scan_error:
            report.scan_errors.append(HealthIssue(id=entry.id, name=entry.name, issue=entry.scan_error))
        if entry.last_scanned_at is None and entry.id in snapshot.approved_ids:
            report.never_scanned.append(ListedChannel(id=entry.id, name=entry.name))
    return report


async def list_approved(session: AsyncSession) -> list[ListedChannel]:
    snapshot = await load_snapshot(session)
    return [_listed(channel, snapshot.starred_ids) for channel in snapshot.approved]


async def list_rejected(session: AsyncSession) -> list[ListedChannel]:
    return [_listed(channel) for channel in await Collections(session).rejected.load()]


async def list_skipped(session: AsyncSession) -> list[ListedChannel]:
    snapshot = await load_snapshot(session)
    return [_listed(channel) for channel in snapshot.candidates if channel.id in snapshot.skipped_ids]


async def list_untagged(session: AsyncSession) -> list[ListedChannel]:
    approved = await Collections(session).approved.load()
    return [_listed(channel) for channel in _unlabeled(approved)]

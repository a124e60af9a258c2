"""API endpoints driving the channel review queue."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from curator.db.collections import ApprovedChannel, Channel
from curator.db.session import get_session
from curator.schema.review import (
    ChangeDecisionRequest,
    ChannelListResponse,
    ChannelOut,
    CoverageResponse,
    CoverageSegmentOut,
    DecisionRequest,
    HealthIssueOut,
    HealthResponse,
    ImportRequest,
    ImportResponse,
    LabelsRequest,
    QueueDoneResponse,
    QueueItemResponse,
    RescueRequest,
    ResolveConflictRequest,
    ScanResponse,
    SkipRequest,
    SkipResponse,
    StarRequest,
    StarResponse,
    StatsResponse,
    StatusResponse,
    UndoResponse,
    UploadOut,
)
from curator.services import review_queue, review_views
from curator.services.channel_registry import import_channels, import_identifiers
from curator.services.review_queue import ChannelNotFoundError, QueueDone, ScanResult, UnknownLabelError
from curator.services.review_views import ListedChannel
from curator.services.youtube_uploads import UploadsProvider, get_uploads_provider

router = APIRouter(prefix="/review", tags=["review"])


def _channel_out(channel: Channel | ApprovedChannel | ListedChannel) -> ChannelOut:
    return ChannelOut(
        id=channel.id,
        name=channel.name,
        labels=getattr(channel, "labels", None),
        is_starred=getattr(channel, "is_starred", False),
    )


def _channel_list(channels: list[ListedChannel]) -> ChannelListResponse:
    return ChannelListResponse(channels=[_channel_out(channel) for channel in channels])


def _scan_response(result: ScanResult) -> ScanResponse:
    return ScanResponse(
        channel=_channel_out(result.channel),
        uploads=[
            UploadOut(
                id=sampled.upload.id,
                title=sampled.upload.title,
                channel_title=sampled.upload.channel_title,
                thumbnail_url=sampled.upload.thumbnail_url,
                duration_seconds=sampled.upload.duration_seconds,
                view_count=sampled.upload.view_count,
                published_at=sampled.upload.published_at,
                is_top_viewed=sampled.is_top_viewed,
            )
            for sampled in result.uploads
        ],
        uploads_fetched=result.uploads_fetched,
        scan_error=result.scan_error,
    )


def _bad_labels(exc: UnknownLabelError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/next", response_model=QueueItemResponse | QueueDoneResponse)
async def next_channel(
    session: AsyncSession = Depends(get_session),
    provider: UploadsProvider = Depends(get_uploads_provider),
) -> QueueItemResponse | QueueDoneResponse:
    item = await review_queue.next_channel(session)
    if isinstance(item, QueueDone):
        return QueueDoneResponse(
            reviewed=item.reviewed,
            total=item.total,
            approved_count=item.approved_count,
            rejected_count=item.rejected_count,
            unsub_count=item.unsub_count,
            starred_count=item.starred_count,
            skipped_count=item.skipped_count,
            starred_channels=[_channel_out(channel) for channel in item.starred_channels],
            approved_channels=[_channel_out(channel) for channel in item.approved_channels],
            unsub_channels=[_channel_out(channel) for channel in item.unsub_channels],
        )

    scan = _scan_response(await review_queue.scan_channel(session, item.channel.id, provider=provider))
    await session.commit()
    return QueueItemResponse(
        channel=_channel_out(item.channel),
        reviewed=item.reviewed,
        total=item.total,
        remaining=item.remaining,
        approved_count=item.approved_count,
        unsub_count=item.unsub_count,
        starred_count=item.starred_count,
        is_starred=item.is_starred,
        uploads=scan.uploads,
        uploads_fetched=scan.uploads_fetched,
        scan_error=scan.scan_error,
    )


@router.post("/channels/{channel_id}/rescan", response_model=ScanResponse)
async def rescan_channel(
    channel_id: str,
    session: AsyncSession = Depends(get_session),
    provider: UploadsProvider = Depends(get_uploads_provider),
) -> ScanResponse:
    try:
        result = await review_queue.scan_channel(session, channel_id, provider=provider, skip_cache=True)
    except ChannelNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found") from exc

    await session.commit()
    return _scan_response(result)


@router.post("/decisions", response_model=StatusResponse, status_code=status.HTTP_201_CREATED)
async def record_decision(
    payload: DecisionRequest,
    session: AsyncSession = Depends(get_session),
) -> StatusResponse:
    try:
        await review_queue.decide(session, payload.channel_id, payload.name, payload.decision, payload.labels)
    except UnknownLabelError as exc:
        raise _bad_labels(exc) from exc

    await session.commit()
    return StatusResponse()


@router.delete("/decisions/{channel_id}", response_model=UndoResponse)
async def undo_decision(
    channel_id: str,
    restore_starred: bool | None = None,
    session: AsyncSession = Depends(get_session),
) -> UndoResponse:
    result = await review_queue.undo(session, channel_id, restore_starred=restore_starred)
    await session.commit()
    return UndoResponse(
        removed_from=result.removed_from,
        channel=_channel_out(result.channel) if result.channel else None,
    )


@router.post("/skipped", response_model=SkipResponse)
async def skip_channel(payload: SkipRequest, session: AsyncSession = Depends(get_session)) -> SkipResponse:
    count = await review_queue.skip(session, payload.channel_id)
    await session.commit()
    return SkipResponse(skipped_count=count)


@router.delete("/skipped", response_model=SkipResponse)
async def clear_skipped(session: AsyncSession = Depends(get_session)) -> SkipResponse:
    await review_queue.clear_skipped(session)
    await session.commit()
    return SkipResponse(skipped_count=0)


@router.delete("/skipped/{channel_id}", response_model=SkipResponse)
async def unskip_channel(channel_id: str, session: AsyncSession = Depends(get_session)) -> SkipResponse:
    count = await review_queue.unskip(session, channel_id)
    await session.commit()
    return SkipResponse(skipped_count=count)


@router.post("/starred/{channel_id}", response_model=StarResponse)
async def toggle_star(
    channel_id: str,
    payload: StarRequest,
    session: AsyncSession = Depends(get_session),
) -> StarResponse:
    result = await review_queue.toggle_star(session, channel_id, payload.name)
    await session.commit()
    return StarResponse(starred=result.starred, starred_count=result.starred_count)


@router.put("/approved/{channel_id}/labels", response_model=StatusResponse)
async def update_labels(
    channel_id: str,
    payload: LabelsRequest,
    session: AsyncSession = Depends(get_session),
) -> StatusResponse:
    try:
        updated = await review_queue.set_labels(session, channel_id, payload.labels)
    except UnknownLabelError as exc:
        raise _bad_labels(exc) from exc

    await session.commit()
    return StatusResponse(ok=updated)


@router.post("/approved/{channel_id}/change-decision", response_model=StatusResponse)
async def change_decision(
    channel_id: str,
    payload: ChangeDecisionRequest,
    session: AsyncSession = Depends(get_session),
) -> StatusResponse:
    try:
        await review_queue.change_decision(session, channel_id, payload.name, payload.decision)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    await session.commit()
    return StatusResponse()


@router.post("/conflicts/{channel_id}/resolve", response_model=StatusResponse)
async def resolve_conflict(
    channel_id: str,
    payload: ResolveConflictRequest,
    session: AsyncSession = Depends(get_session),
) -> StatusResponse:
    await review_queue.resolve_conflict(session, channel_id, payload.keep)
    await session.commit()
    return StatusResponse()


@router.post("/rejected/{channel_id}/rescue", response_model=StatusResponse)
async def rescue_channel(
    channel_id: str,
    payload: RescueRequest,
    session: AsyncSession = Depends(get_session),
) -> StatusResponse:
    try:
        await review_queue.rescue(session, channel_id, payload.name, payload.labels)
    except UnknownLabelError as exc:
        raise _bad_labels(exc) from exc

    await session.commit()
    return StatusResponse()


@router.post("/import", response_model=ImportResponse)
async def import_candidates(payload: ImportRequest, session: AsyncSession = Depends(get_session)) -> ImportResponse:
    result = await import_identifiers(session, payload.identifiers, source=payload.source)
    if payload.channels:
        direct = await import_channels(
            session,
            [Channel(id=channel.id, name=channel.name or channel.id) for channel in payload.channels],
            source=payload.source,
        )
        result.added.extend(direct.added)
        result.existing.extend(direct.existing)

    await session.commit()
    return ImportResponse(added=result.added, existing=result.existing, failed=result.failed)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(session: AsyncSession = Depends(get_session)) -> StatsResponse:
    stats = await review_views.stats(session)
    return StatsResponse(
        imported=stats.imported,
        approved=stats.approved,
        rejected=stats.rejected,
        unsub=stats.unsub,
        starred=stats.starred,
        skipped=stats.skipped,
        pending=stats.pending,
        conflicts=stats.conflicts,
        labeled=stats.labeled,
        no_labels=stats.no_labels,
    )


@router.get("/coverage", response_model=CoverageResponse)
async def get_coverage(session: AsyncSession = Depends(get_session)) -> CoverageResponse:
    coverage = await review_views.coverage(session)
    return CoverageResponse(
        total=coverage.total,
        segments={
            name: CoverageSegmentOut(
                count=segment.count,
                channels=[_channel_out(channel) for channel in segment.channels],
            )
            for name, segment in coverage.segments.items()
        },
    )


@router.get("/health", response_model=HealthResponse)
async def get_health(session: AsyncSession = Depends(get_session)) -> HealthResponse:
    report = await review_views.health(session)
    return HealthResponse(
        conflicts=[HealthIssueOut(id=item.id, name=item.name, issue=item.issue) for item in report.conflicts],
        no_labels=[_channel_out(channel) for channel in report.no_labels],
        scan_errors=[HealthIssueOut(id=item.id, name=item.name, issue=item.issue) for item in report.scan_errors],
        never_scanned=[_channel_out(channel) for channel in report.never_scanned],
    )


@router.get("/approved", response_model=ChannelListResponse)
async def list_approved(session: AsyncSession = Depends(get_session)) -> ChannelListResponse:
    return _channel_list(await review_views.list_approved(session))


@router.get("/rejected", response_model=ChannelListResponse)
async def list_rejected(session: AsyncSession = Depends(get_session)) -> ChannelListResponse:
    return _channel_list(await review_views.list_rejected(session))


@router.get("/skipped", response_model=ChannelListResponse)
async def list_skipped(session: AsyncSession = Depends(get_session)) -> ChannelListResponse:
    return _channel_list(await review_views.list_skipped(session))


@router.get("/untagged", response_model=ChannelListResponse)
async def list_untagged(session: AsyncSession = Depends(get_session)) -> ChannelListResponse:
    return _channel_list(await review_views.list_untagged(session))

"""Pydantic models for the review API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from curator.db.collections import ImportSource
from curator.services.review_queue import ConflictSide, Decision


class ChannelOut(BaseModel):
    id: str
    name: str
    labels: list[str] | None = None
    is_starred: bool = False


class ChannelListResponse(BaseModel):
    """Wrapper containing listed channels."""

    channels: list[ChannelOut]


class UploadOut(BaseModel):
    id: str
    title: str
    channel_title: str
    thumbnail_url: str
    duration_seconds: int | None
    view_count: int | None
    published_at: datetime | None
    is_top_viewed: bool


class QueueItemResponse(BaseModel):
    """The channel currently up for review."""

    done: bool = False
    channel: ChannelOut
    reviewed: int
    total: int
    remaining: int
    approved_count: int
    unsub_count: int
    starred_count: int
    is_starred: bool
    uploads: list[UploadOut] = []
    uploads_fetched: int = 0
    scan_error: str | None = None


class QueueDoneResponse(BaseModel):
    """Returned once nothing is left to review."""

    done: bool = True
    reviewed: int
    total: int
    approved_count: int
    rejected_count: int
    unsub_count: int
    starred_count: int
    skipped_count: int
    starred_channels: list[ChannelOut]
    approved_channels: list[ChannelOut]
    unsub_channels: list[ChannelOut]


class ScanResponse(BaseModel):
    channel: ChannelOut
    uploads: list[UploadOut]
    uploads_fetched: int
    scan_error: str | None


class DecisionRequest(BaseModel):
    """Inbound payload recording a review decision."""

    channel_id: str = Field(..., min_length=1)
    name: str = ""
    decision: Decision
    labels: list[str] | None = None


class UndoResponse(BaseModel):
    removed_from: Decision | None
    channel: ChannelOut | None


class SkipRequest(BaseModel):
    channel_id: str = Field(..., min_length=1)


class SkipResponse(BaseModel):
    skipped_count: int


class StarRequest(BaseModel):
    name: str = ""


class StarResponse(BaseModel):
    starred: bool
    starred_count: int


class LabelsRequest(BaseModel):
    labels: list[str]


class ChangeDecisionRequest(BaseModel):
    name: str = ""
    decision: Decision


class ResolveConflictRequest(BaseModel):
    keep: ConflictSide


class RescueRequest(BaseModel):
    name: str | None = None
    labels: list[str] | None = None


class ChannelIn(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = ""


class ImportRequest(BaseModel):
    """Either pasted identifiers, already resolved channels, or both."""

    identifiers: list[str] = Field(default_factory=list, description="Channel ids, URLs, feed URLs or @handles")
    channels: list[ChannelIn] = Field(default_factory=list)
    source: ImportSource = ImportSource.PASTE


class ImportResponse(BaseModel):
    added: list[str]
    existing: list[str]
    failed: list[str]


class StatusResponse(BaseModel):
    ok: bool = True


class StatsResponse(BaseModel):
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


class CoverageSegmentOut(BaseModel):
    count: int
    channels: list[ChannelOut]


class CoverageResponse(BaseModel):
    total: int
    segments: dict[str, CoverageSegmentOut]


class HealthIssueOut(BaseModel):
    id: str
    name: str
    issue: str


class HealthResponse(BaseModel):
    conflicts: list[HealthIssueOut]
    no_labels: list[ChannelOut]
    scan_errors: list[HealthIssueOut]
    never_scanned: list[ChannelOut]

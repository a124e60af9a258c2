"""Repositories over the curation collections.

Every collection is a single JSON document rewritten as a whole on each
mutation. Callers load, mutate in memory and save inside one session
transaction, so a failed write rolls back without touching the previous
snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from curator.db.models import CollectionDocument


class CollectionName(str, Enum):
    CANDIDATES = "all_candidates"
    APPROVED = "approved"
    REJECTED = "rejected"
    UNSUB = "unsubscribed"
    STARRED = "starred"
    SKIPPED = "skipped"
    REGISTRY = "registry"


class ImportSource(str, Enum):
    SUBSCRIPTION = "subscription"
    PASTE = "paste"
    BOOKMARKS = "bookmarks"


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(slots=True)
class Channel:
    """A channel as listed in a candidate or decision collection."""

    id: str
    name: str

    def to_document(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_document(cls, raw: dict[str, Any]) -> Channel:
        return cls(id=raw["id"], name=raw.get("name") or "")


@dataclass(slots=True)
class ApprovedChannel:
    """An approved channel with optional genre labels."""

    id: str
    name: str
    labels: list[str] | None = None

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.labels:
            document["labels"] = list(self.labels)
        return document

    @classmethod
    def from_document(cls, raw: dict[str, Any]) -> ApprovedChannel:
        return cls(id=raw["id"], name=raw.get("name") or "", labels=list(raw.get("labels") or []) or None)


@dataclass(slots=True)
class RegistryEntry:
    """Import and scan history for one channel, independent of decisions."""

    id: str
    name: str
    imported_at: datetime
    import_source: ImportSource
    reviewed_at: datetime | None = None
    last_scanned_at: datetime | None = None
    uploads_fetched: int = 0
    scan_error: str | None = None

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "imported_at": _format_timestamp(self.imported_at),
            "import_source": self.import_source.value,
            "reviewed_at": _format_timestamp(self.reviewed_at),
            "last_scanned_at": _format_timestamp(self.last_scanned_at),
            "uploads_fetched": self.uploads_fetched,
            "scan_error": self.scan_error,
        }

    @classmethod
    def from_document(cls, raw: dict[str, Any]) -> RegistryEntry:
        return cls(
            id=raw["id"],
            name=raw.get("name") or "",
            imported_at=_parse_timestamp(raw.get("imported_at")) or datetime.now(timezone.utc),
            import_source=ImportSource(raw.get("import_source") or ImportSource.SUBSCRIPTION.value),
            reviewed_at=_parse_timestamp(raw.get("reviewed_at")),
            last_scanned_at=_parse_timestamp(raw.get("last_scanned_at")),
            uploads_fetched=int(raw.get("uploads_fetched") or 0),
            scan_error=raw.get("scan_error"),
        )


RecordT = TypeVar("RecordT", Channel, ApprovedChannel)


class _DocumentStore:
    def __init__(self, session: AsyncSession, name: CollectionName) -> None:
        self._session = session
        self.name = name

    async def _read(self) -> Any | None:
        row = await self._session.get(CollectionDocument, self.name.value)
        return None if row is None else row.document

    async def _write(self, document: Any) -> None:
        now = datetime.now(timezone.utc)
        row = await self._session.get(CollectionDocument, self.name.value)
        if row is None:
            self._session.add(CollectionDocument(name=self.name.value, document=document, updated_at=now))
        else:
            row.document = document
            row.updated_at = now
            flag_modified(row, "document")
        await self._session.flush()


class ChannelStore(_DocumentStore, Generic[RecordT]):
    """Ordered list of channel records."""

    def __init__(self, session: AsyncSession, name: CollectionName, record_type: type[RecordT]) -> None:
        super().__init__(session, name)
        self._record_type = record_type

    async def load(self) -> list[RecordT]:
        document = await self._read() or []
        return [self._record_type.from_document(raw) for raw in document]

    async def save(self, records: list[RecordT]) -> None:
        await self._write([record.to_document() for record in records])


class SkippedStore(_DocumentStore):
    """Ordered list of skipped channel ids."""

    async def load(self) -> list[str]:
        return list(await self._read() or [])

    async def save(self, channel_ids: list[str]) -> None:
        await self._write(list(channel_ids))


class RegistryStore(_DocumentStore):
    """Registry entries keyed by channel id."""

    async def load(self) -> dict[str, RegistryEntry]:
        document = await self._read() or {}
        return {channel_id: RegistryEntry.from_document(raw) for channel_id, raw in document.items()}

    async def save(self, entries: dict[str, RegistryEntry]) -> None:
        await self._write({channel_id: entry.to_document() for channel_id, entry in entries.items()})


@dataclass(slots=True)
class Collections:
    """All curation collections bound to one session."""

    session: AsyncSession
    candidates: ChannelStore[Channel] = field(init=False)
    approved: ChannelStore[ApprovedChannel] = field(init=False)
    rejected: ChannelStore[Channel] = field(init=False)
    unsub: ChannelStore[Channel] = field(init=False)
    starred: ChannelStore[Channel] = field(init=False)
    skipped: SkippedStore = field(init=False)
    registry: RegistryStore = field(init=False)

    def __post_init__(self) -> None:
        self.candidates = ChannelStore(self.session, CollectionName.CANDIDATES, Channel)
        self.approved = ChannelStore(self.session, CollectionName.APPROVED, ApprovedChannel)
        self.rejected = ChannelStore(self.session, CollectionName.REJECTED, Channel)
        self.unsub = ChannelStore(self.session, CollectionName.UNSUB, Channel)
        self.starred = ChannelStore(self.session, CollectionName.STARRED, Channel)
        self.skipped = SkippedStore(self.session, CollectionName.SKIPPED)
        self.registry = RegistryStore(self.session, CollectionName.REGISTRY)

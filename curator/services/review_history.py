"""Bounded undo stack held by whoever drives the review queue."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from curator.services.review_queue import Decision, undo

DEFAULT_HISTORY_SIZE = 50


@dataclass(slots=True)
class HistoryEntry:
    channel_id: str
    name: str
    decision: Decision
    prior_labels: list[str] = field(default_factory=list)
    prior_starred: bool = False


class UndoHistory:
    """Most recent decisions first; the oldest entry falls off once full."""

    def __init__(self, max_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self._entries: deque[HistoryEntry] = deque(maxlen=max_size)

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def pop(self) -> HistoryEntry | None:
        return self._entries.pop() if self._entries else None


async def undo_last(session: AsyncSession, history: UndoHistory) -> HistoryEntry | None:
    """Revert the latest decision and restore the star state it replaced.

    The entry is handed back so the caller can put its label selection back.
    """

    entry = history.pop()
    if entry is None:
        return None
    await undo(session, entry.channel_id, restore_starred=entry.prior_starred)
    return entry

"""In-process key/value cache with per-entry expiry."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from curator.core.config import settings


class TTLCache:
    """Dictionary cache whose entries expire after a time-to-live."""

    def __init__(self, default_ttl_seconds: int, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[float, Any]] = {}
        self._default_ttl = default_ttl_seconds
        self._clock = clock

    def get(self, key: str) -> Any | None:
        hit = self._entries.get(key)
        if hit is None:
            return None
        expires_at, value = hit
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        self._entries[key] = (self._clock() + ttl, value)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


cache = TTLCache(settings.upload_cache_ttl_seconds)

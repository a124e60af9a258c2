"""Project provider uploads into feed cards."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime

from curator.services.youtube_uploads import Upload

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"
CARD_ID_PREFIX = "yt-"

_PREMIERE_RE = re.compile(r"\b(?:premiere|premier)\s*[:：]\s*", re.IGNORECASE)
_ANNOTATION_RE = re.compile(
    r"\s*[\[\(](?:official|music|lyric|audio|video|hd|hq|4k|visualizer|remastered|remaster|full|original)"
    r"[\s\w]*[\]\)]",
    re.IGNORECASE,
)
_PIPE_SUFFIX_RE = re.compile(r"\s*\|\s*.*$")
_SEPARATORS = (" — ", " – ", " - ")


@dataclass(slots=True)
class CardData:
    """Display-ready track card."""

    id: str
    name: str
    artist: str
    album: str
    image: str
    image_small: str
    source_url: str
    video_id: str
    duration_seconds: int | None
    view_count: int | None
    published_at: datetime | None
    source: str = "youtube"
    genres: list[str] = field(default_factory=list)
    channel_labels: list[str] = field(default_factory=list)


def _strip_premiere(value: str) -> str:
    return _PREMIERE_RE.sub("", value).strip()


def parse_video_title(title: str, channel_name: str) -> tuple[str, str]:
    """Split a raw video title into ``(artist, name)``.

    Falls back to the channel name as the artist when the title has no
    artist/track separator.
    """

    cleaned = _PREMIERE_RE.sub("", title)
    cleaned = _ANNOTATION_RE.sub("", cleaned)
    cleaned = _PIPE_SUFFIX_RE.sub("", cleaned).strip()

    for separator in _SEPARATORS:
        index = cleaned.find(separator)
        if index > 0:
            artist = _strip_premiere(cleaned[:index].strip())
            name = _strip_premiere(cleaned[index + len(separator):].strip()) or cleaned
            return artist, name

    return channel_name, _strip_premiere(cleaned) or title


def upload_to_card(upload: Upload, channel_labels: list[str] | None = None) -> CardData:
    artist, name = parse_video_title(upload.title, upload.channel_title)
    return CardData(
        id=f"{CARD_ID_PREFIX}{upload.id}",
        name=name,
        artist=artist,
        album=upload.channel_title,
        image=THUMBNAIL_URL.format(video_id=upload.id),
        image_small=upload.thumbnail_url,
        source_url=WATCH_URL.format(video_id=upload.id),
        video_id=upload.id,
        duration_seconds=upload.duration_seconds,
        view_count=upload.view_count,
        published_at=upload.published_at,
        channel_labels=list(channel_labels or []),
    )

"""Label and title heuristics that split approved uploads into feeds.

The keyword lists and label sets are configuration (see ``Settings``); the
functions here stay pure so they can be exercised without any I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from curator.core.config import Settings, settings
from curator.services.youtube_uploads import Upload

UNAVAILABLE_TITLES = frozenset({"Private video", "Deleted video"})
SHORTS_TITLE_MAX_LENGTH = 80


@dataclass(frozen=True, slots=True)
class FeedRules:
    """Keyword lists, label sets and duration windows for every feed."""

    non_electronic_only_labels: tuple[str, ...]
    mix_channel_labels: tuple[str, ...]
    sample_channel_labels: tuple[str, ...]
    non_music_keywords: tuple[str, ...]
    homepage_title_excludes: tuple[str, ...]
    sample_title_keywords: tuple[str, ...]
    mix_title_keywords: tuple[str, ...]
    general_duration: tuple[int, int]
    mixes_min_duration: int
    samples_duration: tuple[int, int]

    @classmethod
    def from_settings(cls, config: Settings = settings) -> FeedRules:
        return cls(
            non_electronic_only_labels=tuple(config.non_electronic_only_labels),
            mix_channel_labels=tuple(config.mix_channel_labels),
            sample_channel_labels=tuple(config.sample_channel_labels),
            non_music_keywords=tuple(config.non_music_keywords),
            homepage_title_excludes=tuple(config.homepage_title_excludes),
            sample_title_keywords=tuple(config.sample_title_keywords),
            mix_title_keywords=tuple(config.mix_title_keywords),
            general_duration=(config.general_min_duration_seconds, config.general_max_duration_seconds),
            mixes_min_duration=config.mixes_min_duration_seconds,
            samples_duration=(config.samples_min_duration_seconds, config.samples_max_duration_seconds),
        )


def title_contains_any(title: str, keywords: Iterable[str]) -> bool:
    lower = title.lower()
    return any(keyword.lower() in lower for keyword in keywords)


def has_any_label(labels: Iterable[str] | None, wanted: Iterable[str]) -> bool:
    wanted_lower = {label.lower() for label in wanted}
    return any(label.lower() in wanted_lower for label in labels or [])


def is_non_electronic_only(labels: Iterable[str], non_electronic: Iterable[str]) -> bool:
    """True when every label comes from the non-electronic set."""

    allowed = {label.lower() for label in non_electronic}
    return all(label.lower() in allowed for label in labels)


def is_unavailable(title: str) -> bool:
    return title in UNAVAILABLE_TITLES


def is_shorts_tagged(title: str) -> bool:
    lower = title.lower()
    return "#shorts" in lower or "#short" in lower


def looks_like_short(title: str) -> bool:
    """Hashtag-marked shorts, plus short titles that mention "shorts" at all."""

    lower = title.lower()
    return is_shorts_tagged(title) or ("shorts" in lower and len(lower) < SHORTS_TITLE_MAX_LENGTH)


def is_vertical(upload: Upload) -> bool:
    return upload.height > upload.width


def _within(duration: int | None, window: tuple[int, int]) -> bool:
    if not duration:
        return False
    low, high = window
    return low <= duration <= high


def is_general_channel(labels: list[str] | None, rules: FeedRules) -> bool:
    if not labels:
        return False
    return not is_non_electronic_only(labels, rules.non_electronic_only_labels)


def is_mix_channel(labels: list[str] | None, rules: FeedRules) -> bool:
    return has_any_label(labels, rules.mix_channel_labels)


def is_sample_channel(labels: list[str] | None, rules: FeedRules) -> bool:
    return has_any_label(labels, rules.sample_channel_labels)


def accept_general_upload(upload: Upload, rules: FeedRules) -> bool:
    """Individual tracks only: no shorts, talk, covers, samples, sets or rock."""

    if is_unavailable(upload.title):
        return False
    if looks_like_short(upload.title) or is_vertical(upload):
        return False
    if title_contains_any(upload.title, rules.non_music_keywords):
        return False
    if not _within(upload.duration_seconds, rules.general_duration):
        return False
    return not title_contains_any(upload.title, rules.homepage_title_excludes)


def accept_mix_upload(upload: Upload, rules: FeedRules) -> bool:
    """Long-form uploads whose title reads like a set or mix."""

    if is_unavailable(upload.title) or is_shorts_tagged(upload.title):
        return False
    if not upload.duration_seconds or upload.duration_seconds < rules.mixes_min_duration:
        return False
    return title_contains_any(upload.title, rules.mix_title_keywords)


def accept_sample_upload(upload: Upload, rules: FeedRules, *, from_sample_channel: bool) -> bool:
    """Short uploads; channels without a sample label need a sample keyword in the title."""

    if is_unavailable(upload.title):
        return False
    if not _within(upload.duration_seconds, rules.samples_duration):
        return False
    if looks_like_short(upload.title) or is_vertical(upload):
        return False
    if title_contains_any(upload.title, rules.non_music_keywords):
        return False
    return from_sample_channel or title_contains_any(upload.title, rules.sample_title_keywords)

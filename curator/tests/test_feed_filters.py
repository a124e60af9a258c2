"""Tests for feed eligibility, title filters and card projection."""

from __future__ import annotations

import pytest

from curator.services import feed_filters
from curator.services.cards import parse_video_title, upload_to_card
from curator.services.feed_filters import FeedRules
from curator.tests.fakes import make_upload


@pytest.fixture
def rules() -> FeedRules:
    return FeedRules.from_settings()


def test_samples_only_channel_is_not_general_but_is_sample(rules: FeedRules) -> None:
    assert feed_filters.is_general_channel(["Samples"], rules) is False
    assert feed_filters.is_sample_channel(["Samples"], rules) is True


def test_general_channel_needs_an_electronic_label(rules: FeedRules) -> None:
    assert feed_filters.is_general_channel(["Jazz", "Techno"], rules) is True
    assert feed_filters.is_general_channel(["Jazz", "Hip Hop"], rules) is False
    assert feed_filters.is_general_channel(None, rules) is False
    assert feed_filters.is_general_channel([], rules) is False


def test_mix_channel_labels_are_case_insensitive(rules: FeedRules) -> None:
    assert feed_filters.is_mix_channel(["dj sets"], rules) is True
    assert feed_filters.is_mix_channel(["Techno"], rules) is False


@pytest.mark.parametrize(
    "title,duration,kwargs,expected",
    [
        ("Artist - Track", 300, {}, True),
        ("Private video", 300, {}, False),
        ("Artist - Track #shorts", 300, {}, False),
        ("Best shorts", 300, {}, False),
        ("Artist - Track", 300, {"width": 360, "height": 640}, False),
        ("Ableton tutorial - bass", 300, {}, False),
        ("Artist - Track", 200, {}, False),
        ("Artist - Track", 901, {}, False),
        ("Artist - Track", None, {}, False),
        ("Artist - Track (Boiler Room)", 300, {}, False),
        ("Classic Rock Anthem", 300, {}, False),
    ],
)
def test_accept_general_upload(rules: FeedRules, title: str, duration: int | None, kwargs: dict, expected: bool) -> None:
    upload = make_upload("v1", title, duration_seconds=duration, **kwargs)
    assert feed_filters.accept_general_upload(upload, rules) is expected


@pytest.mark.parametrize(
    "title,duration,expected",
    [
        ("Artist DJ Set at Club", 3600, True),
        ("Live at the warehouse", 2400, True),
        ("Artist - Track", 3600, False),
        ("Quick mix #shorts", 3600, False),
        ("Artist DJ Set", 1800, False),
        ("Deleted video", 3600, False),
    ],
)
def test_accept_mix_upload(rules: FeedRules, title: str, duration: int, expected: bool) -> None:
    assert feed_filters.accept_mix_upload(make_upload("v1", title, duration_seconds=duration), rules) is expected


def test_accept_sample_upload(rules: FeedRules) -> None:
    plain = make_upload("v1", "Artist - Track", duration_seconds=120)
    rare = make_upload("v2", "Rare library funk", duration_seconds=120)
    too_short = make_upload("v3", "Rare library funk", duration_seconds=20)
    vertical = make_upload("v4", "Rare library funk", duration_seconds=120, width=360, height=640)

    assert feed_filters.accept_sample_upload(plain, rules, from_sample_channel=True) is True
    assert feed_filters.accept_sample_upload(plain, rules, from_sample_channel=False) is False
    assert feed_filters.accept_sample_upload(rare, rules, from_sample_channel=False) is True
    assert feed_filters.accept_sample_upload(too_short, rules, from_sample_channel=True) is False
    assert feed_filters.accept_sample_upload(vertical, rules, from_sample_channel=True) is False


def test_long_titles_mentioning_shorts_are_kept() -> None:
    title = "Artist - Track from the album Shorts and Longs, remastered edition with extended outro part"
    assert len(title) >= feed_filters.SHORTS_TITLE_MAX_LENGTH
    assert feed_filters.looks_like_short(title) is False


@pytest.mark.parametrize(
    "title,expected",
    [
        ("Artist - Track", ("Artist", "Track")),
        ("Artist – Track (Official Video)", ("Artist", "Track")),
        ("Premiere: Artist — Track [Official Audio]", ("Artist", "Track")),
        ("Artist - Track | Label Records", ("Artist", "Track")),
        ("Untitled Groove", ("Channel", "Untitled Groove")),
    ],
)
def test_parse_video_title(title: str, expected: tuple[str, str]) -> None:
    assert parse_video_title(title, "Channel") == expected


def test_upload_to_card_projection() -> None:
    upload = make_upload("abc123", "Artist - Track", channel_title="Label", view_count=42)

    card = upload_to_card(upload, ["Techno"])

    assert card.id == "yt-abc123"
    assert card.artist == "Artist"
    assert card.name == "Track"
    assert card.album == "Label"
    assert card.source_url == "https://www.youtube.com/watch?v=abc123"
    assert card.image == "https://i.ytimg.com/vi/abc123/hqdefault.jpg"
    assert card.view_count == 42
    assert card.genres == []
    assert card.channel_labels == ["Techno"]

from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

CsvList = Annotated[list[str], NoDecode]


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing; fatal at startup."""


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = "sqlite+aiosqlite:///./curator.db"
    youtube_api_key: str | None = None
    youtube_timeout_seconds: float = 15.0
    dashboard_cors_origins: CsvList = ["http://localhost:3000"]

    upload_cache_ttl_seconds: int = 60 * 60
    pool_cache_ttl_seconds: int = 60 * 60 * 3
    pool_batch_size: int = 10

    review_uploads_per_channel: int = 50
    general_uploads_per_channel: int = 20
    mixes_uploads_per_channel: int = 10
    samples_uploads_per_sample_channel: int = 10
    samples_uploads_per_other_channel: int = 8
    samples_max_sample_channels: int = 12
    samples_max_other_channels: int = 8

    general_min_duration_seconds: int = 240
    general_max_duration_seconds: int = 900
    mixes_min_duration_seconds: int = 2400
    samples_min_duration_seconds: int = 30
    samples_max_duration_seconds: int = 900

    genre_labels: CsvList = [
        "House",
        "Deep House",
        "Tech House",
        "Techno",
        "Minimal",
        "Rominimal",
        "Electro",
        "Breaks",
        "DnB",
        "Jungle",
        "Garage / UKG",
        "Ambient",
        "Downtempo",
        "Dub",
        "Disco",
        "Funk",
        "Acid",
        "Trance",
        "Industrial",
        "EBM",
        "Hip Hop",
        "Jazz",
        "Reggae",
        "Pop",
        "World",
        "Experimental",
        "Samples",
        "DJ Sets",
        "Live Sets",
    ]
    # Channels labelled only from this set stay out of the general feed
    non_electronic_only_labels: CsvList = [
        "Samples", "Experimental", "Pop", "World", "Jazz", "Hip Hop", "Reggae",
    ]
    mix_channel_labels: CsvList = ["DJ Sets", "Live Sets"]
    sample_channel_labels: CsvList = [
        "Samples", "Experimental", "Ambient", "Funk", "Disco", "Jazz", "Hip Hop",
        "Dub", "World", "Pop", "Downtempo", "Industrial", "Reggae",
    ]

    non_music_keywords: CsvList = [
        # tutorials & education
        "tutorial", "how to", "how-to", "walkthrough", "explained",
        "lesson", "masterclass", "course", "learn to",
        "piano lesson", "music theory", "chord progression", "beginner", "practice",
        # production / DAW content
        "fl studio", "ableton", "logic pro", "bitwig", "pro tools",
        "making a beat", "beat making", "beatmaking", "sound design tutorial",
        "preset pack", "sample pack review", "plugin review",
        # gear & reviews
        "gear review", "unboxing", "studio tour", "setup tour",
        "vs comparison", "synth review", "midi controller",
        # covers & non-original
        "cover)", "cover]", "(cover", "[cover",
        "piano cover", "guitar cover", "drum cover", "vocal cover",
        "acoustic cover", "ukulele cover",
        # reactions & commentary
        "reaction", "reacting to", "first time hearing",
        "review:", "album review", "track review",
        # vlogs
        "vlog", "q&a", "q & a", "behind the scenes",
        "day in the life", "studio vlog",
    ]
    homepage_title_excludes: CsvList = [
        "sample", "samples", "drum break", "drum breaks", "breaks compilation",
        "rock", "metal", "punk", "grunge", "classic rock",
        "dj set", "dj mix", "live set", "live mix", "b2b", "boiler room",
    ]
    sample_title_keywords: CsvList = [
        "sample", "rare", "obscure", "ost", "soundtrack", "library",
        "private press", "unreleased", "forgotten",
    ]
    mix_title_keywords: CsvList = [
        "mix", "set", "dj", "live", "b2b", "session", "boiler room", "recorded at",
    ]

    model_config = SettingsConfigDict(env_file=".env", env_prefix="APP_", env_file_encoding="utf-8")

    @field_validator(
        "dashboard_cors_origins",
        "genre_labels",
        "non_electronic_only_labels",
        "mix_channel_labels",
        "sample_channel_labels",
        "non_music_keywords",
        "homepage_title_excludes",
        "sample_title_keywords",
        "mix_title_keywords",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


settings = get_settings()

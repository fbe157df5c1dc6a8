"""Application settings loaded from environment variables and .env files.

Hey future me - every group below is its own BaseSettings with an env prefix, so
`UPCITEMDB_TIMEOUT_SECONDS=20` or `IMAGE_LOOKUP_BATCH_SIZE=50` just work. The top-level
Settings object composes them. Use get_settings() everywhere (it's cached) instead of
constructing Settings() ad hoc - otherwise every call re-reads the environment.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from functools import lru_cache
from pathlib import Path

from croniter import croniter
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SCHEDULE_INTERVAL = timedelta(hours=1)


class BackgroundImageLookupSettings(BaseSettings):
    """Settings for the background cover-art enrichment worker."""

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_LOOKUP_", env_file=".env", extra="ignore"
    )

    enabled: bool = Field(default=False, description="Run the scheduled enrichment worker")
    schedule: str = Field(
        default="0 2 * * *", description="Cron expression, evaluated in local time"
    )
    max_runtime_minutes: int = Field(default=60, description="Budget per pass")
    batch_size: int = Field(default=25, description="Entities per pass, split across types")
    requests_per_minute: int = Field(default=30, description="Entity processing rate")

    # Hey future me - the worker sleeps between occurrences, so a "*/5 * * * *" schedule
    # would hammer the providers all day. We compare two CONSECUTIVE occurrences and demand
    # at least an hour between them. Returns None when everything is fine.
    def validation_error(self) -> str | None:
        """Return a human readable problem with this configuration, or None."""
        if not self.schedule or not self.schedule.strip():
            return "Schedule is required"

        for name in ("max_runtime_minutes", "batch_size", "requests_per_minute"):
            if getattr(self, name) <= 0:
                return f"{name} must be greater than zero"

        if not croniter.is_valid(self.schedule):
            return f"Failed to parse cron expression '{self.schedule}'"

        itr = croniter(self.schedule, datetime.now(UTC))
        next_run = itr.get_next(datetime)
        following_run = itr.get_next(datetime)
        interval = following_run - next_run
        if interval < MIN_SCHEDULE_INTERVAL:
            return (
                "Schedule interval must be at least 1 hour. "
                f"Current interval: {interval.total_seconds() / 60:.0f} minutes. "
                f"Schedule: {self.schedule}"
            )
        return None

    @property
    def is_valid(self) -> bool:
        """True when validation_error() finds nothing."""
        return self.validation_error() is None


class UpcItemDbSettings(BaseSettings):
    """UPCitemdb barcode lookup (trial endpoint) settings."""

    model_config = SettingsConfigDict(env_prefix="UPCITEMDB_", env_file=".env", extra="ignore")

    base_url: str = "https://api.upcitemdb.com/"
    timeout_seconds: float = 10.0
    max_requests_per_minute: int = 5
    max_requests_per_day: int = 90
    min_delay_between_requests_ms: int = 1000
    max_retry_pause_seconds: int = 65


class TmdbSettings(BaseSettings):
    """The Movie Database API settings."""

    model_config = SettingsConfigDict(env_prefix="TMDB_", env_file=".env", extra="ignore")

    base_url: str = "https://api.themoviedb.org/3/"
    bearer_token: str = ""
    timeout_seconds: float = 10.0
    image_base_url: str = "https://image.tmdb.org/t/p/w500"

    @property
    def is_configured(self) -> bool:
        return bool(self.bearer_token)


class GiantBombSettings(BaseSettings):
    """GiantBomb game database settings."""

    model_config = SettingsConfigDict(env_prefix="GIANTBOMB_", env_file=".env", extra="ignore")

    base_url: str = "https://www.giantbomb.com/api/"
    api_key: str = ""
    timeout_seconds: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class OpenLibrarySettings(BaseSettings):
    """OpenLibrary book metadata settings."""

    model_config = SettingsConfigDict(env_prefix="OPENLIBRARY_", env_file=".env", extra="ignore")

    base_url: str = "https://openlibrary.org/"
    timeout_seconds: float = 30.0
    contact_email: str = "mediaset@example.com"


class MusicBrainzSettings(BaseSettings):
    """MusicBrainz settings (User-Agent is mandatory for their API)."""

    model_config = SettingsConfigDict(env_prefix="MUSICBRAINZ_", env_file=".env", extra="ignore")

    app_name: str = "MediaSet"
    app_version: str = "0.1.0"
    contact: str = "mediaset@example.com"


class ImageSettings(BaseSettings):
    """Downloaded cover image settings."""

    model_config = SettingsConfigDict(env_prefix="IMAGE_", env_file=".env", extra="ignore")

    storage_path: Path = Path("./data/images")
    max_download_size_bytes: int = 5 * 1024 * 1024
    allowed_extensions: list[str] = Field(
        default_factory=lambda: ["jpg", "jpeg", "png", "webp"]
    )
    download_timeout_seconds: float = 30.0


class DatabaseSettings(BaseSettings):
    """Catalog database settings."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_", env_file=".env", extra="ignore")

    url: str = "sqlite+aiosqlite:///./mediaset.db"
    echo: bool = False


class ObservabilitySettings(BaseSettings):
    """Logging and tracing settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_", env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_json_format: bool = False
    tracing_enabled: bool = False
    otlp_endpoint: str | None = None
    environment: str = "development"


class Settings(BaseSettings):
    """Root settings object composing all groups."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "mediaset"
    image_lookup: BackgroundImageLookupSettings = Field(
        default_factory=BackgroundImageLookupSettings
    )
    upcitemdb: UpcItemDbSettings = Field(default_factory=UpcItemDbSettings)
    tmdb: TmdbSettings = Field(default_factory=TmdbSettings)
    giantbomb: GiantBombSettings = Field(default_factory=GiantBombSettings)
    openlibrary: OpenLibrarySettings = Field(default_factory=OpenLibrarySettings)
    musicbrainz: MusicBrainzSettings = Field(default_factory=MusicBrainzSettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()

"""Application settings, read from the environment and an optional ``.env`` file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dawn_chorus.reference import birding


class Settings(BaseSettings):
    """Runtime configuration. Environment keys are case-insensitive (``EBIRD_API_KEY``)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)

    app_name: str = "Dawn Chorus"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Home location used by the CLI when --lat/--lon are omitted (Portland, OR)
    lat: float = Field(default=45.5, ge=-90, le=90)
    lon: float = Field(default=-122.6, ge=-180, le=180)

    # Web server
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL the client uses to reach the /birds endpoint.",
    )

    # eBird
    ebird_api_key: str | None = None
    ebird_base_url: str = birding.EBIRD_API_BASE
    tight_radius_km: float = Field(default=birding.TIGHT_RADIUS_KM, gt=0)
    wide_radius_km: float = Field(default=birding.WIDE_RADIUS_KM, gt=0)
    lookback_days: int = Field(default=birding.LOOKBACK_DAYS, ge=1, le=30)
    max_results: int = Field(default=birding.MAX_RESULTS, ge=1, le=10_000)
    sparse_species_threshold: int = Field(default=birding.SPARSE_SPECIES_THRESHOLD, ge=0)
    notable_species_count: int = Field(default=birding.NOTABLE_SPECIES_COUNT, ge=0)

    # Cache lifetimes (seconds)
    observation_cache_ttl: int = Field(default=birding.OBSERVATION_CACHE_TTL, ge=0)
    stale_cache_ttl: int = Field(default=birding.STALE_CACHE_TTL, ge=0)
    client_cache_ttl: int = Field(default=birding.CLIENT_CACHE_TTL, ge=0)

    # Client-side persistent cache directory
    data_dir: Path = Path("data")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (read once)."""
    return Settings()

"""
Domain models for dawn chorus.

Pydantic models for data from external APIs and internal processing.
These define the canonical schema - datasources normalize API responses to these.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

# =============================================================================
# Observations
# =============================================================================


class Observation(BaseModel):
    """A single bird sighting, normalized from the provider's record."""

    common_name: str
    scientific_name: str
    how_many: int = Field(default=1, ge=1)
    observed_at: str = Field(..., description="Provider-local timestamp, 'YYYY-MM-DD HH:mm'")
    obs_hour: int | None = Field(default=None, ge=0, le=23)
    location_name: str
    species_code: str = Field(..., description="Upstream taxonomy code; the dedup key")


class ObservationSet(BaseModel):
    """Normalized observations for one coordinate bucket, as cached server-side."""

    observations: list[Observation] = Field(default_factory=list)
    radius_km: float

    @property
    def species_count(self) -> int:
        """Number of distinct species codes."""
        return len({o.species_code for o in self.observations})


# =============================================================================
# Weather
# =============================================================================


class WeatherSnapshot(BaseModel):
    """Current conditions fed into the activity model."""

    temp_c: float = 10.0
    rain_probability: float = Field(default=0.0, ge=0, le=100)
    wind_speed_ms: float = Field(default=0.0, ge=0)
    cloud_percent: float = Field(default=50.0, ge=0, le=100)


# =============================================================================
# Activity
# =============================================================================

ActivityLevel = Literal["low", "moderate", "high"]


class ActivityPoint(BaseModel):
    """Activity score for one hour of the day."""

    hour: int = Field(..., ge=0, le=23)
    score: int = Field(..., ge=0, le=100)
    label: str


class CurrentActivity(ActivityPoint):
    level: ActivityLevel


class Peak(BaseModel):
    hour: int = Field(..., ge=0, le=23)
    score: int = Field(..., ge=0, le=100)


class ActivityCurve(BaseModel):
    """24-hour activity profile with dawn/dusk peaks and the current hour."""

    curve: list[ActivityPoint] = Field(..., min_length=24, max_length=24)
    current: CurrentActivity
    dawn_peak: Peak
    dusk_peak: Peak


# =============================================================================
# Report
# =============================================================================


class Location(BaseModel):
    """Rounded query coordinates."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class BirdReport(BaseModel):
    """Response of the ``/birds`` endpoint; also what the client caches."""

    generated_at: datetime
    location: Location
    notable_species: list[Observation] = Field(default_factory=list)
    all_species: list[Observation] = Field(default_factory=list)
    total_species_count: int = Field(default=0, ge=0)
    observation_radius_km: float
    activity: ActivityCurve
    cached: bool = False

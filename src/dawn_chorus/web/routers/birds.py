"""``GET /birds``: nearby species ranked for the viewer's hour, plus the activity curve."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request

from dawn_chorus.aggregation import BirdAggregator
from dawn_chorus.schemas import BirdReport, WeatherSnapshot

router = APIRouter(prefix="/birds", tags=["birds"])
logger = logging.getLogger(__name__)


def get_aggregator(request: Request) -> BirdAggregator:
    aggregator: BirdAggregator = request.app.state.aggregator
    return aggregator


@router.get("", response_model=BirdReport)
def get_birds(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude"),
    hour: int | None = Query(None, ge=0, le=23, description="Viewer's local hour, used for ranking"),
    temp_c: float = Query(10.0, description="Air temperature (°C)"),
    rain: float = Query(0.0, ge=0, le=100, description="Rain probability (%)"),
    wind: float = Query(0.0, ge=0, description="Wind speed (m/s)"),
    cloud: float = Query(50.0, ge=0, le=100, description="Cloud cover (%)"),
    month: int | None = Query(None, ge=0, le=11, description="Month, 0-indexed; defaults to now"),
    aggregator: BirdAggregator = Depends(get_aggregator),
) -> BirdReport:
    """Bird observations and activity for a location.

    Runs as a sync handler (threadpool); the aggregator's cache is thread-safe.
    """
    weather = WeatherSnapshot(
        temp_c=temp_c,
        rain_probability=rain,
        wind_speed_ms=wind,
        cloud_percent=cloud,
    )
    return aggregator.build_report(lat, lon, hour=hour, weather=weather, month=month)

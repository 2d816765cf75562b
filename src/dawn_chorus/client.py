"""
Client for the ``/birds`` endpoint with a local report cache.

The last report per location is kept in a ``DataStore`` for 3 hours. While it
is fresh, ``load`` never touches the network: the activity curve is recomputed
locally with the same ``analysis.activity`` module the server uses, so new
weather is reflected instantly. An expired report is still kept as a fallback
for when the server can't be reached.

Usage::

    client = BirdClient("http://localhost:8000", DataStore(Path("data")))
    report = client.load(45.523, -122.676, WeatherSnapshot(temp_c=14))
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

import requests
from pydantic import ValidationError

from dawn_chorus.aggregation import validate_query
from dawn_chorus.analysis.activity import build_curve, local_hour_and_month
from dawn_chorus.cache import round_coord
from dawn_chorus.errors import NotConfigured, UpstreamUnavailable
from dawn_chorus.reference.birding import CLIENT_CACHE_TTL, COORD_DECIMALS
from dawn_chorus.schemas import BirdReport, WeatherSnapshot
from dawn_chorus.services.http import create_session
from dawn_chorus.store import DataStore

logger = logging.getLogger(__name__)

BIRDS_CACHE_DIR = Path("live/birds")


def cache_path(lat: float, lon: float) -> Path:
    """Store path for a location's cached report."""
    return BIRDS_CACHE_DIR / (
        f"{round_coord(lat):.{COORD_DECIMALS}f}_{round_coord(lon):.{COORD_DECIMALS}f}.json"
    )


def refresh_activity(
    report: BirdReport,
    weather: WeatherSnapshot | None = None,
    *,
    hour: int | None = None,
    month: int | None = None,
) -> BirdReport:
    """Return a copy of ``report`` with its activity curve recomputed locally."""
    clock_hour, clock_month = local_hour_and_month()
    activity = build_curve(
        weather or WeatherSnapshot(),
        clock_month if month is None else month,
        clock_hour if hour is None else hour,
    )
    return report.model_copy(update={"activity": activity})


class BirdClient:
    """Fetches bird reports and keeps the last one per location on disk."""

    def __init__(
        self,
        base_url: str,
        store: DataStore,
        *,
        session: requests.Session | None = None,
        ttl_seconds: int = CLIENT_CACHE_TTL,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.store = store
        self.session = session or create_session()
        self.ttl_seconds = ttl_seconds
        # None until the first server answer says whether eBird is configured.
        self.feature_available: bool | None = None

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def fetch_report(
        self,
        lat: float,
        lon: float,
        weather: WeatherSnapshot | None = None,
        *,
        hour: int | None = None,
        month: int | None = None,
    ) -> BirdReport:
        """
        Call ``GET /birds`` on the server.

        Raises:
            NotConfigured: The server answered 503 (no eBird key).
            UpstreamUnavailable: Any other failure, including bad payloads.
        """
        weather = weather or WeatherSnapshot()
        params: dict[str, Any] = {
            "lat": lat,
            "lon": lon,
            "temp_c": weather.temp_c,
            "rain": weather.rain_probability,
            "wind": weather.wind_speed_ms,
            "cloud": weather.cloud_percent,
        }
        if hour is not None:
            params["hour"] = hour
        if month is not None:
            params["month"] = month

        try:
            resp = self.session.get(f"{self.base_url}/birds", params=params)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Bird API request failed: {e}") from e

        if resp.status_code == 503:
            raise NotConfigured("Bird data unavailable")
        if not resp.ok:
            raise UpstreamUnavailable(f"Bird API error: {resp.status_code}", resp.status_code)

        try:
            return BirdReport.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise UpstreamUnavailable("Bird API returned an invalid report", resp.status_code) from e

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    def cached_report(self, lat: float, lon: float) -> BirdReport | None:
        """Last stored report for the location, fresh or not."""
        data = self.store.read(cache_path(lat, lon))
        if data is None:
            return None
        try:
            return BirdReport.model_validate(data)
        except ValidationError as e:
            logger.warning("Discarding malformed cached bird report: %s", e)
            return None

    def save_report(self, lat: float, lon: float, report: BirdReport) -> Path:
        return self.store.write(
            cache_path(lat, lon),
            report.model_dump(mode="json"),
            source=self.base_url,
            valid_until=report.generated_at + timedelta(seconds=self.ttl_seconds),
            location={"lat": round_coord(lat), "lon": round_coord(lon)},
        )

    def clear_cache(self, lat: float, lon: float) -> bool:
        """Drop the stored report so the next ``load`` hits the server."""
        return self.store.delete(cache_path(lat, lon))

    # -------------------------------------------------------------------------
    # Public
    # -------------------------------------------------------------------------

    def load(
        self,
        lat: float,
        lon: float,
        weather: WeatherSnapshot | None = None,
        *,
        hour: int | None = None,
        month: int | None = None,
    ) -> BirdReport | None:
        """
        Bird report for a location, from cache when fresh.

        Returns:
            The report (activity always computed for ``weather``), or None when
            the feature is disabled server-side or nothing could be loaded.
        """
        validate_query(lat, lon, hour=hour, month=month)

        cached = self.cached_report(lat, lon)
        if cached is not None and self.store.is_fresh(cache_path(lat, lon)):
            logger.debug("Using cached bird report for %s,%s", lat, lon)
            self.feature_available = True
            return refresh_activity(cached, weather, hour=hour, month=month)

        try:
            report = self.fetch_report(lat, lon, weather, hour=hour, month=month)
        except NotConfigured:
            logger.info("Bird data unavailable: server has no eBird key")
            self.feature_available = False
            return None
        except UpstreamUnavailable as e:
            logger.error("Bird data fetch error: %s", e)
            if cached is None:
                return None
            logger.info("Falling back to stale bird report from %s", cached.generated_at)
            return refresh_activity(cached, weather, hour=hour, month=month)

        self.save_report(lat, lon, report)
        self.feature_available = True
        return report

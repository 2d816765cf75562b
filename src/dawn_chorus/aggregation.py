"""
Bird report aggregation.

Orchestrates the pipeline behind ``GET /birds``::

    eBird (tight radius) -> normalize -> [too few species? eBird (wide radius)]
        -> cache (raw observations, 6 h) -> rank for caller's hour
        -> notable species + activity curve -> BirdReport

Only the normalized observations are cached. Ranking and scoring depend on the
caller's hour and weather and are recomputed on every request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from dawn_chorus.analysis.activity import build_curve, local_hour_and_month
from dawn_chorus.analysis.ranking import rank, select_notable
from dawn_chorus.cache import SingleFlight, TTLCache, make_key, round_coord
from dawn_chorus.config import Settings
from dawn_chorus.datasources.ebird import EBirdClient, normalize_observations
from dawn_chorus.errors import InvalidInput, NotConfigured, UpstreamUnavailable
from dawn_chorus.reference import birding
from dawn_chorus.schemas import BirdReport, Location, ObservationSet, WeatherSnapshot

logger = logging.getLogger(__name__)


def validate_query(
    lat: float, lon: float, *, hour: int | None = None, month: int | None = None
) -> None:
    """Raise ``InvalidInput`` naming the first out-of-range value."""
    if not -90 <= lat <= 90:
        raise InvalidInput("lat", "must be between -90 and 90")
    if not -180 <= lon <= 180:
        raise InvalidInput("lon", "must be between -180 and 180")
    if hour is not None and not 0 <= hour <= 23:
        raise InvalidInput("hour", "must be between 0 and 23")
    if month is not None and not 0 <= month <= 11:
        raise InvalidInput("month", "must be between 0 and 11")


@dataclass
class AggregationPolicy:
    """Search and caching knobs; defaults mirror ``reference.birding``."""

    tight_radius_km: float = birding.TIGHT_RADIUS_KM
    wide_radius_km: float = birding.WIDE_RADIUS_KM
    lookback_days: int = birding.LOOKBACK_DAYS
    max_results: int = birding.MAX_RESULTS
    sparse_species_threshold: int = birding.SPARSE_SPECIES_THRESHOLD
    notable_species_count: int = birding.NOTABLE_SPECIES_COUNT
    observation_cache_ttl: int = birding.OBSERVATION_CACHE_TTL
    stale_cache_ttl: int = birding.STALE_CACHE_TTL

    @classmethod
    def from_settings(cls, settings: Settings) -> AggregationPolicy:
        return cls(
            tight_radius_km=settings.tight_radius_km,
            wide_radius_km=settings.wide_radius_km,
            lookback_days=settings.lookback_days,
            max_results=settings.max_results,
            sparse_species_threshold=settings.sparse_species_threshold,
            notable_species_count=settings.notable_species_count,
            observation_cache_ttl=settings.observation_cache_ttl,
            stale_cache_ttl=settings.stale_cache_ttl,
        )


class BirdAggregator:
    """Builds ``BirdReport``s from eBird data through an injected cache."""

    def __init__(
        self,
        source: EBirdClient,
        cache: TTLCache,
        *,
        stale_cache: TTLCache | None = None,
        policy: AggregationPolicy | None = None,
    ) -> None:
        self.source = source
        self.cache = cache
        self.stale_cache = stale_cache if stale_cache is not None else TTLCache()
        self.policy = policy or AggregationPolicy()
        self._flight: SingleFlight[ObservationSet] = SingleFlight()

    @classmethod
    def from_settings(cls, settings: Settings) -> BirdAggregator:
        source = EBirdClient(settings.ebird_api_key, base_url=settings.ebird_base_url)
        return cls(source, TTLCache(), policy=AggregationPolicy.from_settings(settings))

    @property
    def is_configured(self) -> bool:
        return self.source.is_configured

    # -------------------------------------------------------------------------
    # Observations
    # -------------------------------------------------------------------------

    def fetch_observations(self, lat: float, lon: float) -> ObservationSet:
        """Fetch at the tight radius, widening once if too few species turn up."""
        p = self.policy
        tight = self._fetch(lat, lon, p.tight_radius_km)
        if tight.species_count >= p.sparse_species_threshold:
            return tight

        logger.info(
            "Only %d species within %s km of %s,%s; widening to %s km",
            tight.species_count,
            p.tight_radius_km,
            lat,
            lon,
            p.wide_radius_km,
        )
        return self._fetch(lat, lon, p.wide_radius_km)

    def _fetch(self, lat: float, lon: float, radius_km: float) -> ObservationSet:
        raw = self.source.fetch_recent(
            lat,
            lon,
            distance_km=radius_km,
            lookback_days=self.policy.lookback_days,
            max_results=self.policy.max_results,
        )
        return ObservationSet(observations=normalize_observations(raw), radius_km=radius_km)

    def get_observations(self, lat: float, lon: float) -> tuple[ObservationSet, bool]:
        """
        Resolve observations for a rounded coordinate through the cache.

        Concurrent misses for the same bucket share one upstream fetch. If the
        fetch fails and an earlier result is still held in the stale cache,
        that result is returned instead.

        Returns:
            ``(observations, from_cache)``.

        Raises:
            NotConfigured: No eBird key.
            UpstreamUnavailable: eBird failed and nothing is cached.
        """
        key = make_key(lat, lon)
        hit = self.cache.get(key)
        if hit is not None:
            logger.debug("Observation cache hit for %s", key)
            return hit, True

        def load() -> ObservationSet:
            # Another request may have filled the bucket while we queued.
            filled = self.cache.get(key)
            if filled is not None:
                return filled
            logger.info("Fetching bird observations for %s", key)
            result = self.fetch_observations(lat, lon)
            self.cache.set(key, result, self.policy.observation_cache_ttl)
            self.stale_cache.set(key, result, self.policy.stale_cache_ttl)
            return result

        try:
            return self._flight.do(key, load), False
        except UpstreamUnavailable as e:
            stale = self.stale_cache.get(key)
            if stale is None:
                raise
            logger.warning("eBird unavailable for %s (%s); serving stale observations", key, e)
            return stale, True

    # -------------------------------------------------------------------------
    # Report
    # -------------------------------------------------------------------------

    def build_report(
        self,
        lat: float,
        lon: float,
        *,
        hour: int | None = None,
        weather: WeatherSnapshot | None = None,
        month: int | None = None,
        now: datetime | None = None,
    ) -> BirdReport:
        """
        Build the full report for a location.

        Args:
            lat: Latitude (validated by the caller).
            lon: Longitude (validated by the caller).
            hour: Viewer's local hour, used for ranking and as the current hour.
                None ranks by recency and takes the current hour from the clock.
            weather: Conditions for the activity curve (defaults when None).
            month: 0-indexed month; defaults to the current month.
            now: Clock override for tests.
        """
        validate_query(lat, lon, hour=hour, month=month)
        if not self.is_configured:
            raise NotConfigured("eBird API key not configured")

        lat, lon = round_coord(lat), round_coord(lon)
        observations, cached = self.get_observations(lat, lon)

        ranked = rank(observations.observations, hour)
        notable = select_notable(ranked, self.policy.notable_species_count)

        clock_hour, clock_month = local_hour_and_month(now)
        activity = build_curve(
            weather or WeatherSnapshot(),
            clock_month if month is None else month,
            clock_hour if hour is None else hour,
        )

        return BirdReport(
            generated_at=(now or datetime.now(UTC)),
            location=Location(lat=lat, lon=lon),
            notable_species=notable,
            all_species=ranked,
            total_species_count=len(ranked),
            observation_radius_km=observations.radius_km,
            activity=activity,
            cached=cached,
        )

"""Tests for the bird report aggregation pipeline."""

from __future__ import annotations

import threading
import time
from datetime import UTC, datetime
from typing import Any

import pytest

from dawn_chorus.aggregation import AggregationPolicy, BirdAggregator, validate_query
from dawn_chorus.cache import TTLCache
from dawn_chorus.config import Settings
from dawn_chorus.datasources.ebird import API_BASE
from dawn_chorus.errors import InvalidInput, NotConfigured, UpstreamUnavailable
from dawn_chorus.schemas import ObservationSet, WeatherSnapshot

NOW = datetime(2026, 4, 12, 6, 30, tzinfo=UTC)


def _record(code: str, obs_dt: str, name: str | None = None) -> dict[str, Any]:
    return {
        "speciesCode": code,
        "comName": name or code.title(),
        "sciName": f"{code} sp.",
        "howMany": 1,
        "obsDt": obs_dt,
        "locName": "Laurelhurst Park",
    }


FEW = [
    _record("amerob", "2026-04-11 06:10"),
    _record("amerob", "2026-04-10 18:00"),
    _record("sonspa", "2026-04-11 17:45"),
    _record("bkcchi", "2026-04-09 12:00"),
]

MANY = [
    _record("amerob", "2026-04-11 06:10"),
    _record("sonspa", "2026-04-11 17:45"),
    _record("bkcchi", "2026-04-09 12:00"),
    _record("stejay", "2026-04-12 07:30"),
    _record("annhum", "2026-04-12 19:05"),
    _record("dowwoo", "2026-04-10 09:00"),
]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeSource:
    """Stands in for EBirdClient; answers by radius."""

    def __init__(
        self,
        by_radius: dict[float, list[dict[str, Any]]] | None = None,
        *,
        configured: bool = True,
        error: Exception | None = None,
    ) -> None:
        self.by_radius = by_radius or {}
        self.is_configured = configured
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def fetch_recent(
        self, lat: float, lon: float, *, distance_km: float, lookback_days: int, max_results: int
    ) -> list[dict[str, Any]]:
        self.calls.append(
            {
                "lat": lat,
                "lon": lon,
                "distance_km": distance_km,
                "lookback_days": lookback_days,
                "max_results": max_results,
            }
        )
        if self.error is not None:
            raise self.error
        return self.by_radius.get(distance_km, [])


def _aggregator(source: FakeSource, **kwargs: Any) -> BirdAggregator:
    return BirdAggregator(source, TTLCache(), **kwargs)  # type: ignore[arg-type]


class TestValidateQuery:
    @pytest.mark.parametrize(
        ("kwargs", "field"),
        [
            ({"lat": 91, "lon": 0}, "lat"),
            ({"lat": -90.5, "lon": 0}, "lat"),
            ({"lat": 0, "lon": 180.1}, "lon"),
            ({"lat": 0, "lon": 0, "hour": 24}, "hour"),
            ({"lat": 0, "lon": 0, "hour": -1}, "hour"),
            ({"lat": 0, "lon": 0, "month": 12}, "month"),
            ({"lat": float("nan"), "lon": 0}, "lat"),
        ],
    )
    def test_invalid(self, kwargs: dict[str, Any], field: str) -> None:
        with pytest.raises(InvalidInput) as exc_info:
            validate_query(**kwargs)
        assert exc_info.value.field == field
        assert field in str(exc_info.value)

    def test_valid_edges(self) -> None:
        validate_query(-90, -180, hour=0, month=0)
        validate_query(90, 180, hour=23, month=11)


class TestRadiusWidening:
    def test_sparse_tight_result_widens(self) -> None:
        source = FakeSource({3.0: FEW, 10.0: MANY})
        result = _aggregator(source).fetch_observations(45.523, -122.677)

        assert [c["distance_km"] for c in source.calls] == [3.0, 10.0]
        assert result.radius_km == 10.0
        assert result.species_count == 6

    def test_enough_species_no_second_fetch(self) -> None:
        source = FakeSource({3.0: MANY, 10.0: FEW})
        result = _aggregator(source).fetch_observations(45.523, -122.677)

        assert [c["distance_km"] for c in source.calls] == [3.0]
        assert result.radius_km == 3.0

    def test_counts_distinct_species_not_records(self) -> None:
        # Six records, three species
        dupes = [*FEW, _record("sonspa", "2026-04-12 06:00"), _record("bkcchi", "2026-04-12 06:05")]
        source = FakeSource({3.0: dupes, 10.0: MANY})
        _aggregator(source).fetch_observations(0, 0)
        assert len(source.calls) == 2

    def test_wide_result_used_even_if_smaller(self) -> None:
        source = FakeSource({3.0: FEW, 10.0: []})
        result = _aggregator(source).fetch_observations(0, 0)
        assert result.radius_km == 10.0
        assert result.observations == []

    def test_policy_values_passed_through(self) -> None:
        source = FakeSource({3.0: MANY})
        policy = AggregationPolicy(lookback_days=7, max_results=50)
        _aggregator(source, policy=policy).fetch_observations(1, 2)
        assert source.calls[0] == {
            "lat": 1,
            "lon": 2,
            "distance_km": 3.0,
            "lookback_days": 7,
            "max_results": 50,
        }


class TestObservationCache:
    def test_caches_raw_observations_by_rounded_key(self) -> None:
        source = FakeSource({3.0: MANY})
        cache = TTLCache()
        aggregator = BirdAggregator(source, cache)  # type: ignore[arg-type]

        aggregator.build_report(45.52349, -122.67651, hour=6, now=NOW)

        cached = cache.get("45.523,-122.677")
        assert isinstance(cached, ObservationSet)
        assert cached.radius_km == 3.0
        assert len(cached.observations) == len(MANY)

    def test_second_request_hits_cache(self) -> None:
        source = FakeSource({3.0: MANY})
        aggregator = _aggregator(source)

        first = aggregator.build_report(45.523, -122.677, hour=6, now=NOW)
        second = aggregator.build_report(45.5231, -122.6769, hour=6, now=NOW)

        assert len(source.calls) == 1
        assert first.cached is False
        assert second.cached is True

    def test_fetch_uses_rounded_coordinates(self) -> None:
        source = FakeSource({3.0: MANY})
        _aggregator(source).build_report(45.52349, -122.67651, hour=6, now=NOW)
        assert source.calls[0]["lat"] == 45.523
        assert source.calls[0]["lon"] == -122.677

    def test_expired_entry_refetches(self) -> None:
        clock = FakeClock()
        source = FakeSource({3.0: MANY})
        aggregator = BirdAggregator(source, TTLCache(clock=clock))  # type: ignore[arg-type]

        aggregator.build_report(10, 10, hour=6, now=NOW)
        clock.now += aggregator.policy.observation_cache_ttl + 1
        aggregator.build_report(10, 10, hour=6, now=NOW)

        assert len(source.calls) == 2

    def test_ranking_recomputed_per_request(self) -> None:
        source = FakeSource({3.0: MANY})
        aggregator = _aggregator(source)

        morning = aggregator.build_report(0, 0, hour=6, now=NOW)
        evening = aggregator.build_report(0, 0, hour=19, now=NOW)

        assert len(source.calls) == 1
        assert [o.species_code for o in morning.notable_species] == ["amerob", "stejay", "dowwoo"]
        assert [o.species_code for o in evening.notable_species] == ["annhum", "sonspa", "bkcchi"]

    def test_concurrent_cold_requests_fetch_once(self) -> None:
        entered = threading.Event()
        release = threading.Event()

        class SlowSource(FakeSource):
            def fetch_recent(self, *args: Any, **kwargs: Any) -> list[dict[str, Any]]:
                entered.set()
                release.wait(timeout=5)
                return super().fetch_recent(*args, **kwargs)

        source = SlowSource({3.0: MANY})
        aggregator = _aggregator(source)
        results: list[bool] = []

        def worker() -> None:
            _, cached = aggregator.get_observations(1.0, 1.0)
            results.append(cached)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        threads[0].start()
        assert entered.wait(timeout=5)
        for t in threads[1:]:
            t.start()
        time.sleep(0.2)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert len(source.calls) == 1
        assert len(results) == 4


class TestUpstreamFailures:
    def test_not_configured(self) -> None:
        source = FakeSource(configured=False)
        with pytest.raises(NotConfigured):
            _aggregator(source).build_report(0, 0, now=NOW)
        assert source.calls == []

    def test_invalid_input_before_config_check(self) -> None:
        source = FakeSource(configured=False)
        with pytest.raises(InvalidInput):
            _aggregator(source).build_report(100, 0, now=NOW)

    def test_failure_without_cache_propagates(self) -> None:
        source = FakeSource(error=UpstreamUnavailable("eBird API error: 500", 500))
        with pytest.raises(UpstreamUnavailable):
            _aggregator(source).build_report(0, 0, hour=6, now=NOW)

    def test_failure_serves_stale_observations(self) -> None:
        clock = FakeClock()
        source = FakeSource({3.0: MANY})
        aggregator = BirdAggregator(  # type: ignore[arg-type]
            source, TTLCache(clock=clock), stale_cache=TTLCache(clock=clock)
        )
        aggregator.build_report(0, 0, hour=6, now=NOW)

        # Past the fresh TTL but inside the stale window
        clock.now += aggregator.policy.observation_cache_ttl + 1
        source.error = UpstreamUnavailable("eBird API error: 503", 503)
        report = aggregator.build_report(0, 0, hour=6, now=NOW)

        assert report.cached is True
        assert report.total_species_count == 6
        assert len(source.calls) == 2

    def test_stale_window_expires(self) -> None:
        clock = FakeClock()
        source = FakeSource({3.0: MANY})
        aggregator = BirdAggregator(  # type: ignore[arg-type]
            source, TTLCache(clock=clock), stale_cache=TTLCache(clock=clock)
        )
        aggregator.build_report(0, 0, hour=6, now=NOW)

        clock.now += aggregator.policy.stale_cache_ttl + 1
        source.error = UpstreamUnavailable("eBird API error: 500", 500)
        with pytest.raises(UpstreamUnavailable):
            aggregator.build_report(0, 0, hour=6, now=NOW)


class TestBuildReport:
    def test_report_contents(self) -> None:
        source = FakeSource({3.0: FEW, 10.0: MANY})
        report = _aggregator(source).build_report(45.52349, -122.67651, hour=6, now=NOW)

        assert report.generated_at == NOW
        assert report.location.lat == 45.523
        assert report.location.lon == -122.677
        assert report.observation_radius_km == 10.0
        assert report.total_species_count == 6
        assert len(report.all_species) == 6
        assert len(report.notable_species) == 3
        assert report.notable_species == report.all_species[:3]

    def test_one_entry_per_species_in_report(self) -> None:
        source = FakeSource({3.0: [*MANY, *FEW]})
        report = _aggregator(source).build_report(0, 0, hour=6, now=NOW)
        codes = [o.species_code for o in report.all_species]
        assert len(codes) == len(set(codes)) == 6

    def test_activity_uses_caller_hour_weather_and_month(self) -> None:
        source = FakeSource({3.0: MANY})
        weather = WeatherSnapshot(temp_c=5, rain_probability=0, wind_speed_ms=2, cloud_percent=50)
        report = _aggregator(source).build_report(0, 0, hour=6, weather=weather, month=3, now=NOW)

        assert report.activity.current.hour == 6
        assert report.activity.current.score == 100
        assert report.activity.current.level == "high"

    def test_no_hour_uses_clock_and_recency(self) -> None:
        source = FakeSource({3.0: MANY})
        now = datetime(2026, 7, 1, 13, 0)
        report = _aggregator(source).build_report(0, 0, now=now)

        assert report.activity.current.hour == 13
        # July + default weather: 50 - 5 + 5 + 5
        assert report.activity.current.score == 55
        assert [o.species_code for o in report.all_species][:2] == ["annhum", "stejay"]

    def test_notable_count_from_policy(self) -> None:
        source = FakeSource({3.0: MANY})
        aggregator = _aggregator(source, policy=AggregationPolicy(notable_species_count=5))
        report = aggregator.build_report(0, 0, hour=6, now=NOW)
        assert len(report.notable_species) == 5


class TestFromSettings:
    def test_builds_from_settings(self) -> None:
        settings = Settings(ebird_api_key="abc", wide_radius_km=15, _env_file=None)
        aggregator = BirdAggregator.from_settings(settings)
        assert aggregator.is_configured is True
        assert aggregator.policy.wide_radius_km == 15
        assert aggregator.cache.size() == 0

    def test_default_base_url_shared_with_client(self) -> None:
        settings = Settings(ebird_api_key="abc", _env_file=None)
        aggregator = BirdAggregator.from_settings(settings)
        assert settings.ebird_base_url == API_BASE == "https://api.ebird.org/v2"
        assert aggregator.source.base_url == API_BASE

    def test_unconfigured_settings(self) -> None:
        settings = Settings(ebird_api_key=None, _env_file=None)
        assert BirdAggregator.from_settings(settings).is_configured is False

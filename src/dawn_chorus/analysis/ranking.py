"""Collapse repeated sightings per species and rank them by time-of-day relevance.

A bird seen at 6 a.m. three days ago matters more to someone looking at 6 a.m.
today than one seen at 11 p.m. yesterday, so when a reference hour is known
the ranking is by circular hour distance rather than by recency.
"""

from __future__ import annotations

from datetime import datetime

from dawn_chorus.reference.birding import NOTABLE_SPECIES_COUNT
from dawn_chorus.schemas import Observation

# Distance assigned to sightings with an unknown hour; larger than any real one.
UNKNOWN_HOUR_DISTANCE = 24

_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d")


def hour_distance(a: int, b: int) -> int:
    """Shortest distance between two hours around a 24-hour clock.

    >>> hour_distance(23, 1)
    2
    """
    diff = abs(a - b)
    return min(diff, 24 - diff)


def _distance_to(obs: Observation, reference_hour: int) -> int:
    if obs.obs_hour is None:
        return UNKNOWN_HOUR_DISTANCE
    return hour_distance(obs.obs_hour, reference_hour)


def _parse_timestamp(observed_at: str) -> datetime:
    """Parse a provider timestamp; unparseable values sort as the oldest."""
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(observed_at.strip(), fmt)
        except ValueError:
            continue
    return datetime.min


def rank(observations: list[Observation], reference_hour: int | None = None) -> list[Observation]:
    """
    Deduplicate by ``species_code`` and order by relevance.

    Without a reference hour the first sighting of each species in input order
    is kept, and the result is sorted newest first. With a reference hour the
    sighting closest to it (circular distance) is kept, ties going to the one
    seen first, and the result is sorted closest first with unknown hours last.

    Args:
        observations: Normalized observations, in provider order.
        reference_hour: Local hour of the viewer (0-23), or None.

    Returns:
        One observation per species code.
    """
    by_code: dict[str, Observation] = {}

    for obs in observations:
        existing = by_code.get(obs.species_code)
        if existing is None:
            by_code[obs.species_code] = obs
        elif reference_hour is not None:
            if _distance_to(obs, reference_hour) < _distance_to(existing, reference_hour):
                by_code[obs.species_code] = obs

    unique = list(by_code.values())

    if reference_hour is not None:
        return sorted(unique, key=lambda o: _distance_to(o, reference_hour))
    return sorted(unique, key=lambda o: _parse_timestamp(o.observed_at), reverse=True)


def select_notable(ranked: list[Observation], count: int = NOTABLE_SPECIES_COUNT) -> list[Observation]:
    """Top ``count`` species from an already ranked list."""
    return ranked[:count]

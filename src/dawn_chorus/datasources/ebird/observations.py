"""Observation parsing: raw eBird records -> ``Observation``."""

from __future__ import annotations

import logging
from typing import Any

from dawn_chorus.schemas import Observation

logger = logging.getLogger(__name__)

# =============================================================================
# Parsing
# =============================================================================


def parse_obs_hour(observed_at: str | None) -> int | None:
    """Read the hour from a provider-local ``"YYYY-MM-DD HH:mm"`` timestamp.

    Returns None for anything malformed (date-only records, garbage, hours
    outside 0-23) instead of raising.
    """
    if not observed_at or not isinstance(observed_at, str):
        return None

    parts = observed_at.strip().split(" ")
    if len(parts) < 2:
        return None

    hour_str = parts[1].split(":")[0]
    try:
        hour = int(hour_str)
    except ValueError:
        return None

    if not 0 <= hour <= 23:
        return None
    return hour


def _parse_count(value: Any) -> int:
    """Sighting count; anything missing, zero or unusable counts as 1."""
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 1
    return count if count > 0 else 1


def parse_observation(record: dict[str, Any]) -> Observation:
    """Map one raw eBird record to an ``Observation``."""
    observed_at = record.get("obsDt") or ""
    return Observation(
        common_name=record.get("comName") or "",
        scientific_name=record.get("sciName") or "",
        how_many=_parse_count(record.get("howMany")),
        observed_at=observed_at,
        obs_hour=parse_obs_hour(observed_at),
        location_name=record.get("locName") or "",
        species_code=record.get("speciesCode") or "",
    )


def normalize_observations(records: list[dict[str, Any]]) -> list[Observation]:
    """Normalize a list of raw records, preserving input order.

    Records without a ``speciesCode`` can't be deduplicated against anything,
    so they are skipped and counted in a warning.
    """
    observations: list[Observation] = []
    skipped = 0
    for record in records:
        obs = parse_observation(record)
        if not obs.species_code:
            skipped += 1
            continue
        observations.append(obs)

    if skipped:
        logger.warning("Skipped %d eBird record(s) with no species code", skipped)
    return observations

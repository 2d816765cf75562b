"""eBird recent-observation data source.

Fetches recent bird sightings near a point from the eBird API 2.0 (API key
required, ``EBIRD_API_KEY``).

Public API:
  - client: EBirdClient (request construction, status handling)
  - observations: normalize_observations, parse_obs_hour
"""

from dawn_chorus.datasources.ebird.client import API_BASE, EBirdClient, has_usable_key
from dawn_chorus.datasources.ebird.observations import (
    normalize_observations,
    parse_obs_hour,
    parse_observation,
)

__all__ = [
    "API_BASE",
    "EBirdClient",
    "has_usable_key",
    "normalize_observations",
    "parse_obs_hour",
    "parse_observation",
]

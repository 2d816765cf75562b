"""
eBird API client.

Low-level HTTP access to the eBird API 2.0 recent-observations endpoint.
Pure I/O: builds the request, checks the status, returns the raw records.

API docs: https://documenter.getpostman.com/view/664302/S1ENwy59
Auth: ``X-eBirdApiToken`` header (free key from https://ebird.org/api/keygen)
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from dawn_chorus.errors import NotConfigured, UpstreamUnavailable
from dawn_chorus.reference.birding import (
    EBIRD_API_BASE,
    LOOKBACK_DAYS,
    MAX_RESULTS,
    TIGHT_RADIUS_KM,
)
from dawn_chorus.services.http import CONNECT_ONLY_RETRY, create_session

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# API configuration
# ---------------------------------------------------------------------------
API_BASE = EBIRD_API_BASE
RECENT_NEARBY_PATH = "data/obs/geo/recent"
TOKEN_HEADER = "X-eBirdApiToken"

# Value shipped in the sample .env; treated the same as no key at all.
PLACEHOLDER_KEY = "your_ebird_api_key_here"

MAX_DISTANCE_KM = 50  # API maximum for dist
MAX_BACK_DAYS = 30  # API maximum for back


def has_usable_key(api_key: str | None) -> bool:
    """True when ``api_key`` is set and isn't the sample placeholder."""
    return bool(api_key) and api_key != PLACEHOLDER_KEY


class EBirdClient:
    """Fetch recent nearby observations from eBird."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = API_BASE,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or create_session(retry=CONNECT_ONLY_RETRY)

    @property
    def is_configured(self) -> bool:
        return has_usable_key(self.api_key)

    def fetch_recent(
        self,
        lat: float,
        lon: float,
        *,
        distance_km: float = TIGHT_RADIUS_KM,
        lookback_days: int = LOOKBACK_DAYS,
        max_results: int = MAX_RESULTS,
    ) -> list[dict[str, Any]]:
        """
        Fetch raw recent observations around a point.

        Args:
            lat: Latitude.
            lon: Longitude.
            distance_km: Search radius (capped at 50 km by the API).
            lookback_days: Days back to search (1-30).
            max_results: Maximum records returned.

        Returns:
            Raw eBird records (``comName``, ``sciName``, ``howMany``, ``obsDt``,
            ``locName``, ``speciesCode``, ...).

        Raises:
            NotConfigured: No API key is set.
            UpstreamUnavailable: eBird returned a non-success status, could not
                be reached, or sent a body that isn't a JSON list.
        """
        if not self.is_configured:
            raise NotConfigured("eBird API key not configured")

        params: dict[str, Any] = {
            "lat": lat,
            "lng": lon,
            "maxResults": max_results,
            "back": min(lookback_days, MAX_BACK_DAYS),
            "dist": min(distance_km, MAX_DISTANCE_KM),
        }
        url = f"{self.base_url}/{RECENT_NEARBY_PATH}"
        logger.debug("eBird request %s %s", url, params)

        try:
            resp = self.session.get(url, params=params, headers={TOKEN_HEADER: str(self.api_key)})
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"eBird request failed: {e}") from e

        if not resp.ok:
            raise UpstreamUnavailable(f"eBird API error: {resp.status_code}", resp.status_code)

        try:
            result = resp.json()
        except ValueError as e:
            raise UpstreamUnavailable("eBird returned invalid JSON", resp.status_code) from e

        if not isinstance(result, list):
            raise UpstreamUnavailable("eBird returned an unexpected payload", resp.status_code)

        logger.debug("eBird returned %d records (dist=%s km)", len(result), params["dist"])
        return result

"""Birding query and caching thresholds."""

# Observation search radii (km). The tight radius is tried first; if it
# turns up fewer than SPARSE_SPECIES_THRESHOLD distinct species, the query
# is repeated at the wide radius.
TIGHT_RADIUS_KM: float = 3.0
WIDE_RADIUS_KM: float = 10.0
SPARSE_SPECIES_THRESHOLD: int = 5

# eBird lookback window and result cap.
LOOKBACK_DAYS: int = 5
MAX_RESULTS: int = 100

# How many top-ranked species are surfaced as "notable".
NOTABLE_SPECIES_COUNT: int = 3

# Cache lifetimes (seconds).
OBSERVATION_CACHE_TTL: int = 6 * 60 * 60  # raw observations, server side
STALE_CACHE_TTL: int = 24 * 60 * 60  # last good observations, served on upstream errors
CLIENT_CACHE_TTL: int = 3 * 60 * 60  # full report, client side

# Coordinates are rounded to this many decimals (~100 m) before use.
COORD_DECIMALS: int = 3

# eBird API 2.0 root.
EBIRD_API_BASE: str = "https://api.ebird.org/v2"

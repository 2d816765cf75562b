"""Dawn Chorus - nearby bird sightings ranked by time of day, plus an activity forecast.

Architecture::

    datasources/   External APIs (eBird recent observations)
    cache.py       In-memory TTL cache + single-flight for the server
    store.py       On-disk JSON store with freshness metadata (client cache)
    analysis/      Pure logic: species ranking, activity score/curve
    aggregation.py Fetch -> widen -> cache -> rank -> score pipeline
    web/           FastAPI app exposing GET /birds
    client.py      Client for /birds that refreshes activity locally
    services/      Shared utilities (HTTP session with retry)

Data flow: datasources -> cache -> analysis -> web -> client (-> store)
"""

__version__ = "0.1.0"

from dawn_chorus.config import Settings

__all__ = ["Settings", "__version__"]

"""HTTP API (FastAPI).

- app.py            application factory, error -> status mapping, request logging
- routers/birds.py  ``GET /birds``
"""

from dawn_chorus.web.app import create_app

__all__ = ["create_app"]

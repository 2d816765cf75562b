"""FastAPI application factory.

The aggregator (and with it the observation cache) is built once per app and
kept on ``app.state``; tests pass their own to get an isolated cache.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dawn_chorus import __version__
from dawn_chorus.aggregation import BirdAggregator
from dawn_chorus.config import Settings, get_settings
from dawn_chorus.errors import InvalidInput, NotConfigured, UpstreamUnavailable
from dawn_chorus.web.routers.birds import router as birds_router

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("query", "body")]
        field = ".".join(loc) or "request"
        messages.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(messages)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _invalid_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid parameters", "message": _validation_message(exc)},
        )

    @app.exception_handler(InvalidInput)
    async def _invalid_input(_request: Request, exc: InvalidInput) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid parameters", "message": str(exc), "field": exc.field},
        )

    @app.exception_handler(NotConfigured)
    async def _not_configured(_request: Request, exc: NotConfigured) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={"error": "Bird data unavailable", "message": str(exc)},
        )

    @app.exception_handler(UpstreamUnavailable)
    async def _upstream(_request: Request, exc: UpstreamUnavailable) -> JSONResponse:
        logger.error("Upstream failure: %s", exc)
        return JSONResponse(
            status_code=502,
            content={"error": "Upstream unavailable", "message": str(exc)},
        )


def create_app(
    settings: Settings | None = None,
    aggregator: BirdAggregator | None = None,
) -> FastAPI:
    """Build the app. Missing pieces are constructed from ``settings``."""
    settings = settings or get_settings()
    aggregator = aggregator or BirdAggregator.from_settings(settings)

    app = FastAPI(title=settings.app_name, version=__version__, debug=settings.debug)
    app.state.settings = settings
    app.state.aggregator = aggregator

    if aggregator.is_configured:
        logger.info("eBird provider configured")
    else:
        logger.info("eBird provider not configured (set EBIRD_API_KEY for bird data)")

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        dur_ms = (time.perf_counter() - start) * 1000.0
        logger.info(
            "%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, dur_ms
        )
        return response

    @app.get("/health", tags=["meta"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    _register_error_handlers(app)
    app.include_router(birds_router)
    return app

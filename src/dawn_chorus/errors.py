"""Error taxonomy shared by the server, the aggregation layer and the client.

- ``InvalidInput``        bad or missing request values, never retried (HTTP 400)
- ``NotConfigured``       no upstream credential; the feature is off (HTTP 503)
- ``UpstreamUnavailable`` the observation provider failed (HTTP 502)
"""

from __future__ import annotations


class BirdDataError(Exception):
    """Base class for bird data errors."""


class InvalidInput(BirdDataError):
    """A request value is missing or out of range."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


class NotConfigured(BirdDataError):
    """The observation provider has no credential configured."""


class UpstreamUnavailable(BirdDataError):
    """The observation provider returned an error or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

"""
Shared HTTP client configuration.

Provides ``requests.Session`` factories with a retry adapter and a default
timeout injected into every request.

Two retry policies are exported:

- ``DEFAULT_RETRY`` retries transient HTTP statuses (429/502/504) with
  backoff. Used by the client when talking to our own ``/birds`` endpoint,
  where 503 means "feature disabled" and is not worth retrying.
- ``CONNECT_ONLY_RETRY`` retries connection failures only. Used for eBird:
  a non-success status must surface immediately so the aggregation layer can
  decide what to do (widen, fall back to cache, or fail).

Usage::

    from dawn_chorus.services.http import create_session, CONNECT_ONLY_RETRY

    s = create_session(retry=CONNECT_ONLY_RETRY)
    resp = s.get("https://api.example.com/v1/data")
"""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from dawn_chorus import __version__

DEFAULT_RETRY = Retry(
    total=3,
    backoff_factor=1,  # 0s, 1s, 2s between retries
    status_forcelist=[429, 502, 504],
    allowed_methods=["GET", "HEAD", "OPTIONS"],
    raise_on_status=False,  # let the caller inspect the final response
)

CONNECT_ONLY_RETRY = Retry(
    total=2,
    connect=2,
    read=0,
    status=0,
    backoff_factor=0.5,
    allowed_methods=["GET"],
    raise_on_status=False,
)

DEFAULT_TIMEOUT = 30  # seconds

USER_AGENT = f"dawn-chorus/{__version__}"


def create_session(
    retry: Retry | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> requests.Session:
    """
    Build a ``requests.Session`` with retry adapter mounted.

    Args:
        retry: Custom retry strategy (defaults to ``DEFAULT_RETRY``).
        timeout: Default timeout applied to every request.
    """
    s = requests.Session()
    adapter = HTTPAdapter(max_retries=retry or DEFAULT_RETRY)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = USER_AGENT

    # Inject a default timeout so callers don't need to pass ``timeout=``.
    _original_send = s.send

    def _send_with_timeout(
        prepared: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return _original_send(prepared, **kwargs)  # type: ignore[arg-type]

    s.send = _send_with_timeout  # type: ignore[method-assign]
    return s

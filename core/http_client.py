"""
Backend HTTP Session
====================

One shared requests.Session for every call to the trade-processing backend.

The session carries the JSON Accept header and our User-Agent, applies a
default timeout, and mounts a urllib3 Retry adapter that repeats idempotent
calls once on a gateway hiccup (502/503/504). Anything beyond that single
transport retry is the poll scheduler's job: it owns backoff per resource.

Usage:
    from core.http_client import get_http_client

    http = get_http_client(timeout=10)
    response = http.get("http://localhost:8081/api/imports")
    response = http.put(url, json=config, timeout=5)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

RETRY_STATUSES = (502, 503, 504)
IDEMPOTENT_METHODS = ("HEAD", "GET", "OPTIONS", "PUT", "DELETE")


def _build_session(user_agent: str, max_retries: int) -> requests.Session:
    session = requests.Session()
    session.headers.update({
        "User-Agent": user_agent,
        "Accept": "application/json",
    })
    # POST is never retried: consolidate/process are not idempotent
    adapter = HTTPAdapter(max_retries=Retry(
        total=max_retries,
        backoff_factor=0.2,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=IDEMPOTENT_METHODS,
        raise_on_status=False,
    ))
    for prefix in ("http://", "https://"):
        session.mount(prefix, adapter)
    return session


class HTTPClient:
    """
    Thin wrapper over a requests.Session with backend defaults.

    Blocking by design; the async BackendClient dispatches each call to a
    worker thread.
    """

    DEFAULT_USER_AGENT = "FundsmithLiveSync/1.0"
    DEFAULT_TIMEOUT = 10
    DEFAULT_MAX_RETRIES = 1

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = _build_session(user_agent, max_retries)
        logger.debug(f"Backend session ready (timeout={timeout}s, transport retries={max_retries})")

    def request(
        self,
        method: str,
        url: str,
        *,
        timeout: Optional[float] = None,
        headers: Optional[dict] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """
        Send one request and return the response whatever its status.

        Extra headers are layered over the session defaults. Transport
        failures (timeout, refused connection) are logged and re-raised as
        requests exceptions; the caller maps them to NetworkFailure.
        """
        effective_timeout = self.timeout if timeout is None else timeout
        merged = {**self.session.headers, **(headers or {})}
        try:
            response = self.session.request(
                method, url, headers=merged, timeout=effective_timeout, **kwargs
            )
        except requests.exceptions.Timeout:
            logger.warning(f"{method} {url} timed out after {effective_timeout}s")
            raise
        except requests.exceptions.ConnectionError as e:
            logger.warning(f"{method} {url} could not connect: {e}")
            raise
        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("PUT", url, **kwargs)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HTTPClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


_shared: Optional[HTTPClient] = None


def get_http_client(
    user_agent: Optional[str] = None,
    timeout: Optional[float] = None,
    max_retries: Optional[int] = None,
) -> HTTPClient:
    """
    Return the process-wide client, creating it on first use.

    Arguments only take effect on the call that creates it.
    """
    global _shared
    if _shared is None:
        _shared = HTTPClient(
            user_agent=user_agent or HTTPClient.DEFAULT_USER_AGENT,
            timeout=HTTPClient.DEFAULT_TIMEOUT if timeout is None else timeout,
            max_retries=HTTPClient.DEFAULT_MAX_RETRIES if max_retries is None else max_retries,
        )
    return _shared


def reset_http_client() -> None:
    """Close and forget the shared client (tests)."""
    global _shared
    if _shared is not None:
        _shared.close()
        _shared = None

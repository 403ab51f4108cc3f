"""
Shared GitHub HTTP helpers: session construction, request timeouts and
exponential backoff for transient failures.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Max attempts when backing off for 429/5xx and connection errors
_DEFAULT_MAX_ATTEMPTS = int(os.getenv("GITHUB_REQ_MAX_ATTEMPTS", "3"))
# Backoff multiplier
_DEFAULT_BACKOFF_BASE = float(os.getenv("GITHUB_REQ_BACKOFF_BASE", "1.7"))
# Per-request timeout in seconds
DEFAULT_TIMEOUT = float(os.getenv("GITHUB_REQ_TIMEOUT", "30"))

TRANSIENT_STATUSES = (429, 500, 502, 503, 504)
# Upper bound on a server supplied Retry-After, in seconds
_MAX_RETRY_AFTER = 60.0
# Connections kept per host
DEFAULT_POOL_SIZE = int(os.getenv("GITHUB_POOL_SIZE", "32"))


def make_rate_limited_session(
    token: Optional[str],
    user_agent: str = "github-contributions",
    pool_maxsize: int = DEFAULT_POOL_SIZE,
) -> requests.Session:
    """Create a requests Session with auth headers and connection-level retries.

    ``pool_maxsize`` should cover the number of threads sharing the session,
    otherwise urllib3 discards the surplus connections after each request.

    Status based retries are left to ``request_with_rate_limit`` so they are
    logged; the adapter only retries failed connects.
    """
    s = requests.Session()
    retry_strategy = Retry(
        total=None,
        connect=2,
        read=0,
        status=0,
        backoff_factor=0.5,
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy, pool_maxsize=pool_maxsize)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    headers: Dict[str, str] = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": f"{user_agent}" if user_agent else "github-contributions",
    }
    if token:
        headers["Authorization"] = f"token {token}"
    s.headers.update(headers)
    return s


def backoff_delay(attempt: int, backoff_base: float = _DEFAULT_BACKOFF_BASE,
                  resp: Optional[requests.Response] = None) -> float:
    """Seconds to wait before retry ``attempt + 1``.

    A numeric ``Retry-After`` header (sent with secondary rate limits) wins
    over the exponential schedule, capped at ``_MAX_RETRY_AFTER``.
    """
    if resp is not None:
        retry_after = resp.headers.get("Retry-After", "")
        if retry_after.isdigit():
            return min(float(retry_after), _MAX_RETRY_AFTER)
    return backoff_base ** (attempt - 1)


def request_with_rate_limit(
    session: requests.Session,
    method: str,
    url: str,
    *,
    logger: Optional[logging.Logger] = None,
    max_attempts: int = _DEFAULT_MAX_ATTEMPTS,
    backoff_base: float = _DEFAULT_BACKOFF_BASE,
    timeout: float = DEFAULT_TIMEOUT,
    **kwargs: Any,
) -> requests.Response:
    """Send one API request, backing off on 429/5xx responses and network errors.

    The final response is returned even when it is still an error; the caller
    decides how to classify it. A network error on the last attempt raises.
    Exhausted primary rate limits (403) are not retried here.
    """
    log = logger or logging.getLogger("github.http")

    for attempt in range(1, max_attempts + 1):
        last = attempt >= max_attempts
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            if last:
                raise
            delay = backoff_delay(attempt, backoff_base)
            log.warning("%s %s failed (attempt %d/%d): %s; retrying in %.1fs",
                        method, url, attempt, max_attempts, e, delay)
            time.sleep(delay)
            continue

        if resp.status_code not in TRANSIENT_STATUSES or last:
            return resp
        delay = backoff_delay(attempt, backoff_base, resp)
        log.warning("%s %s returned HTTP %s (attempt %d/%d); retrying in %.1fs",
                    method, url, resp.status_code, attempt, max_attempts, delay)
        time.sleep(delay)

    raise ValueError("max_attempts must be at least 1")

"""
Exception types raised by the GitHub client.

Transport problems (connection errors, timeouts, 5xx after backoff) are kept
apart from semantic API errors so the pagination walker only retries the
former. Semantic errors carry the ``documentation_url`` GitHub attaches to
every error body; callers match it against the ``DOCS_*`` markers below to
recognise expected-absent resources.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import requests

# Anchors of the GitHub REST documentation pages returned in error bodies
DOCS_LIST_ISSUES = "list-repository-issues"
DOCS_LIST_PULLS = "list-pull-requests"
DOCS_LIST_COMMITS = "list-commits"
DOCS_GET_USER = "get-a-user"

# Statuses paired with the listing anchors when a repository setting hides the
# resource. A 404 from the same endpoint is a missing repository, not a gap.
STATUS_ISSUES_DISABLED = 410
STATUS_PULLS_DISABLED = 410
STATUS_EMPTY_REPOSITORY = 409


class GitHubError(Exception):
    """Base class for every failure surfaced by the GitHub client."""


class TransportError(GitHubError):
    """Network level failure or a server error that outlived the backoff."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class GitHubAPIError(GitHubError):
    """A well-formed error response from the API (4xx)."""

    def __init__(
        self,
        status_code: int,
        message: str,
        documentation_url: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(f"HTTP {status_code}: {message}" + (f" ({url})" if url else ""))
        self.status_code = status_code
        self.message = message
        self.documentation_url = documentation_url
        self.url = url

    def documents(self, marker: str, status: Optional[int] = None) -> bool:
        """Return True when the error points at the documentation anchor ``marker``.

        With ``status`` the response code must match as well.
        """
        if not self.documentation_url:
            return False
        if status is not None and self.status_code != status:
            return False
        anchor = self.documentation_url.rsplit("#", 1)[-1]
        return anchor.lower() == marker.lower()

    @classmethod
    def from_response(cls, resp: requests.Response) -> "GitHubAPIError":
        try:
            body: Dict[str, Any] = resp.json() or {}
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or resp.reason or "unknown error"
        error_cls = cls
        if resp.status_code == 403 and resp.headers.get("X-RateLimit-Remaining") == "0":
            error_cls = RateLimitError
        return error_cls(
            status_code=resp.status_code,
            message=message,
            documentation_url=body.get("documentation_url"),
            url=resp.url,
        )


class RateLimitError(GitHubAPIError):
    """Raised when the primary rate limit is exhausted; the run is not resumed."""


class ResponseFormatError(GitHubError):
    """A successful response whose body does not have the expected shape."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message + (f" ({url})" if url else ""))
        self.url = url

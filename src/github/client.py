"""GitHub REST client with pagination support and response caching."""
from __future__ import annotations

import logging
import os
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar
from urllib.parse import urljoin

import requests
from cachetools import TTLCache
from cachetools.keys import hashkey

from .errors import GitHubAPIError, ResponseFormatError, TransportError
from .models import Commit, EnrichedAuthor, Issue, Page, PullRequest, Repo, Review
from .rate_limit import (
    DEFAULT_POOL_SIZE,
    DEFAULT_TIMEOUT,
    TRANSIENT_STATUSES,
    make_rate_limited_session,
    request_with_rate_limit,
)
from .utils import paginate, parse_next_link

T = TypeVar('T')

# Default cache TTL in seconds (1 hour)
DEFAULT_CACHE_TTL = 3600
# Default cache max size (1000 items)
DEFAULT_CACHE_SIZE = 1000
# GitHub max per_page is 100
PER_PAGE = 100


class BaseGitHubClient:
    """Base class for GitHub API clients with common functionality.

    A single instance is shared by every component issuing requests; the
    underlying session is safe for concurrent use and the response cache is
    guarded by a lock.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        cache_ttl: int = DEFAULT_CACHE_TTL,
        cache_size: int = DEFAULT_CACHE_SIZE,
        user_agent: str = "github-contributions",
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        pool_size: int = DEFAULT_POOL_SIZE,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub personal access token for authentication
            base_url: Base URL for the GitHub API
            cache_ttl: Cache TTL in seconds
            cache_size: Maximum number of items to cache
            user_agent: User agent string for API requests
            timeout: Per-request timeout in seconds
            session: Preconfigured session, mostly for tests
            pool_size: Connections kept per host; match the number of worker threads
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        self.base_url = base_url.rstrip('/')
        self.user_agent = user_agent
        self.timeout = timeout
        self.pool_size = pool_size
        self.logger = logging.getLogger(self.__class__.__name__)

        # Initialize cache
        self._cache = TTLCache(
            maxsize=cache_size,
            ttl=cache_ttl,
            getsizeof=lambda x: 1  # Simple size function for TTLCache
        )
        self._cache_lock = threading.Lock()

        # Initialize session
        self._session = session if session is not None else self._create_session()

    def _create_session(self) -> requests.Session:
        """Create and configure a requests session."""
        return make_rate_limited_session(self.token, user_agent=self.user_agent, pool_maxsize=self.pool_size)

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return urljoin(f"{self.base_url}/", path.lstrip('/'))

    def _make_cache_key(self, method: str, url: str, **kwargs) -> str:
        """Generate a cache key for a request."""
        # Sort kwargs for consistent keys
        sorted_kwargs = tuple(sorted((k, repr(v)) for k, v in kwargs.items()))
        return str(hashkey(method, url, sorted_kwargs))

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Issue a request, turning network failures and 5xx into TransportError."""
        try:
            response = request_with_rate_limit(
                self._session, method, url,
                logger=self.logger, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}", url=url) from e

        if response.status_code in TRANSIENT_STATUSES:
            raise TransportError(
                f"{method} {url} failed with HTTP {response.status_code}",
                status_code=response.status_code,
                url=url,
            )
        return response

    def _cached_request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Make a request with caching."""
        cache_key = self._make_cache_key(method, url, **kwargs)

        # Check cache first
        with self._cache_lock:
            cached = self._cache.get(cache_key)
        if cached is not None:
            self.logger.debug(f"Cache hit for {method} {url}")
            return cached

        # Make the request
        self.logger.debug(f"Cache miss for {method} {url}")
        response = self._request(method, url, **kwargs)

        # Cache successful responses
        if response.status_code in (200, 204):
            with self._cache_lock:
                self._cache[cache_key] = response

        return response

    def get(self, path: str, cache: bool = False, **kwargs) -> requests.Response:
        """Make a GET request to the GitHub API."""
        url = self._url(path)
        if cache:
            return self._cached_request('GET', url, **kwargs)
        return self._request('GET', url, **kwargs)

    @staticmethod
    def raise_for_status(response: requests.Response) -> None:
        """Raise GitHubAPIError for any 4xx/5xx response."""
        if response.status_code >= 400:
            raise GitHubAPIError.from_response(response)

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()

    def __enter__(self) -> 'BaseGitHubClient':
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close the session."""
        self.close()


class GitHubClient(BaseGitHubClient):
    """Main GitHub API client with high-level methods.

    List methods return the first page only; drain them with
    ``paginate(page, lambda url: client.get_page(url, parser))``.
    """

    def _list(self, path: str, parser: Callable[[Dict[str, Any]], T],
              params: Optional[Dict[str, Any]] = None) -> Page[T]:
        query = dict(params or {})
        query['per_page'] = PER_PAGE
        response = self.get(path, params=query)
        return self._to_page(response, parser)

    @staticmethod
    def _parse(response: requests.Response, parser: Callable[[Any], T]) -> T:
        """Run ``parser`` over the JSON body, reporting malformed payloads as ResponseFormatError."""
        try:
            return parser(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise ResponseFormatError(f"Unexpected response body: {e!r}", url=response.url) from e

    def _to_page(self, response: requests.Response, parser: Callable[[Dict[str, Any]], T]) -> Page[T]:
        self.raise_for_status(response)
        items = self._parse(response, lambda data: [parser(item) for item in data or []])
        return Page(
            items=items,
            next_url=parse_next_link(response.headers.get('Link')),
        )

    def get_page(self, url: str, parser: Callable[[Dict[str, Any]], T]) -> Page[T]:
        """Fetch the page behind a ``next_url`` taken from a previous page."""
        return self._to_page(self.get(url), parser)

    def list_issues(self, org: str, repo: str) -> Page[Issue]:
        """List issues (pull requests included), newest first."""
        return self._list(
            f"repos/{org}/{repo}/issues",
            Issue.from_dict,
            {'state': 'all', 'sort': 'created', 'direction': 'desc'},
        )

    def list_pull_requests(self, org: str, repo: str) -> Page[PullRequest]:
        """List pull requests, newest first."""
        return self._list(
            f"repos/{org}/{repo}/pulls",
            PullRequest.from_dict,
            {'state': 'all', 'sort': 'created', 'direction': 'desc'},
        )

    def list_reviews(self, org: str, repo: str, number: int) -> Page[Review]:
        """List reviews of one pull request."""
        return self._list(f"repos/{org}/{repo}/pulls/{number}/reviews", self.review_parser(number))

    @staticmethod
    def review_parser(number: int) -> Callable[[Dict[str, Any]], Review]:
        return lambda data: Review.from_dict(data, pull_number=number)

    def list_commits(
        self,
        org: str,
        repo: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> Page[Commit]:
        """List commits on the default branch, optionally bounded in time."""
        params: Dict[str, Any] = {}
        if since is not None:
            params['since'] = since.isoformat()
        if until is not None:
            params['until'] = until.isoformat()
        return self._list(f"repos/{org}/{repo}/commits", Commit.from_dict, params)

    def get_commit(self, org: str, repo: str, sha: str) -> Commit:
        """Get a single commit."""
        response = self.get(f"repos/{org}/{repo}/commits/{sha}")
        self.raise_for_status(response)
        return self._parse(response, Commit.from_dict)

    def get_user_profile(self, login: str) -> EnrichedAuthor:
        """Fetch a user's public profile (company, email).

        Raises GitHubAPIError documenting ``get-a-user`` when the account
        does not exist.
        """
        response = self.get(f"users/{login}", cache=True)
        self.raise_for_status(response)
        return self._parse(response, EnrichedAuthor.from_dict)

    def check_org_membership(self, org: str, login: str) -> bool:
        """Check whether ``login`` is a member of ``org``.

        GitHub answers 204 for members and 404 otherwise; requesters outside
        the organization are redirected to the public membership check,
        which answers the same way.
        """
        response = self.get(f"orgs/{org}/members/{login}", cache=True)
        if response.status_code == 204:
            return True
        if response.status_code == 404:
            return False
        self.raise_for_status(response)
        raise GitHubAPIError(
            response.status_code,
            f"Unexpected membership response for {login} in {org}",
            url=response.url,
        )

    def list_organization_repositories(
        self,
        org: str,
        include_forks: bool = False,
        include_archived: bool = False,
    ) -> List[Repo]:
        """List all repositories in an organization with optional filtering."""
        first = self._list(
            f"orgs/{org}/repos",
            lambda data: data,
            {'type': 'all', 'sort': 'full_name', 'direction': 'asc'},
        )
        raw = paginate(first, lambda url: self.get_page(url, lambda data: data))

        repos: List[Repo] = []
        for repo in raw:
            if not include_forks and repo.get('fork'):
                continue
            if not include_archived and repo.get('archived'):
                continue
            owner = (repo.get('owner') or {}).get('login') or org
            repos.append(Repo(org=owner, name=repo['name']))
        return repos

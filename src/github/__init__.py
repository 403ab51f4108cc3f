"""GitHub REST client used by the contribution audit.

This package provides a small interface to the GitHub REST API: paginated
listings of issues, pull requests, reviews and commits, user profiles and
organization membership checks, with timeouts, transient-failure backoff and
response caching.

Example usage:
    ```python
    from src.github import GitHubClient, paginate, Issue

    with GitHubClient(token="your_github_token") as client:
        first = client.list_issues("heroku", "cli")
        issues = paginate(first, lambda url: client.get_page(url, Issue.from_dict))
    ```
"""
from .client import GitHubClient, BaseGitHubClient
from .errors import (
    DOCS_GET_USER,
    DOCS_LIST_COMMITS,
    DOCS_LIST_ISSUES,
    DOCS_LIST_PULLS,
    STATUS_EMPTY_REPOSITORY,
    STATUS_ISSUES_DISABLED,
    STATUS_PULLS_DISABLED,
    GitHubAPIError,
    GitHubError,
    RateLimitError,
    ResponseFormatError,
    TransportError,
)
from .models import (
    Commit,
    EnrichedAuthor,
    GitHubUser,
    Issue,
    Page,
    PullRequest,
    Repo,
    Review,
    parse_timestamp,
)
from .rate_limit import backoff_delay, make_rate_limited_session, request_with_rate_limit
from .utils import paginate, parse_next_link

__all__ = [
    'GitHubClient',
    'BaseGitHubClient',
    'GitHubError',
    'GitHubAPIError',
    'RateLimitError',
    'ResponseFormatError',
    'TransportError',
    'DOCS_GET_USER',
    'DOCS_LIST_COMMITS',
    'DOCS_LIST_ISSUES',
    'DOCS_LIST_PULLS',
    'STATUS_EMPTY_REPOSITORY',
    'STATUS_ISSUES_DISABLED',
    'STATUS_PULLS_DISABLED',
    'Commit',
    'EnrichedAuthor',
    'GitHubUser',
    'Issue',
    'Page',
    'PullRequest',
    'Repo',
    'Review',
    'parse_timestamp',
    'backoff_delay',
    'make_rate_limited_session',
    'request_with_rate_limit',
    'paginate',
    'parse_next_link',
]

__version__ = '0.1.0'

"""
Data models for GitHub API responses.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

# Type variables for generic responses
T = TypeVar('T')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO 8601 timestamp into an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Repo:
    """A tracked repository, identified by ``(org, name)``."""
    org: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.org}/{self.name}"

    @classmethod
    def parse(cls, full_name: str) -> 'Repo':
        """Build a Repo from ``"org/name"``."""
        org, sep, name = (full_name or "").strip().partition("/")
        if not sep or not org or not name or "/" in name:
            raise ValueError(f"Expected 'org/name', got {full_name!r}")
        return cls(org=org, name=name)

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class GitHubUser:
    """Account snapshot embedded in issues, reviews and commits.

    Only ``id`` identifies the account; the rest of the snapshot may differ
    between fetches.
    """
    id: int
    login: str
    type: str = "User"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['GitHubUser']:
        if not data or data.get('id') is None:
            return None
        return cls(
            id=int(data['id']),
            login=data.get('login', ''),
            type=data.get('type') or 'User',
        )


@dataclass(frozen=True)
class Issue:
    """Issue (or pull request, as listed by the issues endpoint)."""
    number: int
    title: str
    user: GitHubUser
    created_at: datetime
    is_pull_request: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Issue':
        user = GitHubUser.from_dict(data.get('user'))
        if user is None:
            raise ValueError(f"Issue #{data.get('number')} has no user")
        return cls(
            number=int(data['number']),
            title=data.get('title') or '',
            user=user,
            created_at=parse_timestamp(data['created_at']),
            is_pull_request='pull_request' in data,
        )


@dataclass(frozen=True)
class PullRequest:
    """Pull request summary used to drive the review fetch."""
    number: int
    user: Optional[GitHubUser] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PullRequest':
        return cls(
            number=int(data['number']),
            user=GitHubUser.from_dict(data.get('user')),
            created_at=parse_timestamp(data.get('created_at')),
        )


@dataclass(frozen=True)
class Review:
    """Pull request review. Pending reviews have no ``submitted_at``."""
    id: int
    user: GitHubUser
    pull_number: int
    state: str = ""
    submitted_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], pull_number: int = 0) -> 'Review':
        user = GitHubUser.from_dict(data.get('user'))
        if user is None:
            raise ValueError(f"Review {data.get('id')} has no user")
        return cls(
            id=int(data['id']),
            user=user,
            pull_number=pull_number,
            state=data.get('state') or '',
            submitted_at=parse_timestamp(data.get('submitted_at')),
        )


@dataclass(frozen=True)
class Commit:
    """Commit on the default branch.

    ``author`` is the linked GitHub account, which is absent when the git
    author email is not associated with any account.
    """
    sha: str
    author: Optional[GitHubUser] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    authored_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Commit':
        git_author = (data.get('commit') or {}).get('author') or {}
        return cls(
            sha=data['sha'],
            author=GitHubUser.from_dict(data.get('author')),
            author_name=git_author.get('name'),
            author_email=git_author.get('email'),
            authored_at=parse_timestamp(git_author.get('date')),
        )


@dataclass(frozen=True)
class EnrichedAuthor:
    """Account with the profile fields used for affiliation checks."""
    id: int
    login: str
    company: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EnrichedAuthor':
        return cls(
            id=int(data['id']),
            login=data.get('login', ''),
            company=data.get('company') or None,
            email=data.get('email') or None,
        )


@dataclass
class Page(Generic[T]):
    """One page of a paginated listing."""
    items: List[T] = field(default_factory=list)
    next_url: Optional[str] = None

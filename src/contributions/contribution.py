"""
Unified representation of a single contribution.

GitHub counts issues, pull request reviews and commits as contributions
(https://docs.github.com/en/account-and-profile/setting-up-and-managing-your-github-profile/managing-contribution-settings-on-your-profile/viewing-contributions-on-your-profile#what-counts-as-a-contribution).
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from src.github.models import Commit, GitHubUser, Issue, Repo, Review

Payload = Union[Commit, Issue, Review]


class ContributionKind(str, Enum):
    """Kinds of contribution, in report column order."""
    ISSUE = 'issue'
    REVIEW = 'review'
    COMMIT = 'commit'


@dataclass(frozen=True)
class Contribution:
    """One unit of activity on a tracked repository."""
    repo: Repo
    payload: Payload

    @property
    def kind(self) -> ContributionKind:
        if isinstance(self.payload, Issue):
            return ContributionKind.ISSUE
        if isinstance(self.payload, Review):
            return ContributionKind.REVIEW
        if isinstance(self.payload, Commit):
            return ContributionKind.COMMIT
        raise TypeError(f"Unsupported contribution payload: {type(self.payload).__name__}")

    def created_at(self) -> Optional[datetime]:
        """When the contribution happened; None for unsubmitted reviews."""
        kind = self.kind
        if kind is ContributionKind.ISSUE:
            return self.payload.created_at
        if kind is ContributionKind.REVIEW:
            return self.payload.submitted_at
        return self.payload.authored_at

    def author(self) -> Optional[GitHubUser]:
        """Account behind the contribution; commits may have none."""
        if self.kind is ContributionKind.COMMIT:
            return self.payload.author
        return self.payload.user

    def author_key(self) -> Optional[int]:
        """Stable grouping key: the account id, or None."""
        user = self.author()
        return user.id if user is not None else None

"""
Grouping of contributions by author and enrichment of each author with
company, email and company-organization membership.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from src.github import DOCS_GET_USER, EnrichedAuthor, GitHubAPIError, GitHubClient, GitHubUser

from .config import UserOverride
from .contribution import Contribution
from .tasks import DEFAULT_WORKERS, gather

logger = logging.getLogger(__name__)


@dataclass
class AuthorGroup:
    """Contributions sharing one author key (account id, or None)."""
    user: Optional[GitHubUser]
    contributions: List[Contribution] = field(default_factory=list)

    @property
    def key(self) -> Optional[int]:
        return self.user.id if self.user is not None else None


@dataclass
class EnrichedGroup:
    author: Optional[EnrichedAuthor]
    membership: bool
    contributions: List[Contribution]


def group_by_author(contributions: Iterable[Contribution]) -> Dict[Optional[int], AuthorGroup]:
    """Partition contributions by account id; authorless ones share the None group.

    The first snapshot seen for an account is kept as the group's user.
    """
    groups: Dict[Optional[int], AuthorGroup] = {}
    for contribution in contributions:
        key = contribution.author_key()
        group = groups.get(key)
        if group is None:
            group = groups[key] = AuthorGroup(user=contribution.author())
        group.contributions.append(contribution)
    return groups


class AuthorEnricher:
    """Resolves company affiliation for authors.

    Args:
        client: Shared GitHub client
        company_orgs: Organizations whose members count as company employees
        overrides: Manual login -> company assignments
        max_workers: Authors enriched concurrently
    """

    def __init__(
        self,
        client: GitHubClient,
        company_orgs: Iterable[str],
        overrides: Iterable[UserOverride] = (),
        max_workers: int = DEFAULT_WORKERS,
    ) -> None:
        self.client = client
        self.company_orgs = list(company_orgs)
        self.overrides: Dict[str, UserOverride] = {o.login.lower(): o for o in overrides}
        self.max_workers = max_workers
        self._company_orgs_folded = {org.lower() for org in self.company_orgs}

    def override_for(self, login: str) -> Optional[UserOverride]:
        return self.overrides.get(login.lower())

    def profile(self, user: GitHubUser) -> EnrichedAuthor:
        """Full profile, or an empty one when the account no longer resolves."""
        try:
            return self.client.get_user_profile(user.login)
        except GitHubAPIError as e:
            if e.documents(DOCS_GET_USER, status=404):
                logger.debug("User %s not found; no company or email available", user.login)
                return EnrichedAuthor(id=user.id, login=user.login)
            raise

    def is_member(self, login: str) -> bool:
        """True when ``login`` belongs to any company organization."""
        for org in self.company_orgs:
            if self.client.check_org_membership(org, login):
                return True
        return False

    def enrich(self, user: Optional[GitHubUser]) -> Tuple[Optional[EnrichedAuthor], bool]:
        """Return ``(author, membership)`` for one group's user."""
        if user is None:
            return None, False

        override = self.override_for(user.login)
        if override is not None:
            # overrides skip the profile and membership calls
            author = EnrichedAuthor(id=user.id, login=user.login, company=override.company)
            return author, override.company.lower() in self._company_orgs_folded

        author = self.profile(user)
        return author, self.is_member(author.login or user.login)

    def enrich_groups(self, groups: Iterable[AuthorGroup]) -> List[EnrichedGroup]:
        """Enrich distinct authors concurrently; any failure aborts the batch."""
        groups = list(groups)

        def work(group: AuthorGroup) -> EnrichedGroup:
            author, membership = self.enrich(group.user)
            return EnrichedGroup(author=author, membership=membership, contributions=group.contributions)

        return gather([lambda g=g: work(g) for g in groups], max_workers=self.max_workers)

    def group_and_enrich(self, contributions: Iterable[Contribution]) -> List[EnrichedGroup]:
        return self.enrich_groups(group_by_author(contributions).values())

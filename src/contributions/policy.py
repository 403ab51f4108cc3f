"""
Filtering rules applied to each author's contributions: explicit user
excludes, the reporting time window and per-repository company exclusions.
"""
from __future__ import annotations

import datetime
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from src.github.models import EnrichedAuthor, Repo

from .config import Config, RepoConfig
from .contribution import Contribution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExclusionRule:
    """Patterns matching authors affiliated with one company token."""
    token: str
    company: re.Pattern
    email: re.Pattern

    @classmethod
    def for_company(cls, token: str) -> "ExclusionRule":
        escaped = re.escape(token)
        return cls(
            token=token,
            company=re.compile(escaped, re.IGNORECASE),
            # token right after "@" or a "." inside the domain, followed by "."
            email=re.compile(rf"@(?:[\w-]+\.)*{escaped}\.", re.IGNORECASE),
        )

    def matches(self, author: EnrichedAuthor) -> bool:
        if author.company and self.company.search(author.company):
            return True
        if author.email and self.email.search(author.email):
            return True
        return False


class RepoExclusions:
    """Exclusion rules scoped to a single tracked repository."""

    def __init__(self, repo: Repo, rules: Iterable[ExclusionRule]) -> None:
        self.repo = repo
        self.rules = list(rules)

    @classmethod
    def from_config(cls, repo_config: RepoConfig) -> "RepoExclusions":
        return cls(
            repo_config.repo,
            [ExclusionRule.for_company(c) for c in repo_config.companies_exclude],
        )

    def excludes(self, contribution: Contribution, author: EnrichedAuthor) -> bool:
        """True if the contribution belongs to this repo and the author matches any rule."""
        if contribution.repo != self.repo:
            return False
        return any(rule.matches(author) for rule in self.rules)

    def __repr__(self) -> str:
        tokens = ", ".join(r.token for r in self.rules)
        return f"RepoExclusions({self.repo.full_name}: [{tokens}])"


@dataclass(frozen=True)
class DateWindow:
    """Half-open reporting window ``[since, until)``; either bound may be absent."""
    since: Optional[datetime.datetime] = None
    until: Optional[datetime.datetime] = None

    def contains(self, contribution: Contribution) -> bool:
        created = contribution.created_at()
        if created is None:
            # e.g. a pending review
            return True
        if self.since is not None and created < self.since.astimezone(created.tzinfo):
            return False
        if self.until is not None and created >= self.until.astimezone(created.tzinfo):
            return False
        return True


class PolicyFilter:
    """Applies the run's filtering policy to author groups."""

    def __init__(
        self,
        exclusions: Iterable[RepoExclusions] = (),
        users_exclude: Iterable[str] = (),
        window: Optional[DateWindow] = None,
    ) -> None:
        self.exclusions: Dict[Repo, RepoExclusions] = {}
        for entry in exclusions:
            if not entry.rules:
                continue
            merged = self.exclusions.get(entry.repo)
            rules = (merged.rules if merged else []) + entry.rules
            self.exclusions[entry.repo] = RepoExclusions(entry.repo, rules)
        self.users_exclude = {login.lower() for login in users_exclude}
        self.window = window or DateWindow()

    @classmethod
    def from_config(
        cls,
        config: Config,
        repos: Iterable[RepoConfig],
        since: Optional[datetime.datetime] = None,
        until: Optional[datetime.datetime] = None,
    ) -> "PolicyFilter":
        return cls(
            exclusions=[RepoExclusions.from_config(r) for r in repos],
            users_exclude=config.users_exclude,
            window=DateWindow(since=since, until=until),
        )

    def is_user_excluded(self, login: Optional[str]) -> bool:
        return bool(login) and login.lower() in self.users_exclude

    def in_window(self, contributions: Iterable[Contribution]) -> List[Contribution]:
        return [c for c in contributions if self.window.contains(c)]

    def apply_exclusions(
        self,
        contributions: Iterable[Contribution],
        author: Optional[EnrichedAuthor],
    ) -> List[Contribution]:
        """Drop contributions excluded by their repository's company rules."""
        if author is None:
            return list(contributions)
        kept: List[Contribution] = []
        for contribution in contributions:
            rules = self.exclusions.get(contribution.repo)
            if rules is not None and rules.excludes(contribution, author):
                logger.debug("Excluding %s contribution by %s on %s",
                             contribution.kind.value, author.login, contribution.repo)
                continue
            kept.append(contribution)
        return kept

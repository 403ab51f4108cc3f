"""
Assembly of the final per-author and per-repository results.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from src.github import EnrichedAuthor, GitHubClient, Repo

from .collector import ContributionCollector
from .config import Config, RepoConfig
from .contribution import Contribution, ContributionKind
from .enrichment import AuthorEnricher, AuthorGroup, group_by_author
from .policy import PolicyFilter
from .tasks import DEFAULT_WORKERS

logger = logging.getLogger(__name__)


@dataclass
class Output:
    """Surviving contributions of one author. Never empty."""
    author: Optional[EnrichedAuthor]
    membership: bool
    contributions: List[Contribution] = field(default_factory=list)

    @property
    def login(self) -> Optional[str]:
        return self.author.login if self.author is not None else None


@dataclass
class ContributionCounts:
    issues: int = 0
    reviews: int = 0
    commits: int = 0

    @property
    def total(self) -> int:
        return self.issues + self.reviews + self.commits


def count_contributions(contributions: Iterable[Contribution]) -> ContributionCounts:
    counts = ContributionCounts()
    for contribution in contributions:
        kind = contribution.kind
        if kind is ContributionKind.ISSUE:
            counts.issues += 1
        elif kind is ContributionKind.REVIEW:
            counts.reviews += 1
        else:
            counts.commits += 1
    return counts


def process_contributions(
    contributions: Iterable[Contribution],
    enricher: AuthorEnricher,
    policy: PolicyFilter,
) -> List[Output]:
    """Group, filter and enrich contributions into per-author outputs.

    Excluded logins and out-of-window contributions are dropped before any
    enrichment call; company exclusions need the enriched profile and run
    afterwards.
    """
    candidates: List[AuthorGroup] = []
    for group in group_by_author(contributions).values():
        user = group.user
        if user is not None and policy.is_user_excluded(user.login):
            logger.debug("Skipping excluded user %s", user.login)
            continue
        in_window = policy.in_window(group.contributions)
        if not in_window:
            continue
        candidates.append(AuthorGroup(user=user, contributions=in_window))

    logger.info("Enriching %d authors", len(candidates))
    outputs: List[Output] = []
    for enriched in enricher.enrich_groups(candidates):
        kept = policy.apply_exclusions(enriched.contributions, enriched.author)
        if not kept:
            continue
        outputs.append(Output(author=enriched.author, membership=enriched.membership, contributions=kept))
    return outputs


def per_repository(outputs: Iterable[Output]) -> Dict[Repo, List[Contribution]]:
    """Regroup the surviving contributions by repository."""
    by_repo: Dict[Repo, List[Contribution]] = {}
    for output in outputs:
        for contribution in output.contributions:
            by_repo.setdefault(contribution.repo, []).append(contribution)
    return by_repo


class ContributionAudit:
    """Runs one audit: resolve repositories, collect, then process."""

    def __init__(self, client: GitHubClient, config: Config, max_workers: int = DEFAULT_WORKERS) -> None:
        self.client = client
        self.config = config
        self.collector = ContributionCollector(client, max_workers=max_workers)
        self.enricher = AuthorEnricher(
            client,
            company_orgs=config.company_organizations,
            overrides=config.user_overrides,
            max_workers=max_workers,
        )

    def tracked_repos(self) -> List[RepoConfig]:
        """Configured repositories followed by the repositories of configured orgs."""
        repos = list(self.config.repos)
        if self.config.orgs:
            repos.extend(self.collector.expand_organizations(self.config.orgs))
        return repos

    def run(
        self,
        since: Optional[datetime.datetime] = None,
        until: Optional[datetime.datetime] = None,
    ) -> List[Output]:
        since = since if since is not None else self.config.since
        until = until if until is not None else self.config.until
        repo_configs = self.tracked_repos()
        repos = list(dict.fromkeys(rc.repo for rc in repo_configs))
        logger.info("Auditing %d repositories", len(repos))

        contributions = self.collector.collect(repos, since=since, until=until)
        policy = PolicyFilter.from_config(self.config, repo_configs, since=since, until=until)
        outputs = process_contributions(contributions, self.enricher, policy)
        logger.info("%d authors with contributions after filtering", len(outputs))
        return outputs

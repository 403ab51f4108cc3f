"""
Per-repository collection of issues, reviews and commits.
"""
from __future__ import annotations

import datetime
import logging
from typing import Iterable, List, Optional

from src.github import (
    DOCS_LIST_COMMITS,
    DOCS_LIST_ISSUES,
    DOCS_LIST_PULLS,
    STATUS_EMPTY_REPOSITORY,
    STATUS_ISSUES_DISABLED,
    STATUS_PULLS_DISABLED,
    Commit,
    GitHubAPIError,
    GitHubClient,
    Issue,
    PullRequest,
    Repo,
    Review,
    paginate,
)

from .config import OrgConfig, RepoConfig
from .contribution import Contribution
from .tasks import DEFAULT_WORKERS, gather

logger = logging.getLogger(__name__)


class ContributionCollector:
    """Fetches every contribution made to a set of repositories.

    Args:
        client: Shared GitHub client
        max_workers: Concurrent repositories (and concurrent per-PR review fetches)
    """

    def __init__(self, client: GitHubClient, max_workers: int = DEFAULT_WORKERS) -> None:
        self.client = client
        self.max_workers = max_workers

    # -----------------------------
    # Raw listings
    # -----------------------------

    def issues(self, repo: Repo) -> List[Issue]:
        """All issues of a repository, or [] when issues are disabled."""
        try:
            first = self.client.list_issues(repo.org, repo.name)
            return paginate(first, lambda url: self.client.get_page(url, Issue.from_dict))
        except GitHubAPIError as e:
            if e.documents(DOCS_LIST_ISSUES, status=STATUS_ISSUES_DISABLED):
                logger.info("Issues unavailable for %s (%s); treating as empty", repo, e.message)
                return []
            raise

    def pull_requests(self, repo: Repo) -> List[PullRequest]:
        """All pull requests of a repository, or [] when pull requests are disabled."""
        try:
            first = self.client.list_pull_requests(repo.org, repo.name)
            return paginate(first, lambda url: self.client.get_page(url, PullRequest.from_dict))
        except GitHubAPIError as e:
            if e.documents(DOCS_LIST_PULLS, status=STATUS_PULLS_DISABLED):
                logger.info("Pull requests unavailable for %s (%s); treating as empty", repo, e.message)
                return []
            raise

    def pull_request_reviews(self, repo: Repo, number: int) -> List[Review]:
        parser = self.client.review_parser(number)
        first = self.client.list_reviews(repo.org, repo.name, number)
        return paginate(first, lambda url: self.client.get_page(url, parser))

    def reviews(self, repo: Repo) -> List[Review]:
        """Reviews across all pull requests; one failed PR fails the whole fetch."""
        pull_requests = self.pull_requests(repo)
        per_pull = gather(
            [lambda n=pr.number: self.pull_request_reviews(repo, n) for pr in pull_requests],
            max_workers=self.max_workers,
        )
        return [review for reviews in per_pull for review in reviews]

    def commits(
        self,
        repo: Repo,
        since: Optional[datetime.datetime] = None,
        until: Optional[datetime.datetime] = None,
    ) -> List[Commit]:
        """Commits on the default branch, or [] for an empty repository."""
        try:
            first = self.client.list_commits(repo.org, repo.name, since=since, until=until)
            commits = paginate(first, lambda url: self.client.get_page(url, Commit.from_dict))
        except GitHubAPIError as e:
            if e.documents(DOCS_LIST_COMMITS, status=STATUS_EMPTY_REPOSITORY):
                logger.info("Commits unavailable for %s (%s); treating as empty", repo, e.message)
                return []
            raise
        return [self._with_author_date(repo, c) for c in commits]

    def _with_author_date(self, repo: Repo, commit: Commit) -> Commit:
        if commit.authored_at is not None:
            return commit
        logger.debug("Fetching %s@%s for its author date", repo, commit.sha)
        return self.client.get_commit(repo.org, repo.name, commit.sha)

    # -----------------------------
    # Contributions
    # -----------------------------

    def contributions(
        self,
        repo: Repo,
        since: Optional[datetime.datetime] = None,
        until: Optional[datetime.datetime] = None,
    ) -> List[Contribution]:
        """Issues, reviews and commits of one repository, fetched concurrently."""
        logger.info("Collecting contributions for %s", repo)
        issues, reviews, commits = gather(
            [
                lambda: self.issues(repo),
                lambda: self.reviews(repo),
                lambda: self.commits(repo, since=since, until=until),
            ],
            max_workers=3,
        )
        contributions: List[Contribution] = []
        contributions.extend(Contribution(repo, issue) for issue in issues)
        contributions.extend(Contribution(repo, review) for review in reviews)
        contributions.extend(Contribution(repo, commit) for commit in commits)
        logger.info("%s: %d issues, %d reviews, %d commits",
                    repo, len(issues), len(reviews), len(commits))
        return contributions

    def collect(
        self,
        repos: Iterable[Repo],
        since: Optional[datetime.datetime] = None,
        until: Optional[datetime.datetime] = None,
    ) -> List[Contribution]:
        """Contributions across repositories; any failed repository fails the run."""
        per_repo = gather(
            [lambda r=repo: self.contributions(r, since=since, until=until) for repo in repos],
            max_workers=self.max_workers,
        )
        return [c for contributions in per_repo for c in contributions]

    def expand_organizations(self, orgs: Iterable[OrgConfig]) -> List[RepoConfig]:
        """Turn organization entries into per-repository configuration."""
        expanded: List[RepoConfig] = []
        for org in orgs:
            repos = self.client.list_organization_repositories(
                org.name,
                include_forks=org.include_forks,
                include_archived=org.include_archived,
            )
            logger.info("Found %d repositories in %s", len(repos), org.name)
            expanded.extend(RepoConfig(repo=r, companies_exclude=list(org.companies_exclude)) for r in repos)
        return expanded

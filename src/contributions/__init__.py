"""Contribution audit: collect, group, enrich and filter GitHub activity."""
from .aggregate import (
    ContributionAudit,
    ContributionCounts,
    Output,
    count_contributions,
    per_repository,
    process_contributions,
)
from .collector import ContributionCollector
from .config import Config, ConfigError, OrgConfig, RepoConfig, UserOverride, load_config, parse_config
from .contribution import Contribution, ContributionKind
from .enrichment import AuthorEnricher, AuthorGroup, EnrichedGroup, group_by_author
from .policy import DateWindow, ExclusionRule, PolicyFilter, RepoExclusions

__all__ = [
    'AuthorEnricher',
    'AuthorGroup',
    'Config',
    'ConfigError',
    'Contribution',
    'ContributionAudit',
    'ContributionCollector',
    'ContributionCounts',
    'ContributionKind',
    'DateWindow',
    'EnrichedGroup',
    'ExclusionRule',
    'OrgConfig',
    'Output',
    'PolicyFilter',
    'RepoConfig',
    'RepoExclusions',
    'UserOverride',
    'count_contributions',
    'group_by_author',
    'load_config',
    'parse_config',
    'per_repository',
    'process_contributions',
]

"""
Configuration file for the contribution audit.

Example ``config.yaml``::

    company_organizations:
      - heroku
      - forcedotcom
    repos:
      - org: heroku
        name: cli
        companies_exclude: [salesforce]
      - heroku/heroku-buildpack-python
    orgs:
      - name: forcedotcom
        companies_exclude: [salesforce]
    user_overrides:
      - login: alice
        company: heroku
    users_exclude:
      - dependabot[bot]
    since: 2021-05-01T00:00:00Z
    until: 2021-08-01T00:00:00Z
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from src.github.models import Repo, parse_timestamp


class ConfigError(ValueError):
    """Raised when the configuration file is missing or malformed."""


@dataclass(frozen=True)
class UserOverride:
    """Manual company assignment for a login; skips the profile lookup."""
    login: str
    company: str


@dataclass(frozen=True)
class RepoConfig:
    repo: Repo
    companies_exclude: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class OrgConfig:
    """Track every repository of an organization."""
    name: str
    companies_exclude: List[str] = field(default_factory=list)
    include_forks: bool = False
    include_archived: bool = False


@dataclass(frozen=True)
class Config:
    company_organizations: List[str]
    repos: List[RepoConfig] = field(default_factory=list)
    orgs: List[OrgConfig] = field(default_factory=list)
    user_overrides: List[UserOverride] = field(default_factory=list)
    users_exclude: List[str] = field(default_factory=list)
    since: Optional[datetime.datetime] = None
    until: Optional[datetime.datetime] = None


def parse_time(value: Union[str, datetime.datetime, datetime.date, None], key: str = "time") -> Optional[datetime.datetime]:
    """Parse an RFC 3339 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, datetime.date):
        parsed = datetime.datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = parse_timestamp(str(value).strip())
        except ValueError as e:
            raise ConfigError(f"{key}: invalid timestamp {value!r}: {e}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def _str_list(data: Dict[str, Any], key: str, where: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where}{key}: expected a list of strings")
    return [v.strip() for v in value if v.strip()]


def _parse_repo(entry: Any, index: int) -> RepoConfig:
    where = f"repos[{index}]."
    if isinstance(entry, str):
        try:
            return RepoConfig(repo=Repo.parse(entry))
        except ValueError as e:
            raise ConfigError(f"repos[{index}]: {e}") from e
    if not isinstance(entry, dict):
        raise ConfigError(f"repos[{index}]: expected 'org/name' or a mapping")
    org = entry.get("org")
    name = entry.get("name")
    if not org or not name:
        raise ConfigError(f"repos[{index}]: 'org' and 'name' are required")
    return RepoConfig(
        repo=Repo(org=str(org), name=str(name)),
        companies_exclude=_str_list(entry, "companies_exclude", where),
    )


def _parse_org(entry: Any, index: int) -> OrgConfig:
    where = f"orgs[{index}]."
    if isinstance(entry, str):
        return OrgConfig(name=entry)
    if not isinstance(entry, dict) or not entry.get("name"):
        raise ConfigError(f"orgs[{index}]: 'name' is required")
    return OrgConfig(
        name=str(entry["name"]),
        companies_exclude=_str_list(entry, "companies_exclude", where),
        include_forks=bool(entry.get("include_forks", False)),
        include_archived=bool(entry.get("include_archived", False)),
    )


def _parse_override(entry: Any, index: int) -> UserOverride:
    if not isinstance(entry, dict) or not entry.get("login") or entry.get("company") is None:
        raise ConfigError(f"user_overrides[{index}]: 'login' and 'company' are required")
    return UserOverride(login=str(entry["login"]), company=str(entry["company"]))


def parse_config(data: Any) -> Config:
    """Build a Config from the decoded YAML document."""
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a mapping")
    if "company_organizations" not in data:
        raise ConfigError("company_organizations is required")

    config = Config(
        company_organizations=_str_list(data, "company_organizations", ""),
        repos=[_parse_repo(e, i) for i, e in enumerate(data.get("repos") or [])],
        orgs=[_parse_org(e, i) for i, e in enumerate(data.get("orgs") or [])],
        user_overrides=[_parse_override(e, i) for i, e in enumerate(data.get("user_overrides") or [])],
        users_exclude=_str_list(data, "users_exclude", ""),
        since=parse_time(data.get("since"), "since"),
        until=parse_time(data.get("until"), "until"),
    )
    if config.since and config.until and config.since >= config.until:
        raise ConfigError("since must be earlier than until")
    return config


def load_config(path: Union[str, Path]) -> Config:
    """Load and validate the YAML configuration file."""
    config_path = Path(path)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}") from e
    return parse_config(data)

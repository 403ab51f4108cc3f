from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from src.contributions import ConfigError, RepoConfig, UserOverride, load_config, parse_config
from src.contributions.config import parse_time
from src.github import Repo

CONFIG = """\
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
    include_archived: true
user_overrides:
  - login: alice
    company: heroku
users_exclude:
  - dependabot[bot]
since: "2021-05-01T00:00:00-07:00"
"""


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_config(tmp_path) -> None:
    config = load_config(write(tmp_path, CONFIG))

    assert config.company_organizations == ["heroku", "forcedotcom"]
    assert config.repos == [
        RepoConfig(Repo("heroku", "cli"), ["salesforce"]),
        RepoConfig(Repo("heroku", "heroku-buildpack-python"), []),
    ]
    assert config.orgs[0].name == "forcedotcom"
    assert config.orgs[0].include_archived is True
    assert config.orgs[0].include_forks is False
    assert config.user_overrides == [UserOverride(login="alice", company="heroku")]
    assert config.users_exclude == ["dependabot[bot]"]
    assert config.since == datetime(2021, 5, 1, 7, tzinfo=timezone.utc)
    assert config.until is None


def test_minimal_config() -> None:
    config = parse_config({"company_organizations": ["heroku"]})
    assert config.repos == []
    assert config.orgs == []
    assert config.since is None


def test_yaml_timestamps_are_made_aware() -> None:
    config = parse_config({"company_organizations": [], "until": datetime(2021, 8, 1)})
    assert config.until == datetime(2021, 8, 1, tzinfo=timezone.utc)


def test_parse_time_treats_naive_as_utc() -> None:
    assert parse_time("2021-05-01T00:00:00") == datetime(2021, 5, 1, tzinfo=timezone.utc)
    assert parse_time(None) is None


@pytest.mark.parametrize("data, message", [
    ({}, "company_organizations"),
    ({"company_organizations": "heroku"}, "company_organizations"),
    ({"company_organizations": [], "repos": ["heroku"]}, "repos[0]"),
    ({"company_organizations": [], "repos": [{"org": "heroku"}]}, "repos[0]"),
    ({"company_organizations": [], "repos": [{"org": "h", "name": "c", "companies_exclude": "x"}]}, "companies_exclude"),
    ({"company_organizations": [], "user_overrides": [{"login": "a"}]}, "user_overrides[0]"),
    ({"company_organizations": [], "since": "yesterday"}, "since"),
    ({"company_organizations": [], "since": "2021-06-01T00:00:00Z", "until": "2021-05-01T00:00:00Z"}, "earlier"),
    ([], "mapping"),
])
def test_invalid_config(data, message) -> None:
    with pytest.raises(ConfigError, match=message.replace("[", r"\[").replace("]", r"\]")):
        parse_config(data)


def test_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path) -> None:
    with pytest.raises(ConfigError, match="invalid YAML"):
        load_config(write(tmp_path, "company_organizations: [heroku\n"))

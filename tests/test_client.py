from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
import requests

from src.contributions import ContributionCollector
from src.github import (
    DOCS_GET_USER,
    DOCS_LIST_ISSUES,
    STATUS_ISSUES_DISABLED,
    GitHubAPIError,
    GitHubClient,
    Issue,
    RateLimitError,
    Repo,
    ResponseFormatError,
    TransportError,
)
from src.github import rate_limit


def make_response(status, body=None, headers=None, url="https://api.github.com/x"):
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body).encode() if body is not None else b""
    resp.headers.update(headers or {})
    resp.url = url
    resp.reason = "reason"
    return resp


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        pass


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(rate_limit.time, "sleep", lambda s: None)


def client_for(*responses):
    session = FakeSession(responses)
    return GitHubClient(token="t", session=session), session


ISSUE = {
    "number": 7,
    "title": "Crash on start",
    "user": {"id": 1, "login": "alice", "type": "User"},
    "created_at": "2021-06-01T12:00:00Z",
}


def test_list_issues_parses_items_and_next_link() -> None:
    link = '<https://api.github.com/repositories/1/issues?page=2>; rel="next"'
    client, session = client_for(make_response(200, [ISSUE, dict(ISSUE, number=8, pull_request={})], {"Link": link}))

    page = client.list_issues("acme", "widget")

    assert [i.number for i in page.items] == [7, 8]
    assert page.items[0].created_at == datetime(2021, 6, 1, 12, tzinfo=timezone.utc)
    assert page.items[0].user.login == "alice"
    assert page.items[1].is_pull_request
    assert page.next_url == "https://api.github.com/repositories/1/issues?page=2"
    method, url, kwargs = session.requests[0]
    assert url == "https://api.github.com/repos/acme/widget/issues"
    assert kwargs["params"]["sort"] == "created"
    assert kwargs["params"]["direction"] == "desc"
    assert kwargs["params"]["per_page"] == 100


def test_get_page_uses_next_url_verbatim() -> None:
    client, session = client_for(make_response(200, [ISSUE]))

    page = client.get_page("https://api.github.com/repositories/1/issues?page=2", Issue.from_dict)

    assert page.next_url is None
    assert session.requests[0][1] == "https://api.github.com/repositories/1/issues?page=2"


def test_list_commits_passes_iso_window() -> None:
    body = [{
        "sha": "abc",
        "author": None,
        "commit": {"author": {"name": "Bob", "email": "bob@example.com", "date": "2021-06-02T00:00:00+02:00"}},
    }]
    client, session = client_for(make_response(200, body))
    since = datetime(2021, 5, 1, tzinfo=timezone.utc)

    page = client.list_commits("acme", "widget", since=since)

    assert page.items[0].author is None
    assert page.items[0].author_email == "bob@example.com"
    assert page.items[0].authored_at.utcoffset().total_seconds() == 7200
    params = session.requests[0][2]["params"]
    assert params["since"] == "2021-05-01T00:00:00+00:00"
    assert "until" not in params


def test_list_reviews_tags_pull_number() -> None:
    body = [
        {"id": 11, "user": {"id": 2, "login": "bob"}, "state": "APPROVED", "submitted_at": "2021-06-03T00:00:00Z"},
        {"id": 12, "user": {"id": 3, "login": "carol"}, "state": "PENDING"},
    ]
    client, session = client_for(make_response(200, body))

    page = client.list_reviews("acme", "widget", 42)

    assert [r.pull_number for r in page.items] == [42, 42]
    assert page.items[1].submitted_at is None
    assert session.requests[0][1].endswith("/repos/acme/widget/pulls/42/reviews")


def test_get_commit() -> None:
    body = {
        "sha": "abc",
        "author": {"id": 2, "login": "bob"},
        "commit": {"author": {"name": "Bob", "email": "bob@example.com", "date": "2021-06-02T00:00:00Z"}},
    }
    client, session = client_for(make_response(200, body))

    found = client.get_commit("acme", "widget", "abc")

    assert found.author.login == "bob"
    assert found.authored_at == datetime(2021, 6, 2, tzinfo=timezone.utc)
    assert session.requests[0][1].endswith("/repos/acme/widget/commits/abc")


def test_malformed_bodies_become_response_format_errors() -> None:
    deleted_reviewer = [{"id": 12, "user": None, "state": "APPROVED"}]
    client, _ = client_for(make_response(200, deleted_reviewer), make_response(200))

    with pytest.raises(ResponseFormatError):
        client.list_reviews("acme", "widget", 42)
    with pytest.raises(ResponseFormatError):
        client.get_commit("acme", "widget", "abc")


def test_get_user_profile_not_found_carries_marker() -> None:
    body = {"message": "Not Found", "documentation_url": "https://docs.github.com/rest/users/users#get-a-user"}
    client, _ = client_for(make_response(404, body))

    with pytest.raises(GitHubAPIError) as excinfo:
        client.get_user_profile("ghost")

    assert excinfo.value.status_code == 404
    assert excinfo.value.documents(DOCS_GET_USER)


def test_listing_error_marker_is_checked_with_status() -> None:
    docs = "https://docs.github.com/rest/issues/issues#list-repository-issues"
    client, _ = client_for(
        make_response(404, {"message": "Not Found", "documentation_url": docs}),
        make_response(410, {"message": "Issues are disabled for this repo", "documentation_url": docs}),
    )

    with pytest.raises(GitHubAPIError) as missing:
        ContributionCollector(client).issues(Repo("acme", "does-not-exist"))
    assert missing.value.documents(DOCS_LIST_ISSUES)
    assert not missing.value.documents(DOCS_LIST_ISSUES, status=STATUS_ISSUES_DISABLED)

    assert ContributionCollector(client).issues(Repo("acme", "widget")) == []


def test_get_user_profile_is_cached() -> None:
    body = {"id": 1, "login": "alice", "company": "Acme Corp", "email": None}
    client, session = client_for(make_response(200, body))

    first = client.get_user_profile("alice")
    second = client.get_user_profile("alice")

    assert first == second
    assert first.company == "Acme Corp"
    assert first.email is None
    assert len(session.requests) == 1


def test_check_org_membership() -> None:
    client, _ = client_for(make_response(204), make_response(404, {"message": "Not Found"}))
    assert client.check_org_membership("acme", "alice") is True
    assert client.check_org_membership("acme", "bob") is False


def test_server_errors_become_transport_errors_after_backoff() -> None:
    client, session = client_for(*[make_response(502, {"message": "Bad Gateway"})] * rate_limit._DEFAULT_MAX_ATTEMPTS)

    with pytest.raises(TransportError):
        client.list_issues("acme", "widget")
    assert len(session.requests) == rate_limit._DEFAULT_MAX_ATTEMPTS


def test_transient_error_recovers() -> None:
    client, session = client_for(make_response(503), make_response(200, [ISSUE]))
    page = client.list_issues("acme", "widget")
    assert len(page.items) == 1
    assert len(session.requests) == 2


def test_session_pool_matches_requested_size() -> None:
    session = rate_limit.make_rate_limited_session("t", pool_maxsize=35)
    assert session.get_adapter("https://api.github.com")._pool_maxsize == 35
    assert GitHubClient(token="t", pool_size=12)._session.get_adapter("https://api.github.com")._pool_maxsize == 12


def test_backoff_delay_honors_retry_after() -> None:
    assert rate_limit.backoff_delay(1, 2.0) == 1.0
    assert rate_limit.backoff_delay(3, 2.0) == 4.0
    assert rate_limit.backoff_delay(3, 2.0, make_response(429, headers={"Retry-After": "7"})) == 7.0
    assert rate_limit.backoff_delay(1, 2.0, make_response(429, headers={"Retry-After": "3600"})) == 60.0
    assert rate_limit.backoff_delay(2, 2.0, make_response(503)) == 2.0


def test_connection_errors_become_transport_errors() -> None:
    errors = [requests.ConnectionError("reset")] * rate_limit._DEFAULT_MAX_ATTEMPTS
    client, _ = client_for(*errors)

    with pytest.raises(TransportError):
        client.list_pull_requests("acme", "widget")


def test_exhausted_rate_limit_raises() -> None:
    resp = make_response(403, {"message": "API rate limit exceeded"}, {"X-RateLimit-Remaining": "0"})
    client, _ = client_for(resp)

    with pytest.raises(RateLimitError):
        client.list_issues("acme", "widget")


def test_list_organization_repositories_filters() -> None:
    body = [
        {"name": "widget", "owner": {"login": "acme"}},
        {"name": "fork", "fork": True, "owner": {"login": "acme"}},
        {"name": "old", "archived": True, "owner": {"login": "acme"}},
    ]
    client, _ = client_for(make_response(200, body))

    repos = client.list_organization_repositories("acme")

    assert [r.full_name for r in repos] == ["acme/widget"]

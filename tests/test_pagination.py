from __future__ import annotations

import pytest

from src.github import GitHubAPIError, Page, TransportError, paginate, parse_next_link


def _pages():
    return {
        "p2": Page(items=[3, 4], next_url="p3"),
        "p3": Page(items=[5], next_url=None),
    }


def test_paginate_returns_items_from_all_pages_in_order() -> None:
    pages = _pages()
    items = paginate(Page(items=[1, 2], next_url="p2"), pages.__getitem__)
    assert items == [1, 2, 3, 4, 5]


def test_paginate_single_page_makes_no_fetch() -> None:
    def fetch(url):
        raise AssertionError("no further page expected")

    assert paginate(Page(items=["a"]), fetch) == ["a"]


def test_paginate_retries_transient_failures() -> None:
    pages = _pages()
    attempts = {"p2": 0, "p3": 0}

    def fetch(url):
        attempts[url] += 1
        if url == "p2" and attempts[url] <= 2:
            raise TransportError("connection reset")
        return pages[url]

    items = paginate(Page(items=[1, 2], next_url="p2"), fetch)
    assert items == [1, 2, 3, 4, 5]
    assert attempts == {"p2": 3, "p3": 1}


def test_paginate_gives_up_after_five_attempts() -> None:
    calls = []

    def fetch(url):
        calls.append(url)
        raise TransportError("HTTP 502")

    with pytest.raises(TransportError):
        paginate(Page(items=[1], next_url="p2"), fetch)
    assert len(calls) == 5


def test_paginate_succeeds_on_last_attempt() -> None:
    calls = []

    def fetch(url):
        calls.append(url)
        if len(calls) < 5:
            raise TransportError("timeout")
        return Page(items=[2])

    assert paginate(Page(items=[1], next_url="p2"), fetch) == [1, 2]


def test_paginate_does_not_retry_api_errors() -> None:
    calls = []

    def fetch(url):
        calls.append(url)
        raise GitHubAPIError(404, "Not Found")

    with pytest.raises(GitHubAPIError):
        paginate(Page(items=[1], next_url="p2"), fetch)
    assert calls == ["p2"]


def test_parse_next_link() -> None:
    header = (
        '<https://api.github.com/repositories/1/issues?page=2>; rel="next", '
        '<https://api.github.com/repositories/1/issues?page=5>; rel="last"'
    )
    assert parse_next_link(header) == "https://api.github.com/repositories/1/issues?page=2"
    assert parse_next_link('<https://api.github.com/x?page=1>; rel="prev"') is None
    assert parse_next_link(None) is None

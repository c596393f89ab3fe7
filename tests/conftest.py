"""
Pytest fixtures for offpage_agent tests: pinned randomness, a controllable
clock, and stub fetch/search-signal collaborators.
"""

from __future__ import annotations

import random
import threading
from datetime import datetime, timedelta, timezone

import pytest

from offpage_agent.errors import FetchError, QueryError
from offpage_agent.models import FetchResult, SignalResult
from offpage_agent.signals import classify_operator, operator_score
from offpage_agent.store import SessionStore


class PinnedRandom(random.Random):
    """randint always returns the low end of its range; other draws are seeded."""

    def __init__(self):
        super().__init__(1234)

    def randint(self, a, b):
        return a


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class StubSignalClient:
    """Answers every query from a count table keyed by operator name."""

    def __init__(self, counts: dict[str, int] | None = None, default: int = 0, fail_on: tuple[str, ...] = ()):
        self.counts = counts or {}
        self.default = default
        self.fail_on = fail_on
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def query(self, expression: str) -> SignalResult:
        with self._lock:
            self.calls.append(expression)
        if any(marker in expression for marker in self.fail_on):
            raise QueryError(expression, "stubbed failure")
        operator = classify_operator(expression)
        count = self.counts.get(operator, self.default)
        results = tuple(f"https://ref{i}.example.net/{operator}" for i in range(min(count, 5)))
        return SignalResult(result_count=count, score=operator_score(count, operator), results=results)


class HangingSignalClient(StubSignalClient):
    """Blocks on matching queries until ``release`` is set, then fails them."""

    def __init__(self, *args, hang_on: tuple[str, ...] = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.hang_on = hang_on
        self.release = threading.Event()

    def query(self, expression: str) -> SignalResult:
        if any(marker in expression for marker in self.hang_on):
            self.release.wait(10)
            raise QueryError(expression, "released")
        return super().query(expression)


class FailingSignalClient:
    def query(self, expression: str) -> SignalResult:
        raise QueryError(expression, "search backend unavailable")


class StubFetcher:
    def __init__(self, body: str = "", headers: dict[str, str] | None = None):
        self.page = FetchResult(body=body, headers=headers or {})
        self.calls: list[str] = []

    def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        return self.page


class FailingFetcher:
    def fetch(self, url: str) -> FetchResult:
        raise FetchError(url, "ConnectTimeout")


RICH_PAGE = (
    "<html><head><title>Example</title>"
    '<meta name="description" content="An example page">'
    '<meta name="viewport" content="width=device-width">'
    '<meta property="og:title" content="Example">'
    '<script type="application/ld+json">{"@context": "https://schema.org"}</script>'
    "</head><body><h1>Example</h1>"
    '<img src="/logo.png"><a href="/about">About</a>'
    "<p>" + " ".join(["word"] * 600) + "</p>"
    "<!--" + "x" * 52000 + "-->"
    "</body></html>"
)


@pytest.fixture
def pinned_rng():
    return PinnedRandom()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(timeout=timedelta(minutes=30), clock=clock)


@pytest.fixture
def strong_signals():
    return StubSignalClient(
        {
            "site_indexing": 12000,
            "mentions": 80,
            "related_sites": 40,
            "site_info": 150,
            "cache_date": 60,
            "social_presence": 120,
            "subdomain_indexing": 30,
            "http_indexing": 0,
            "title_optimization": 25,
            "competitor_analysis": 50,
        }
    )


@pytest.fixture
def rich_fetcher():
    return StubFetcher(RICH_PAGE, {"Cache-Control": "max-age=600"})

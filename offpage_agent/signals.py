"""
Search-signal collaborator: operator query builders, count normalization and
two client implementations.

A client answers one operator-style expression (``site:example.com``,
``related:example.com``, ``"example.com" -site:example.com`` ...) with a result
count, a 0-10 score and a few representative result strings.
"""
from __future__ import annotations

import random
import re
from typing import Any, Protocol

import httpx

from .errors import QueryError
from .models import SignalResult

SOCIAL_PLATFORMS = ("facebook.com", "twitter.com", "linkedin.com")

_POPULAR_DOMAINS = ("google.com", "facebook.com", "youtube.com", "amazon.com", "wikipedia.org")


class SearchSignalClient(Protocol):
    def query(self, expression: str) -> SignalResult: ...


# Query builders.


def site_indexing(target: str) -> str:
    return f"site:{target}"


def subdomain_indexing(domain: str) -> str:
    return f"site:{domain} -www.{domain}"


def http_indexing(domain: str) -> str:
    return f"site:{domain} -inurl:https"


def mentions(domain: str) -> str:
    return f'"{domain}"'


def external_mentions(domain: str) -> str:
    return f'"{domain}" -site:{domain}'


def news_mentions(domain: str) -> str:
    return f'"{domain}" inurl:news'


def related_sites(domain: str) -> str:
    return f"related:{domain}"


def site_info(domain: str) -> str:
    return f"info:{domain}"


def cache_date(domain: str) -> str:
    return f"cache:{domain}"


def social_presence(domain: str, platform: str) -> str:
    return f'"{domain}" site:{platform}'


def title_optimization(keyword: str, domain: str) -> str:
    return f'intitle:"{keyword}" site:{domain}'


def competitor_analysis(keyword: str, domain: str) -> str:
    return f'"{keyword}" -site:{domain}'


_QUOTED_RE = re.compile(r'^"([^"]+)"(.*)$')


def classify_operator(expression: str) -> str:
    e = expression.strip()
    if e.startswith("related:"):
        return "related_sites"
    if e.startswith("info:"):
        return "site_info"
    if e.startswith("cache:"):
        return "cache_date"
    if e.startswith("intitle:"):
        return "title_optimization"
    if e.startswith("site:"):
        if "-inurl:https" in e:
            return "http_indexing"
        if " -www." in e:
            return "subdomain_indexing"
        return "site_indexing"

    m = _QUOTED_RE.match(e)
    if m:
        phrase, rest = m.group(1), m.group(2).strip()
        if rest.startswith("site:"):
            return "social_presence"
        if "." in phrase:
            return "mentions"
        return "competitor_analysis"
    return "generic"


def operator_score(result_count: int, operator: str) -> int:
    """Map a raw result count to a 0-10 signal score for the given operator."""
    n = max(0, int(result_count))
    if operator == "site_indexing":
        if n > 1000:
            return 10
        if n > 500:
            return 8
        if n > 100:
            return 6
        if n > 10:
            return 4
        return 2 if n > 0 else 0
    if operator == "mentions":
        if n > 100:
            return 10
        if n > 50:
            return 8
        if n > 10:
            return 6
        return 4 if n > 0 else 0
    if operator == "competitor_analysis":
        if n > 1000:
            return 8
        if n > 100:
            return 6
        if n > 10:
            return 4
        return 2
    if n > 100:
        return 8
    if n > 10:
        return 6
    return 4 if n > 0 else 0


def _domain_in(expression: str) -> str | None:
    m = re.search(r"(?:site|related|info|cache):([^\s]+)", expression)
    if m:
        return m.group(1).lower()
    m = _QUOTED_RE.match(expression.strip())
    return m.group(1).lower() if m else None


class HttpSearchSignalClient:
    """Query a JSON search-signal proxy.

    The proxy is called as ``GET <endpoint>?q=<expression>`` and must answer
    ``{"resultCount": int, "results": [str, ...]}``; an optional ``score``
    field overrides the local count-to-score table.
    """

    def __init__(self, endpoint: str, timeout_ms: int = 5000, user_agent: str = "OffPageAgent/1.0"):
        self.endpoint = endpoint
        self.timeout_ms = timeout_ms
        self.user_agent = user_agent

    def query(self, expression: str) -> SignalResult:
        timeout = self.timeout_ms / 1000
        try:
            with httpx.Client(timeout=timeout, follow_redirects=True) as client:
                res = client.get(
                    self.endpoint,
                    params={"q": expression},
                    headers={"user-agent": self.user_agent, "accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise QueryError(expression, type(e).__name__) from e

        if res.status_code < 200 or res.status_code >= 300:
            raise QueryError(expression, f"HTTP {res.status_code}")

        try:
            data = res.json()
        except ValueError as e:
            raise QueryError(expression, "invalid JSON") from e
        return _parse_payload(expression, data)


def _parse_payload(expression: str, data: Any) -> SignalResult:
    if not isinstance(data, dict):
        raise QueryError(expression, "unexpected payload")

    raw_count = data.get("resultCount", data.get("result_count"))
    try:
        count = max(0, int(raw_count))
    except (TypeError, ValueError) as e:
        raise QueryError(expression, "missing resultCount") from e

    results = data.get("results") or []
    if not isinstance(results, list):
        results = []

    score = data.get("score")
    if isinstance(score, (int, float)):
        score = max(0, min(10, int(score)))
    else:
        score = operator_score(count, classify_operator(expression))

    return SignalResult(
        result_count=count,
        score=score,
        results=tuple(str(r) for r in results[:10] if r is not None),
    )


class SimulatedSearchSignalClient:
    """Plausible, seeded result counts for running without a search proxy.

    Counts fall in per-operator bands that are higher for a handful of very
    popular domains. Deterministic for a given ``rng`` state.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def query(self, expression: str) -> SignalResult:
        operator = classify_operator(expression)
        domain = _domain_in(expression) or ""
        popular = any(p in domain for p in _POPULAR_DOMAINS)

        if operator == "site_indexing":
            count = self.rng.randint(1000, 5999) if popular else self.rng.randint(50, 549)
        elif operator == "mentions":
            count = self.rng.randint(2000, 11999) if popular else self.rng.randint(10, 209)
        elif operator == "competitor_analysis":
            count = self.rng.randint(100, 1099)
        else:
            count = self.rng.randint(10, 109)

        shown = min(5, -(-count // 10))
        results = tuple(f"{operator} result {i + 1} for {expression}" for i in range(shown))
        return SignalResult(result_count=count, score=operator_score(count, operator), results=results)

from __future__ import annotations

import random
import re
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeout
from datetime import datetime, timezone
from typing import Any, Callable
from urllib.parse import urlparse

from .backlinks import BacklinkEstimator
from .config import Settings
from .content_quality import ContentQualityEstimator
from .domain_metrics import DomainMetricsEstimator
from .errors import InvalidUrl
from .estimators import (
    CompetitorEstimator,
    DomainAuthorityEstimator,
    IndexingEstimator,
    MentionEstimator,
    PageAuthorityEstimator,
    SiteContext,
    SocialSignalEstimator,
)
from .fetcher import HtmlFetcher
from .logger import get_logger
from .models import (
    AuthorityFacet,
    BacklinksFacet,
    CompetitorFacet,
    ContentQuality,
    IndexingFacet,
    MentionsFacet,
    OffPageResult,
    SocialSignalsFacet,
)
from .signals import HttpSearchSignalClient, SimulatedSearchSignalClient

logger = get_logger(__name__)

FACETS = (
    "backlinks",
    "domain_authority",
    "page_authority",
    "social_signals",
    "mentions",
    "indexing",
    "competitors",
)

# Fraction of the estimator deadline granted to each of its signal queries.
QUERY_TIMEOUT_RATIO = 0.8


def _normalize_url(raw: str) -> str:
    value = (raw or "").strip()
    if not value:
        raise InvalidUrl("Please provide a URL.")
    if not re.match(r"^[a-zA-Z][a-zA-Z\d+.-]*://", value):
        raise InvalidUrl(f"Not an absolute URL: {value!r}")

    try:
        parsed = urlparse(value)
        hostname = parsed.hostname
    except ValueError as e:
        raise InvalidUrl(f"Malformed URL: {value!r}") from e
    if parsed.scheme.lower() not in ("http", "https"):
        raise InvalidUrl("Please use an http(s) website URL.")
    if not hostname or "." not in hostname:
        raise InvalidUrl("Please enter a valid website domain.")
    return parsed._replace(fragment="").geturl()


def offpage_score(result: OffPageResult) -> int:
    """Weighted 0-100 off-page score over the five headline facets."""
    total = 0
    max_total = 35 + 30 + 20 + 10 + 5

    da = result.domain_authority.score
    if da >= 80:
        total += 35
    elif da >= 60:
        total += 28
    elif da >= 40:
        total += 20
    elif da >= 20:
        total += 12
    elif da > 0:
        total += 5

    links = result.backlinks.count
    if links >= 100:
        total += 30
    elif links >= 50:
        total += 25
    elif links >= 20:
        total += 18
    elif links >= 5:
        total += 10
    elif links > 0:
        total += 5

    pa = result.page_authority.score
    if pa >= 70:
        total += 20
    elif pa >= 50:
        total += 16
    elif pa >= 30:
        total += 12
    elif pa >= 10:
        total += 6
    elif pa > 0:
        total += 2

    social = result.social_signals.score
    if social >= 8:
        total += 10
    elif social >= 5:
        total += 7
    elif social >= 3:
        total += 4
    elif social > 0:
        total += 2

    mentions = result.mentions.score
    if mentions >= 8:
        total += 5
    elif mentions >= 5:
        total += 4
    elif mentions >= 2:
        total += 2
    elif mentions > 0:
        total += 1

    return int(round(total / max_total * 100))


class OffPageScoringEngine:
    """Fan out the seven off-page estimators and join them into one result.

    ``analyze`` never raises: a failed or timed-out estimator is replaced by
    its fallback facet, and a URL that cannot be analyzed at all yields the
    zero-value result with ``error`` set. Failed estimators are not retried.
    """

    def __init__(
        self,
        signals,
        fetcher,
        rng: random.Random | None = None,
        timeout_s: float = 8.0,
        max_workers: int = 8,
    ):
        self.rng = rng or random.Random()
        self.timeout_s = timeout_s
        self.query_timeout_s = timeout_s * QUERY_TIMEOUT_RATIO
        self.max_workers = max_workers

        self.domain_metrics = DomainMetricsEstimator(self.rng)
        self.content_quality = ContentQualityEstimator(fetcher, self.rng)
        self.estimators: dict[str, Any] = {
            "backlinks": BacklinkEstimator(signals, self.rng, self.query_timeout_s),
            "domain_authority": DomainAuthorityEstimator(signals, self.query_timeout_s),
            "page_authority": PageAuthorityEstimator(signals, self.query_timeout_s),
            "social_signals": SocialSignalEstimator(signals, self.query_timeout_s),
            "mentions": MentionEstimator(signals, self.query_timeout_s),
            "indexing": IndexingEstimator(signals, self.query_timeout_s),
            "competitors": CompetitorEstimator(signals, self.query_timeout_s),
        }

    @classmethod
    def from_settings(cls, settings: Settings, rng: random.Random | None = None) -> "OffPageScoringEngine":
        rng = rng or settings.make_rng()
        fetcher = HtmlFetcher(
            timeout_ms=settings.fetch_timeout_ms,
            max_html_kb=settings.max_html_kb,
            user_agent=settings.user_agent,
        )
        if settings.search_signal_url:
            signals = HttpSearchSignalClient(
                settings.search_signal_url,
                timeout_ms=settings.search_signal_timeout_ms,
                user_agent=settings.user_agent,
            )
        else:
            logger.info("search_signal_simulated", reason="OFFPAGE_SEARCH_SIGNAL_URL not set")
            signals = SimulatedSearchSignalClient(rng)
        return cls(signals, fetcher, rng=rng, timeout_s=settings.estimator_timeout_s, max_workers=settings.max_workers)

    def analyze(self, url: str) -> OffPageResult:
        try:
            normalized = _normalize_url(url)
            domain = (urlparse(normalized).hostname or "").lower()
        except InvalidUrl as e:
            logger.warning("invalid_url", url=url, error=str(e))
            return self.empty_result(url, error=str(e))

        try:
            return self._run(normalized, domain)
        except Exception as e:
            logger.exception("offpage_analysis_failed", url=normalized)
            return self.empty_result(normalized, domain=domain, error=f"Analysis failed: {e}")

    def _run(self, url: str, domain: str) -> OffPageResult:
        timings: dict[str, int] = {}

        def timed(name: str, fn: Callable[[], Any]):
            start = time.perf_counter()
            try:
                return fn()
            finally:
                timings[name] = int((time.perf_counter() - start) * 1000)

        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="offpage")
        try:
            metrics = self.domain_metrics.estimate(domain)
            quality = self._content_quality(pool, timed, url)
            ctx = SiteContext(url=url, domain=domain, metrics=metrics, quality=quality)

            futures = {
                pool.submit(timed, name, lambda est=est: est.estimate(ctx)): name
                for name, est in self.estimators.items()
            }

            facets: dict[str, Any] = {}
            try:
                for fut in as_completed(futures, timeout=self.timeout_s):
                    name = futures[fut]
                    try:
                        facets[name] = fut.result()
                    except Exception as e:
                        logger.warning("estimator_failed", facet=name, domain=domain, error=str(e))
            except FuturesTimeout:
                pending = [futures[f] for f in futures if not f.done()]
                logger.warning("estimator_timeout", facets=pending, domain=domain, timeout_s=self.timeout_s)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        for name in FACETS:
            if name not in facets:
                facets[name] = self.fallback(name)

        result = OffPageResult(
            url=url,
            domain=domain,
            content_quality=quality.score,
            analyzed_at=datetime.now(timezone.utc).isoformat(),
            timings_ms=dict(timings),
            **facets,
        )
        result.score = offpage_score(result)
        logger.info(
            "offpage_analyzed",
            domain=domain,
            score=result.score,
            degraded=result.degraded_facets(),
        )
        return result

    def _content_quality(self, pool: ThreadPoolExecutor, timed, url: str) -> ContentQuality:
        fut = pool.submit(timed, "content_quality", lambda: self.content_quality.estimate(url))
        try:
            return fut.result(timeout=self.timeout_s)
        except FuturesTimeout:
            logger.warning("content_quality_timeout", url=url, timeout_s=self.timeout_s)
        except Exception as e:
            logger.warning("content_quality_failed", url=url, error=str(e))
        return self.content_quality.unknown()

    def fallback(self, facet: str):
        """Documented stand-in for a facet whose estimator failed."""
        rng = self.rng
        if facet == "backlinks":
            return BacklinksFacet(count=rng.randint(5, 55), score=float(rng.randint(3, 8)), sources=[], degraded=True)
        if facet == "domain_authority":
            return AuthorityFacet(score=rng.randint(20, 60), level="Average", degraded=True)
        if facet == "page_authority":
            return AuthorityFacet(score=rng.randint(20, 60), level="Average", degraded=True)
        if facet == "social_signals":
            return SocialSignalsFacet(degraded=True)
        if facet == "mentions":
            score = rng.randint(3, 8)
            return MentionsFacet(count=rng.randint(10, 60), score=score, degraded=True)
        if facet == "indexing":
            return IndexingFacet(degraded=True)
        if facet == "competitors":
            return CompetitorFacet(degraded=True)
        raise ValueError(f"Unknown facet: {facet}")

    def empty_result(self, url: str, domain: str = "", error: str | None = None) -> OffPageResult:
        return OffPageResult(
            url=url,
            domain=domain,
            backlinks=BacklinksFacet(degraded=True),
            domain_authority=AuthorityFacet(degraded=True),
            page_authority=AuthorityFacet(degraded=True),
            social_signals=SocialSignalsFacet(degraded=True),
            mentions=MentionsFacet(degraded=True),
            indexing=IndexingFacet(degraded=True),
            competitors=CompetitorFacet(degraded=True),
            analyzed_at=datetime.now(timezone.utc).isoformat(),
            error=error,
        )

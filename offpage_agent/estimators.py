"""
Off-page facet estimators.

Each estimator turns a handful of concurrent search-signal queries plus the
per-run domain/content inputs into one facet of the composite result. A
failed query counts as zero signal; an estimator whose queries all failed
raises EstimatorFailed and the engine substitutes its fallback.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from urllib.parse import urlparse

from . import signals as q
from .errors import EstimatorFailed, QueryError
from .logger import get_logger
from .models import (
    AuthorityFacet,
    CompetitorFacet,
    ContentQuality,
    DomainMetrics,
    IndexingFacet,
    Level,
    MentionsFacet,
    SignalResult,
    SocialSignalsFacet,
)

logger = get_logger(__name__)

_FAILED = SignalResult(failed=True)


@dataclass(frozen=True)
class SiteContext:
    """Read-only inputs computed once per analysis and shared by all estimators."""

    url: str
    domain: str
    metrics: DomainMetrics
    quality: ContentQuality


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def level_for(score: float) -> Level:
    if score >= 80:
        return "Excellent"
    if score >= 70:
        return "Very Good"
    if score >= 60:
        return "Good"
    if score >= 50:
        return "Average"
    if score >= 40:
        return "Weak"
    return "Low"


def gather_signals(client, queries: dict[str, str], timeout_s: float | None = None) -> dict[str, SignalResult]:
    """Run the named queries concurrently.

    Failed or timed-out queries map to a zero SignalResult flagged ``failed``.
    Raises EstimatorFailed when every query failed.
    """
    out: dict[str, SignalResult] = {}
    pool = ThreadPoolExecutor(max_workers=max(1, len(queries)), thread_name_prefix="signal")
    try:
        futures = {pool.submit(client.query, expr): name for name, expr in queries.items()}
        done, not_done = wait(futures, timeout=timeout_s)
        for fut in done:
            name = futures[fut]
            try:
                out[name] = fut.result()
            except QueryError as e:
                logger.warning("signal_query_failed", query=queries[name], error=str(e))
                out[name] = _FAILED
        for fut in not_done:
            name = futures[fut]
            logger.warning("signal_query_timeout", query=queries[name], timeout_s=timeout_s)
            out[name] = _FAILED
    finally:
        # Hung queries are abandoned rather than joined.
        pool.shutdown(wait=False, cancel_futures=True)

    if queries and all(r.failed for r in out.values()):
        raise EstimatorFailed(f"all {len(queries)} signal queries failed")
    return out


class SignalEstimator:
    def __init__(self, client, timeout_s: float | None = None):
        self.client = client
        self.timeout_s = timeout_s

    def _gather(self, queries: dict[str, str]) -> dict[str, SignalResult]:
        return gather_signals(self.client, queries, self.timeout_s)


class DomainAuthorityEstimator(SignalEstimator):
    def estimate(self, ctx: SiteContext) -> AuthorityFacet:
        s = self._gather({
            "indexing": q.site_indexing(ctx.domain),
            "mentions": q.mentions(ctx.domain),
            "info": q.site_info(ctx.domain),
            "cache": q.cache_date(ctx.domain),
        })
        m = ctx.metrics
        score = (
            2.5 * s["indexing"].score
            + 2.0 * s["mentions"].score
            + s["info"].score
            + s["cache"].score
            + m.tld_authority
            + 0.5 * m.length_score
            + 0.5 * m.structure_score
            + min(m.age_years, 10)
            + ctx.quality.score / 20
        )
        score = int(round(clamp(score, 0, 100)))
        return AuthorityFacet(score=score, level=level_for(score))


def _path_keyword(url: str, fallback: str) -> str:
    path = urlparse(url).path or ""
    for segment in path.split("/"):
        if len(segment) > 2:
            return segment
    return fallback


def _url_depth_points(url: str) -> int:
    depth = len([p for p in (urlparse(url).path or "").split("/") if p])
    if depth <= 3:
        return 10
    if depth <= 5:
        return 7
    if depth <= 7:
        return 5
    return 0


class PageAuthorityEstimator(SignalEstimator):
    def estimate(self, ctx: SiteContext) -> AuthorityFacet:
        parsed = urlparse(ctx.url)
        page = f"{parsed.hostname or ctx.domain}{parsed.path or ''}".rstrip("/")
        keyword = _path_keyword(ctx.url, ctx.metrics.name or ctx.domain)
        s = self._gather({
            "page": q.site_indexing(page),
            "title": q.title_optimization(keyword, ctx.domain),
        })

        score = 20 if s["page"].result_count > 0 else 0
        score += 2 * s["title"].score
        score += 0.25 * ctx.quality.score
        score += _url_depth_points(ctx.url)
        if parsed.scheme == "https":
            score += 10
        score += ctx.metrics.tld_authority
        score += 0.5 * ctx.metrics.structure_score

        score = int(round(clamp(score, 0, 100)))
        return AuthorityFacet(score=score, level=level_for(score))


class SocialSignalEstimator(SignalEstimator):
    def estimate(self, ctx: SiteContext) -> SocialSignalsFacet:
        fb, tw, li = q.SOCIAL_PLATFORMS
        s = self._gather({
            "facebook": q.social_presence(ctx.domain, fb),
            "twitter": q.social_presence(ctx.domain, tw),
            "linkedin": q.social_presence(ctx.domain, li),
        })
        weighted = 0.35 * s["facebook"].score + 0.3 * s["twitter"].score + 0.35 * s["linkedin"].score
        score = 0.8 * weighted
        if ctx.quality.score >= 60:
            score += 1
        if ctx.metrics.is_popular_tld:
            score += 1
        score = int(round(clamp(score, 0, 10)))
        return SocialSignalsFacet(
            facebook=s["facebook"].result_count,
            twitter=s["twitter"].result_count,
            linkedin=s["linkedin"].result_count,
            score=score,
            level=level_for(score * 10),
        )


class MentionEstimator(SignalEstimator):
    def estimate(self, ctx: SiteContext) -> MentionsFacet:
        s = self._gather({
            "all": q.mentions(ctx.domain),
            "external": q.external_mentions(ctx.domain),
            "news": q.news_mentions(ctx.domain),
        })
        count = sum(r.result_count for r in s.values())
        score = 0.3 * s["all"].score + 0.5 * s["external"].score + 0.2 * s["news"].score
        if ctx.metrics.tld_authority >= 9:
            score += 1
        score = int(round(clamp(score, 0, 10)))

        sources: list[str] = []
        for name in ("all", "external", "news"):
            for item in s[name].results[:3]:
                if item not in sources:
                    sources.append(item)
        return MentionsFacet(count=count, score=score, sources=sources[:10], level=level_for(score * 10))


class IndexingEstimator(SignalEstimator):
    def estimate(self, ctx: SiteContext) -> IndexingFacet:
        s = self._gather({
            "site": q.site_indexing(ctx.domain),
            "subdomain": q.subdomain_indexing(ctx.domain),
            "http": q.http_indexing(ctx.domain),
        })
        http_pages = s["http"].result_count
        if s["http"].failed:
            https_points = 0
        elif http_pages == 0:
            https_points = 20
        elif http_pages < 5:
            https_points = 14
        elif http_pages < 20:
            https_points = 10
        else:
            https_points = 0

        score = 6 * s["site"].score + 2 * s["subdomain"].score + https_points
        return IndexingFacet(
            total_pages=s["site"].result_count,
            subdomain_pages=s["subdomain"].result_count,
            http_pages=http_pages,
            indexing_score=int(round(clamp(score, 0, 100))),
        )


class CompetitorEstimator(SignalEstimator):
    def estimate(self, ctx: SiteContext) -> CompetitorFacet:
        s = self._gather({
            "related": q.related_sites(ctx.domain),
            "competitors": q.competitor_analysis(ctx.metrics.name or ctx.domain, ctx.domain),
        })
        strength = int(clamp(s["competitors"].score, 0, 10))
        score = 5 * s["related"].score + 3 * (10 - strength) + 2 * ctx.metrics.tld_authority
        return CompetitorFacet(
            related_sites_count=s["related"].result_count,
            competitor_strength=strength,
            competitor_score=int(round(clamp(score, 0, 100))),
        )

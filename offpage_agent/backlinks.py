"""
Backlink estimation.

The count is a blend of two independent estimates: one from search-signal
result counts (indexed pages, external mentions, related sites) and a
traditional one from domain structure, content quality and heuristic age.
"""
from __future__ import annotations

import random

from . import signals as q
from .estimators import SiteContext, SignalEstimator, clamp
from .models import BacklinksFacet, DomainMetrics, SignalResult

SIGNAL_WEIGHT = 0.7
TRADITIONAL_WEIGHT = 0.3

SIGNAL_ESTIMATE_RANGE = (5, 5000)

MAX_SOURCES = 20
SHOWN_SOURCES = 10

# (category, weight, sites)
SOURCE_CATEGORIES: tuple[tuple[str, float, tuple[str, ...]], ...] = (
    ("social", 0.25, ("facebook.com", "twitter.com", "linkedin.com", "instagram.com", "pinterest.com", "youtube.com")),
    ("forum_news", 0.20, ("reddit.com", "quora.com", "medium.com", "news.ycombinator.com", "stackexchange.com")),
    ("media_profile", 0.15, ("github.com", "crunchbase.com", "about.me", "gravatar.com", "behance.net")),
    ("referral_partner", 0.25, ("producthunt.com", "g2.com", "capterra.com", "trustpilot.com", "alternativeto.net")),
    ("local_industry", 0.15, ("yelp.com", "bbb.org", "yellowpages.com", "manta.com", "clutch.co")),
)


def signal_estimate(indexed: int, mentions: int, related: int) -> float:
    low, high = SIGNAL_ESTIMATE_RANGE
    return clamp(indexed * 0.1 + mentions * 0.3 + related * 0.5, low, high)


def base_estimate(m: DomainMetrics) -> int:
    base = 10
    if m.tld in ("edu", "gov"):
        base += 50
    if m.is_popular_tld:
        base += 20
    if m.is_short:
        base += 15
    if not m.has_dash:
        base += 10
    if not m.has_subdomain:
        base += 5
    return base + 2 * m.tld_authority + m.length_score + m.structure_score


def quality_multiplier(quality: int) -> float:
    if quality >= 80:
        return 2.5
    if quality >= 60:
        return 2.0
    if quality >= 40:
        return 1.5
    if quality >= 20:
        return 1.2
    return 1.0


def age_multiplier(age_years: int) -> float:
    if age_years >= 10:
        return 3.0
    if age_years >= 5:
        return 2.0
    if age_years >= 2:
        return 1.5
    return 1.0


def traditional_estimate(m: DomainMetrics, quality: int) -> float:
    return base_estimate(m) * quality_multiplier(quality) * age_multiplier(m.age_years)


def blend_estimates(signal: float, traditional: float) -> int:
    return int(round(SIGNAL_WEIGHT * signal + TRADITIONAL_WEIGHT * traditional))


def _count_bonus(count: int) -> float:
    if count >= 1000:
        return 3.0
    if count >= 500:
        return 2.0
    if count >= 100:
        return 1.5
    if count >= 50:
        return 1.0
    if count >= 10:
        return 0.5
    return 0.0


def quality_score(
    count: int,
    indexed: SignalResult,
    mentions: SignalResult,
    m: DomainMetrics,
    quality: int,
    source_count: int,
) -> float:
    """1-10 backlink quality at 0.1 precision."""
    score = 5.0 + _count_bonus(count)
    if indexed.score >= 8:
        score += 1
    if mentions.score >= 8:
        score += 1
    score += m.tld_authority / 10
    score += max(0.0, (quality - 50) / 50)
    score += min(source_count / MAX_SOURCES, 1.0)
    score += min(m.age_years / 10, 1.0)
    return round(clamp(score, 1, 10), 1)


def synthesize_sources(name: str, count: int, rng: random.Random) -> list[str]:
    """Representative referring sources drawn from weighted categories.

    Draws until ``min(count, MAX_SOURCES)`` distinct sources are collected or
    ``count`` draws have been made.
    """
    target = min(count, MAX_SOURCES)
    weights = [w for _, w, _ in SOURCE_CATEGORIES]
    slug = name or "site"
    sources: list[str] = []
    draws = 0
    while len(sources) < target and draws < count:
        draws += 1
        _, _, sites = rng.choices(SOURCE_CATEGORIES, weights=weights)[0]
        source = f"https://{rng.choice(sites)}/{slug}"
        if source not in sources:
            sources.append(source)
    return sources


class BacklinkEstimator(SignalEstimator):
    def __init__(self, client, rng: random.Random | None = None, timeout_s: float | None = None):
        super().__init__(client, timeout_s)
        self.rng = rng or random.Random()

    def estimate(self, ctx: SiteContext) -> BacklinksFacet:
        s = self._gather({
            "indexed": q.site_indexing(ctx.domain),
            "mentions": q.external_mentions(ctx.domain),
            "related": q.related_sites(ctx.domain),
        })
        signal = signal_estimate(s["indexed"].result_count, s["mentions"].result_count, s["related"].result_count)
        traditional = traditional_estimate(ctx.metrics, ctx.quality.score)
        count = blend_estimates(signal, traditional)

        sources = synthesize_sources(ctx.metrics.name, count, self.rng)
        score = quality_score(count, s["indexed"], s["mentions"], ctx.metrics, ctx.quality.score, len(sources))
        return BacklinksFacet(
            count=count,
            score=score,
            sources=sources[:SHOWN_SOURCES],
            signal_estimate=int(round(signal)),
            traditional_estimate=int(round(traditional)),
        )

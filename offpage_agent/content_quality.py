from __future__ import annotations

import random
import re

from .errors import FetchError
from .logger import get_logger
from .models import ContentQuality, FetchResult

logger = get_logger(__name__)

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")

_IMG_RE = re.compile(r"<img\b", re.IGNORECASE)
_LINK_RE = re.compile(r"<a\b[^>]*\bhref\s*=", re.IGNORECASE)
_TITLE_RE = re.compile(r"<title\b[^>]*>", re.IGNORECASE)
_H1_RE = re.compile(r"<h1\b", re.IGNORECASE)
_META_DESC_RE = re.compile(r"<meta\b[^>]*\bname\s*=\s*[\"']?description[\"'\s>]", re.IGNORECASE)
_VIEWPORT_RE = re.compile(r"<meta\b[^>]*\bname\s*=\s*[\"']?viewport[\"'\s>]", re.IGNORECASE)
_JSONLD_RE = re.compile(r"application/ld\+json", re.IGNORECASE)
_SCHEMA_ORG_RE = re.compile(r"schema\.org", re.IGNORECASE)
_OG_RE = re.compile(r"\bproperty\s*=\s*[\"']?og:", re.IGNORECASE)

UNKNOWN_QUALITY_RANGE = (30, 70)


def visible_word_count(html: str) -> int:
    if not html:
        return 0
    text = _STYLE_RE.sub(" ", html)
    text = _SCRIPT_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    return len(text.split())


def score_page(page: FetchResult) -> ContentQuality:
    """Score a fetched page 0-100 from fixed point budgets.

    Volume (25), structure (15), core SEO elements (30) and advanced
    signals (30).
    """
    html = page.body or ""
    words = visible_word_count(html)
    size = len(html.encode("utf-8"))
    score = 0

    if words > 500:
        score += 15
    elif words > 200:
        score += 10
    elif words > 100:
        score += 5

    if size > 50000:
        score += 10
    elif size > 20000:
        score += 7
    elif size > 10000:
        score += 5

    if _IMG_RE.search(html):
        score += 8
    if _LINK_RE.search(html):
        score += 7

    if _TITLE_RE.search(html):
        score += 10
    if _META_DESC_RE.search(html):
        score += 8
    if _H1_RE.search(html):
        score += 7
    if _VIEWPORT_RE.search(html):
        score += 5

    if _JSONLD_RE.search(html) or _SCHEMA_ORG_RE.search(html):
        score += 15
    if _OG_RE.search(html):
        score += 10
    if any(k.lower() == "cache-control" for k in page.headers):
        score += 5

    return ContentQuality(score=max(0, min(100, score)), word_count=words, html_bytes=size)


class ContentQualityEstimator:
    def __init__(self, fetcher, rng: random.Random | None = None):
        self.fetcher = fetcher
        self.rng = rng or random.Random()

    def estimate(self, url: str) -> ContentQuality:
        try:
            page = self.fetcher.fetch(url)
        except FetchError as e:
            logger.warning("content_fetch_failed", url=url, error=str(e))
            return self.unknown()
        return score_page(page)

    def unknown(self) -> ContentQuality:
        # Unknown content is treated as middling rather than absent.
        low, high = UNKNOWN_QUALITY_RANGE
        return ContentQuality(score=self.rng.randint(low, high), degraded=True)

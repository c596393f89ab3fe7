"""
Tests for ContentQualityEstimator point budgets and the fetch-failure
fallback.
"""

from __future__ import annotations

from offpage_agent.content_quality import ContentQualityEstimator, score_page, visible_word_count
from offpage_agent.models import FetchResult

from .conftest import RICH_PAGE, FailingFetcher, StubFetcher


def test_rich_page_scores_full_marks(rich_fetcher, pinned_rng):
    quality = ContentQualityEstimator(rich_fetcher, pinned_rng).estimate("https://example.com")
    assert quality.score == 100
    assert not quality.degraded
    assert quality.word_count > 500


def test_empty_page_scores_zero():
    assert score_page(FetchResult(body="")).score == 0


def test_core_seo_elements_only():
    html = (
        "<html><head><title>t</title><meta name='description' content='d'>"
        "<meta name='viewport' content='width=device-width'></head><body><h1>h</h1></body></html>"
    )
    assert score_page(FetchResult(body=html)).score == 10 + 8 + 7 + 5


def test_schema_org_reference_counts_as_structured_data():
    html = '<div itemscope itemtype="https://schema.org/Organization"></div>'
    assert score_page(FetchResult(body=html)).score == 15


def test_cache_control_header_is_case_insensitive():
    assert score_page(FetchResult(body="", headers={"cache-control": "no-cache"})).score == 5
    assert score_page(FetchResult(body="", headers={"Cache-Control": "no-cache"})).score == 5


def test_word_volume_steps():
    def words(n):
        return FetchResult(body="<p>" + " ".join(["w"] * n) + "</p>")

    assert score_page(words(100)).score == 0
    assert score_page(words(101)).score == 5
    assert score_page(words(201)).score == 10
    assert score_page(words(501)).score == 15


def test_scripts_and_styles_are_not_words():
    html = "<script>var a = 1; var b = 2;</script><style>p { color: red }</style><p>two words</p>"
    assert visible_word_count(html) == 2


def test_fetch_failure_returns_plausible_unknown(pinned_rng):
    quality = ContentQualityEstimator(FailingFetcher(), pinned_rng).estimate("https://example.com")
    assert quality.score == 30
    assert quality.degraded


def test_fetch_failure_stays_in_unknown_band():
    import random

    est = ContentQualityEstimator(FailingFetcher(), random.Random(3))
    scores = {est.estimate("https://example.com").score for _ in range(100)}
    assert min(scores) >= 30 and max(scores) <= 70


def test_fetcher_receives_url(pinned_rng):
    fetcher = StubFetcher(RICH_PAGE)
    ContentQualityEstimator(fetcher, pinned_rng).estimate("https://example.com/page")
    assert fetcher.calls == ["https://example.com/page"]

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

Level = Literal["Excellent", "Very Good", "Good", "Average", "Weak", "Low"]

FacetName = Literal[
    "backlinks",
    "domain_authority",
    "page_authority",
    "social_signals",
    "mentions",
    "indexing",
    "competitors",
]


# Collaborator payloads and per-run derived inputs (never persisted).


@dataclass(frozen=True)
class FetchResult:
    body: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SignalResult:
    result_count: int = 0
    score: int = 0
    results: tuple[str, ...] = ()
    failed: bool = False


@dataclass(frozen=True)
class DomainMetrics:
    domain: str
    name: str
    tld: str
    tld_authority: int
    is_popular_tld: bool
    is_local_tld: bool
    length: int
    is_short: bool
    length_score: int
    has_dash: bool
    has_subdomain: bool
    structure_score: int
    age_years: int


@dataclass(frozen=True)
class ContentQuality:
    score: int
    word_count: int = 0
    html_bytes: int = 0
    degraded: bool = False


# Facets of the composite result. `degraded` marks a facet that was
# substituted from the fallback table.


class BacklinksFacet(BaseModel):
    count: int = 0
    score: float = 0.0
    sources: list[str] = Field(default_factory=list)
    signal_estimate: int = 0
    traditional_estimate: int = 0
    degraded: bool = False


class AuthorityFacet(BaseModel):
    score: int = 0
    level: Level = "Low"
    degraded: bool = False


class SocialSignalsFacet(BaseModel):
    facebook: int = 0
    twitter: int = 0
    linkedin: int = 0
    score: int = 0
    level: Level = "Low"
    degraded: bool = False


class MentionsFacet(BaseModel):
    count: int = 0
    score: int = 0
    sources: list[str] = Field(default_factory=list)
    level: Level = "Low"
    degraded: bool = False


class IndexingFacet(BaseModel):
    total_pages: int = 0
    subdomain_pages: int = 0
    http_pages: int = 0
    indexing_score: int = 0
    degraded: bool = False


class CompetitorFacet(BaseModel):
    related_sites_count: int = 0
    competitor_strength: int = 0
    competitor_score: int = 0
    degraded: bool = False


class OffPageResult(BaseModel):
    url: str
    domain: str = ""
    backlinks: BacklinksFacet = Field(default_factory=BacklinksFacet)
    domain_authority: AuthorityFacet = Field(default_factory=AuthorityFacet)
    page_authority: AuthorityFacet = Field(default_factory=AuthorityFacet)
    social_signals: SocialSignalsFacet = Field(default_factory=SocialSignalsFacet)
    mentions: MentionsFacet = Field(default_factory=MentionsFacet)
    indexing: IndexingFacet = Field(default_factory=IndexingFacet)
    competitors: CompetitorFacet = Field(default_factory=CompetitorFacet)

    score: int = 0
    content_quality: int = 0
    analyzed_at: str = ""
    timings_ms: dict[str, int] = Field(default_factory=dict)
    error: str | None = None

    def degraded_facets(self) -> list[str]:
        return [
            name
            for name in (
                "backlinks",
                "domain_authority",
                "page_authority",
                "social_signals",
                "mentions",
                "indexing",
                "competitors",
            )
            if getattr(self, name).degraded
        ]


# Session-owned state.


class Session(BaseModel):
    id: str
    user_id: str | None = None
    created_at: datetime
    last_activity: datetime
    analyses: list[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    id: str | None = None
    url: str
    timestamp: datetime
    score: int
    session_id: str | None = None
    off_page: OffPageResult


class SessionStats(BaseModel):
    total_sessions: int
    active_sessions: int
    total_analyses: int
    avg_analyses_per_session: float


# HTTP adapter payloads.


class CreateSessionRequest(BaseModel):
    user_id: str | None = Field(None, max_length=200)


class UpdateSessionRequest(BaseModel):
    user_id: str | None = Field(None, max_length=200)


class AnalyzeRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)


class SavedAnalysisResponse(BaseModel):
    analysis_id: str
    result: AnalysisResult

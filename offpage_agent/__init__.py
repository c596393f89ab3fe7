"""Off-page authority estimation and session-scoped analysis storage."""

from .engine import OffPageScoringEngine
from .store import AnalysisResultStore, SessionStore, SessionSweeper

__all__ = ["OffPageScoringEngine", "SessionStore", "AnalysisResultStore", "SessionSweeper"]

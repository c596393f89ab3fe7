from __future__ import annotations


class OffPageError(Exception):
    """Base class for errors raised by offpage_agent."""


class FetchError(OffPageError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Fetch failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class QueryError(OffPageError):
    def __init__(self, expression: str, reason: str):
        super().__init__(f"Signal query failed ({expression}): {reason}")
        self.expression = expression
        self.reason = reason


class EstimatorFailed(OffPageError):
    """Raised by an estimator when none of its signal queries succeeded."""


class InvalidUrl(ValueError, OffPageError):
    pass


class SessionNotFound(KeyError, OffPageError):
    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"


class SessionCreationFailure(RuntimeError, OffPageError):
    pass

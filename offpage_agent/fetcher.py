from __future__ import annotations

import httpx

from .errors import FetchError
from .models import FetchResult


class HtmlFetcher:
    """Fetch a page body and its response headers over HTTP(S).

    Any network error, timeout or HTTP error status surfaces as FetchError;
    callers treat that as "content quality unknown".
    """

    def __init__(self, timeout_ms: int = 10000, max_html_kb: int = 1024, user_agent: str = "Mozilla/5.0 OffPageAgent/1.0"):
        self.timeout_ms = timeout_ms
        self.max_html_kb = max_html_kb
        self.user_agent = user_agent

    def fetch(self, url: str) -> FetchResult:
        timeout = self.timeout_ms / 1000
        try:
            with httpx.Client(timeout=timeout, follow_redirects=True) as client:
                res = client.get(
                    url,
                    headers={
                        "user-agent": self.user_agent,
                        "accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                        "accept-language": "en-US,en;q=0.6",
                    },
                )
        except httpx.HTTPError as e:
            raise FetchError(url, type(e).__name__) from e

        if res.status_code >= 400:
            raise FetchError(url, f"HTTP {res.status_code}")

        limit = self.max_html_kb * 1024
        body = res.content[:limit] if limit else res.content
        headers = {k.lower(): v for k, v in res.headers.items()}
        return FetchResult(body=body.decode(res.encoding or "utf-8", errors="replace"), headers=headers)

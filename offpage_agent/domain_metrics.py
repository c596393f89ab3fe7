from __future__ import annotations

import random

from .models import DomainMetrics

TLD_AUTHORITY = {
    "edu": 10,
    "gov": 10,
    "org": 9,
    "com": 8,
    "net": 7,
    "info": 6,
    "biz": 5,
    "tr": 7,
    "de": 8,
    "uk": 8,
    "fr": 7,
    "ca": 7,
    "au": 7,
    "jp": 8,
}
DEFAULT_TLD_AUTHORITY = 4

POPULAR_TLDS = frozenset({"com", "org", "net", "edu", "gov"})
LOCAL_TLDS = frozenset({"tr", "de", "fr", "uk", "jp"})

SHORT_NAME_MAX = 10


def tld_authority(tld: str) -> int:
    return TLD_AUTHORITY.get(tld.lower(), DEFAULT_TLD_AUTHORITY)


def length_score(length: int) -> int:
    if length <= 10:
        return 10
    if length <= 15:
        return 7
    return 5


def structure_score(has_dash: bool, has_subdomain: bool) -> int:
    return 10 if not has_dash and not has_subdomain else 6


def _split_host(domain: str) -> tuple[str, str, bool]:
    host = domain.strip().lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    parts = [p for p in host.split(".") if p]
    if not parts:
        return "", "", False
    if len(parts) == 1:
        return parts[0], "", False
    return parts[-2], parts[-1], len(parts) > 2


class DomainMetricsEstimator:
    """Structural authority signals derived from a domain string alone.

    Everything except ``age_years`` is a pure function of the domain. Age is a
    randomized band standing in for an unknown registration date; the
    random source is injected so tests can pin it.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def estimate(self, domain: str) -> DomainMetrics:
        name, tld, has_subdomain = _split_host(domain)
        has_dash = "-" in domain
        popular = tld in POPULAR_TLDS
        local = tld in LOCAL_TLDS
        length = len(name)
        short = length <= SHORT_NAME_MAX

        return DomainMetrics(
            domain=domain.lower(),
            name=name,
            tld=tld,
            tld_authority=tld_authority(tld),
            is_popular_tld=popular,
            is_local_tld=local,
            length=length,
            is_short=short,
            length_score=length_score(length),
            has_dash=has_dash,
            has_subdomain=has_subdomain,
            structure_score=structure_score(has_dash, has_subdomain),
            age_years=self._age_years(popular, local, short, has_dash),
        )

    def _age_years(self, popular: bool, local: bool, short: bool, has_dash: bool) -> int:
        if popular and short and not has_dash:
            return self.rng.randint(5, 15)
        if popular and not has_dash:
            return self.rng.randint(2, 9)
        if local:
            return self.rng.randint(1, 6)
        return 1

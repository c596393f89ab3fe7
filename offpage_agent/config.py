from __future__ import annotations

import os
import random
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


# Load .env from the project root so local runs pick up proxy URLs and timeouts.
_HERE = Path(__file__).resolve()
_PROJECT_ROOT = _HERE.parents[1]

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 OffPageAgent/1.0"
)


class Settings(BaseModel):
    estimator_timeout_s: float = Field(8.0, gt=0, le=120)
    max_workers: int = Field(8, ge=1, le=64)
    fetch_timeout_ms: int = Field(10000, ge=1000, le=60000)
    max_html_kb: int = Field(1024, ge=0, le=8192)
    user_agent: str = Field(_DEFAULT_USER_AGENT, min_length=1)
    search_signal_url: str | None = None
    search_signal_timeout_ms: int = Field(5000, ge=500, le=60000)
    session_timeout_min: float = Field(30, gt=0)
    sweep_interval_s: float = Field(300, gt=0)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    random_seed: int | None = None

    def make_rng(self) -> random.Random:
        return random.Random(self.random_seed)


def _env(name: str) -> str | None:
    raw = os.getenv(name, "").strip()
    return raw or None


def _cors_origins(raw: str | None) -> list[str]:
    if not raw:
        return ["http://localhost:3000"]
    return [o.strip() for o in raw.split(",") if o.strip()]


def load_settings(env_file: Path | None = None) -> Settings:
    """Build Settings from the environment (and a .env file when present).

    Unset variables keep their defaults; set-but-invalid values raise a
    pydantic ValidationError so misconfiguration fails at startup.
    """
    load_dotenv(env_file or (_PROJECT_ROOT / ".env"), override=False)

    values: dict[str, object] = {}
    mapping = {
        "estimator_timeout_s": "OFFPAGE_ESTIMATOR_TIMEOUT_S",
        "max_workers": "OFFPAGE_MAX_WORKERS",
        "fetch_timeout_ms": "OFFPAGE_FETCH_TIMEOUT_MS",
        "max_html_kb": "OFFPAGE_MAX_HTML_KB",
        "user_agent": "OFFPAGE_USER_AGENT",
        "search_signal_url": "OFFPAGE_SEARCH_SIGNAL_URL",
        "search_signal_timeout_ms": "OFFPAGE_SEARCH_SIGNAL_TIMEOUT_MS",
        "session_timeout_min": "OFFPAGE_SESSION_TIMEOUT_MIN",
        "sweep_interval_s": "OFFPAGE_SWEEP_INTERVAL_S",
        "random_seed": "OFFPAGE_RANDOM_SEED",
    }
    for field, var in mapping.items():
        raw = _env(var)
        if raw is not None:
            values[field] = raw
    values["cors_origins"] = _cors_origins(_env("OFFPAGE_CORS_ORIGINS"))
    return Settings(**values)

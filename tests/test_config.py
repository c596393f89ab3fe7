"""
Tests for environment-driven settings.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from offpage_agent.config import load_settings

_VARS = (
    "OFFPAGE_ESTIMATOR_TIMEOUT_S",
    "OFFPAGE_MAX_WORKERS",
    "OFFPAGE_SWEEP_INTERVAL_S",
    "OFFPAGE_SEARCH_SIGNAL_URL",
    "OFFPAGE_SESSION_TIMEOUT_MIN",
    "OFFPAGE_CORS_ORIGINS",
    "OFFPAGE_RANDOM_SEED",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)


def test_defaults(tmp_path):
    settings = load_settings(tmp_path / "missing.env")
    assert settings.estimator_timeout_s == 8.0
    assert settings.session_timeout_min == 30
    assert settings.sweep_interval_s == 300
    assert settings.search_signal_url is None
    assert settings.cors_origins == ["http://localhost:3000"]


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("OFFPAGE_ESTIMATOR_TIMEOUT_S", "2.5")
    monkeypatch.setenv("OFFPAGE_SEARCH_SIGNAL_URL", "https://signals.internal/search")
    monkeypatch.setenv("OFFPAGE_CORS_ORIGINS", "https://a.example, https://b.example")
    settings = load_settings(tmp_path / "missing.env")
    assert settings.estimator_timeout_s == 2.5
    assert settings.search_signal_url == "https://signals.internal/search"
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_dotenv_file_is_loaded(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("OFFPAGE_MAX_WORKERS=3\n", encoding="utf-8")
    settings = load_settings(env_file)
    assert settings.max_workers == 3


def test_invalid_value_fails_fast(monkeypatch, tmp_path):
    monkeypatch.setenv("OFFPAGE_MAX_WORKERS", "0")
    with pytest.raises(ValidationError):
        load_settings(tmp_path / "missing.env")


def test_seeded_rng_is_reproducible(monkeypatch, tmp_path):
    monkeypatch.setenv("OFFPAGE_RANDOM_SEED", "42")
    settings = load_settings(tmp_path / "missing.env")
    assert settings.make_rng().random() == settings.make_rng().random()

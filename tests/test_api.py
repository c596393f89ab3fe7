"""
Tests for the FastAPI adapter. The engine is swapped for one wired to stub
collaborators so no network is touched.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from offpage_agent import main
from offpage_agent.engine import OffPageScoringEngine

from .conftest import FailingFetcher, FailingSignalClient, PinnedRandom


@pytest.fixture
def client(monkeypatch, strong_signals, rich_fetcher):
    monkeypatch.setattr(main, "engine", OffPageScoringEngine(strong_signals, rich_fetcher, rng=PinnedRandom()))
    main.store.clear()
    with TestClient(main.app) as c:
        yield c
    main.store.clear()


def _new_session(client, user_id="user-1") -> str:
    res = client.post("/sessions", json={"user_id": user_id})
    assert res.status_code == 201
    return res.json()["id"]


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_session_crud(client):
    sid = _new_session(client)
    assert client.get(f"/sessions/{sid}").json()["user_id"] == "user-1"

    res = client.patch(f"/sessions/{sid}", json={"user_id": "user-2"})
    assert res.status_code == 200
    assert res.json()["user_id"] == "user-2"

    assert client.delete(f"/sessions/{sid}").status_code == 204
    assert client.get(f"/sessions/{sid}").status_code == 404
    assert client.delete(f"/sessions/{sid}").status_code == 404


def test_create_session_without_body(client):
    res = client.post("/sessions")
    assert res.status_code == 201
    assert res.json()["user_id"] is None


def test_analyze_saves_under_session(client):
    sid = _new_session(client)
    res = client.post(f"/sessions/{sid}/analyses", json={"url": "https://example.edu/research"})
    assert res.status_code == 201
    body = res.json()
    aid = body["analysis_id"]
    assert body["result"]["session_id"] == sid
    assert body["result"]["off_page"]["domain"] == "example.edu"
    assert 0 <= body["result"]["score"] <= 100

    listed = client.get(f"/sessions/{sid}/analyses").json()
    assert [r["id"] for r in listed] == [aid]
    assert client.get(f"/analyses/{aid}").json()["url"] == "https://example.edu/research"

    assert client.delete(f"/analyses/{aid}").status_code == 204
    assert client.get(f"/analyses/{aid}").status_code == 404
    assert client.get(f"/sessions/{sid}").json()["analyses"] == []


def test_analyze_unknown_session(client):
    res = client.post("/sessions/sess_missing/analyses", json={"url": "https://example.com"})
    assert res.status_code == 404


def test_analyze_invalid_url(client):
    sid = _new_session(client)
    res = client.post(f"/sessions/{sid}/analyses", json={"url": "example"})
    assert res.status_code == 422
    assert client.get(f"/sessions/{sid}/analyses").json() == []


def test_degraded_analysis_is_still_saved(client, monkeypatch):
    monkeypatch.setattr(
        main, "engine", OffPageScoringEngine(FailingSignalClient(), FailingFetcher(), rng=PinnedRandom())
    )
    sid = _new_session(client)
    res = client.post(f"/sessions/{sid}/analyses", json={"url": "https://example.com"})
    assert res.status_code == 201
    assert res.json()["result"]["off_page"]["backlinks"]["degraded"] is True


def test_delete_session_cascades_over_http(client):
    sid = _new_session(client)
    aid = client.post(f"/sessions/{sid}/analyses", json={"url": "https://example.com"}).json()["analysis_id"]
    client.delete(f"/sessions/{sid}")
    assert client.get(f"/analyses/{aid}").status_code == 404


def test_stats(client):
    sid = _new_session(client)
    _new_session(client, "user-2")
    client.post(f"/sessions/{sid}/analyses", json={"url": "https://example.com"})
    stats = client.get("/sessions/stats").json()
    assert stats == {
        "total_sessions": 2,
        "active_sessions": 2,
        "total_analyses": 1,
        "avg_analyses_per_session": 0.5,
    }

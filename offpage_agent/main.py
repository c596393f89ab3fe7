from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone, timedelta

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import load_settings
from .engine import OffPageScoringEngine
from .errors import SessionNotFound
from .logger import get_logger
from .models import (
    AnalysisResult,
    AnalyzeRequest,
    CreateSessionRequest,
    SavedAnalysisResponse,
    Session,
    SessionStats,
    UpdateSessionRequest,
)
from .store import SessionStore, SessionSweeper

logger = get_logger(__name__)

settings = load_settings()

store = SessionStore(timeout=timedelta(minutes=settings.session_timeout_min))
sweeper = SessionSweeper(store, interval_s=settings.sweep_interval_s)
engine = OffPageScoringEngine.from_settings(settings)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    sweeper.start()
    try:
        yield
    finally:
        sweeper.stop()


app = FastAPI(title="Off-Page Authority Agent", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _session_or_404(session_id: str) -> Session:
    session = store.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found.")
    return session


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.post("/sessions", response_model=Session, status_code=201)
def create_session(req: CreateSessionRequest | None = None):
    return store.create_session(req.user_id if req else None)


# Declared before /sessions/{session_id} so "stats" is not taken as an id.
@app.get("/sessions/stats", response_model=SessionStats)
def session_stats():
    return store.stats()


@app.get("/sessions/{session_id}", response_model=Session)
def get_session(session_id: str):
    return _session_or_404(session_id)


@app.patch("/sessions/{session_id}", response_model=Session)
def update_session(session_id: str, req: UpdateSessionRequest):
    if not store.update_session(session_id, **req.model_dump(exclude_unset=True)):
        raise HTTPException(status_code=404, detail="Session not found.")
    return _session_or_404(session_id)


@app.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str):
    if not store.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found.")


@app.post("/sessions/{session_id}/analyses", response_model=SavedAnalysisResponse, status_code=201)
def analyze_for_session(session_id: str, req: AnalyzeRequest):
    _session_or_404(session_id)

    off_page = engine.analyze(req.url)
    if off_page.error:
        raise HTTPException(status_code=422, detail=off_page.error)

    result = AnalysisResult(
        url=off_page.url,
        timestamp=datetime.now(timezone.utc),
        score=off_page.score,
        off_page=off_page,
    )
    try:
        analysis_id = store.results.save(session_id, result)
    except SessionNotFound:
        # Swept between the check above and the save.
        raise HTTPException(status_code=404, detail="Session not found.")
    return {"analysis_id": analysis_id, "result": store.results.get(analysis_id)}


@app.get("/sessions/{session_id}/analyses", response_model=list[AnalysisResult])
def list_analyses(session_id: str):
    _session_or_404(session_id)
    return store.results.list_by_session(session_id)


@app.get("/analyses/{analysis_id}", response_model=AnalysisResult)
def get_analysis(analysis_id: str):
    result = store.results.get(analysis_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Analysis not found.")
    return result


@app.delete("/analyses/{analysis_id}", status_code=204)
def delete_analysis(analysis_id: str):
    if not store.results.delete(analysis_id):
        raise HTTPException(status_code=404, detail="Analysis not found.")

"""
In-memory session and analysis-result storage.

Sessions own the analyses saved under them: the session's ``analyses`` list
is authoritative and the result table is a flat lookup kept consistent with
it. Deleting a session (explicitly or through the idle sweep) deletes every
analysis it owns. One re-entrant lock guards both tables, so a sweep can
never remove a session in the middle of a save or read.
"""
from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable

from .errors import SessionCreationFailure, SessionNotFound
from .logger import get_logger
from .models import AnalysisResult, Session, SessionStats

logger = get_logger(__name__)

DEFAULT_SESSION_TIMEOUT = timedelta(minutes=30)
DEFAULT_SWEEP_INTERVAL_S = 5 * 60

_ID_ATTEMPTS = 5

# Fields a caller may not overwrite through update_session.
_PROTECTED_FIELDS = frozenset({"id", "analyses"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class SessionStore:
    def __init__(
        self,
        timeout: timedelta = DEFAULT_SESSION_TIMEOUT,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[str], str] = _new_id,
    ):
        self.timeout = timeout
        self.clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self._sessions: dict[str, Session] = {}
        self.results = AnalysisResultStore(self)

    def _allocate_id(self, prefix: str, taken) -> str:
        for _ in range(_ID_ATTEMPTS):
            candidate = self._id_factory(prefix)
            if candidate not in taken:
                return candidate
        raise SessionCreationFailure(f"could not allocate a unique {prefix} id")

    def create_session(self, user_id: str | None = None) -> Session:
        with self._lock:
            session_id = self._allocate_id("sess", self._sessions)
            now = self.clock()
            session = Session(id=session_id, user_id=user_id, created_at=now, last_activity=now)
            self._sessions[session_id] = session
            logger.info("session_created", session_id=session_id, total_sessions=len(self._sessions))
            return session.model_copy(deep=True)

    def get_session(self, session_id: str) -> Session | None:
        """Return a snapshot of the session; a hit extends its lifetime."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                logger.debug("session_not_found", session_id=session_id)
                return None
            session.last_activity = self.clock()
            return session.model_copy(deep=True)

    def update_session(self, session_id: str, **fields) -> bool:
        protected = _PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise ValueError(f"Cannot update protected session fields: {sorted(protected)}")
        unknown = set(fields) - set(Session.model_fields)
        if unknown:
            raise ValueError(f"Unknown session fields: {sorted(unknown)}")

        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            # Validate the merged record before it replaces the stored one.
            updated = Session.model_validate({**session.model_dump(), **fields, "last_activity": self.clock()})
            self._sessions[session_id] = updated
            return True

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return False
            self.results._discard(session.analyses)
            logger.info("session_deleted", session_id=session_id, analyses_removed=len(session.analyses))
            return True

    def stats(self) -> SessionStats:
        with self._lock:
            now = self.clock()
            total = len(self._sessions)
            active = sum(1 for s in self._sessions.values() if now - s.last_activity < self.timeout)
            analyses = len(self.results)
            avg = round(analyses / total, 2) if total else 0.0
            return SessionStats(
                total_sessions=total,
                active_sessions=active,
                total_analyses=analyses,
                avg_analyses_per_session=avg,
            )

    def sweep(self) -> int:
        """Delete every session idle for longer than the timeout."""
        with self._lock:
            now = self.clock()
            expired = [sid for sid, s in self._sessions.items() if now - s.last_activity > self.timeout]
            for sid in expired:
                self.delete_session(sid)
        if expired:
            logger.info("sessions_swept", count=len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            self.results._clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions


class AnalysisResultStore:
    """Flat id -> AnalysisResult table owned through a SessionStore.

    Shares the session store's lock; obtain it as ``SessionStore().results``.
    """

    def __init__(self, sessions: SessionStore):
        self._sessions = sessions
        self._lock = sessions._lock
        self._results: dict[str, AnalysisResult] = {}

    def save(self, session_id: str, result: AnalysisResult) -> str:
        with self._lock:
            session = self._sessions._sessions.get(session_id)
            if session is None:
                logger.warning("save_session_not_found", session_id=session_id)
                raise SessionNotFound(session_id)

            analysis_id = self._sessions._allocate_id("analysis", self._results)
            stored = result.model_copy(update={"id": analysis_id, "session_id": session_id}, deep=True)
            self._results[analysis_id] = stored
            session.analyses.append(analysis_id)
            session.last_activity = self._sessions.clock()
            logger.info(
                "analysis_saved",
                analysis_id=analysis_id,
                session_id=session_id,
                session_analyses=len(session.analyses),
            )
            return analysis_id

    def get(self, analysis_id: str) -> AnalysisResult | None:
        with self._lock:
            result = self._results.get(analysis_id)
            return result.model_copy(deep=True) if result is not None else None

    def list_by_session(self, session_id: str) -> list[AnalysisResult]:
        with self._lock:
            session = self._sessions._sessions.get(session_id)
            if session is None:
                return []
            return [
                self._results[aid].model_copy(deep=True)
                for aid in session.analyses
                if aid in self._results
            ]

    def delete(self, analysis_id: str) -> bool:
        with self._lock:
            result = self._results.pop(analysis_id, None)
            if result is None:
                return False
            owner = self._sessions._sessions.get(result.session_id or "")
            if owner is not None and analysis_id in owner.analyses:
                owner.analyses.remove(analysis_id)
            return True

    def _discard(self, analysis_ids) -> None:
        for aid in analysis_ids:
            self._results.pop(aid, None)

    def _clear(self) -> None:
        self._results.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


class SessionSweeper:
    """Runs ``SessionStore.sweep`` on a fixed period in a background thread.

    Owned by whoever builds the store: call ``start()`` once and ``stop()`` on
    shutdown. Tests call ``store.sweep()`` directly with a controlled clock.
    """

    def __init__(self, store: SessionStore, interval_s: float = DEFAULT_SWEEP_INTERVAL_S):
        self.store = store
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="session-sweeper", daemon=True)
        self._thread.start()
        logger.info("sweeper_started", interval_s=self.interval_s)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("sweeper_stopped")

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self.store.sweep()
            except Exception:
                logger.exception("sweep_failed")

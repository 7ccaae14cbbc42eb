"""
In-memory chat session store. Keyed by session_id; history is not sent from frontend.

Each session keeps a sliding window of the most recent turns (one user + one
assistant message per turn) and the last retrieved recipe data. Sessions idle
past the timeout are removed by a background sweep thread started with
``start()`` and stopped with ``stop()``.

All reads and writes go through one lock: get-or-create is atomic, appends
never interleave, and the sweep cannot remove a session halfway through an
update. A session evicted between ``get`` and ``append`` turns the append into
a logged no-op.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from chefsue.core.config import (
    MAX_CONVERSATION_LENGTH,
    SESSION_ACTIVE_WINDOW_MINUTES,
    SESSION_SWEEP_INTERVAL_MINUTES,
    SESSION_TIMEOUT_MINUTES,
)
from chefsue.schemas.chat import Message

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    session_id: str
    created_at: datetime
    last_activity: datetime
    history: list[Message] = field(default_factory=list)
    last_results: list[Any] | None = None

    def snapshot(self) -> "Session":
        """Copy handed to callers so they cannot mutate the store."""
        last = list(self.last_results) if self.last_results is not None else None
        return replace(self, history=list(self.history), last_results=last)


class SessionStore:
    """Thread-safe session map with bounded history and idle-time eviction."""

    def __init__(
        self,
        max_turns: int = MAX_CONVERSATION_LENGTH,
        session_timeout: timedelta = timedelta(minutes=SESSION_TIMEOUT_MINUTES),
        sweep_interval: timedelta = timedelta(minutes=SESSION_SWEEP_INTERVAL_MINUTES),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.max_turns = max_turns
        self.session_timeout = session_timeout
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper: threading.Thread | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, session_id: str | None = None) -> Session:
        """Return the session for session_id, creating it (or a fresh one) if unknown."""
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_id) if session_id else None
            if session is not None:
                session.last_activity = now
                return session.snapshot()
            new_id = session_id or str(uuid4())
            session = Session(session_id=new_id, created_at=now, last_activity=now)
            self._sessions[new_id] = session
            out = session.snapshot()
        logger.info("[session_store:get] created session_id=%s", new_id[:16])
        return out

    def append(self, session_id: str, user_text: str, assistant_text: str) -> None:
        """Append one turn and trim history to the last max_turns turns."""
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                logger.warning("[session_store:append] unknown session_id=%s, skipping", (session_id or "")[:16])
                return
            session.history.append(Message(role="user", content=user_text or "", timestamp=now))
            session.history.append(Message(role="assistant", content=assistant_text or "", timestamp=now))
            overflow = len(session.history) - self.max_turns * 2
            if overflow > 0:
                del session.history[:overflow]
            session.last_activity = now
            size = len(session.history)
        logger.info("[session_store:append] session_id=%s history_len=%d", session_id[:16], size)

    def remember_results(self, session_id: str, results: list[Any]) -> None:
        """Store the most recent retrieved data set for the session."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                logger.warning("[session_store:remember_results] unknown session_id=%s", (session_id or "")[:16])
                return
            session.last_results = list(results)

    def evict_expired(self) -> int:
        """Remove sessions idle longer than session_timeout. Returns the number removed."""
        cutoff = self._clock() - self.session_timeout
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.last_activity < cutoff]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info("[session_store:evict_expired] cleaned up %d expired sessions", len(expired))
        return len(expired)

    def stats(self) -> dict[str, int]:
        active_since = self._clock() - timedelta(minutes=SESSION_ACTIVE_WINDOW_MINUTES)
        with self._lock:
            total = len(self._sessions)
            active = sum(1 for s in self._sessions.values() if s.last_activity >= active_since)
        return {"total_sessions": total, "active_sessions": active}

    # --- Background sweep ---

    def start(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="session-sweeper", daemon=True)
        self._sweeper.start()
        logger.info("[session_store:start] sweep every %ss, timeout %ss",
                    int(self.sweep_interval.total_seconds()), int(self.session_timeout.total_seconds()))

    def stop(self) -> None:
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None
        logger.info("[session_store:stop] sweep stopped")

    def _sweep_loop(self) -> None:
        interval = self.sweep_interval.total_seconds()
        while not self._stop_event.wait(interval):
            try:
                self.evict_expired()
            except Exception:
                logger.exception("[session_store:sweep] eviction pass failed")

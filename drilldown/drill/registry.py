"""
In-memory registry of open drill sessions, keyed by a random id.

Sessions are not persisted.  A session leaves the registry when it is
closed, when it has been idle longer than the TTL, or when the registry
is full and it is the least recently used one; evicted sessions are
closed.
"""
from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass

from drilldown.core.config import get_settings
from drilldown.core.logging import get_logger
from drilldown.drill.session import DrillSession

logger = get_logger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when a session id is unknown, closed or expired."""


@dataclass
class _Entry:
    session: DrillSession
    last_used: float


class SessionRegistry:
    """Thread-safe store of open sessions with idle expiry and a size bound.

    Parameters
    ----------
    ttl : float, optional
        Idle seconds after which a session expires; defaults to
        ``settings.session_idle_ttl_seconds``.
    max_size : int, optional
        Maximum number of open sessions; defaults to
        ``settings.session_max_open``.
    """

    def __init__(self, ttl: float | None = None, max_size: int | None = None):
        settings = get_settings()
        self._ttl = ttl if ttl is not None else settings.session_idle_ttl_seconds
        self._max_size = max_size if max_size is not None else settings.session_max_open
        self._sessions: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def add(self, session: DrillSession) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            evicted = self._pop_expired()
            while self._sessions and len(self._sessions) >= self._max_size:
                oldest = min(self._sessions, key=lambda k: self._sessions[k].last_used)
                evicted.append(self._sessions.pop(oldest).session)
            self._sessions[session_id] = _Entry(session=session, last_used=time.time())
            size = len(self._sessions)
        self._close_all(evicted)
        logger.debug("Session registered id=%s open=%d evicted=%d", session_id, size, len(evicted))
        return session_id

    def get(self, session_id: str) -> DrillSession:
        expired = None
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is not None and self._is_expired(entry):
                expired = self._sessions.pop(session_id).session
                entry = None
            elif entry is not None:
                entry.last_used = time.time()
        if expired is not None:
            self._close_all([expired])
        if entry is None:
            raise SessionNotFoundError(session_id)
        return entry.session

    def close(self, session_id: str) -> None:
        with self._lock:
            entry = self._sessions.pop(session_id, None)
        if entry is None:
            raise SessionNotFoundError(session_id)
        entry.session.close()

    def cleanup_expired(self) -> int:
        """Close and remove every idle-expired session. Returns count removed."""
        with self._lock:
            expired = self._pop_expired()
        self._close_all(expired)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ── Internals ───────────────────────────────────────

    def _is_expired(self, entry: _Entry) -> bool:
        return (time.time() - entry.last_used) > self._ttl

    def _pop_expired(self) -> list[DrillSession]:
        expired = [k for k, v in self._sessions.items() if self._is_expired(v)]
        return [self._sessions.pop(k).session for k in expired]

    @staticmethod
    def _close_all(sessions: list[DrillSession]) -> None:
        for session in sessions:
            session.close()
        if sessions:
            logger.info("Evicted %d drill session(s)", len(sessions))

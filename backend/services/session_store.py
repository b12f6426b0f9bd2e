"""
Session Store - In-memory, thread-safe conversation sessions.

Sessions live in a dict guarded by an index lock. Mutations of one session
are serialized by a striped lock chosen from the session id, so requests for
different sessions only contend when their ids hash to the same stripe.

Lock order is always stripe -> index. No lock is held while callers await
provider calls; every method is a short synchronous critical section.

Usage:
    from services.session_store import SessionStore

    store = SessionStore(ttl_seconds=3600)
    session = store.create()
    store.append_message(session.session_id, Message.user("hello"))
    removed = store.sweep_expired()
"""

import logging
import threading
import zlib
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from logging_config import log_session
from routers.chat_orchestration.session import (
    DEFAULT_MODE,
    ChatSession,
    ConversationMode,
    Message,
    isoformat,
    utcnow,
)

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Concurrent-safe keyed store of ChatSession objects.

    Not-found is always reported as None/False, never raised.
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        lock_stripes: int = 16,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the store.

        Args:
            ttl_seconds: Staleness threshold used by sweep_expired() and stats()
            lock_stripes: Number of per-session lock stripes
            clock: Returns the current UTC time (injectable for tests)
        """
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._sessions: Dict[str, ChatSession] = {}
        self._index_lock = threading.Lock()
        self._stripes = [threading.Lock() for _ in range(max(1, lock_stripes))]

    def _stripe(self, session_id: str) -> threading.Lock:
        return self._stripes[zlib.crc32(session_id.encode("utf-8")) % len(self._stripes)]

    def _lookup(self, session_id: str) -> Optional[ChatSession]:
        with self._index_lock:
            return self._sessions.get(session_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, initial_mode: ConversationMode = DEFAULT_MODE) -> ChatSession:
        """Allocate a new session with an empty transcript."""
        now = self._clock()
        session = ChatSession(current_mode=initial_mode, created_at=now, updated_at=now)
        with self._index_lock:
            self._sessions[session.session_id] = session
        log_session(logger, "created", session.session_id, mode=initial_mode.value)
        return session.snapshot()

    def get(self, session_id: Optional[str]) -> Optional[ChatSession]:
        """Snapshot of a session, or None."""
        if not session_id:
            return None
        with self._stripe(session_id):
            session = self._lookup(session_id)
            return session.snapshot() if session else None

    def exists(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        return self._lookup(session_id) is not None

    def delete(self, session_id: str) -> bool:
        with self._stripe(session_id):
            with self._index_lock:
                removed = self._sessions.pop(session_id, None)
        if removed:
            log_session(logger, "deleted", session_id)
        return removed is not None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append_message(self, session_id: str, message: Message) -> Optional[ChatSession]:
        """Append to the end of the transcript. None when the id is unknown."""
        with self._stripe(session_id):
            session = self._lookup(session_id)
            if session is None:
                return None
            session.messages.append(message)
            session.updated_at = self._clock()
            return session.snapshot()

    def update_mode(self, session_id: str, mode: ConversationMode) -> Optional[ChatSession]:
        with self._stripe(session_id):
            session = self._lookup(session_id)
            if session is None:
                return None
            session.current_mode = mode
            session.updated_at = self._clock()
            return session.snapshot()

    def clear_messages(self, session_id: str) -> bool:
        """Drop the transcript, keeping id and mode."""
        with self._stripe(session_id):
            session = self._lookup(session_id)
            if session is None:
                return False
            session.messages = []
            session.updated_at = self._clock()
        log_session(logger, "cleared", session_id)
        return True

    def get_history(self, session_id: str) -> List[Message]:
        session = self.get(session_id)
        return session.messages if session else []

    # ------------------------------------------------------------------
    # Expiry and reporting
    # ------------------------------------------------------------------

    def sweep_expired(self, threshold: Optional[timedelta] = None) -> int:
        """Remove sessions whose updated_at precedes now - threshold.

        Candidates are re-checked under their stripe lock, so a session
        refreshed after the scan survives.
        """
        threshold = self.ttl if threshold is None else threshold
        cutoff = self._clock() - threshold

        with self._index_lock:
            candidates = [sid for sid, s in self._sessions.items() if s.is_stale(cutoff)]

        removed = 0
        for session_id in candidates:
            with self._stripe(session_id):
                with self._index_lock:
                    session = self._sessions.get(session_id)
                    if session is not None and session.is_stale(cutoff):
                        del self._sessions[session_id]
                        removed += 1

        if removed:
            logger.info(f"Session sweep removed {removed} expired session(s)")
        return removed

    def stats(self) -> Dict[str, object]:
        """Counts over all sessions; active means updated within the TTL."""
        now = self._clock()
        cutoff = now - self.ttl
        with self._index_lock:
            sessions = list(self._sessions.values())
        return {
            "totalSessions": len(sessions),
            "activeSessions": sum(1 for s in sessions if not s.is_stale(cutoff)),
            "totalMessages": sum(len(s.messages) for s in sessions),
            "timestamp": isoformat(now),
        }

    def export(self, session_id: str) -> Optional[dict]:
        session = self.get(session_id)
        return session.export() if session else None

    def __len__(self) -> int:
        with self._index_lock:
            return len(self._sessions)

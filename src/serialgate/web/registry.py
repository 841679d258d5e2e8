"""
Registry of connected client sessions.

Shared by all Socket.IO handlers. Insert on connect, remove on disconnect,
iterate on broadcast; all three are serialized by one re-entrant lock so a
removed session is never visited by a later fan-out.
"""

import threading
from typing import Callable, Optional

from serialgate.serial.session import PortSession


class SessionRegistry:
    """Process-wide set of active port sessions keyed by session id."""

    def __init__(self):
        self._sessions: dict[str, PortSession] = {}
        self._lock = threading.RLock()

    def register(self, session: PortSession) -> None:
        """Add a session. Raises ValueError if the sid is already registered."""
        with self._lock:
            if session.sid in self._sessions:
                raise ValueError(f"Session '{session.sid}' already registered")
            self._sessions[session.sid] = session

    def unregister(self, sid: str) -> Optional[PortSession]:
        """Remove and return a session, or None if unknown."""
        with self._lock:
            return self._sessions.pop(sid, None)

    def get(self, sid: str) -> Optional[PortSession]:
        with self._lock:
            return self._sessions.get(sid)

    def sids(self) -> list[str]:
        """Snapshot of registered session ids."""
        with self._lock:
            return list(self._sessions)

    def for_each(
        self, fn: Callable[[PortSession], None], exclude: Optional[str] = None
    ) -> None:
        """Call fn for every registered session except exclude."""
        with self._lock:
            for session in list(self._sessions.values()):
                if session.sid != exclude:
                    fn(session)

    def __contains__(self, sid: object) -> bool:
        with self._lock:
            return sid in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

import logging
import time
from typing import Callable, Dict, List

from courtroom.engine.state import CourtSession
from courtroom.errors import SessionNotFoundError

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Live sessions of this process, keyed by session id.

    Every lookup counts as activity. ``sweep`` drops sessions nobody touched
    for ``max_idle_seconds``; their progress row stays in storage as it was.
    """

    def __init__(self, max_idle_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.max_idle_seconds = max_idle_seconds
        self.clock = clock
        self._sessions: Dict[str, CourtSession] = {}
        self._last_seen: Dict[str, float] = {}

    def add(self, session: CourtSession) -> CourtSession:
        self._sessions[session.session_id] = session
        self._last_seen[session.session_id] = self.clock()
        return session

    def get(self, session_id: str, user_id: str) -> CourtSession:
        session = self._sessions.get(session_id)
        # another student's session looks the same as a missing one
        if session is None or session.user_id != user_id:
            raise SessionNotFoundError("Session not found")
        self._last_seen[session_id] = self.clock()
        return session

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)

    def for_user(self, user_id: str) -> List[CourtSession]:
        return [s for s in self._sessions.values() if s.user_id == user_id]

    def sweep(self) -> int:
        """Forget sessions idle for too long. Returns how many were dropped."""
        cutoff = self.clock() - self.max_idle_seconds
        stale = [sid for sid, seen in self._last_seen.items() if seen < cutoff]
        for session_id in stale:
            session = self._sessions[session_id]
            logger.info(f"session_evicted | session={session_id} user={session.user_id} phase={session.phase.value}")
            self.discard(session_id)
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)

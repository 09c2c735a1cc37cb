from __future__ import annotations
import logging
import uuid
from typing import Callable, Dict, List

from .errors import NotFound
from .rwlock import ReadWriteLock
from .session import Session

logger = logging.getLogger("interviewer.registry")


class SessionRegistry:
    """
    Process-wide map of session id -> Session, built once by the composition root
    and handed to whoever needs it.

    The lock guards the map only. Session contents are guarded by Session.lock.
    """

    def __init__(self, id_factory: Callable[[], str] = lambda: str(uuid.uuid4())):
        self._sessions: Dict[str, Session] = {}
        self._lock = ReadWriteLock()
        self._new_id = id_factory

    def create(self, session: Session) -> str:
        with self._lock.write_locked():
            while True:
                session_id = self._new_id()
                if session_id not in self._sessions:
                    break
                logger.warning("session id collision on %s; drawing a new one", session_id)
            # Fully initialise before the id becomes resolvable
            session.bind(session_id)
            self._sessions[session_id] = session
        return session_id

    def get(self, session_id: str) -> Session:
        with self._lock.read_locked():
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFound(f"Session '{session_id}' not found")
        return session

    def remove(self, session_id: str) -> Session:
        with self._lock.write_locked():
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise NotFound(f"Session '{session_id}' not found")
        return session

    def ids(self) -> List[str]:
        with self._lock.read_locked():
            return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock.read_locked():
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._sessions)

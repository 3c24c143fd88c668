"""
In-memory store of active call sessions.

Sessions live only as long as the process. Each session id owns one
``asyncio.Lock`` which the dialog manager holds for a whole turn, so turns
for one call never interleave while different calls proceed in parallel.
"""

import asyncio
import logging
from typing import Callable, Optional, TypeVar

from skywings.schemas.session_schema import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionNotFoundError(Exception):
    """No active session exists for the given id; the caller must start a new call."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"No active session '{session_id}'")


class SessionStore:
    """Session registry keyed by caller-supplied session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def create(self, session_id: str, fresh: bool = True) -> Session:
        """Create a session, or reset an existing one when ``fresh`` is set."""
        existing = self._sessions.get(session_id)
        if existing is not None and not fresh:
            return existing
        session = Session(session_id=session_id)
        self._sessions[session_id] = session
        self._locks.setdefault(session_id, asyncio.Lock())
        logger.info("Session %s %s", session_id, "reset" if existing else "created")
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def mutate(self, session_id: str, fn: Callable[[Session], T]) -> T:
        """Apply ``fn`` to the session and return its result."""
        return fn(self.require(session_id))

    def lock(self, session_id: str) -> asyncio.Lock:
        if session_id not in self._sessions:
            raise SessionNotFoundError(session_id)
        return self._locks.setdefault(session_id, asyncio.Lock())

    def evict(self, session_id: str) -> bool:
        """Forget a session. Returns False if it was not present."""
        removed = self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)
        if removed is not None:
            logger.info("Session %s evicted after %d turns", session_id, removed.turn_count)
        return removed is not None

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

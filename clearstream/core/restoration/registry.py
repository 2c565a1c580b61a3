"""
In-memory registry of live restoration sessions.

Sessions exist only for the lifetime of the process. Nothing about
past jobs is persisted.
"""

import logging
from typing import Callable, Iterator
from uuid import UUID

from .session import RestorationSession

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when a session id is unknown."""
    pass


class SessionRegistry:
    """Holds sessions by id and tears them down on removal."""

    def __init__(self, factory: Callable[[], RestorationSession]) -> None:
        self._factory = factory
        self._sessions: dict[UUID, RestorationSession] = {}

    def create(self) -> RestorationSession:
        session = self._factory()
        self._sessions[session.session_id] = session
        logger.info("Session created", extra={"session_id": str(session.session_id)})
        return session

    def get(self, session_id: UUID) -> RestorationSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id)

    def remove(self, session_id: UUID) -> None:
        session = self.get(session_id)
        session.close()
        del self._sessions[session_id]
        logger.info("Session removed", extra={"session_id": str(session_id)})

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.remove(session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[RestorationSession]:
        return iter(list(self._sessions.values()))

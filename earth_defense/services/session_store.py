# earth_defense/services/session_store.py
"""In-memory store of active level sessions."""

import logging
import uuid
from typing import Dict

from earth_defense.models.entities import LevelDefinition, LevelSession, LevelState
from earth_defense.models.errors import SessionNotFoundError

logger = logging.getLogger(__name__)


class SessionStore:
    """Level sessions keyed by an opaque id. Lost when the process exits."""

    def __init__(self):
        self._sessions: Dict[str, LevelSession] = {}

    def create(self, level: LevelDefinition, state: LevelState, started_at: float) -> LevelSession:
        session_id = f"level-{level.id}-{uuid.uuid4().hex}"
        session = LevelSession(
            sessionId=session_id,
            levelId=level.id,
            level=level,
            state=state,
            startedAt=started_at,
        )
        self._sessions[session_id] = session
        logger.info("Session %s created (%d active)", session_id, len(self._sessions))
        return session

    def get(self, session_id: str) -> LevelSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def remove(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.info("Session %s removed (%d active)", session_id, len(self._sessions))

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

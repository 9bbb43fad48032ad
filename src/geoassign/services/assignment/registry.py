"""In-memory store of open order-edit sessions."""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict

from ...config import settings
from .orchestrator import AssignmentSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Bounded registry; the least recently used session is evicted first."""

    def __init__(self, max_sessions: int | None = None) -> None:
        self.max_sessions = max_sessions or settings.max_sessions
        self._sessions: OrderedDict[str, AssignmentSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: AssignmentSession) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info(f"Evicted assignment session {evicted}")
        return session_id

    def get(self, session_id: str) -> AssignmentSession:
        session = self._sessions[session_id]
        self._sessions.move_to_end(session_id)
        return session

    def drop(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

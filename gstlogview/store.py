"""Thread-safe registry of upload sessions and their lifecycle."""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence

from gstlogview.errors import InternalFault, SessionNotFound
from gstlogview.models import Record

logger = logging.getLogger(__name__)


class SessionState(Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self is not SessionState.PENDING


@dataclass(frozen=True)
class Ready:
    records: Sequence[Record]


@dataclass(frozen=True)
class Failed:
    error: str


@dataclass(frozen=True)
class Session:
    """Immutable snapshot of one session. Transitions replace the snapshot."""

    id: str
    state: SessionState = SessionState.PENDING
    records: tuple[Record, ...] = ()
    error: str | None = None
    created_at: float = 0.0
    completed_at: float | None = None


class SessionStore:
    """Owns every Session. Callers re-resolve by id on each operation."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._cond = threading.Condition()

    def create(self) -> str:
        """Register a new Pending session and return its id."""
        session_id = str(uuid.uuid4())
        with self._cond:
            self._sessions[session_id] = Session(id=session_id, created_at=time.time())
        logger.debug("Created session %s", session_id)
        return session_id

    def get(self, session_id: str) -> Session:
        """Return the current snapshot. Raises SessionNotFound for unknown ids."""
        with self._cond:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session not found: {session_id}")
        return session

    def transition(self, session_id: str, outcome: Ready | Failed) -> Session:
        """Move a Pending session to its terminal state. Allowed exactly once."""
        with self._cond:
            current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFound(f"Session not found: {session_id}")
            if current.state.terminal:
                raise InternalFault(
                    f"Session {session_id} already {current.state.value}; "
                    "refusing a second transition"
                )

            if isinstance(outcome, Ready):
                updated = replace(
                    current,
                    state=SessionState.READY,
                    records=tuple(outcome.records),
                    completed_at=time.time(),
                )
            elif isinstance(outcome, Failed):
                updated = replace(
                    current,
                    state=SessionState.FAILED,
                    error=outcome.error,
                    completed_at=time.time(),
                )
            else:
                raise InternalFault(f"Unsupported session outcome: {outcome!r}")

            self._sessions[session_id] = updated
            self._cond.notify_all()

        logger.info("Session %s -> %s", session_id, updated.state.value)
        return updated

    def mark_ready(self, session_id: str, records: Sequence[Record]) -> Session:
        return self.transition(session_id, Ready(records))

    def mark_failed(self, session_id: str, error: str) -> Session:
        return self.transition(session_id, Failed(error))

    def wait(self, session_id: str, timeout: float | None = None) -> Session:
        """Block until the session is terminal or timeout expires; return the latest snapshot.

        For callers that embed the store in-process (and for tests). HTTP
        clients poll instead, see LogViewClient.wait_for_options.
        """
        with self._cond:
            if session_id not in self._sessions:
                raise SessionNotFound(f"Session not found: {session_id}")
            self._cond.wait_for(
                lambda: self._sessions[session_id].state.terminal, timeout=timeout
            )
            return self._sessions[session_id]

    def __len__(self) -> int:
        with self._cond:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._cond:
            return session_id in self._sessions

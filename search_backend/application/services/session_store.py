"""Process-local conversation session store with idle expiry.

Sessions live in a plain dict owned by one event loop; every mutation
happens between awaits, so no lock is needed. Each process has its own
store, which is only correct for single-instance or sticky-session
deployments.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from search_backend.domain.entities import ConversationSession, ConversationTurn
from search_backend.domain.exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory sessions, FIFO-capped turn lists, periodic idle sweep."""

    def __init__(
        self,
        *,
        ttl_seconds: float = 1800,
        max_turns: int = 10,
        sweep_interval_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._ttl = ttl_seconds
        self._max_turns = max_turns
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def max_turns(self) -> int:
        return self._max_turns

    def create(self, context: dict[str, Any] | None = None) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = ConversationSession(
            id=session_id,
            created_at=datetime.now(timezone.utc),
            last_active_at=self._clock(),
            context=dict(context or {}),
        )
        logger.debug("Created session %s", session_id)
        return session_id

    def get(self, session_id: str) -> ConversationSession:
        """Return a live session.

        Raises:
            EntityNotFoundError: If the id is unknown or the session expired.
        """
        session = self._sessions.get(session_id)
        if session is None or self._is_expired(session):
            self._sessions.pop(session_id, None)
            raise EntityNotFoundError("Session", session_id)
        return session

    def append_turn(self, session_id: str, turn: ConversationTurn) -> None:
        session = self.get(session_id)
        session.turns.append(turn)
        overflow = len(session.turns) - self._max_turns
        if overflow > 0:
            del session.turns[:overflow]
        session.last_active_at = self._clock()

    def get_history(self, session_id: str) -> list[ConversationTurn]:
        """Turns oldest first; reading a session counts as activity."""
        session = self.get(session_id)
        session.last_active_at = self._clock()
        return list(session.turns)

    def sweep_expired(self) -> int:
        """Drop every session idle for longer than the TTL. Returns the count."""
        expired = [sid for sid, s in self._sessions.items() if self._is_expired(s)]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Session sweep removed %d expired session(s)", len(expired))
        return len(expired)

    def _is_expired(self, session: ConversationSession) -> bool:
        return self._clock() - session.last_active_at > self._ttl

    # ── Background sweep ───────────────────────────────────────────

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Session sweeper started (interval=%ss, ttl=%ss)", self._sweep_interval, self._ttl)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep_expired()
            except Exception:
                logger.exception("Session sweep failed")

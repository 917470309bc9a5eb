"""
In-memory chat sessions keyed by the sender's phone number.

Each key has its own asyncio.Lock so two messages from the same user are
handled one after the other; different users never wait on each other.
A lock lives only while a message for its key holds or waits on it.
Sessions idle longer than the TTL are dropped on their next access or by
the periodic purge started with the application.
"""

import asyncio
import logging
import time
import weakref
from typing import Callable, Optional

from canteen.services.chat.flow import State

logger = logging.getLogger(__name__)


class SessionStore:

    def __init__(
        self,
        ttl_minutes: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_minutes * 60 if ttl_minutes else None
        self._clock = clock
        self._sessions: dict[str, tuple[State, float]] = {}
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _expired(self, touched_at: float) -> bool:
        return self.ttl_seconds is not None and self._clock() - touched_at > self.ttl_seconds

    def get(self, key: str) -> Optional[State]:
        entry = self._sessions.get(key)
        if entry is None:
            return None
        state, touched_at = entry
        if self._expired(touched_at):
            logger.info(f"Chat session for {key} expired at stage {state.stage}")
            del self._sessions[key]
            return None
        return state

    def set(self, key: str, state: State) -> None:
        self._sessions[key] = (state, self._clock())

    def delete(self, key: str) -> None:
        self._sessions.pop(key, None)

    def purge_expired(self) -> int:
        """Drop every idle session; returns how many were removed."""
        stale = [key for key, (_, touched_at) in self._sessions.items() if self._expired(touched_at)]
        for key in stale:
            del self._sessions[key]
        return len(stale)

    async def purge_forever(self, interval_seconds: float) -> None:
        """Background loop; cancel the task to stop it."""
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.purge_expired()
            if removed:
                logger.info(f"🧹 Purged {removed} idle chat session(s)")

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

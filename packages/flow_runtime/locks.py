"""Per-session critical sections.

Every mutation of a session (an inbound turn, a termination or an expiry
sweep) runs while holding that session's lock, so a retried USSD request and
the sweeper can never interleave on the same session.
"""

import asyncio
from contextlib import asynccontextmanager
from threading import Lock
from typing import AsyncIterator, Dict


class SessionLocks:
    """Registry of asyncio locks keyed by session id."""

    def __init__(self) -> None:
        """Initialize the lock registry."""
        self._locks: Dict[str, asyncio.Lock] = {}
        # holders and waiters per key
        self._users: Dict[str, int] = {}
        self._guard = Lock()

    def _checkout(self, session_id: str) -> asyncio.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[session_id] = lock
            self._users[session_id] = self._users.get(session_id, 0) + 1
            return lock

    def _checkin(self, session_id: str) -> None:
        with self._guard:
            remaining = self._users.get(session_id, 1) - 1
            if remaining > 0:
                self._users[session_id] = remaining
            else:
                self._users.pop(session_id, None)

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        """Hold the exclusive section for ``session_id``.

        Args:
            session_id: Session to lock

        Yields:
            None while the lock is held
        """
        lock = self._checkout(session_id)
        try:
            async with lock:
                yield
        finally:
            self._checkin(session_id)

    def is_locked(self, session_id: str) -> bool:
        """Check whether a session's section is currently held."""
        with self._guard:
            lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    def discard(self, session_id: str) -> None:
        """Forget the lock of a session that no longer accepts mutation.

        Locks that are held or waited on are kept so waiters still serialise.
        """
        with self._guard:
            if session_id in self._locks and not self._users.get(session_id):
                del self._locks[session_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

"""In-memory session store for the USSD flow engine.

This module provides an in-memory implementation of session storage.
For production use, this can be replaced with Redis or another persistent store.
"""

from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional

from .state import Session, SessionStatus, utcnow


class SessionStore:
    """In-memory store for sessions.

    The session map is guarded by a lock; mutation of a single session is
    serialised separately by :class:`~flow_runtime.locks.SessionLocks`.
    """

    def __init__(self) -> None:
        """Initialize the session store."""
        self._sessions: Dict[str, Session] = {}
        self._lock = Lock()

    def create(self, session: Session) -> Session:
        """Store a new session.

        Args:
            session: Session to store

        Returns:
            The stored Session

        Raises:
            ValueError: If a session with this session_id already exists
        """
        with self._lock:
            if session.session_id in self._sessions:
                raise ValueError(f"Session with session_id {session.session_id} already exists")

            self._sessions[session.session_id] = session
            return session

    def get(self, session_id: str) -> Optional[Session]:
        """Retrieve a session by ID.

        Args:
            session_id: Session ID to look up

        Returns:
            Session if found, None otherwise
        """
        with self._lock:
            return self._sessions.get(session_id)

    def update(self, session: Session) -> Session:
        """Replace a stored session.

        Args:
            session: Session to update

        Returns:
            The updated Session

        Raises:
            ValueError: If the session doesn't exist
        """
        with self._lock:
            if session.session_id not in self._sessions:
                raise ValueError(f"Session with session_id {session.session_id} not found")

            self._sessions[session.session_id] = session
            return session

    def list(
        self,
        status: Optional[SessionStatus] = None,
        flow_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Session]:
        """List sessions with optional filtering.

        Args:
            status: Optional status filter
            flow_id: Optional flow filter
            limit: Optional limit on number of results

        Returns:
            Sessions matching the criteria, most recently active first
        """
        with self._lock:
            sessions = list(self._sessions.values())

        if status is not None:
            sessions = [s for s in sessions if s.status == status]

        if flow_id is not None:
            sessions = [s for s in sessions if s.flow_id == flow_id]

        sessions.sort(key=lambda s: s.last_activity_at, reverse=True)

        if limit is not None:
            sessions = sessions[:limit]

        return sessions

    def get_active_sessions(self) -> List[str]:
        """Get list of active session IDs.

        Returns:
            List of session IDs with ACTIVE status
        """
        with self._lock:
            return [
                session_id
                for session_id, session in self._sessions.items()
                if session.status == SessionStatus.ACTIVE
            ]

    def find_active(
        self,
        flow_id: str,
        phone_number: str,
        ussd_code: str,
        now: Optional[datetime] = None,
    ) -> Optional[Session]:
        """Find the unexpired active session for a phone on a USSD code.

        Args:
            flow_id: Flow the session runs
            phone_number: Caller's phone number
            ussd_code: Dialled USSD code
            now: Reference time for the expiry check

        Returns:
            The matching Session, or None
        """
        now = now or utcnow()
        with self._lock:
            for session in self._sessions.values():
                if (
                    session.status == SessionStatus.ACTIVE
                    and session.flow_id == flow_id
                    and session.phone_number == phone_number
                    and session.ussd_code == ussd_code
                    and not session.is_past_expiry(now)
                ):
                    return session
            return None

    def find_expired(self, now: Optional[datetime] = None) -> List[str]:
        """Get IDs of active sessions whose inactivity window has elapsed.

        Args:
            now: Reference time (defaults to the current time)

        Returns:
            List of session IDs due for expiry
        """
        now = now or utcnow()
        with self._lock:
            return [
                session_id
                for session_id, session in self._sessions.items()
                if session.status == SessionStatus.ACTIVE and session.is_past_expiry(now)
            ]

    def remove_finished(self, retention_seconds: int, now: Optional[datetime] = None) -> List[str]:
        """Drop finished sessions whose last activity is older than the retention window.

        Active sessions are never removed; they leave the active state through
        the engine first.

        Args:
            retention_seconds: How long a finished session is kept
            now: Reference time (defaults to the current time)

        Returns:
            IDs of the removed sessions
        """
        now = now or utcnow()
        with self._lock:
            removed = [
                session_id
                for session_id, session in self._sessions.items()
                if session.status != SessionStatus.ACTIVE
                and (now - session.last_activity_at).total_seconds() > retention_seconds
            ]

            for session_id in removed:
                del self._sessions[session_id]

            return removed

"""Session models for the USSD flow engine runtime.

This module defines the per-phone session state that the engine mutates on
every turn: lifecycle status, current node, captured variables and the
append-only input history.
"""

import secrets
import string
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

SESSION_ID_ALPHABET = string.ascii_letters + string.digits


def generate_session_id() -> str:
    """Generate an opaque session id of the form ``sess_<16 chars>``."""
    return "sess_" + "".join(secrets.choice(SESSION_ID_ALPHABET) for _ in range(16))


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    """Lifecycle status of a session. Everything but ACTIVE is terminal."""

    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"
    EXPIRED = "expired"


class InputRecord(BaseModel):
    """A single raw input received from the phone."""

    input: str = Field(..., description="Raw text the user sent")
    step_index: int = Field(..., description="Step number this input was received at")
    timestamp: datetime = Field(default_factory=utcnow, description="When it was received")


class Session(BaseModel):
    """State of one live walk through a flow by a single phone number."""

    session_id: str = Field(default_factory=generate_session_id, description="Opaque session id")
    flow_id: str = Field(..., description="Flow this session runs")
    flow_version: int = Field(default=1, description="Flow version pinned at creation")
    phone_number: str = Field(..., description="Caller's phone number")
    ussd_code: str = Field(..., description="Dialled USSD code, e.g. *123#")
    status: SessionStatus = Field(default=SessionStatus.ACTIVE)
    current_node_id: Optional[str] = Field(default=None, description="Node awaiting input")

    variables: Dict[str, str] = Field(default_factory=dict, description="Captured values")
    input_history: List[InputRecord] = Field(default_factory=list)
    step_count: int = Field(default=0, ge=0)

    started_at: datetime = Field(default_factory=utcnow)
    last_activity_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime = Field(default_factory=lambda: utcnow() + timedelta(minutes=30))
    completed_at: Optional[datetime] = None

    termination_reason: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def is_active(self) -> bool:
        """Check if the session still accepts input."""
        return self.status == SessionStatus.ACTIVE

    def is_past_expiry(self, now: Optional[datetime] = None) -> bool:
        """Check whether the inactivity window has elapsed.

        Args:
            now: Reference time (defaults to the current time)

        Returns:
            True if ``expires_at`` is before ``now``
        """
        return self.expires_at < (now or utcnow())

    def record_input(self, raw_input: str, timeout_seconds: int) -> InputRecord:
        """Append an input to the history and renew the inactivity window.

        Args:
            raw_input: Raw text received
            timeout_seconds: Length of the renewed inactivity window

        Returns:
            The created InputRecord
        """
        now = utcnow()
        self.step_count += 1
        record = InputRecord(input=raw_input, step_index=self.step_count, timestamp=now)
        self.input_history.append(record)
        self.last_activity_at = now
        self.expires_at = now + timedelta(seconds=timeout_seconds)
        return record

    def get_duration_seconds(self, until: Optional[datetime] = None) -> float:
        """Get the session duration in seconds.

        Args:
            until: End of the measured interval; defaults to ``completed_at`` or now

        Returns:
            Duration in seconds
        """
        end_time = until or self.completed_at or utcnow()
        return (end_time - self.started_at).total_seconds()

"""USSD Flow Engine - Runtime Package."""

from .locks import SessionLocks
from .registry import FlowRegistry, FlowUsage
from .state import InputRecord, Session, SessionStatus, generate_session_id, utcnow
from .store import SessionStore

__version__ = "0.1.0"

__all__ = [
    "FlowRegistry",
    "FlowUsage",
    "InputRecord",
    "Session",
    "SessionLocks",
    "SessionStatus",
    "SessionStore",
    "generate_session_id",
    "utcnow",
]

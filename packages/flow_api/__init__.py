"""USSD Flow Engine - API Package."""

from .app import AppState, create_app, get_app_state
from .flow_routes import flow_router
from .models import (
    ErrorResponse,
    FlowSummary,
    InputRequest,
    NavigationResponse,
    SessionResponse,
    StartSessionRequest,
    StartSessionResponse,
    TerminateRequest,
    ValidationResponse,
)
from .routes import router

__version__ = "0.1.0"

__all__ = [
    "AppState",
    "ErrorResponse",
    "FlowSummary",
    "InputRequest",
    "NavigationResponse",
    "SessionResponse",
    "StartSessionRequest",
    "StartSessionResponse",
    "TerminateRequest",
    "ValidationResponse",
    "create_app",
    "flow_router",
    "get_app_state",
    "router",
]

"""Pydantic models for API request/response schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class StartSessionRequest(BaseModel):
    """Request model for starting a session."""

    flow_id: str = Field(..., description="Published flow to run")
    phone_number: str = Field(..., description="Caller's phone number")
    ussd_code: str = Field(..., description="Dialled USSD code, e.g. *123#")


class StartSessionResponse(BaseModel):
    """Response model for starting a session."""

    session_id: str = Field(..., description="The new (or resumed) session ID")
    prompt: str = Field(..., description="First screen to show")
    status: str = Field(..., description="Current session status")
    node_id: Optional[str] = Field(None, description="Node the session is at")


class InputRequest(BaseModel):
    """Request model for sending one input."""

    input: str = Field(..., description="Raw text the user sent")


class NavigationResponse(BaseModel):
    """Response model for one turn."""

    session_id: str = Field(..., description="The session ID")
    prompt: str = Field(..., description="Next screen to show")
    terminated: bool = Field(..., description="Whether the session is finished")
    error: Optional[str] = Field(None, description="Why the input was rejected, if it was")
    status: str = Field(..., description="Current session status")
    node_id: Optional[str] = Field(None, description="Node the session is at")


class TerminateRequest(BaseModel):
    """Request model for terminating a session."""

    reason: str = Field(default="user_terminated", description="Why the session is ended")


class SessionResponse(BaseModel):
    """Response model for a session snapshot."""

    session_id: str
    flow_id: str
    flow_version: int
    phone_number: str
    ussd_code: str
    status: str
    current_node_id: Optional[str]
    variables: dict[str, str] = Field(default_factory=dict)
    step_count: int
    input_history: list[dict[str, Any]] = Field(default_factory=list)
    started_at: datetime
    last_activity_at: datetime
    expires_at: datetime
    completed_at: Optional[datetime] = None
    termination_reason: Optional[str] = None


class ValidationResponse(BaseModel):
    """Response model for flow validation."""

    flow_id: Optional[str] = None
    valid: bool
    errors: list[dict[str, Any]] = Field(default_factory=list)
    warnings: list[dict[str, Any]] = Field(default_factory=list)
    suggestions: list[dict[str, Any]] = Field(default_factory=list)
    stats: dict[str, Any] = Field(default_factory=dict)


class FlowSummary(BaseModel):
    """Response model for a published flow."""

    id: str
    name: Optional[str] = None
    version: int
    start_node_id: str
    node_count: int
    usage_count: int = 0


class ErrorResponse(BaseModel):
    """Response model for errors."""

    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")

"""API routes for USSD session management."""

import time
from typing import Any, Optional

from fastapi import APIRouter, HTTPException  # type: ignore[import-not-found]

from flow_core import (
    FlowNotFoundError,
    InvalidStateError,
    NodeNotFoundError,
    SessionEngine,
    SessionNotFoundError,
)
from flow_core.metrics import HTTP_LATENCY, HTTP_REQUESTS
from flow_runtime import Session

from .app import get_app_state
from .models import (
    ErrorResponse,
    InputRequest,
    NavigationResponse,
    SessionResponse,
    StartSessionRequest,
    StartSessionResponse,
    TerminateRequest,
)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _require_engine() -> SessionEngine:
    engine = get_app_state().engine
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized.")
    return engine


def _session_response(session: Session) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        flow_id=session.flow_id,
        flow_version=session.flow_version,
        phone_number=session.phone_number,
        ussd_code=session.ussd_code,
        status=session.status.value,
        current_node_id=session.current_node_id,
        variables=dict(session.variables),
        step_count=session.step_count,
        input_history=[record.model_dump(mode="json") for record in session.input_history],
        started_at=session.started_at,
        last_activity_at=session.last_activity_at,
        expires_at=session.expires_at,
        completed_at=session.completed_at,
        termination_reason=session.termination_reason,
    )


@router.post(
    "",
    response_model=StartSessionResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)  # type: ignore[misc]
async def start_session(request: StartSessionRequest) -> StartSessionResponse:
    """Start a new session, or resume the caller's active one.

    Args:
        request: Flow, phone number and USSD code

    Returns:
        StartSessionResponse with session ID and first screen

    Raises:
        HTTPException: If the flow is not published
    """
    start_time = time.perf_counter()
    status_code = "200"

    try:
        engine = _require_engine()
        session = await engine.create_session(
            request.flow_id, request.phone_number, request.ussd_code
        )

        return StartSessionResponse(
            session_id=session.session_id,
            prompt=engine.render_prompt(session),
            status=session.status.value,
            node_id=session.current_node_id,
        )
    except FlowNotFoundError as e:
        status_code = "404"
        raise HTTPException(status_code=404, detail=str(e)) from e
    except HTTPException as e:
        status_code = str(e.status_code)
        raise
    except Exception:
        status_code = "500"
        raise
    finally:
        HTTP_LATENCY.labels(method="POST", endpoint="/sessions").observe(
            time.perf_counter() - start_time
        )
        HTTP_REQUESTS.labels(method="POST", endpoint="/sessions", status=status_code).inc()


@router.post(
    "/{session_id}/input",
    response_model=NavigationResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)  # type: ignore[misc]
async def send_input(session_id: str, request: InputRequest) -> NavigationResponse:
    """Send one input to an active session.

    Invalid menu choices and malformed input come back with ``error`` set and
    a 200 status; the session stays at the same screen.

    Args:
        session_id: The session ID
        request: The raw input

    Returns:
        NavigationResponse with the next screen

    Raises:
        HTTPException: If the session is unknown or no longer active
    """
    start_time = time.perf_counter()
    status_code = "200"

    try:
        engine = _require_engine()
        result = await engine.process_input(session_id, request.input)
        return NavigationResponse(**result.to_dict())
    except SessionNotFoundError as e:
        status_code = "404"
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidStateError as e:
        status_code = "409"
        raise HTTPException(status_code=409, detail=str(e)) from e
    except (NodeNotFoundError, FlowNotFoundError) as e:
        status_code = "500"
        raise HTTPException(status_code=500, detail=str(e)) from e
    except HTTPException as e:
        status_code = str(e.status_code)
        raise
    except Exception:
        status_code = "500"
        raise
    finally:
        HTTP_LATENCY.labels(method="POST", endpoint="/sessions/{id}/input").observe(
            time.perf_counter() - start_time
        )
        HTTP_REQUESTS.labels(
            method="POST", endpoint="/sessions/{id}/input", status=status_code
        ).inc()


@router.post(
    "/{session_id}/terminate",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)  # type: ignore[misc]
async def terminate_session(
    session_id: str, request: Optional[TerminateRequest] = None
) -> SessionResponse:
    """Terminate an active session.

    Args:
        session_id: The session ID
        request: Optional termination reason

    Returns:
        Snapshot of the terminated session

    Raises:
        HTTPException: If the session is unknown or no longer active
    """
    start_time = time.perf_counter()
    status_code = "200"

    try:
        engine = _require_engine()
        reason = request.reason if request is not None else "user_terminated"
        session = await engine.terminate_session(session_id, reason)
        return _session_response(session)
    except SessionNotFoundError as e:
        status_code = "404"
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidStateError as e:
        status_code = "409"
        raise HTTPException(status_code=409, detail=str(e)) from e
    except HTTPException as e:
        status_code = str(e.status_code)
        raise
    except Exception:
        status_code = "500"
        raise
    finally:
        HTTP_LATENCY.labels(method="POST", endpoint="/sessions/{id}/terminate").observe(
            time.perf_counter() - start_time
        )
        HTTP_REQUESTS.labels(
            method="POST", endpoint="/sessions/{id}/terminate", status=status_code
        ).inc()


@router.get("/stats")  # type: ignore[misc]
async def get_session_stats(flow_id: Optional[str] = None) -> dict[str, Any]:
    """Summarise sessions, optionally for one flow.

    Args:
        flow_id: Optional flow filter

    Returns:
        Counts per status and averages
    """
    return _require_engine().session_stats(flow_id)


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
)  # type: ignore[misc]
async def get_session(session_id: str) -> SessionResponse:
    """Get the current state of a session.

    Args:
        session_id: The session ID

    Returns:
        SessionResponse snapshot

    Raises:
        HTTPException: If session not found
    """
    start_time = time.perf_counter()
    status_code = "200"

    try:
        engine = _require_engine()
        return _session_response(engine.get_session(session_id))
    except SessionNotFoundError as e:
        status_code = "404"
        raise HTTPException(status_code=404, detail=str(e)) from e
    except HTTPException as e:
        status_code = str(e.status_code)
        raise
    except Exception:
        status_code = "500"
        raise
    finally:
        HTTP_LATENCY.labels(method="GET", endpoint="/sessions/{id}").observe(
            time.perf_counter() - start_time
        )
        HTTP_REQUESTS.labels(method="GET", endpoint="/sessions/{id}", status=status_code).inc()

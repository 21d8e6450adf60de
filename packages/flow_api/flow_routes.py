"""API routes for flow validation and publication."""

from typing import Any

from fastapi import APIRouter, HTTPException  # type: ignore[import-not-found]

from flow_config import FlowDefinitionError, FlowGraph, load_flow_from_dict
from flow_core import FlowValidationError, SessionEngine, ValidationResult

from .app import get_app_state
from .models import ErrorResponse, FlowSummary, ValidationResponse

flow_router = APIRouter(prefix="/flows", tags=["flows"])


def _require_engine() -> SessionEngine:
    engine = get_app_state().engine
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized.")
    return engine


def _parse_flow(document: dict[str, Any]) -> FlowGraph:
    try:
        return load_flow_from_dict(document)
    except FlowDefinitionError as e:
        raise HTTPException(status_code=400, detail=f"Invalid flow definition: {e}") from e


def _validation_response(result: ValidationResult) -> ValidationResponse:
    return ValidationResponse(
        flow_id=result.flow_id,
        valid=result.is_valid,
        errors=[issue.model_dump(mode="json") for issue in result.errors],
        warnings=[issue.model_dump(mode="json") for issue in result.warnings],
        suggestions=[issue.model_dump(mode="json") for issue in result.suggestions],
        stats=result.stats.model_dump(),
    )


def _flow_summary(engine: SessionEngine, flow: FlowGraph) -> FlowSummary:
    usage = engine.registry.get_usage(flow.id)
    return FlowSummary(
        id=flow.id,
        name=flow.name,
        version=flow.version,
        start_node_id=flow.start_node_id,
        node_count=len(flow.nodes),
        usage_count=usage.usage_count if usage else 0,
    )


@flow_router.post(
    "/validate",
    response_model=ValidationResponse,
    responses={400: {"model": ErrorResponse}},
)  # type: ignore[misc]
async def validate_flow(document: dict[str, Any]) -> ValidationResponse:
    """Validate a flow definition without publishing it.

    Args:
        document: Flow definition document

    Returns:
        Errors, warnings, suggestions and shape statistics
    """
    engine = _require_engine()
    return _validation_response(engine.validate_flow(_parse_flow(document)))


@flow_router.post(
    "",
    response_model=FlowSummary,
    responses={400: {"model": ErrorResponse}, 422: {"model": ValidationResponse}},
)  # type: ignore[misc]
async def publish_flow(document: dict[str, Any]) -> FlowSummary:
    """Validate and publish a flow for new sessions.

    Sessions already running keep the version they started on.

    Args:
        document: Flow definition document

    Returns:
        Summary of the published flow

    Raises:
        HTTPException: 422 with the validation result if the flow has errors
    """
    engine = _require_engine()
    try:
        published = engine.publish_flow(_parse_flow(document))
    except FlowValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=_validation_response(e.result).model_dump(),
        ) from e
    return _flow_summary(engine, published)


@flow_router.get("", response_model=list[FlowSummary])  # type: ignore[misc]
async def list_flows() -> list[FlowSummary]:
    """List every published flow.

    Returns:
        Summaries of the current version of each flow
    """
    engine = _require_engine()
    return [_flow_summary(engine, flow) for flow in engine.registry.list()]


@flow_router.get("/{flow_id}", responses={404: {"model": ErrorResponse}})  # type: ignore[misc]
async def get_flow(flow_id: str) -> dict[str, Any]:
    """Get the current definition of a published flow.

    Args:
        flow_id: The flow ID

    Returns:
        The flow definition document

    Raises:
        HTTPException: If the flow is not published
    """
    engine = _require_engine()
    flow = engine.registry.get(flow_id)
    if flow is None:
        raise HTTPException(status_code=404, detail=f"Flow '{flow_id}' is not published")
    return flow.to_definition()

"""
Run Routes
==========

API endpoints for executing agent runs and inspecting the target project.
"""

import time
import uuid
from dataclasses import asdict
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from api.schemas import (
    AnalyzeResponse,
    AuditEntryResponse,
    BackupResponse,
    ErrorResponse,
    RunRequest,
    RunResponse,
    StepResponse,
)
from db_agent import AgentRequest, DatabaseAgent
from db_agent.errors import AnalysisError
from observability.tracing import trace_agent_operation

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Agent"])


def get_agent(request: Request) -> DatabaseAgent:
    """Dependency to get the configured agent from app state."""
    return request.app.state.agent


def get_request_id(request: Request) -> str:
    """Request ID assigned by the telemetry middleware, or a fresh one."""
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


@trace_agent_operation("agent.run")
def _traced_run(agent: DatabaseAgent, agent_request: AgentRequest):
    return agent.run(agent_request)


@router.post(
    "/run",
    response_model=RunResponse,
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Run the agent on a natural-language request",
    description=(
        "Plans and applies the requested change to the target project. "
        "Step failures are reported in the response body, not as HTTP errors."
    ),
)
def run_agent(
    body: RunRequest,
    request: Request,
    agent: Annotated[DatabaseAgent, Depends(get_agent)],
    request_id: Annotated[str, Depends(get_request_id)],
) -> RunResponse:
    """
    Execute one agent run.

    Runs are serialised: the agent owns one project root and one backup
    sequence, so concurrent requests wait for the current run to finish.

    Args:
        body: Run request
        request: Incoming request (for app state)
        agent: Injected DatabaseAgent
        request_id: Correlation ID

    Returns:
        RunResponse mirroring the AgentResult
    """
    start_time = time.perf_counter()
    agent_request = AgentRequest(
        query=body.query,
        skip_analysis=body.skip_analysis,
        skip_migration=body.skip_migration,
        dry_run=body.dry_run,
    )

    try:
        with request.app.state.run_lock:
            result = _traced_run(agent, agent_request)
            audit = list(request.app.state.audit.audit_trail)
    except Exception as exc:
        logger.exception("run_request_failed", request_id=request_id)
        raise HTTPException(
            status_code=500,
            detail={
                "error": "ProcessingError",
                "message": str(exc),
                "request_id": request_id,
            },
        ) from exc

    audit_trail = None
    if body.include_audit:
        audit_trail = [
            AuditEntryResponse(
                timestamp=entry.timestamp,
                step=entry.step,
                input_data=entry.input_data,
                output_data=entry.output_data,
            )
            for entry in audit
        ]

    return RunResponse(
        success=result.success,
        plan_description=result.plan_description,
        executed_steps=[
            StepResponse(
                kind=step.kind,
                description=step.description,
                details=step.details,
                derived_files=step.derived_files,
            )
            for step in result.executed_steps
        ],
        touched_files=result.touched_files,
        errors=result.errors,
        warnings=result.warnings,
        migration_completed=result.migration_completed,
        dry_run=result.dry_run,
        backups=[BackupResponse(**asdict(record)) for record in result.backups],
        audit_trail=audit_trail,
        request_id=request_id,
        processing_time_ms=(time.perf_counter() - start_time) * 1000,
    )


@router.get(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={
        422: {"model": ErrorResponse, "description": "Project could not be analyzed"},
    },
    summary="Analyze the target project",
)
def analyze_project(
    agent: Annotated[DatabaseAgent, Depends(get_agent)],
    request_id: Annotated[str, Depends(get_request_id)],
) -> AnalyzeResponse:
    """Return a fresh snapshot of the project the agent works on."""
    if agent.analyzer is None:
        raise HTTPException(
            status_code=422,
            detail={
                "error": "AnalysisError",
                "message": "No project analyzer configured",
                "request_id": request_id,
            },
        )

    try:
        snapshot = agent.analyzer.analyze()
    except AnalysisError as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "error": "AnalysisError",
                "message": str(exc),
                "request_id": request_id,
            },
        ) from exc

    return AnalyzeResponse(request_id=request_id, **asdict(snapshot))

"""
API Schemas
===========

Pydantic models for API request/response validation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RunRequest(BaseModel):
    """Request body for an agent run."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural language description of the change",
        examples=["Add an orders table with total and status"],
    )
    dry_run: bool = Field(
        default=False,
        description="Only predict the files the plan would touch",
    )
    skip_analysis: bool = Field(
        default=False,
        description="Plan without a project snapshot",
    )
    skip_migration: bool = Field(
        default=False,
        description="Never run the migration, even after schema changes",
    )
    include_audit: bool = Field(
        default=False,
        description="Include the run's audit trail in the response",
    )


class StepResponse(BaseModel):
    """One executed (or, in a dry run, planned) step."""

    kind: str
    description: str
    details: dict[str, Any] = Field(default_factory=dict)
    derived_files: list[str] = Field(default_factory=list)


class BackupResponse(BaseModel):
    """A backup captured before an existing file was overwritten."""

    source_path: str
    backup_path: str
    captured_at_epoch_ms: int


class AuditEntryResponse(BaseModel):
    """Single audit trail entry."""

    timestamp: str = Field(..., description="ISO 8601 timestamp")
    step: str = Field(..., description="Step identifier")
    input_data: dict[str, Any] = Field(default_factory=dict)
    output_data: dict[str, Any] = Field(default_factory=dict)


class RunResponse(BaseModel):
    """Response body for an agent run."""

    success: bool = Field(..., description="True when no error was recorded")
    plan_description: str | None = Field(None, description="Description of the generated plan")
    executed_steps: list[StepResponse] = Field(default_factory=list)
    touched_files: list[str] = Field(
        default_factory=list,
        description="Written (or, in a dry run, predicted) paths in execution order",
    )
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    migration_completed: bool = False
    dry_run: bool = False
    backups: list[BackupResponse] = Field(default_factory=list)
    audit_trail: list[AuditEntryResponse] | None = Field(
        None,
        description="Full audit trail (if requested)",
    )
    request_id: str = Field(..., description="Unique request identifier")
    processing_time_ms: float = Field(..., description="Processing time in milliseconds")


class DatabaseResponse(BaseModel):
    provider: str
    schema_files: list[str] = Field(default_factory=list)


class ExistingSchemaResponse(BaseModel):
    name: str
    tables: list[str]
    path: str


class AnalyzeResponse(BaseModel):
    """Project snapshot."""

    framework: str
    has_typed_source: bool
    structure: dict[str, list[str]] = Field(default_factory=dict)
    database: DatabaseResponse | None = None
    existing_schemas: list[ExistingSchemaResponse] = Field(default_factory=list)
    endpoint_paths: list[str] = Field(default_factory=list)
    ui_module_paths: list[str] = Field(default_factory=list)
    dependencies: dict[str, str] = Field(default_factory=dict)
    request_id: str = Field(..., description="Unique request identifier")


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual component health checks",
    )


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether the service is ready to handle requests")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual readiness checks",
    )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    request_id: str | None = Field(None, description="Request ID if available")
    details: dict[str, Any] | None = Field(None, description="Additional error details")

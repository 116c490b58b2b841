"""
Data Models
===========

Core data structures for the database agent.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional


class StepKind(str, Enum):
    """Closed set of step kinds the executor knows how to run."""

    CREATE_SCHEMA = "create_schema"
    CREATE_API = "create_api"
    UPDATE_COMPONENT = "update_component"
    CREATE_COMPONENT = "create_component"
    RUN_MIGRATION = "run_migration"
    ANALYZE_PROJECT = "analyze_project"


# Kinds whose successful execution requires a migration at the end of the run
MIGRATION_KINDS = frozenset({StepKind.CREATE_SCHEMA.value, StepKind.RUN_MIGRATION.value})


@dataclass(frozen=True)
class AgentRequest:
    """Immutable input to one orchestrator run."""

    query: str
    skip_analysis: bool = False
    skip_migration: bool = False
    dry_run: bool = False


@dataclass(frozen=True)
class DatabaseSetup:
    """Detected database tooling of the target project."""

    provider: str
    schema_files: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExistingSchema:
    """A schema module already present in the target project."""

    name: str
    tables: tuple[str, ...]
    path: str


@dataclass(frozen=True)
class ContextSnapshot:
    """Read-only structural description of the target project."""

    framework: str
    has_typed_source: bool
    structure: dict[str, tuple[str, ...]] = field(default_factory=dict)
    database: Optional[DatabaseSetup] = None
    existing_schemas: tuple[ExistingSchema, ...] = ()
    endpoint_paths: tuple[str, ...] = ()
    ui_module_paths: tuple[str, ...] = ()
    dependencies: dict[str, str] = field(default_factory=dict)


@dataclass
class ExecutionStep:
    """
    One unit of mutation in a plan.

    ``details`` holds the raw kind-specific parameters as returned by the
    planner; they are validated into a typed variant when the step runs.
    """

    kind: str
    description: str
    details: dict[str, Any] = field(default_factory=dict)
    derived_files: list[str] = field(default_factory=list)


@dataclass
class ExecutionPlan:
    """Ordered steps produced once per run by the plan source."""

    description: str
    steps: list[ExecutionStep] = field(default_factory=list)


@dataclass(frozen=True)
class BackupRecord:
    """Timestamped copy of a file taken before it was overwritten."""

    source_path: str
    backup_path: str
    captured_at_epoch_ms: int


@dataclass
class FileOperation:
    """A single create/update/delete against a project-relative path."""

    action: Literal["create", "update", "delete"]
    file_path: str
    content: Optional[str] = None
    backup: bool = True


@dataclass(frozen=True)
class PartialPathWarning:
    """One path of a multi-path step was skipped or left unmodified."""

    step_kind: str
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.step_kind}: {self.path}: {self.message}"


@dataclass
class AgentResult:
    """Final result of one orchestrator run."""

    success: bool
    executed_steps: list[ExecutionStep] = field(default_factory=list)
    touched_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    migration_completed: bool = False
    context_snapshot: Optional[ContextSnapshot] = None
    warnings: list[str] = field(default_factory=list)
    plan_description: Optional[str] = None
    backups: list[BackupRecord] = field(default_factory=list)
    dry_run: bool = False


@dataclass
class AuditEntry:
    """Single entry in the audit trail."""

    timestamp: str
    step: str
    input_data: dict
    output_data: dict


@dataclass
class LLMResponse:
    """Response from an LLM call."""

    content: str
    model: str
    tokens_used: int = 0

"""
Database Agent
==============

Natural-language-driven code mutation for Next.js + Drizzle projects:
plan, generate, write with backups, and migrate.
"""

from db_agent.models import (
    AgentRequest,
    AgentResult,
    AuditEntry,
    BackupRecord,
    ContextSnapshot,
    ExecutionPlan,
    ExecutionStep,
    LLMResponse,
    PartialPathWarning,
    StepKind,
)
from db_agent.errors import (
    AgentError,
    AnalysisError,
    BackupError,
    DuplicateComponentPathError,
    FileMutationError,
    MigrationError,
    PathDerivationError,
    PlanGenerationError,
    StepExecutionError,
    UnknownStepKindError,
)
from db_agent.config import AgentSettings, ProjectLayout, load_settings
from db_agent.agent import DatabaseAgent, PreparedRun, create_agent
from db_agent.analyzer import ProjectAnalyzer
from db_agent.execution import BackupManager, FileWriter, IndexMerger, PathDeriver, StepExecutor
from db_agent.llm import LLMInterface, MockLLM, OpenAILLM
from db_agent.migration import CommandMigrationTrigger, MigrationTrigger
from db_agent.observers import AuditTrailObserver, RunObserver
from db_agent.planning import LLMPlanSource, PlanSource

__version__ = "0.1.0"

__all__ = [
    # Models
    "StepKind",
    "AgentRequest",
    "AgentResult",
    "AuditEntry",
    "BackupRecord",
    "ContextSnapshot",
    "ExecutionPlan",
    "ExecutionStep",
    "LLMResponse",
    "PartialPathWarning",
    # Errors
    "AgentError",
    "AnalysisError",
    "PlanGenerationError",
    "StepExecutionError",
    "UnknownStepKindError",
    "DuplicateComponentPathError",
    "PathDerivationError",
    "FileMutationError",
    "BackupError",
    "MigrationError",
    # Configuration
    "AgentSettings",
    "ProjectLayout",
    "load_settings",
    # Agent
    "DatabaseAgent",
    "PreparedRun",
    "create_agent",
    # Components
    "ProjectAnalyzer",
    "PathDeriver",
    "BackupManager",
    "FileWriter",
    "IndexMerger",
    "StepExecutor",
    "PlanSource",
    "LLMPlanSource",
    "MigrationTrigger",
    "CommandMigrationTrigger",
    "RunObserver",
    "AuditTrailObserver",
    # LLM
    "LLMInterface",
    "MockLLM",
    "OpenAILLM",
]

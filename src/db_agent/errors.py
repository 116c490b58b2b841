"""
Agent Errors
============

Exception hierarchy for the database agent.

Run-level failures (analysis, planning) abort a run before any step
executes. Step-level failures are recorded against the run and execution
continues with the next step.
"""


class AgentError(Exception):
    """Base class for all agent errors."""


class AnalysisError(AgentError):
    """Raised when the project snapshot cannot be built."""


class PlanGenerationError(AgentError):
    """Raised when the planner fails or returns an unusable plan."""


class MigrationError(AgentError):
    """Raised when the external migration procedure fails."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class StepExecutionError(AgentError):
    """A single step failed. Recorded by the orchestrator, never fatal to the run."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class UnknownStepKindError(StepExecutionError):
    """The step kind is not part of the dispatch table."""

    def __init__(self, kind: str) -> None:
        super().__init__(kind, f"Unknown step kind: {kind!r}")


class DuplicateComponentPathError(StepExecutionError):
    """A create_component step targets a file that already exists or is listed twice."""

    def __init__(self, kind: str, path: str, message: str | None = None) -> None:
        super().__init__(kind, message or f"Component already exists: {path}")
        self.path = path


class PathDerivationError(StepExecutionError):
    """Step parameters do not map to a valid project-relative path."""


class FileMutationError(AgentError):
    """A create/update/delete operation on disk failed."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class BackupError(FileMutationError):
    """The pre-write backup of an existing file failed; the write is not attempted."""

"""
Run Observers
=============

Callbacks the orchestrator invokes at fixed points of a run. Observers
see the run; they never change it.
"""

from datetime import datetime, timezone

import structlog

from db_agent.models import AgentRequest, AgentResult, AuditEntry, ExecutionPlan, ExecutionStep

logger = structlog.get_logger(__name__)


class RunObserver:
    """No-op base; override the hooks you need."""

    def on_run_started(self, request: AgentRequest) -> None:
        pass

    def on_plan_ready(self, plan: ExecutionPlan) -> None:
        pass

    def on_step_started(self, index: int, step: ExecutionStep) -> None:
        pass

    def on_step_completed(self, index: int, step: ExecutionStep, paths: list[str]) -> None:
        pass

    def on_step_errored(self, index: int, step: ExecutionStep, message: str) -> None:
        pass

    def on_migration_started(self) -> None:
        pass

    def on_run_completed(self, result: AgentResult) -> None:
        pass


class ObserverGroup:
    """Fans each hook out to several observers, isolating their failures."""

    def __init__(self, observers: list[RunObserver] | None = None) -> None:
        self.observers = list(observers or [])

    def add(self, observer: RunObserver) -> None:
        self.observers.append(observer)

    def notify(self, hook: str, *args: object) -> None:
        for observer in self.observers:
            try:
                getattr(observer, hook)(*args)
            except Exception:
                logger.exception("observer_failed", observer=type(observer).__name__, hook=hook)


class AuditTrailObserver(RunObserver):
    """Records a timestamped AuditEntry for every hook of the latest run."""

    def __init__(self) -> None:
        self.audit_trail: list[AuditEntry] = []

    def _log_audit(self, step: str, input_data: dict, output_data: dict) -> None:
        """Add entry to audit trail."""
        self.audit_trail.append(
            AuditEntry(
                timestamp=datetime.now(timezone.utc).isoformat(),
                step=step,
                input_data=input_data,
                output_data=output_data,
            )
        )

    def on_run_started(self, request: AgentRequest) -> None:
        self.audit_trail = []  # Reset for new run
        self._log_audit(
            "run_started",
            {
                "query": request.query,
                "skip_analysis": request.skip_analysis,
                "skip_migration": request.skip_migration,
                "dry_run": request.dry_run,
            },
            {},
        )

    def on_plan_ready(self, plan: ExecutionPlan) -> None:
        self._log_audit(
            "plan_ready",
            {},
            {"description": plan.description, "steps": [step.kind for step in plan.steps]},
        )

    def on_step_started(self, index: int, step: ExecutionStep) -> None:
        self._log_audit(
            f"step_{index + 1}_started",
            {"kind": step.kind, "description": step.description},
            {},
        )

    def on_step_completed(self, index: int, step: ExecutionStep, paths: list[str]) -> None:
        self._log_audit(f"step_{index + 1}_completed", {"kind": step.kind}, {"paths": list(paths)})

    def on_step_errored(self, index: int, step: ExecutionStep, message: str) -> None:
        self._log_audit(f"step_{index + 1}_errored", {"kind": step.kind}, {"error": message})

    def on_migration_started(self) -> None:
        self._log_audit("migration_started", {}, {})

    def on_run_completed(self, result: AgentResult) -> None:
        self._log_audit(
            "run_completed",
            {},
            {
                "success": result.success,
                "touched_files": list(result.touched_files),
                "errors": list(result.errors),
                "migration_completed": result.migration_completed,
            },
        )

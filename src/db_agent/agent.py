"""
Database Agent
==============

Plan orchestrator: turns one AgentRequest into one AgentResult.

The agent:
1. Builds a snapshot of the target project (unless skipped)
2. Asks the plan source for an ordered list of steps
3. Runs every step in order, recording failures without stopping
4. Runs the migration once if any step created a schema or asked for one
5. Never lets an exception escape ``run``
"""

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from db_agent.analyzer import ProjectAnalyzer
from db_agent.config import AgentSettings
from db_agent.errors import MigrationError, PlanGenerationError, StepExecutionError
from db_agent.execution import BackupManager, FileWriter, IndexMerger, PathDeriver, StepExecutor
from db_agent.llm import LLMInterface, MockLLM, OpenAILLM
from db_agent.migration import CommandMigrationTrigger, MigrationTrigger
from db_agent.models import (
    MIGRATION_KINDS,
    AgentRequest,
    AgentResult,
    ContextSnapshot,
    ExecutionPlan,
    ExecutionStep,
)
from db_agent.observers import ObserverGroup, RunObserver
from db_agent.planning import LLMPlanSource, PlanSource

logger = structlog.get_logger(__name__)


def format_step_error(index: int, step: ExecutionStep, message: str) -> str:
    return f"Step {index + 1} ({step.kind}) failed: {message}"


@dataclass
class PreparedRun:
    """Snapshot and plan of a run, or the fatal result that ended it early."""

    snapshot: ContextSnapshot | None = None
    plan: ExecutionPlan | None = None
    failure: AgentResult | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class _RunState:
    executed_steps: list[ExecutionStep] = field(default_factory=list)
    touched_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    needs_migration: bool = False


class DatabaseAgent:
    """
    Orchestrates analysis, planning, step execution and migration.

    One agent serves one run at a time; callers running requests
    concurrently must serialise access.
    """

    def __init__(
        self,
        plan_source: PlanSource,
        executor: StepExecutor,
        migration_trigger: MigrationTrigger,
        analyzer: ProjectAnalyzer | None = None,
        deriver: PathDeriver | None = None,
        fail_fast: bool = False,
        observers: list[RunObserver] | None = None,
    ) -> None:
        """
        Initialize the agent.

        Args:
            plan_source: Produces the plan for a query
            executor: Runs individual steps
            migration_trigger: Invoked at most once per run
            analyzer: Context snapshot builder; None behaves like skip_analysis
            deriver: Path deriver for dry runs (defaults to the executor's)
            fail_fast: Stop at the first step error instead of continuing
            observers: Run observers notified at each stage
        """
        self.plan_source = plan_source
        self.executor = executor
        self.migration_trigger = migration_trigger
        self.analyzer = analyzer
        self.deriver = deriver or executor.deriver
        self.fail_fast = fail_fast
        self.observers = ObserverGroup(observers)

    def run(self, request: AgentRequest) -> AgentResult:
        """
        Main entry point: execute a natural-language request end to end.

        Args:
            request: The request and its control flags

        Returns:
            AgentResult; ``success`` is true iff no error was recorded
        """
        return self.execute(self.prepare(request), request)

    def prepare(self, request: AgentRequest) -> PreparedRun:
        """
        Analyze the project and generate the plan, without touching files.

        Failures here are fatal for the run and come back as
        ``PreparedRun.failure``.
        """
        log = logger.bind(query=request.query)
        self.observers.notify("on_run_started", request)
        log.info("run_started", skip_analysis=request.skip_analysis, dry_run=request.dry_run)

        snapshot = None
        if not request.skip_analysis and self.analyzer is not None:
            try:
                snapshot = self.analyzer.analyze()
            except Exception as exc:
                log.error("analysis_failed", error=str(exc))
                return PreparedRun(failure=self._fatal(f"Project analysis failed: {exc}"))

        try:
            plan = self.plan_source.generate_plan(request.query, snapshot)
        except PlanGenerationError as exc:
            log.error("planning_failed", error=str(exc))
            return PreparedRun(snapshot=snapshot, failure=self._fatal(str(exc), snapshot))
        except Exception as exc:
            log.exception("planning_crashed")
            return PreparedRun(
                snapshot=snapshot,
                failure=self._fatal(f"Plan generation failed: {exc}", snapshot),
            )

        self.observers.notify("on_plan_ready", plan)
        log.info("plan_ready", description=plan.description, steps=len(plan.steps))
        return PreparedRun(snapshot=snapshot, plan=plan)

    def execute(self, prepared: PreparedRun, request: AgentRequest) -> AgentResult:
        """
        Run a prepared plan.

        Args:
            prepared: Result of ``prepare`` for the same request
            request: The request; its dry-run and skip-migration flags apply here

        Returns:
            The assembled AgentResult
        """
        if prepared.failure is not None:
            return prepared.failure
        if request.dry_run:
            return self._finish(self._predict(prepared))

        plan = prepared.plan
        state = _RunState()
        self.executor.writer.backups.drain()

        for index, step in enumerate(plan.steps):
            state.executed_steps.append(step)
            if not self._run_step(index, step, state) and self.fail_fast:
                logger.warning(
                    "run_stopped_early",
                    failed_step=index + 1,
                    remaining=len(plan.steps) - index - 1,
                )
                break

        migration_completed = False
        if state.needs_migration and not request.skip_migration:
            migration_completed = self._migrate(state)
        elif state.needs_migration:
            logger.info("migration_skipped", reason="skip_migration requested")

        result = AgentResult(
            success=not state.errors,
            executed_steps=state.executed_steps,
            touched_files=state.touched_files,
            errors=state.errors,
            migration_completed=migration_completed,
            context_snapshot=prepared.snapshot,
            warnings=state.warnings,
            plan_description=plan.description,
            backups=self.executor.writer.backups.drain(),
        )
        return self._finish(result)

    def _run_step(self, index: int, step: ExecutionStep, state: _RunState) -> bool:
        log = logger.bind(step=index + 1, kind=step.kind)
        self.observers.notify("on_step_started", index, step)
        log.info("step_started", description=step.description)

        try:
            paths = self.executor.execute(step)
        except StepExecutionError as exc:
            message = format_step_error(index, step, exc.message)
        except Exception as exc:
            log.exception("step_crashed")
            message = format_step_error(index, step, f"Unexpected error: {exc}")
        else:
            message = None

        state.warnings.extend(str(warning) for warning in self.executor.drain_warnings())

        if message is not None:
            state.errors.append(message)
            self.observers.notify("on_step_errored", index, step, message)
            log.error("step_failed", error=message)
            return False

        state.touched_files.extend(paths)
        if step.kind in MIGRATION_KINDS:
            state.needs_migration = True
        self.observers.notify("on_step_completed", index, step, paths)
        log.info("step_completed", paths=paths)
        return True

    def _migrate(self, state: _RunState) -> bool:
        self.observers.notify("on_migration_started")
        logger.info("migration_started")
        try:
            self.migration_trigger.run()
        except MigrationError as exc:
            state.errors.append(str(exc))
            logger.error("migration_failed", error=str(exc))
            return False
        except Exception as exc:
            state.errors.append(f"Migration failed: {exc}")
            logger.exception("migration_crashed")
            return False
        return True

    def _predict(self, prepared: PreparedRun) -> AgentResult:
        """Dry run: derive every step's paths without executing anything."""
        plan = prepared.plan
        touched: list[str] = []
        errors: list[str] = []

        for index, step in enumerate(plan.steps):
            try:
                paths = self.deriver.derive(step)
            except StepExecutionError as exc:
                errors.append(format_step_error(index, step, exc.message))
                continue
            touched.extend(paths)

        return AgentResult(
            success=not errors,
            executed_steps=list(plan.steps),
            touched_files=touched,
            errors=errors,
            migration_completed=False,
            context_snapshot=prepared.snapshot,
            plan_description=plan.description,
            dry_run=True,
        )

    def _fatal(self, message: str, snapshot: ContextSnapshot | None = None) -> AgentResult:
        return self._finish(
            AgentResult(success=False, errors=[message], context_snapshot=snapshot)
        )

    def _finish(self, result: AgentResult) -> AgentResult:
        self.observers.notify("on_run_completed", result)
        logger.info(
            "run_completed",
            success=result.success,
            touched_files=len(result.touched_files),
            errors=len(result.errors),
            migration_completed=result.migration_completed,
            dry_run=result.dry_run,
        )
        return result


def create_llm(settings: AgentSettings) -> LLMInterface:
    """Build the planner LLM selected by ``settings.llm_provider``."""
    if settings.llm_provider == "openai":
        return OpenAILLM(
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            temperature=settings.llm_temperature,
        )
    return MockLLM()


def create_agent(
    settings: AgentSettings,
    llm: LLMInterface | None = None,
    migration_trigger: MigrationTrigger | None = None,
    observers: list[RunObserver] | None = None,
) -> DatabaseAgent:
    """
    Wire a DatabaseAgent for the project described by ``settings``.

    Args:
        settings: Loaded AgentSettings
        llm: Planner LLM override (defaults to the configured provider)
        migration_trigger: Trigger override (defaults to the configured commands)
        observers: Run observers

    Returns:
        Ready-to-use DatabaseAgent
    """
    root = Path(settings.project_root)
    layout = settings.layout
    deriver = PathDeriver(layout)
    writer = FileWriter(root, BackupManager(root, layout.backup_dir))
    analyzer = ProjectAnalyzer(root, layout)

    return DatabaseAgent(
        plan_source=LLMPlanSource(llm or create_llm(settings), deriver),
        executor=StepExecutor(writer, deriver, IndexMerger(writer, deriver), analyzer),
        migration_trigger=migration_trigger or CommandMigrationTrigger(
            root,
            settings.migration_commands,
            settings.migration_timeout_seconds,
        ),
        analyzer=analyzer,
        deriver=deriver,
        fail_fast=settings.fail_fast,
        observers=observers,
    )

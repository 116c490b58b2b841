"""
Step Executor
=============

Dispatches one plan step to its generation and mutation routine.

Every handler returns the project-relative paths it wrote, in write order,
or raises a StepExecutionError. The dispatch table covers the closed set of
StepKind values; anything else fails with UnknownStepKindError.
"""

from typing import Callable

import structlog

from db_agent.analyzer import ProjectAnalyzer
from db_agent.errors import (
    AnalysisError,
    DuplicateComponentPathError,
    FileMutationError,
    StepExecutionError,
)
from db_agent.execution.files import FileWriter
from db_agent.execution.index_merger import IndexMerger
from db_agent.execution.paths import PathDeriver, normalise_endpoint
from db_agent.models import ExecutionStep, PartialPathWarning, StepKind
from db_agent.steps import ApiDetails, ComponentDetails, SchemaDetails, StepDetails, parse_details
from db_agent.templates import (
    apply_component_update,
    component_name_from_path,
    render_api_route,
    render_new_component,
    render_schema,
)

logger = structlog.get_logger(__name__)

Handler = Callable[[StepKind, StepDetails], list[str]]


class StepExecutor:
    """Runs individual steps against one project root."""

    def __init__(
        self,
        writer: FileWriter,
        deriver: PathDeriver,
        index_merger: IndexMerger | None = None,
        analyzer: ProjectAnalyzer | None = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            writer: File mutator bound to the project root
            deriver: Path deriver for the project layout
            index_merger: Aggregate index merger (built from writer/deriver if omitted)
            analyzer: Snapshot builder used by analyze_project steps
        """
        self.writer = writer
        self.deriver = deriver
        self.index_merger = index_merger or IndexMerger(writer, deriver)
        self.analyzer = analyzer
        self._warnings: list[PartialPathWarning] = []
        self._handlers: dict[StepKind, Handler] = {
            StepKind.CREATE_SCHEMA: self._create_schema,
            StepKind.CREATE_API: self._create_api,
            StepKind.UPDATE_COMPONENT: self._update_component,
            StepKind.CREATE_COMPONENT: self._create_component,
            StepKind.RUN_MIGRATION: self._run_migration,
            StepKind.ANALYZE_PROJECT: self._analyze_project,
        }

    def execute(self, step: ExecutionStep) -> list[str]:
        """
        Execute one step.

        Args:
            step: Step with raw details from the plan

        Returns:
            Paths written by the step, in write order

        Raises:
            StepExecutionError: On any fault inside the step
        """
        details = parse_details(step)
        kind = StepKind(step.kind)
        handler = self._handlers[kind]

        try:
            return handler(kind, details)
        except StepExecutionError:
            raise
        except (FileMutationError, AnalysisError, ValueError) as exc:
            raise StepExecutionError(kind.value, str(exc)) from exc
        except Exception as exc:
            logger.exception("step_handler_crashed", kind=kind.value)
            raise StepExecutionError(kind.value, f"Unexpected error: {exc}") from exc

    def drain_warnings(self) -> list[PartialPathWarning]:
        """Return and forget warnings recorded since the last drain."""
        warnings, self._warnings = self._warnings, []
        return warnings

    def _warn(self, kind: StepKind, path: str, message: str) -> None:
        warning = PartialPathWarning(step_kind=kind.value, path=path, message=message)
        self._warnings.append(warning)
        logger.warning("step_path_skipped", kind=kind.value, path=path, reason=message)

    def _create_schema(self, kind: StepKind, details: SchemaDetails) -> list[str]:
        path = self.deriver.schema_path(details.table_name)
        content = render_schema(details)
        # Index content is resolved before the schema lands on disk
        index_path = self.deriver.index_path
        index_content = self.index_merger.merged_content(index_path, details.table_name)

        self.writer.write(path, content, backup=True)
        if index_content is not None:
            try:
                self.index_merger.write(index_path, index_content, details.table_name)
            except FileMutationError as exc:
                raise StepExecutionError(
                    kind.value, f"{exc} (schema already written to {path})"
                ) from exc
        return [path]

    def _create_api(self, kind: StepKind, details: ApiDetails) -> list[str]:
        path = self.deriver.api_path(details.endpoint)
        content = render_api_route(details, normalise_endpoint(details.endpoint))
        self.writer.write(path, content, backup=True)
        return [path]

    def _create_component(self, kind: StepKind, details: ComponentDetails) -> list[str]:
        paths = self.deriver.derive_from_details(kind, details)
        endpoint = normalise_endpoint(details.endpoint)

        # Validate and render every target before the first write
        rendered: dict[str, str] = {}
        for path in paths:
            if path in rendered:
                raise DuplicateComponentPathError(
                    kind.value, path, f"Component path listed more than once: {path}"
                )
            if self.writer.exists(path):
                raise DuplicateComponentPathError(kind.value, path)
            name = component_name_from_path(path)
            rendered[path] = render_new_component(name, endpoint, details.table_name)

        written = []
        for path, content in rendered.items():
            self.writer.write(path, content, backup=False)
            written.append(path)
        return written

    def _update_component(self, kind: StepKind, details: ComponentDetails) -> list[str]:
        paths = self.deriver.derive_from_details(kind, details)
        endpoint = normalise_endpoint(details.endpoint)
        written = []
        failures = []

        for path in paths:
            try:
                existing = self.writer.read_text(path)
                update = apply_component_update(existing, endpoint, details.table_name)
                if not update.changed:
                    self._warn(kind, path, f"Left unmodified: {update.reason}")
                    continue
                self.writer.write(path, update.content, backup=True)
            except FileMutationError as exc:
                failures.append(str(exc))
                self._warn(kind, path, str(exc))
                continue
            written.append(path)

        if failures and len(failures) == len(paths):
            raise StepExecutionError(kind.value, "; ".join(failures))
        return written

    def _run_migration(self, kind: StepKind, details: StepDetails) -> list[str]:
        # The orchestrator runs the migration once after the last step
        logger.info("migration_requested")
        return []

    def _analyze_project(self, kind: StepKind, details: StepDetails) -> list[str]:
        if self.analyzer is None:
            logger.info("analysis_skipped", reason="no analyzer configured")
            return []
        snapshot = self.analyzer.analyze()
        logger.info(
            "project_reanalyzed",
            framework=snapshot.framework,
            schemas=[schema.name for schema in snapshot.existing_schemas],
        )
        return []

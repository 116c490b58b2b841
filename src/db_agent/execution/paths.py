"""
Path Deriver
============

Pure mapping from a step's kind and parameters to the project-relative
paths it will write. No filesystem access happens here.
"""

import posixpath
from pathlib import PureWindowsPath

from db_agent.config import ProjectLayout
from db_agent.errors import PathDerivationError
from db_agent.models import ExecutionStep, StepKind
from db_agent.steps import ApiDetails, ComponentDetails, SchemaDetails, StepDetails, parse_details


def normalise_relative_path(path: str, kind: str) -> str:
    """
    Normalise a project-relative path to POSIX form.

    Raises:
        PathDerivationError: If the path is empty, absolute, or escapes the root
    """
    candidate = (path or "").strip().replace("\\", "/")
    if not candidate:
        raise PathDerivationError(kind, "Empty path")
    if candidate.startswith("/") or PureWindowsPath(candidate).drive:
        raise PathDerivationError(kind, f"Path must be project-relative: {path}")

    normalised = posixpath.normpath(candidate)
    if normalised in (".", "..") or normalised.startswith("../"):
        raise PathDerivationError(kind, f"Path escapes the project root: {path}")
    return normalised


def normalise_endpoint(endpoint: str) -> str:
    """Strip surrounding slashes and a leading ``api/`` segment."""
    cleaned = (endpoint or "").strip().replace("\\", "/").strip("/")
    if cleaned.startswith("api/"):
        cleaned = cleaned[len("api/"):].lstrip("/")
    if not cleaned or cleaned == "api":
        raise PathDerivationError(StepKind.CREATE_API.value, f"Invalid endpoint: {endpoint!r}")
    return cleaned


class PathDeriver:
    """Derives target paths for steps according to a project layout."""

    def __init__(self, layout: ProjectLayout | None = None) -> None:
        self.layout = layout or ProjectLayout()

    @property
    def index_path(self) -> str:
        return normalise_relative_path(self.layout.schema_index, StepKind.CREATE_SCHEMA.value)

    def schema_path(self, table_name: str) -> str:
        path = posixpath.join(
            self.layout.schema_dir, f"{table_name}{self.layout.schema_extension}"
        )
        return normalise_relative_path(path, StepKind.CREATE_SCHEMA.value)

    def api_path(self, endpoint: str) -> str:
        path = posixpath.join(
            self.layout.api_dir, normalise_endpoint(endpoint), self.layout.handler_file
        )
        return normalise_relative_path(path, StepKind.CREATE_API.value)

    def schema_module_specifier(self, table_name: str) -> str:
        """Import specifier of a schema module as seen from the index file."""
        index_dir = posixpath.dirname(self.index_path) or "."
        relative = posixpath.relpath(posixpath.join(self.layout.schema_dir, table_name), index_dir)
        if not relative.startswith("."):
            relative = f"./{relative}"
        return relative

    def derive_from_details(self, kind: StepKind, details: StepDetails) -> list[str]:
        if isinstance(details, SchemaDetails):
            return [self.schema_path(details.table_name)]
        if isinstance(details, ApiDetails):
            return [self.api_path(details.endpoint)]
        if isinstance(details, ComponentDetails):
            return [normalise_relative_path(p, kind.value) for p in details.component_paths]
        # run_migration and analyze_project write nothing
        return []

    def derive(self, step: ExecutionStep) -> list[str]:
        """
        Derive the paths a step will touch.

        Args:
            step: Step with raw details

        Returns:
            Project-relative POSIX paths, in write order

        Raises:
            StepExecutionError: If the kind is unknown, details are invalid,
                or a derived path is not project-relative
        """
        details = parse_details(step)
        return self.derive_from_details(StepKind(step.kind), details)

"""
Project Analyzer
================

Read-only probe that builds a ContextSnapshot of the target project.
"""

import json
import re
from pathlib import Path

import structlog

from db_agent.config import ProjectLayout
from db_agent.errors import AnalysisError
from db_agent.models import ContextSnapshot, DatabaseSetup, ExistingSchema

logger = structlog.get_logger(__name__)

STRUCTURE_DIRS = ("src/app", "src/pages", "src/components", "src/lib", "pages", "components")
COMPONENT_DIRS = ("src/components", "components")
SCHEMA_DIRS = ("src/database/schemas", "src/db/schemas", "database/schemas")
UI_EXTENSIONS = (".tsx", ".jsx")
HANDLER_NAMES = ("route.ts", "route.js")
SKIPPED_DIRS = {"node_modules", ".next", ".git"}

TABLE_PATTERN = re.compile(r"export\s+const\s+(\w+)\s*=\s*(?:pgTable|mysqlTable|sqliteTable)\b")

# Driver package -> provider, first match wins
DATABASE_DRIVERS = (
    ("mysql2", "mysql"),
    ("better-sqlite3", "sqlite"),
    ("@libsql/client", "sqlite"),
    ("pg", "postgres"),
    ("postgres", "postgres"),
    ("@neondatabase/serverless", "postgres"),
)


class ProjectAnalyzer:
    """Builds a fresh snapshot of the project rooted at ``root`` on every call."""

    def __init__(self, root: Path, layout: ProjectLayout | None = None) -> None:
        self.root = Path(root)
        self.layout = layout or ProjectLayout()

    def analyze(self) -> ContextSnapshot:
        """
        Probe the project.

        Returns:
            Immutable ContextSnapshot

        Raises:
            AnalysisError: If the root is missing or project files cannot be read
        """
        if not self.root.is_dir():
            raise AnalysisError(f"Project root does not exist: {self.root}")

        try:
            package = self._read_package_json()
            runtime = package.get("dependencies") or {}
            dependencies = {**runtime, **(package.get("devDependencies") or {})}

            snapshot = ContextSnapshot(
                framework=self._detect_framework(runtime),
                has_typed_source=(self.root / "tsconfig.json").is_file(),
                structure=self._structure(),
                database=self._database(dependencies),
                existing_schemas=tuple(self._existing_schemas()),
                endpoint_paths=tuple(self._endpoint_paths()),
                ui_module_paths=tuple(self._ui_modules()),
                dependencies=dict(dependencies),
            )
        except OSError as exc:
            raise AnalysisError(f"Could not read project files: {exc}") from exc

        logger.info(
            "project_analyzed",
            root=str(self.root),
            framework=snapshot.framework,
            typed=snapshot.has_typed_source,
            schemas=len(snapshot.existing_schemas),
            endpoints=len(snapshot.endpoint_paths),
            components=len(snapshot.ui_module_paths),
        )
        return snapshot

    def _read_package_json(self) -> dict:
        path = self.root / "package.json"
        if not path.is_file():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise AnalysisError(f"package.json is not valid JSON: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise AnalysisError(f"package.json is not valid UTF-8: {exc}") from exc
        if not isinstance(data, dict):
            raise AnalysisError("package.json must contain a JSON object")
        return data

    @staticmethod
    def _detect_framework(runtime: dict) -> str:
        if "next" in runtime:
            return "nextjs"
        if "react" in runtime:
            return "react"
        return "unknown"

    def _files(self, directory: str) -> list[str]:
        base = self.root / directory
        if not base.is_dir():
            return []
        files = []
        for path in base.rglob("*"):
            if not path.is_file():
                continue
            relative = path.relative_to(self.root)
            if SKIPPED_DIRS.intersection(relative.parts):
                continue
            files.append(relative.as_posix())
        return sorted(files)

    def _structure(self) -> dict[str, tuple[str, ...]]:
        structure = {}
        for directory in STRUCTURE_DIRS:
            files = self._files(directory)
            if files:
                structure[directory] = tuple(files)
        return structure

    def _database(self, dependencies: dict) -> DatabaseSetup | None:
        if "drizzle-orm" not in dependencies:
            return None
        provider = next(
            (name for package, name in DATABASE_DRIVERS if package in dependencies),
            "postgres",
        )
        schema_files: list[str] = []
        for directory in dict.fromkeys((self.layout.schema_dir, *SCHEMA_DIRS)):
            for path in self._files(directory):
                if path.endswith(self.layout.schema_extension) and path not in schema_files:
                    schema_files.append(path)
        return DatabaseSetup(provider=provider, schema_files=tuple(schema_files))

    def _existing_schemas(self) -> list[ExistingSchema]:
        schemas = []
        for path in self._files(self.layout.schema_dir):
            if not path.endswith(self.layout.schema_extension):
                continue
            content = (self.root / path).read_text(encoding="utf-8", errors="replace")
            tables = TABLE_PATTERN.findall(content)
            if tables:
                name = Path(path).name[: -len(self.layout.schema_extension)]
                schemas.append(ExistingSchema(name=name, tables=tuple(tables), path=path))
        return schemas

    def _endpoint_paths(self) -> list[str]:
        handler_names = {*HANDLER_NAMES, self.layout.handler_file}
        return [
            path for path in self._files(self.layout.api_dir)
            if Path(path).name in handler_names
        ]

    def _ui_modules(self) -> list[str]:
        modules = []
        for directory in COMPONENT_DIRS:
            modules.extend(path for path in self._files(directory) if path.endswith(UI_EXTENSIONS))
        return modules

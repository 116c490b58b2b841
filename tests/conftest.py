"""
Pytest Fixtures
===============

Shared fixtures for database agent tests.
"""

import json
import sys
from pathlib import Path

import pytest

# Add src and the repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from db_agent.agent import DatabaseAgent
from db_agent.analyzer import ProjectAnalyzer
from db_agent.config import ProjectLayout
from db_agent.errors import MigrationError
from db_agent.execution import BackupManager, FileWriter, IndexMerger, PathDeriver, StepExecutor
from db_agent.llm.mock import MockLLM
from db_agent.migration import MigrationTrigger
from db_agent.observers import AuditTrailObserver
from db_agent.planning import LLMPlanSource

EXISTING_COMPONENT = """\
import { Card } from "@/components/ui/card";

export default function Dashboard() {
  return <Card>Dashboard</Card>;
}
"""

EXISTING_INDEX = 'export * from "./schemas/users";\n'

EXISTING_USERS_SCHEMA = """\
import { pgTable, serial, varchar } from "drizzle-orm/pg-core";

export const users = pgTable("users", {
  id: serial("id").primaryKey(),
  email: varchar("email", { length: 255 }).notNull(),
});
"""


class FakeMigrationTrigger(MigrationTrigger):
    """Counts invocations; optionally fails."""

    def __init__(self, error: str | None = None) -> None:
        self.calls = 0
        self.error = error

    def run(self) -> None:
        self.calls += 1
        if self.error:
            raise MigrationError(f"Migration failed: {self.error}")


class PlanFactory:
    """Builds raw plan payloads the way an LLM would return them."""

    @staticmethod
    def plan(*steps: dict, description: str = "Test plan") -> str:
        return json.dumps({"description": description, "steps": list(steps)})

    @staticmethod
    def schema(table: str = "orders", **extra) -> dict:
        details = {
            "tableName": table,
            "columns": [
                {"name": "total", "type": "decimal", "required": True},
                {"name": "status", "type": "string", "length": 32},
            ],
        }
        details.update(extra)
        return {"kind": "create_schema", "description": f"Create {table} table", "details": details}

    @staticmethod
    def api(endpoint: str = "orders", table: str = "orders", methods=None) -> dict:
        return {
            "kind": "create_api",
            "description": f"Create /api/{endpoint}",
            "details": {
                "endpoint": endpoint,
                "tableName": table,
                "methods": methods or ["GET", "POST", "PUT", "DELETE"],
            },
        }

    @staticmethod
    def component(kind: str, paths: list[str], endpoint: str = "orders", table: str = "orders") -> dict:
        return {
            "kind": kind,
            "description": f"{kind} for {table}",
            "details": {"componentPaths": paths, "endpoint": endpoint, "tableName": table},
        }

    @staticmethod
    def bare(kind: str) -> dict:
        return {"kind": kind, "description": kind, "details": {}}


@pytest.fixture
def plans() -> PlanFactory:
    return PlanFactory()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """A minimal Next.js + Drizzle project."""
    root = tmp_path / "project"
    (root / "src" / "components").mkdir(parents=True)
    (root / "src" / "database" / "schemas").mkdir(parents=True)
    (root / "src" / "app" / "api" / "users").mkdir(parents=True)

    (root / "package.json").write_text(
        json.dumps(
            {
                "name": "demo",
                "dependencies": {
                    "next": "15.0.0",
                    "react": "19.0.0",
                    "drizzle-orm": "0.33.0",
                    "pg": "8.11.0",
                },
                "devDependencies": {"drizzle-kit": "0.24.0", "typescript": "5.5.0"},
            }
        ),
        encoding="utf-8",
    )
    (root / "tsconfig.json").write_text("{}", encoding="utf-8")
    (root / "src" / "components" / "dashboard.tsx").write_text(EXISTING_COMPONENT, encoding="utf-8")
    (root / "src" / "database" / "schema.ts").write_text(EXISTING_INDEX, encoding="utf-8")
    (root / "src" / "database" / "schemas" / "users.ts").write_text(
        EXISTING_USERS_SCHEMA, encoding="utf-8"
    )
    (root / "src" / "app" / "api" / "users" / "route.ts").write_text(
        "export async function GET() {}\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def layout() -> ProjectLayout:
    return ProjectLayout()


@pytest.fixture
def deriver(layout: ProjectLayout) -> PathDeriver:
    return PathDeriver(layout)


@pytest.fixture
def backups(project_root: Path) -> BackupManager:
    """Backup manager with a frozen clock, so stamps only advance by uniqueness."""
    return BackupManager(project_root, clock=lambda: 1_700_000_000_000)


@pytest.fixture
def writer(project_root: Path, backups: BackupManager) -> FileWriter:
    return FileWriter(project_root, backups)


@pytest.fixture
def index_merger(writer: FileWriter, deriver: PathDeriver) -> IndexMerger:
    return IndexMerger(writer, deriver)


@pytest.fixture
def analyzer(project_root: Path, layout: ProjectLayout) -> ProjectAnalyzer:
    return ProjectAnalyzer(project_root, layout)


@pytest.fixture
def executor(
    writer: FileWriter,
    deriver: PathDeriver,
    index_merger: IndexMerger,
    analyzer: ProjectAnalyzer,
) -> StepExecutor:
    return StepExecutor(writer, deriver, index_merger, analyzer)


@pytest.fixture
def migration_trigger() -> FakeMigrationTrigger:
    return FakeMigrationTrigger()


@pytest.fixture
def audit() -> AuditTrailObserver:
    return AuditTrailObserver()


@pytest.fixture
def make_agent(executor, analyzer, deriver, migration_trigger, audit):
    """Build an agent whose LLM always answers with ``response``."""

    def _make(response: str, fail_fast: bool = False, trigger: MigrationTrigger | None = None):
        llm = MockLLM(responses={"": [response]})
        return DatabaseAgent(
            plan_source=LLMPlanSource(llm, deriver),
            executor=executor,
            migration_trigger=trigger or migration_trigger,
            analyzer=analyzer,
            deriver=deriver,
            fail_fast=fail_fast,
            observers=[audit],
        )

    return _make


@pytest.fixture
def failing_trigger() -> FakeMigrationTrigger:
    return FakeMigrationTrigger(error="drizzle-kit push exited with code 1")

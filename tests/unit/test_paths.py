"""
Unit Tests for Path Derivation
==============================

Tests for PathDeriver and path normalisation.
"""

import pytest

from db_agent.config import ProjectLayout
from db_agent.errors import PathDerivationError, StepExecutionError, UnknownStepKindError
from db_agent.execution import PathDeriver, normalise_endpoint, normalise_relative_path
from db_agent.models import ExecutionStep


def _step(kind: str, **details) -> ExecutionStep:
    return ExecutionStep(kind=kind, description=kind, details=details)


class TestNormalisation:
    """Tests for endpoint and relative-path normalisation."""

    @pytest.mark.parametrize(
        "endpoint, expected",
        [
            ("orders", "orders"),
            ("/orders/", "orders"),
            ("api/orders", "orders"),
            ("/api/orders", "orders"),
            ("admin/orders", "admin/orders"),
            ("apiary", "apiary"),
        ],
    )
    def test_endpoint(self, endpoint: str, expected: str) -> None:
        assert normalise_endpoint(endpoint) == expected

    @pytest.mark.parametrize("endpoint", ["", "/", "api", "/api/"])
    def test_empty_endpoint_rejected(self, endpoint: str) -> None:
        with pytest.raises(PathDerivationError):
            normalise_endpoint(endpoint)

    def test_backslashes_become_posix(self) -> None:
        assert normalise_relative_path("src\\components\\a.tsx", "create_component") == (
            "src/components/a.tsx"
        )

    def test_dot_segments_collapse(self) -> None:
        assert normalise_relative_path("src/./components/../lib/a.ts", "k") == "src/lib/a.ts"

    @pytest.mark.parametrize("path", ["/etc/passwd", "C:/temp/a.ts", "../a.ts", "src/../../a.ts", ""])
    def test_invalid_paths_rejected(self, path: str) -> None:
        with pytest.raises(PathDerivationError):
            normalise_relative_path(path, "create_component")


class TestPathDeriver:
    """Tests for step-to-path derivation."""

    def test_schema_path(self, deriver: PathDeriver) -> None:
        step = _step("create_schema", tableName="orders", columns=[])
        assert deriver.derive(step) == ["src/database/schemas/orders.ts"]

    def test_api_path(self, deriver: PathDeriver) -> None:
        step = _step("create_api", endpoint="/api/orders/", tableName="orders")
        assert deriver.derive(step) == ["src/app/api/orders/route.ts"]

    def test_nested_api_path(self, deriver: PathDeriver) -> None:
        step = _step("create_api", endpoint="admin/orders", tableName="orders")
        assert deriver.derive(step) == ["src/app/api/admin/orders/route.ts"]

    def test_component_paths_keep_order(self, deriver: PathDeriver) -> None:
        step = _step(
            "update_component",
            componentPaths=["src/components/b.tsx", "src/components/a.tsx"],
            endpoint="orders",
            tableName="orders",
        )
        assert deriver.derive(step) == ["src/components/b.tsx", "src/components/a.tsx"]

    @pytest.mark.parametrize("kind", ["run_migration", "analyze_project"])
    def test_pathless_kinds(self, deriver: PathDeriver, kind: str) -> None:
        assert deriver.derive(_step(kind)) == []

    def test_unknown_kind(self, deriver: PathDeriver) -> None:
        with pytest.raises(UnknownStepKindError):
            deriver.derive(_step("drop_database"))

    def test_invalid_details(self, deriver: PathDeriver) -> None:
        with pytest.raises(StepExecutionError, match="Invalid details"):
            deriver.derive(_step("create_api", tableName="orders"))

    def test_component_path_outside_root(self, deriver: PathDeriver) -> None:
        step = _step(
            "create_component",
            componentPaths=["../elsewhere.tsx"],
            endpoint="orders",
            tableName="orders",
        )
        with pytest.raises(PathDerivationError):
            deriver.derive(step)

    def test_custom_layout(self) -> None:
        deriver = PathDeriver(
            ProjectLayout(schema_dir="db/tables", schema_extension=".js", api_dir="app/api")
        )
        assert deriver.schema_path("orders") == "db/tables/orders.js"
        assert deriver.api_path("orders") == "app/api/orders/route.ts"

    def test_module_specifier_relative_to_index(self, deriver: PathDeriver) -> None:
        assert deriver.schema_module_specifier("orders") == "./schemas/orders"

    def test_module_specifier_from_other_directory(self) -> None:
        deriver = PathDeriver(ProjectLayout(schema_dir="db/tables", schema_index="src/db/index.ts"))
        assert deriver.schema_module_specifier("orders") == "../../db/tables/orders"

    def test_derivation_is_pure(self, deriver: PathDeriver, project_root) -> None:
        """Deriving never requires the file to exist."""
        step = _step("create_schema", tableName="neverCreated", columns=[])
        assert deriver.derive(step) == ["src/database/schemas/neverCreated.ts"]
        assert not (project_root / "src/database/schemas/neverCreated.ts").exists()

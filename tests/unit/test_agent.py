"""
Unit Tests for DatabaseAgent
============================

Tests for the plan orchestrator.
"""

from pathlib import Path

import pytest

from db_agent.agent import DatabaseAgent
from db_agent.llm.base import LLMInterface
from db_agent.models import AgentRequest, LLMResponse
from db_agent.observers import RunObserver
from db_agent.planning import LLMPlanSource

ORDERS_SCHEMA = "src/database/schemas/orders.ts"
ORDERS_ROUTE = "src/app/api/orders/route.ts"
ORDERS_REFERENCE = 'export * from "./schemas/orders";'


class ExplodingLLM(LLMInterface):
    def generate(self, prompt: str, system_prompt: str | None = None) -> LLMResponse:
        raise ConnectionError("boom")


class ExplodingObserver(RunObserver):
    def on_step_started(self, index, step) -> None:
        raise RuntimeError("observer bug")


class TestRunScenarios:
    """End-to-end runs against a temporary project."""

    def test_single_schema_step_creates_file_and_migrates(
        self, make_agent, plans, project_root: Path, migration_trigger
    ) -> None:
        """A create_schema plan writes one schema and migrates once."""
        agent = make_agent(plans.plan(plans.schema("orders")))
        result = agent.run(AgentRequest(query="add an orders table with total and status"))

        assert result.success is True
        assert result.touched_files == [ORDERS_SCHEMA]
        assert result.migration_completed is True
        assert migration_trigger.calls == 1
        assert (project_root / ORDERS_SCHEMA).exists()
        assert ORDERS_REFERENCE in (project_root / "src/database/schema.ts").read_text()

    def test_unparseable_plan_is_fatal(self, make_agent, project_root: Path, migration_trigger) -> None:
        """Text without a JSON payload aborts before any step."""
        agent = make_agent("Sorry, I can't help with that.")
        result = agent.run(AgentRequest(query="add an orders table"))

        assert result.success is False
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Failed to parse plan")
        assert result.touched_files == []
        assert result.executed_steps == []
        assert migration_trigger.calls == 0

    def test_failed_step_does_not_stop_the_run(self, make_agent, plans, project_root: Path) -> None:
        """A missing component path fails its step; the API step still lands."""
        agent = make_agent(
            plans.plan(
                plans.api("orders"),
                plans.component("update_component", ["src/components/missing.tsx"]),
            )
        )
        result = agent.run(AgentRequest(query="expose orders and show them"))

        assert result.touched_files == [ORDERS_ROUTE]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Step 2 (update_component) failed")
        assert "src/components/missing.tsx" in result.errors[0]
        assert result.success is False
        assert len(result.executed_steps) == 2

    def test_repeated_runs_reference_table_once(self, make_agent, plans, project_root: Path) -> None:
        """Running the same schema step twice leaves one index reference."""
        response = plans.plan(plans.schema("orders"))

        first = make_agent(response).run(AgentRequest(query="orders"))
        second = make_agent(response).run(AgentRequest(query="orders"))

        index = (project_root / "src/database/schema.ts").read_text()
        assert first.success and second.success
        assert index.count(ORDERS_REFERENCE) == 1
        assert index.splitlines()[0] == 'export * from "./schemas/users";'


class TestMigrationGating:
    """Migration runs at most once, and only when warranted."""

    def test_migration_runs_once_for_many_triggering_steps(
        self, make_agent, plans, migration_trigger
    ) -> None:
        agent = make_agent(
            plans.plan(
                plans.schema("orders"),
                plans.schema("invoices"),
                plans.bare("run_migration"),
            )
        )
        result = agent.run(AgentRequest(query="orders and invoices"))

        assert result.success is True
        assert migration_trigger.calls == 1
        assert result.migration_completed is True

    def test_skip_migration_never_invokes_trigger(self, make_agent, plans, migration_trigger) -> None:
        agent = make_agent(plans.plan(plans.schema("orders"), plans.bare("run_migration")))
        result = agent.run(AgentRequest(query="orders", skip_migration=True))

        assert result.success is True
        assert result.migration_completed is False
        assert migration_trigger.calls == 0

    def test_no_migration_without_schema_steps(self, make_agent, plans, migration_trigger) -> None:
        agent = make_agent(plans.plan(plans.api("orders")))
        result = agent.run(AgentRequest(query="orders api"))

        assert result.success is True
        assert result.migration_completed is False
        assert migration_trigger.calls == 0

    def test_failed_schema_step_does_not_request_migration(
        self, make_agent, plans, migration_trigger
    ) -> None:
        bad_schema = plans.schema("orders")
        bad_schema["details"]["tableName"] = "order items"
        agent = make_agent(plans.plan(bad_schema))
        result = agent.run(AgentRequest(query="orders"))

        assert result.success is False
        assert migration_trigger.calls == 0

    def test_migration_failure_is_reported(
        self, make_agent, plans, failing_trigger, project_root: Path
    ) -> None:
        agent = make_agent(plans.plan(plans.schema("orders")), trigger=failing_trigger)
        result = agent.run(AgentRequest(query="orders"))

        assert result.success is False
        assert result.migration_completed is False
        assert result.touched_files == [ORDERS_SCHEMA]
        assert result.errors == ["Migration failed: drizzle-kit push exited with code 1"]
        assert failing_trigger.calls == 1
        assert (project_root / ORDERS_SCHEMA).exists()


class TestDryRun:
    """Dry runs predict paths without side effects."""

    def test_dry_run_writes_nothing(self, make_agent, plans, project_root: Path, migration_trigger) -> None:
        agent = make_agent(
            plans.plan(
                plans.schema("orders"),
                plans.api("orders"),
                plans.component("create_component", ["src/components/order-list.tsx"]),
            )
        )
        index_before = (project_root / "src/database/schema.ts").read_text()

        result = agent.run(AgentRequest(query="orders", dry_run=True))

        assert result.dry_run is True
        assert result.success is True
        assert result.migration_completed is False
        assert migration_trigger.calls == 0
        assert result.touched_files == [
            ORDERS_SCHEMA,
            ORDERS_ROUTE,
            "src/components/order-list.tsx",
        ]
        assert not (project_root / ORDERS_SCHEMA).exists()
        assert not (project_root / ORDERS_ROUTE).exists()
        assert not (project_root / ".agent-backups").exists()
        assert (project_root / "src/database/schema.ts").read_text() == index_before

    def test_dry_run_matches_real_run(self, make_agent, plans) -> None:
        response = plans.plan(
            plans.schema("orders"),
            plans.api("/api/orders/"),
            plans.component("create_component", ["src/components/order-list.tsx"]),
        )

        predicted = make_agent(response).run(AgentRequest(query="orders", dry_run=True))
        actual = make_agent(response).run(AgentRequest(query="orders"))

        assert actual.success is True
        assert predicted.touched_files == actual.touched_files

    def test_dry_run_reports_underivable_steps(self, make_agent, plans) -> None:
        agent = make_agent(plans.plan(plans.bare("drop_database"), plans.schema("orders")))
        result = agent.run(AgentRequest(query="orders", dry_run=True))

        assert result.success is False
        assert result.touched_files == [ORDERS_SCHEMA]
        assert result.errors == ["Step 1 (drop_database) failed: Unknown step kind: 'drop_database'"]


class TestStepErrors:
    """Step-level failures are recorded, not raised."""

    def test_unknown_kind_is_a_step_error(self, make_agent, plans) -> None:
        agent = make_agent(plans.plan(plans.bare("drop_database"), plans.api("orders")))
        result = agent.run(AgentRequest(query="orders"))

        assert len(result.executed_steps) == 2
        assert result.touched_files == [ORDERS_ROUTE]
        assert result.errors == ["Step 1 (drop_database) failed: Unknown step kind: 'drop_database'"]

    def test_duplicate_component_is_a_step_error(self, make_agent, plans, project_root: Path) -> None:
        original = (project_root / "src/components/dashboard.tsx").read_text()
        agent = make_agent(
            plans.plan(plans.component("create_component", ["src/components/dashboard.tsx"]))
        )
        result = agent.run(AgentRequest(query="dashboard"))

        assert result.success is False
        assert "Component already exists: src/components/dashboard.tsx" in result.errors[0]
        assert (project_root / "src/components/dashboard.tsx").read_text() == original

    def test_partial_component_update_warns(self, make_agent, plans, project_root: Path) -> None:
        agent = make_agent(
            plans.plan(
                plans.component(
                    "update_component",
                    ["src/components/dashboard.tsx", "src/components/missing.tsx"],
                )
            )
        )
        result = agent.run(AgentRequest(query="show orders on the dashboard"))

        assert result.success is True
        assert result.touched_files == ["src/components/dashboard.tsx"]
        assert len(result.warnings) == 1
        assert "src/components/missing.tsx" in result.warnings[0]
        assert len(result.backups) == 1
        assert result.backups[0].source_path == "src/components/dashboard.tsx"

    def test_errors_follow_execution_order(self, make_agent, plans) -> None:
        agent = make_agent(
            plans.plan(
                plans.bare("first_unknown"),
                plans.api("orders"),
                plans.bare("second_unknown"),
            )
        )
        result = agent.run(AgentRequest(query="orders"))

        assert [error.split(" failed")[0] for error in result.errors] == [
            "Step 1 (first_unknown)",
            "Step 3 (second_unknown)",
        ]

    def test_fail_fast_stops_at_first_error(self, make_agent, plans, migration_trigger) -> None:
        agent = make_agent(
            plans.plan(plans.bare("drop_database"), plans.schema("orders")),
            fail_fast=True,
        )
        result = agent.run(AgentRequest(query="orders"))

        assert len(result.executed_steps) == 1
        assert result.touched_files == []
        assert migration_trigger.calls == 0


class TestFatalFailures:
    """Analysis and planning failures abort the run."""

    def test_analysis_failure_is_fatal(self, make_agent, plans, project_root: Path) -> None:
        (project_root / "package.json").write_text("{ not json", encoding="utf-8")
        agent = make_agent(plans.plan(plans.schema("orders")))

        result = agent.run(AgentRequest(query="orders"))

        assert result.success is False
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Project analysis failed:")
        assert result.touched_files == []
        assert not (project_root / ORDERS_SCHEMA).exists()

    def test_skip_analysis_bypasses_snapshot(self, make_agent, plans, project_root: Path) -> None:
        (project_root / "package.json").write_text("{ not json", encoding="utf-8")
        agent = make_agent(plans.plan(plans.api("orders")))

        result = agent.run(AgentRequest(query="orders", skip_analysis=True))

        assert result.success is True
        assert result.context_snapshot is None

    def test_llm_transport_failure_is_fatal(self, executor, analyzer, migration_trigger) -> None:
        agent = DatabaseAgent(
            plan_source=LLMPlanSource(ExplodingLLM()),
            executor=executor,
            migration_trigger=migration_trigger,
            analyzer=analyzer,
        )
        result = agent.run(AgentRequest(query="orders"))

        assert result.success is False
        assert result.errors == ["Plan generation failed: boom"]

    def test_snapshot_attached_to_result(self, make_agent, plans) -> None:
        result = make_agent(plans.plan(plans.api("orders"))).run(AgentRequest(query="orders"))

        assert result.context_snapshot is not None
        assert result.context_snapshot.framework == "nextjs"
        assert result.plan_description == "Test plan"


class TestObservers:
    """Observer notifications and isolation."""

    def test_audit_trail_records_lifecycle(self, make_agent, plans, audit) -> None:
        make_agent(plans.plan(plans.schema("orders"))).run(AgentRequest(query="orders"))

        steps = [entry.step for entry in audit.audit_trail]
        assert steps == [
            "run_started",
            "plan_ready",
            "step_1_started",
            "step_1_completed",
            "migration_started",
            "run_completed",
        ]
        assert audit.audit_trail[-1].output_data["success"] is True

    def test_audit_trail_reset_per_run(self, make_agent, plans, audit) -> None:
        agent = make_agent(plans.plan(plans.api("orders")))
        agent.run(AgentRequest(query="orders"))
        first = len(audit.audit_trail)
        agent.run(AgentRequest(query="orders"))

        assert len(audit.audit_trail) == first

    def test_observer_errors_do_not_affect_run(self, make_agent, plans) -> None:
        agent = make_agent(plans.plan(plans.api("orders")))
        agent.observers.add(ExplodingObserver())

        result = agent.run(AgentRequest(query="orders"))

        assert result.success is True
        assert result.touched_files == [ORDERS_ROUTE]


class TestPrepareExecute:
    """The two-phase API used by interactive callers."""

    def test_prepare_does_not_touch_files(self, make_agent, plans, project_root: Path) -> None:
        agent = make_agent(plans.plan(plans.schema("orders")))
        prepared = agent.prepare(AgentRequest(query="orders"))

        assert prepared.ok
        assert [step.derived_files for step in prepared.plan.steps] == [[ORDERS_SCHEMA]]
        assert not (project_root / ORDERS_SCHEMA).exists()

    def test_dry_run_leaves_plan_untouched(self, make_agent, plans) -> None:
        agent = make_agent(plans.plan(plans.schema("orders")))
        request = AgentRequest(query="orders", dry_run=True)
        prepared = agent.prepare(request)
        step = prepared.plan.steps[0]
        step.derived_files = []

        result = agent.execute(prepared, request)

        assert result.touched_files == [ORDERS_SCHEMA]
        assert step.derived_files == []

    def test_execute_returns_prepared_failure(self, make_agent) -> None:
        agent = make_agent("no plan here")
        request = AgentRequest(query="orders")
        prepared = agent.prepare(request)

        assert not prepared.ok
        assert agent.execute(prepared, request) is prepared.failure

    @pytest.mark.parametrize("kind", ["analyze_project", "run_migration"])
    def test_pathless_steps_touch_nothing(self, make_agent, plans, kind: str) -> None:
        result = make_agent(plans.plan(plans.bare(kind))).run(AgentRequest(query="check"))

        assert result.success is True
        assert result.touched_files == []

"""
Plan Source
===========

Turns a natural-language request plus project context into an
ExecutionPlan by asking an LLM for a structured JSON plan.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

import structlog
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from db_agent.errors import PlanGenerationError, StepExecutionError
from db_agent.execution.paths import PathDeriver
from db_agent.llm.base import LLMInterface
from db_agent.models import ContextSnapshot, ExecutionPlan, ExecutionStep

logger = structlog.get_logger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_CODE_FENCE = re.compile(r"^```[\w-]*\s*$", re.MULTILINE)


class PlanSource(ABC):
    """Produces one plan per run, or fails with PlanGenerationError."""

    @abstractmethod
    def generate_plan(self, query: str, context: ContextSnapshot | None) -> ExecutionPlan:
        pass


class StepPayload(BaseModel):
    """Wire shape of one planned step."""

    kind: str = Field(..., min_length=1, validation_alias=AliasChoices("kind", "type"))
    description: str = ""
    details: dict[str, Any]

    @field_validator("details", mode="before")
    @classmethod
    def _null_details(cls, value: Any) -> Any:
        return {} if value is None else value


class PlanPayload(BaseModel):
    """Wire shape of the whole plan."""

    description: str = Field(..., min_length=1)
    steps: list[StepPayload]


def summarize_context(context: ContextSnapshot | None) -> str:
    """Short textual description of the project for the planning prompt."""
    if context is None:
        return "Project context: not analyzed"

    schemas = ", ".join(
        f"{schema.name} ({', '.join(schema.tables)})" for schema in context.existing_schemas
    )
    lines = [
        "Project context:",
        f"- Framework: {context.framework}",
        f"- TypeScript: {'yes' if context.has_typed_source else 'no'}",
        f"- Database: {context.database.provider if context.database else 'not detected'}",
        f"- Existing schemas: {schemas or 'None'}",
        f"- API routes: {len(context.endpoint_paths)} routes",
        f"- Components: {len(context.ui_module_paths)} components",
    ]
    if context.ui_module_paths:
        lines.append(f"- Component files: {', '.join(context.ui_module_paths[:20])}")
    return "\n".join(lines)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Pull the JSON object out of an LLM response.

    Code fences are tolerated; everything from the first ``{`` to the last
    ``}`` is parsed.

    Raises:
        ValueError: If there is no JSON object or it does not parse
    """
    cleaned = _CODE_FENCE.sub("", text or "")
    match = _JSON_OBJECT.search(cleaned)
    if not match:
        raise ValueError("No JSON object found in response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    if not isinstance(data, dict):
        raise ValueError("Plan must be a JSON object")
    return data


class LLMPlanSource(PlanSource):
    """Plan source backed by any LLMInterface."""

    SYSTEM_PROMPT = """You plan changes to a Next.js (app router) project that uses
Drizzle ORM with PostgreSQL. Reply with a JSON execution plan:

{
  "description": "Brief description of what will be done",
  "steps": [
    {
      "kind": "create_schema | create_api | create_component | update_component | run_migration | analyze_project",
      "description": "What this step does",
      "details": { ... }
    }
  ]
}

Details per kind:
- create_schema: {"tableName": "...", "columns": [{"name": "...", "type": "string|text|integer|decimal|boolean|timestamp|serial", "required": true, "unique": false, "length": 255}], "relationships": [{"type": "oneToMany|manyToOne|manyToMany", "table": "...", "column": "..."}]}
- create_api: {"endpoint": "resource-name", "tableName": "...", "methods": ["GET", "POST", "PUT", "DELETE"]}
- create_component: {"componentPaths": ["src/components/new-view.tsx"], "endpoint": "...", "tableName": "..."}
- update_component: {"componentPaths": ["existing/component.tsx"], "endpoint": "...", "tableName": "..."}
- run_migration, analyze_project: {}

Rules:
1. Table names and column names are identifiers in camelCase
2. Endpoints are relative to /api and have no leading slash
3. Only update components that exist in the project
4. Put schema steps before the API and component steps that use them

Respond with ONLY the JSON, no explanations."""

    def __init__(self, llm: LLMInterface, deriver: PathDeriver | None = None) -> None:
        """
        Initialize the plan source.

        Args:
            llm: LLM used for plan generation
            deriver: Path deriver used to pre-compute each step's files
        """
        self.llm = llm
        self.deriver = deriver or PathDeriver()

    def build_prompt(self, query: str, context: ContextSnapshot | None) -> str:
        return f'{summarize_context(context)}\n\nUser request: "{query}"'

    def generate_plan(self, query: str, context: ContextSnapshot | None) -> ExecutionPlan:
        """
        Ask the LLM for a plan and validate it.

        Args:
            query: Natural-language request
            context: Project snapshot, or None when analysis was skipped

        Returns:
            ExecutionPlan with derived files filled in where derivable

        Raises:
            PlanGenerationError: If the LLM call fails or the reply is not a valid plan
        """
        prompt = self.build_prompt(query, context)
        try:
            response = self.llm.generate(prompt, system_prompt=self.SYSTEM_PROMPT)
        except Exception as exc:
            logger.error("plan_generation_failed", error=str(exc))
            raise PlanGenerationError(f"Plan generation failed: {exc}") from exc

        logger.info("plan_response_received", model=response.model, tokens_used=response.tokens_used)
        return self.parse_plan(response.content)

    def parse_plan(self, text: str) -> ExecutionPlan:
        """
        Parse raw LLM output into an ExecutionPlan.

        Raises:
            PlanGenerationError: With a message starting ``Failed to parse plan:``
        """
        try:
            payload = PlanPayload.model_validate(extract_json_object(text))
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'plan'}: {error['msg']}"
                for error in exc.errors()
            )
            raise PlanGenerationError(f"Failed to parse plan: {problems}") from exc
        except ValueError as exc:
            raise PlanGenerationError(f"Failed to parse plan: {exc}") from exc

        steps = []
        for item in payload.steps:
            step = ExecutionStep(kind=item.kind, description=item.description, details=item.details)
            try:
                step.derived_files = self.deriver.derive(step)
            except StepExecutionError as exc:
                # Reported again, as a step error, when the step runs
                logger.debug("derivation_deferred", kind=step.kind, error=exc.message)
            steps.append(step)

        logger.info("plan_parsed", description=payload.description, steps=len(steps))
        return ExecutionPlan(description=payload.description, steps=steps)

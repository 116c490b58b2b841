"""
Step Details
============

Typed, validated parameter variants for each step kind.

The planner returns ``details`` as an untyped JSON object. Before a step
touches the filesystem its details are validated into exactly one of the
models below, selected by the step's kind.
"""

from typing import Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from db_agent.errors import StepExecutionError, UnknownStepKindError
from db_agent.models import ExecutionStep, StepKind

IDENTIFIER_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"

HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]

DEFAULT_METHODS: list[str] = ["GET", "POST"]


class _Details(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class ColumnSpec(_Details):
    """A single column requested for a new table."""

    name: str = Field(..., pattern=IDENTIFIER_PATTERN)
    type: str = "string"
    length: int | None = Field(default=None, gt=0)
    constraints: list[str] = Field(default_factory=list)
    primary: bool = False
    required: bool = False
    unique: bool = False

    @field_validator("constraints", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class Relationship(_Details):
    """Relationship hint rendered as documentation in the schema file."""

    type: Literal["oneToMany", "manyToOne", "manyToMany"]
    table: str
    column: str


class SchemaDetails(_Details):
    """Parameters of a create_schema step."""

    table_name: str = Field(..., pattern=IDENTIFIER_PATTERN)
    columns: list[ColumnSpec] = Field(
        ..., validation_alias=AliasChoices("columns", "fields")
    )
    relationships: list[Relationship] = Field(default_factory=list)

    @field_validator("relationships", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ApiDetails(_Details):
    """Parameters of a create_api step."""

    endpoint: str = Field(..., min_length=1)
    table_name: str = Field(..., pattern=IDENTIFIER_PATTERN)
    methods: list[HttpMethod] = Field(
        default_factory=lambda: list(DEFAULT_METHODS), min_length=1
    )

    @field_validator("methods", mode="before")
    @classmethod
    def _normalise_methods(cls, value: Any) -> Any:
        if value is None:
            return list(DEFAULT_METHODS)
        if isinstance(value, str):
            value = [value]
        methods: list[str] = []
        for method in value:
            method = str(method).strip().upper()
            if method not in methods:
                methods.append(method)
        return methods


class ComponentDetails(_Details):
    """Parameters of create_component and update_component steps."""

    component_paths: list[str] = Field(..., min_length=1)
    endpoint: str = Field(..., min_length=1)
    table_name: str = Field(..., pattern=IDENTIFIER_PATTERN)


class NoDetails(_Details):
    """Kinds that take no parameters."""


StepDetails = Union[SchemaDetails, ApiDetails, ComponentDetails, NoDetails]

DETAILS_MODELS: dict[StepKind, type[_Details]] = {
    StepKind.CREATE_SCHEMA: SchemaDetails,
    StepKind.CREATE_API: ApiDetails,
    StepKind.UPDATE_COMPONENT: ComponentDetails,
    StepKind.CREATE_COMPONENT: ComponentDetails,
    StepKind.RUN_MIGRATION: NoDetails,
    StepKind.ANALYZE_PROJECT: NoDetails,
}


def resolve_kind(kind: str) -> StepKind:
    """Map a raw kind string onto the closed set, or fail."""
    try:
        return StepKind(kind)
    except ValueError:
        raise UnknownStepKindError(str(kind)) from None


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "details"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def parse_details(step: ExecutionStep) -> StepDetails:
    """
    Validate a step's raw details into its typed variant.

    Args:
        step: Step as produced by the plan source

    Returns:
        The details model registered for the step's kind

    Raises:
        UnknownStepKindError: If the kind is not in the dispatch table
        StepExecutionError: If the details do not validate
    """
    kind = resolve_kind(step.kind)
    model = DETAILS_MODELS[kind]
    try:
        return model.model_validate(step.details or {})
    except ValidationError as exc:
        raise StepExecutionError(
            kind.value, f"Invalid details: {_format_validation_error(exc)}"
        ) from exc

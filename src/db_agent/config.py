"""
Agent Configuration
===================

Typed settings loaded from the environment (prefix ``DB_AGENT_``) and an
optional ``.env`` file.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


@dataclass(frozen=True)
class ProjectLayout:
    """Where generated artifacts live inside the target project."""

    schema_dir: str = "src/database/schemas"
    schema_extension: str = ".ts"
    schema_index: str = "src/database/schema.ts"
    api_dir: str = "src/app/api"
    handler_file: str = "route.ts"
    backup_dir: str = ".agent-backups"


class AgentSettings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DB_AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Target project ===
    project_root: Path = Path(".")
    schema_dir: str = ProjectLayout.schema_dir
    schema_extension: str = ProjectLayout.schema_extension
    schema_index: str = ProjectLayout.schema_index
    api_dir: str = ProjectLayout.api_dir
    handler_file: str = ProjectLayout.handler_file
    backup_dir: str = ProjectLayout.backup_dir

    # === Execution ===
    fail_fast: bool = False
    migration_commands: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["npx drizzle-kit generate", "npx drizzle-kit push"]
    )
    migration_timeout_seconds: float = Field(default=300.0, gt=0)

    # === Planner LLM ===
    llm_provider: Literal["mock", "openai"] = "mock"
    llm_model: str = "gpt-4o-mini"
    llm_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("DB_AGENT_LLM_API_KEY", "OPENAI_API_KEY"),
    )
    llm_base_url: str | None = None
    llm_temperature: float = Field(default=0.2, ge=0.0, le=2.0)

    @field_validator("schema_extension")
    @classmethod
    def _dotted_extension(cls, value: str) -> str:
        if value and not value.startswith("."):
            return f".{value}"
        return value

    @field_validator("migration_commands", mode="before")
    @classmethod
    def _split_commands(cls, value: object) -> object:
        # DB_AGENT_MIGRATION_COMMANDS accepts a JSON list or "cmd one;cmd two"
        if isinstance(value, str):
            if value.lstrip().startswith("["):
                return json.loads(value)
            return [part.strip() for part in value.split(";") if part.strip()]
        return value

    @property
    def layout(self) -> ProjectLayout:
        return ProjectLayout(
            schema_dir=self.schema_dir,
            schema_extension=self.schema_extension,
            schema_index=self.schema_index,
            api_dir=self.api_dir,
            handler_file=self.handler_file,
            backup_dir=self.backup_dir,
        )


def load_settings(**overrides: object) -> AgentSettings:
    """
    Load settings from the environment with optional overrides.

    Args:
        **overrides: Field-level overrides (for tests or embedding callers)

    Returns:
        Validated AgentSettings instance
    """
    return AgentSettings(**overrides)  # type: ignore[arg-type]

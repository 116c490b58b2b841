"""
Migration Trigger
=================

The single external procedure run after a plan that created schemas.
"""

import shlex
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

import structlog

from db_agent.errors import MigrationError

logger = structlog.get_logger(__name__)

DEFAULT_COMMANDS = ("npx drizzle-kit generate", "npx drizzle-kit push")

# Keep error messages readable when a tool dumps a lot of output
MAX_OUTPUT_CHARS = 2000


class MigrationTrigger(ABC):
    """Reconciles the live data store with the schema files on disk."""

    @abstractmethod
    def run(self) -> None:
        """
        Run the migration.

        Raises:
            MigrationError: If the external procedure fails
        """
        pass


def _tail(output: str) -> str:
    output = (output or "").strip()
    if len(output) > MAX_OUTPUT_CHARS:
        return "..." + output[-MAX_OUTPUT_CHARS:]
    return output


class CommandMigrationTrigger(MigrationTrigger):
    """Runs a fixed sequence of shell-free commands in the project root."""

    def __init__(
        self,
        root: Path,
        commands: Sequence[str] = DEFAULT_COMMANDS,
        timeout_seconds: float = 300.0,
    ) -> None:
        self.root = Path(root)
        self.commands = list(commands)
        self.timeout_seconds = timeout_seconds

    def run(self) -> None:
        if not self.commands:
            raise MigrationError("Migration failed: no migration commands configured")

        for command in self.commands:
            self._run_command(command)
        logger.info("migration_completed", commands=len(self.commands))

    def _run_command(self, command: str) -> None:
        argv = shlex.split(command)
        logger.info("migration_command_started", command=command, cwd=str(self.root))

        try:
            completed = subprocess.run(
                argv,
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as exc:
            raise MigrationError(f"Migration failed: command not found: {argv[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise MigrationError(
                f"Migration failed: {command!r} timed out after {self.timeout_seconds:g}s"
            ) from exc
        except OSError as exc:
            raise MigrationError(f"Migration failed: {command!r}: {exc}") from exc

        if completed.returncode != 0:
            output = _tail(completed.stderr) or _tail(completed.stdout)
            logger.error(
                "migration_command_failed",
                command=command,
                returncode=completed.returncode,
                output=output,
            )
            message = f"Migration failed: {command!r} exited with code {completed.returncode}"
            if output:
                message = f"{message}: {output}"
            raise MigrationError(message, output=output)

        logger.info("migration_command_completed", command=command)

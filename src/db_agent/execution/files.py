"""
File Mutation
=============

Backup-before-write file operations against one fixed project root.
"""

import shutil
import time
from pathlib import Path
from typing import Callable

import structlog

from db_agent.errors import BackupError, FileMutationError
from db_agent.models import BackupRecord, FileOperation

logger = structlog.get_logger(__name__)


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


def resolve_in_root(root: Path, relative: str) -> Path:
    """Resolve a project-relative path, refusing anything outside ``root``."""
    root_resolved = root.resolve()
    full = (root_resolved / relative).resolve()
    if full != root_resolved and root_resolved not in full.parents:
        raise FileMutationError(relative, "Path escapes the project root")
    return full


class BackupManager:
    """
    Captures timestamped copies of files about to be overwritten.

    Backups are named ``<epoch-ms>-<basename>`` inside the backup directory.
    Stamps are strictly increasing per manager, so two backups of the same
    file never share a name, even within one millisecond.
    """

    def __init__(
        self,
        root: Path,
        backup_dir: str = ".agent-backups",
        clock: Callable[[], int] | None = None,
    ) -> None:
        """
        Initialize the backup manager.

        Args:
            root: Project root all paths are resolved against
            backup_dir: Project-relative directory receiving the copies
            clock: Millisecond clock, injectable for tests
        """
        self.root = Path(root)
        self.backup_dir = backup_dir
        self._clock = clock or _epoch_ms
        self._last_stamp = 0
        self.records: list[BackupRecord] = []

    def _next_stamp(self) -> int:
        stamp = max(self._clock(), self._last_stamp + 1)
        self._last_stamp = stamp
        return stamp

    def backup(self, path: str) -> BackupRecord | None:
        """
        Copy ``path`` aside if it exists.

        Returns:
            The record of the copy, or None when there was nothing to back up

        Raises:
            BackupError: If the file exists but could not be copied
        """
        source = resolve_in_root(self.root, path)
        if not source.exists():
            return None

        backup_root = resolve_in_root(self.root, self.backup_dir)
        stamp = self._next_stamp()
        target = backup_root / f"{stamp}-{source.name}"
        while target.exists():
            stamp = self._next_stamp()
            target = backup_root / f"{stamp}-{source.name}"

        try:
            backup_root.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as exc:
            raise BackupError(path, f"Backup failed ({exc})") from exc

        record = BackupRecord(
            source_path=path,
            backup_path=target.relative_to(self.root.resolve()).as_posix(),
            captured_at_epoch_ms=stamp,
        )
        self.records.append(record)
        logger.info(
            "file_backed_up",
            path=path,
            backup_path=record.backup_path,
            size=source.stat().st_size,
        )
        return record

    def drain(self) -> list[BackupRecord]:
        """Return and forget the records captured so far."""
        records, self.records = self.records, []
        return records


class FileWriter:
    """Applies create/update/delete operations, backing up existing files first."""

    def __init__(self, root: Path, backups: BackupManager | None = None) -> None:
        self.root = Path(root)
        self.backups = backups or BackupManager(self.root)

    def exists(self, path: str) -> bool:
        return resolve_in_root(self.root, path).exists()

    def read_text(self, path: str) -> str:
        full = resolve_in_root(self.root, path)
        try:
            content = full.read_text(encoding="utf-8")
        except OSError as exc:
            raise FileMutationError(path, f"Read failed ({exc.strerror or exc})") from exc
        logger.debug("file_read", path=path, size=len(content))
        return content

    def apply(self, operation: FileOperation) -> BackupRecord | None:
        """
        Apply one file operation.

        Args:
            operation: The operation; ``backup`` controls the pre-write copy

        Returns:
            The backup record when an existing file was copied aside

        Raises:
            FileMutationError: If the operation is invalid or the write fails
        """
        path = operation.file_path
        full = resolve_in_root(self.root, path)

        if operation.action not in ("create", "update", "delete"):
            raise FileMutationError(path, f"Unsupported file operation {operation.action!r}")
        if operation.action != "delete" and operation.content is None:
            raise FileMutationError(path, "Content required for create/update")

        record = self.backups.backup(path) if operation.backup else None

        if operation.action == "delete":
            try:
                full.unlink()
            except FileNotFoundError as exc:
                raise FileMutationError(path, "Cannot delete missing file") from exc
            except OSError as exc:
                raise FileMutationError(path, f"Delete failed ({exc.strerror or exc})") from exc
            logger.info("file_deleted", path=path)
            return record

        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_text(operation.content, encoding="utf-8", newline="")
        except OSError as exc:
            raise FileMutationError(path, f"Write failed ({exc.strerror or exc})") from exc

        logger.info(
            "file_written",
            path=path,
            action=operation.action,
            lines=operation.content.count("\n") + 1,
            size=len(operation.content.encode("utf-8")),
            backup_path=record.backup_path if record else None,
        )
        return record

    def write(self, path: str, content: str, backup: bool = True) -> BackupRecord | None:
        """Create or overwrite ``path``, choosing the action from what is on disk."""
        action = "update" if self.exists(path) else "create"
        return self.apply(
            FileOperation(action=action, file_path=path, content=content, backup=backup)
        )

"""
Unit Tests for File Mutation
============================

Tests for the BackupManager and FileWriter.
"""

from pathlib import Path

import pytest

from db_agent.errors import BackupError, FileMutationError
from db_agent.execution import BackupManager, FileWriter
from db_agent.models import FileOperation


class TestBackupManager:
    """Tests for timestamped pre-write copies."""

    def test_missing_file_has_no_backup(self, backups: BackupManager) -> None:
        assert backups.backup("src/components/missing.tsx") is None
        assert backups.records == []

    def test_backup_copies_content(self, backups: BackupManager, project_root: Path) -> None:
        record = backups.backup("src/database/schema.ts")

        assert record is not None
        assert record.source_path == "src/database/schema.ts"
        assert record.backup_path == ".agent-backups/1700000000000-schema.ts"
        assert record.captured_at_epoch_ms == 1_700_000_000_000
        assert (project_root / record.backup_path).read_text() == (
            project_root / "src/database/schema.ts"
        ).read_text()

    def test_backups_within_one_millisecond_are_unique(
        self, backups: BackupManager, project_root: Path
    ) -> None:
        """A frozen clock still yields distinct names for the same file."""
        first = backups.backup("src/database/schema.ts")
        second = backups.backup("src/database/schema.ts")

        assert first.backup_path != second.backup_path
        assert second.captured_at_epoch_ms > first.captured_at_epoch_ms
        assert (project_root / first.backup_path).exists()
        assert (project_root / second.backup_path).exists()

    def test_existing_backup_is_never_overwritten(
        self, backups: BackupManager, project_root: Path
    ) -> None:
        backup_dir = project_root / ".agent-backups"
        backup_dir.mkdir()
        (backup_dir / "1700000000000-schema.ts").write_text("older copy")

        record = backups.backup("src/database/schema.ts")

        assert record.backup_path != ".agent-backups/1700000000000-schema.ts"
        assert (backup_dir / "1700000000000-schema.ts").read_text() == "older copy"

    def test_drain_returns_and_clears(self, backups: BackupManager) -> None:
        backups.backup("src/database/schema.ts")

        assert len(backups.drain()) == 1
        assert backups.drain() == []

    def test_unwritable_backup_dir_raises(self, project_root: Path) -> None:
        # A regular file where the backup directory should be
        (project_root / "blocked").write_text("")
        manager = BackupManager(project_root, backup_dir="blocked")

        with pytest.raises(BackupError):
            manager.backup("src/database/schema.ts")


class TestFileWriter:
    """Tests for create/update/delete operations."""

    def test_create_makes_parent_directories(self, writer: FileWriter, project_root: Path) -> None:
        record = writer.write("src/app/api/orders/route.ts", "export {};\n")

        assert record is None
        assert (project_root / "src/app/api/orders/route.ts").read_text() == "export {};\n"

    def test_update_backs_up_previous_content(
        self, writer: FileWriter, project_root: Path
    ) -> None:
        record = writer.write("src/database/schema.ts", "// replaced\n")

        assert record is not None
        assert (project_root / record.backup_path).read_text() == 'export * from "./schemas/users";\n'
        assert (project_root / "src/database/schema.ts").read_text() == "// replaced\n"

    def test_update_without_backup(self, writer: FileWriter, project_root: Path) -> None:
        record = writer.write("src/database/schema.ts", "// replaced\n", backup=False)

        assert record is None
        assert not (project_root / ".agent-backups").exists()

    def test_content_is_written_verbatim(self, writer: FileWriter, project_root: Path) -> None:
        content = "line one\r\nline two\n"
        writer.write("notes.txt", content)

        assert (project_root / "notes.txt").read_bytes() == content.encode("utf-8")

    def test_delete_backs_up_and_removes(self, writer: FileWriter, project_root: Path) -> None:
        record = writer.apply(
            FileOperation(action="delete", file_path="src/components/dashboard.tsx")
        )

        assert record is not None
        assert not (project_root / "src/components/dashboard.tsx").exists()
        assert (project_root / record.backup_path).exists()

    def test_delete_missing_file_fails(self, writer: FileWriter) -> None:
        with pytest.raises(FileMutationError, match="Cannot delete missing file"):
            writer.apply(FileOperation(action="delete", file_path="missing.ts", backup=False))

    def test_create_requires_content(self, writer: FileWriter) -> None:
        with pytest.raises(FileMutationError, match="Content required"):
            writer.apply(FileOperation(action="create", file_path="empty.ts"))

    def test_unsupported_action_fails(self, writer: FileWriter) -> None:
        with pytest.raises(FileMutationError, match="Unsupported file operation"):
            writer.apply(FileOperation(action="rename", file_path="a.ts", content=""))  # type: ignore[arg-type]

    def test_path_outside_root_is_rejected(self, writer: FileWriter) -> None:
        with pytest.raises(FileMutationError, match="escapes the project root"):
            writer.write("../outside.ts", "")

    def test_read_missing_file_fails(self, writer: FileWriter) -> None:
        with pytest.raises(FileMutationError) as exc_info:
            writer.read_text("src/components/missing.tsx")

        assert exc_info.value.path == "src/components/missing.tsx"
        assert str(exc_info.value).startswith("Read failed")

    def test_backup_failure_aborts_write(self, project_root: Path) -> None:
        (project_root / "blocked").write_text("")
        writer = FileWriter(project_root, BackupManager(project_root, backup_dir="blocked"))
        original = (project_root / "src/database/schema.ts").read_text()

        with pytest.raises(BackupError):
            writer.write("src/database/schema.ts", "// replaced\n")

        assert (project_root / "src/database/schema.ts").read_text() == original

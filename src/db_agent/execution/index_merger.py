"""
Aggregate Index Merger
======================

Keeps the central schema index referencing every generated schema module
exactly once.
"""

import structlog

from db_agent.execution.files import FileWriter
from db_agent.execution.paths import PathDeriver

logger = structlog.get_logger(__name__)


def reference_line(specifier: str) -> str:
    """Canonical re-export line for a schema module."""
    return f'export * from "{specifier}";'


def _canonical(line: str) -> str:
    return line.strip().rstrip(";").rstrip().replace("'", '"') + ";"


class IndexMerger:
    """Idempotent append-only merge into the aggregate index file."""

    def __init__(self, writer: FileWriter, deriver: PathDeriver) -> None:
        self.writer = writer
        self.deriver = deriver

    def merged_content(self, index_path: str, unit_name: str) -> str | None:
        """
        Compute the index content that references ``unit_name``.

        A missing index is treated as empty. Existing lines and their order
        are preserved; the reference is appended only when no equivalent
        line is present. Nothing is written.

        Args:
            index_path: Project-relative path of the index file
            unit_name: Schema module (table) name

        Returns:
            The new index content, or None if the unit is already referenced
        """
        line = reference_line(self.deriver.schema_module_specifier(unit_name))

        if self.writer.exists(index_path):
            content = self.writer.read_text(index_path)
        else:
            logger.info("index_missing", index_path=index_path, unit=unit_name)
            content = ""

        if any(_canonical(existing) == line for existing in content.splitlines()):
            logger.debug("index_reference_present", index_path=index_path, unit=unit_name)
            return None

        if content and not content.endswith("\n"):
            content += "\n"
        return content + line + "\n"

    def write(self, index_path: str, content: str, unit_name: str) -> None:
        """Write merged index content, backing up the previous index."""
        self.writer.write(index_path, content, backup=True)
        logger.info("index_reference_added", index_path=index_path, unit=unit_name)

    def ensure_referenced(self, index_path: str, unit_name: str) -> bool:
        """
        Make sure ``index_path`` re-exports ``unit_name`` exactly once.

        Returns:
            True if the index was written, False if it already referenced the unit
        """
        content = self.merged_content(index_path, unit_name)
        if content is None:
            return False
        self.write(index_path, content, unit_name)
        return True

"""
Execution Module
================

Path derivation, backup-before-write file mutation, aggregate index
merging and step dispatch.
"""

from db_agent.execution.executor import StepExecutor
from db_agent.execution.files import BackupManager, FileWriter
from db_agent.execution.index_merger import IndexMerger
from db_agent.execution.paths import PathDeriver, normalise_endpoint, normalise_relative_path

__all__ = [
    "StepExecutor",
    "BackupManager",
    "FileWriter",
    "IndexMerger",
    "PathDeriver",
    "normalise_endpoint",
    "normalise_relative_path",
]

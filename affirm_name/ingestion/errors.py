"""
Error taxonomy for the yearly name-file import.
Run-level failures (`PreconditionError`, `DiscoveryError`) stop the process; every other kind is
contained to the file being processed and reported by the orchestrator.
"""

from __future__ import annotations

from pathlib import Path


class ImportPipelineError(RuntimeError):
    """Base class for all import failures."""


class PreconditionError(ImportPipelineError):
    """Raised when required reference data (e.g. the target jurisdiction) is missing."""


class DiscoveryError(ImportPipelineError):
    """Raised when no candidate source files can be found."""


class FilenameError(ImportPipelineError):
    """Raised when a year cannot be extracted from a source filename."""


class StorageError(ImportPipelineError):
    """Raised on connectivity or constraint failures while writing to the store."""


class ParseError(ImportPipelineError):
    """Raised on the first malformed line of a source file."""

    def __init__(self, line_number: int, reason: str, source_file: Path | None = None) -> None:
        self.line_number = line_number
        self.reason = reason
        self.source_file = source_file
        location = f"{source_file.name}:" if source_file is not None else "line "
        super().__init__(f"{location}{line_number}: {reason}")


class ConsistencyError(ImportPipelineError):
    """Raised when a bulk write reports a different row count than was submitted."""

    def __init__(self, expected: int, written: int) -> None:
        self.expected = expected
        self.written = written
        super().__init__(f"expected to write {expected} rows, but the store reported {written}")

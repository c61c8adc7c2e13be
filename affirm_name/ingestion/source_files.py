"""
Source file discovery and filename-to-year resolution.
Yearly files follow a fixed naming scheme (e.g. `yob2023.txt`); anything else is skipped by the orchestrator.
"""

from __future__ import annotations

import hashlib
import re
from functools import partial
from pathlib import Path

from affirm_name.ingestion.errors import DiscoveryError, FilenameError

SSA_FILENAME_PATTERN = re.compile(r"^yob(\d{4})\.txt$")


def discover_source_files(input_dir: Path, filename_glob: str = "yob*.txt") -> list[Path]:
    """Return candidate files in deterministic order, or raise when there are none."""

    if not input_dir.is_dir():
        raise DiscoveryError(f"Input directory not found: {input_dir}")

    source_files = sorted(path for path in input_dir.glob(filename_glob) if path.is_file())
    if not source_files:
        raise DiscoveryError(f"No source files found in {input_dir} for pattern: {filename_glob}")
    return source_files


def extract_year(filename: str, pattern: re.Pattern[str] = SSA_FILENAME_PATTERN) -> int:
    """Return the four-digit year embedded in a source filename."""

    match = pattern.match(filename)
    if match is None:
        raise FilenameError(f"filename {filename!r} does not match expected format {pattern.pattern!r}")
    return int(match.group(1))


def source_checksum(source_file: Path) -> str:
    """Content fingerprint recorded on the dataset row, read in 1 MiB blocks."""

    digest = hashlib.sha256()
    with source_file.open("rb") as handle:
        for block in iter(partial(handle.read, 1 << 20), b""):
            digest.update(block)
    return digest.hexdigest()

"""
Strict parser for yearly name files (`name,gender,count` per line).
Parsing is fail-fast: the first malformed line aborts the whole file with its line number, so a file is
either fully validated or contributes nothing.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from affirm_name.ingestion.errors import ParseError

VALID_GENDERS = frozenset({"F", "M"})
FIELD_COUNT = 3
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
# Upper bound of the 32-bit `names.count` column.
MAX_COUNT = 2**31 - 1


@dataclass(frozen=True)
class NameRecord:
    year: int
    name: str
    gender: str
    count: int
    country_id: int
    dataset_id: int

    def to_row(self) -> dict[str, object]:
        return {
            "country_id": self.country_id,
            "dataset_id": self.dataset_id,
            "year": self.year,
            "name": self.name,
            "gender": self.gender,
            "count": self.count,
        }


def _parse_count(raw_count: str, line_number: int) -> int:
    if _INTEGER_PATTERN.fullmatch(raw_count) is None:
        raise ParseError(line_number, f"invalid count {raw_count!r}: not a base-10 integer")
    count = int(raw_count)
    if count <= 0:
        raise ParseError(line_number, f"invalid count {count}: must be positive")
    if count > MAX_COUNT:
        raise ParseError(line_number, f"invalid count {count}: exceeds maximum {MAX_COUNT}")
    return count


def parse_lines(lines: Iterable[str], year: int, country_id: int, dataset_id: int) -> list[NameRecord]:
    """Validate every line and return records in file order."""

    records: list[NameRecord] = []
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line:
            continue

        parts = line.split(",")
        if len(parts) != FIELD_COUNT:
            raise ParseError(line_number, f"expected {FIELD_COUNT} fields, got {len(parts)}")

        name, gender, raw_count = (part.strip() for part in parts)
        if not name:
            raise ParseError(line_number, "empty name")
        if gender not in VALID_GENDERS:
            raise ParseError(line_number, f"invalid gender {gender!r} (expected F or M)")

        records.append(
            NameRecord(
                year=year,
                name=name,
                gender=gender,
                count=_parse_count(raw_count, line_number),
                country_id=country_id,
                dataset_id=dataset_id,
            )
        )
    return records


def parse_name_file(source_file: Path, year: int, country_id: int, dataset_id: int) -> list[NameRecord]:
    """Parse one source file; raises `ParseError` carrying the file and offending line."""

    with source_file.open("r", encoding="utf-8-sig", newline="") as handle:
        try:
            return parse_lines(handle, year, country_id, dataset_id)
        except ParseError as exc:
            raise ParseError(exc.line_number, exc.reason, source_file) from None
        except UnicodeDecodeError as exc:
            raise ParseError(0, f"file is not valid UTF-8: {exc.reason}", source_file) from exc

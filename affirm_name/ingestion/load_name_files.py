"""Import yearly name-frequency files into Postgres, one idempotent dataset per file."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, NoReturn

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from affirm_name.common.db import create_store_engine
from affirm_name.common.logging import configure_logging
from affirm_name.ingestion.bulk_loader import bulk_insert_names
from affirm_name.ingestion.dataset_registry import dataset_exists, mark_failed, mark_loaded, register_dataset
from affirm_name.ingestion.errors import (
    ConsistencyError,
    DiscoveryError,
    FilenameError,
    ParseError,
    PreconditionError,
    StorageError,
)
from affirm_name.ingestion.import_config import ImportConfig, load_import_config
from affirm_name.ingestion.jurisdiction import resolve_jurisdiction
from affirm_name.ingestion.record_parser import parse_name_file
from affirm_name.ingestion.source_files import discover_source_files, extract_year, source_checksum

LOGGER = logging.getLogger("ingestion")

STATE_SKIPPED = "skipped"
STATE_IMPORTED = "imported"
STATE_FAILED = "failed"

EXIT_UNEXPECTED = 1
EXIT_STORAGE = 1
EXIT_PRECONDITION = 2
EXIT_DISCOVERY = 3


@dataclass(frozen=True)
class FileImportResult:
    source_file: str
    state: str
    year: int | None = None
    dataset_id: int | None = None
    records: int = 0
    message: str = ""


@dataclass
class ImportSummary:
    jurisdiction_code: str
    jurisdiction_id: int
    results: list[FileImportResult] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        return sum(result.records for result in self.results if result.state == STATE_IMPORTED)

    def count(self, state: str) -> int:
        return sum(1 for result in self.results if result.state == state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdiction_code": self.jurisdiction_code,
            "jurisdiction_id": self.jurisdiction_id,
            "files": len(self.results),
            "imported": self.count(STATE_IMPORTED),
            "skipped": self.count(STATE_SKIPPED),
            "failed": self.count(STATE_FAILED),
            "total_records": self.total_records,
            "results": [asdict(result) for result in self.results],
        }


def _load_records(engine: Engine, source_file: Path, year: int, country_id: int, dataset_id: int) -> int:
    records = parse_name_file(source_file, year, country_id, dataset_id)
    LOGGER.info("parsed %d records from %s", len(records), source_file.name)

    try:
        with engine.begin() as connection:
            written = bulk_insert_names(connection, records)
            mark_loaded(connection, dataset_id, written)
    except SQLAlchemyError as exc:
        raise StorageError(f"failed to commit records for {source_file.name}: {exc}") from exc
    return written


def process_name_file(
    engine: Engine,
    source_file: Path,
    country_id: int,
    cfg: ImportConfig,
) -> FileImportResult:
    """Drive one file through register -> parse -> load, containing any per-file failure."""

    filename = source_file.name
    LOGGER.info("processing %s", filename)

    try:
        year = extract_year(filename, cfg.filename_pattern)
    except FilenameError as exc:
        LOGGER.warning("skipping file %s: %s", source_file, exc)
        return FileImportResult(source_file=str(source_file), state=STATE_FAILED, message=str(exc))

    try:
        if dataset_exists(engine, country_id, year, filename):
            LOGGER.info("dataset for year %d (%s) already exists, skipping", year, filename)
            return FileImportResult(
                source_file=str(source_file),
                state=STATE_SKIPPED,
                year=year,
                message="dataset already loaded; skipped",
            )

        dataset_id = register_dataset(
            engine,
            country_id,
            year,
            filename,
            source_file,
            file_type=cfg.file_type,
            checksum=source_checksum(source_file),
        )
    except (StorageError, OSError) as exc:
        LOGGER.error("failed to register dataset for %s: %s", filename, exc)
        return FileImportResult(source_file=str(source_file), state=STATE_FAILED, year=year, message=str(exc))

    LOGGER.info("registered dataset id=%d for year %d", dataset_id, year)

    try:
        written = _load_records(engine, source_file, year, country_id, dataset_id)
    except (ParseError, ConsistencyError, StorageError, OSError) as exc:
        if isinstance(exc, ParseError):
            LOGGER.error("failed to parse %s at line %d: %s", filename, exc.line_number, exc.reason)
        else:
            LOGGER.error("failed to load %s: %s", filename, exc)
        try:
            mark_failed(engine, dataset_id, str(exc))
        except StorageError as mark_exc:
            LOGGER.error("could not record failure for dataset id=%d: %s", dataset_id, mark_exc)
        return FileImportResult(
            source_file=str(source_file),
            state=STATE_FAILED,
            year=year,
            dataset_id=dataset_id,
            message=str(exc),
        )

    LOGGER.info("imported %d records for year %d", written, year)
    return FileImportResult(
        source_file=str(source_file),
        state=STATE_IMPORTED,
        year=year,
        dataset_id=dataset_id,
        records=written,
        message="parsed and loaded",
    )


def run_import(engine: Engine, cfg: ImportConfig) -> ImportSummary:
    """Import every discovered file for the configured jurisdiction, sequentially."""

    country_id = resolve_jurisdiction(engine, cfg.jurisdiction_code)
    LOGGER.info("jurisdiction %s resolved to id=%d", cfg.jurisdiction_code, country_id)

    source_files = discover_source_files(cfg.input_dir, cfg.filename_glob)
    LOGGER.info("found %d data files in %s", len(source_files), cfg.input_dir)

    summary = ImportSummary(jurisdiction_code=cfg.jurisdiction_code, jurisdiction_id=country_id)
    for source_file in source_files:
        summary.results.append(process_name_file(engine, source_file, country_id, cfg))

    LOGGER.info(
        "import complete: imported=%d skipped=%d failed=%d total_records=%d",
        summary.count(STATE_IMPORTED),
        summary.count(STATE_SKIPPED),
        summary.count(STATE_FAILED),
        summary.total_records,
    )
    return summary


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import yearly name-frequency files into the name store")
    parser.add_argument("--config", type=Path, default=None, help="YAML defaults (default: configs/import.yaml)")
    parser.add_argument("--input-dir", default=None)
    parser.add_argument("--jurisdiction", default=None, help="Jurisdiction code, e.g. US")
    parser.add_argument("--database-url", default=None)
    return parser.parse_args(argv)


def _fail(message: str, payload: dict[str, Any], exit_code: int) -> NoReturn:
    print(f"ERROR: {message}", file=sys.stderr)
    print(json.dumps(payload, indent=2), file=sys.stderr)
    raise SystemExit(exit_code) from None


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging()
    cfg = load_import_config(args.config).with_overrides(
        input_dir=args.input_dir,
        jurisdiction_code=args.jurisdiction,
    )

    engine = create_store_engine(args.database_url)
    try:
        summary = run_import(engine, cfg)
    except PreconditionError as exc:
        _fail(str(exc), {"status": "failed", "reason_code": "missing_reference_data", "error": str(exc)}, EXIT_PRECONDITION)
    except DiscoveryError as exc:
        _fail(str(exc), {"status": "failed", "reason_code": "no_source_files", "error": str(exc)}, EXIT_DISCOVERY)
    except StorageError as exc:
        _fail(str(exc), {"status": "failed", "reason_code": "store_unavailable", "error": str(exc)}, EXIT_STORAGE)
    except Exception as exc:  # pragma: no cover - defensive fallback for CLI robustness
        _fail(
            "Import failed due to an unexpected error",
            {"status": "failed", "reason_code": "unexpected_error", "error": str(exc)},
            EXIT_UNEXPECTED,
        )
    else:
        print(json.dumps(summary.to_dict(), indent=2, default=str))
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()

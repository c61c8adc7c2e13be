"""
Dataset registry for yearly name files.
Each source file maps to exactly one `name_datasets` row keyed on (country, year, filename). A row moves
`registered -> loaded` when its records commit, or `registered -> failed` when parsing or loading aborts.
Only `loaded` rows count as present, so failed or interrupted files are reclaimed and retried on the next run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import and_, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from affirm_name.ingestion.ddl import name_datasets
from affirm_name.ingestion.errors import StorageError

STATUS_REGISTERED = "registered"
STATUS_LOADED = "loaded"
STATUS_FAILED = "failed"


def _source_key(country_id: int, year: int, filename: str):
    return and_(
        name_datasets.c.country_id == country_id,
        name_datasets.c.year_from == year,
        name_datasets.c.source_file_name == filename,
    )


def dataset_exists(engine: Engine, country_id: int, year: int, filename: str) -> bool:
    """Return True when this source file has already been fully loaded."""

    try:
        with engine.connect() as connection:
            status = connection.execute(
                select(name_datasets.c.parse_status).where(_source_key(country_id, year, filename))
            ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to check dataset for {filename}: {exc}") from exc
    return status == STATUS_LOADED


def register_dataset(
    engine: Engine,
    country_id: int,
    year: int,
    filename: str,
    storage_path: Path,
    *,
    file_type: str = "SSA-TXT",
    checksum: str | None = None,
) -> int:
    """Create (or reclaim an unfinished) dataset row in `registered` state and return its id."""

    values = {
        "year_to": year,
        "file_type": file_type,
        "storage_path": str(storage_path),
        "checksum": checksum,
        "parse_status": STATUS_REGISTERED,
        "row_count": None,
        "error_message": None,
        "uploaded_at": datetime.now(tz=UTC),
        "parsed_at": None,
    }
    try:
        with engine.begin() as connection:
            existing = connection.execute(
                select(name_datasets.c.id, name_datasets.c.parse_status).where(
                    _source_key(country_id, year, filename)
                )
            ).one_or_none()

            if existing is None:
                result = connection.execute(
                    name_datasets.insert().values(
                        country_id=country_id,
                        source_file_name=filename,
                        year_from=year,
                        **values,
                    )
                )
                return int(result.inserted_primary_key[0])

            if existing.parse_status == STATUS_LOADED:
                raise StorageError(f"Dataset for {filename} ({year}) is already loaded as id={existing.id}")

            connection.execute(
                name_datasets.update().where(name_datasets.c.id == existing.id).values(**values)
            )
            return int(existing.id)
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to create dataset for {filename}: {exc}") from exc


def mark_loaded(connection: Connection, dataset_id: int, row_count: int) -> None:
    """Flag a dataset complete; runs inside the transaction that wrote its records."""

    connection.execute(
        name_datasets.update()
        .where(name_datasets.c.id == dataset_id)
        .values(parse_status=STATUS_LOADED, row_count=row_count, parsed_at=datetime.now(tz=UTC))
    )


def mark_failed(engine: Engine, dataset_id: int, error_message: str) -> None:
    """Record why a registered dataset could not be loaded."""

    try:
        with engine.begin() as connection:
            connection.execute(
                name_datasets.update()
                .where(name_datasets.c.id == dataset_id)
                .values(
                    parse_status=STATUS_FAILED,
                    row_count=0,
                    error_message=error_message,
                    parsed_at=datetime.now(tz=UTC),
                )
            )
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to mark dataset id={dataset_id} as failed: {exc}") from exc

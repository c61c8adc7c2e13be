"""
Bulk loader for validated name records.
On Postgres the batch is streamed through `COPY ... FROM STDIN` on the psycopg2 cursor; other dialects
fall back to a single executemany insert. Either way the reported row count must equal the batch size.
"""

from __future__ import annotations

import csv
import io
import logging
import time
from collections.abc import Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from affirm_name.ingestion.errors import ConsistencyError, StorageError
from affirm_name.ingestion.record_parser import NameRecord

LOGGER = logging.getLogger("ingestion")

NAME_COLUMNS = ["country_id", "dataset_id", "year", "name", "gender", "count"]
PROGRESS_LOG_THRESHOLD = 1000


def _csv_buffer(records: Sequence[NameRecord]) -> io.StringIO:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for record in records:
        writer.writerow([record.country_id, record.dataset_id, record.year, record.name, record.gender, record.count])
    buffer.seek(0)
    return buffer


def _copy_rows(connection: Connection, records: Sequence[NameRecord]) -> int:
    """Stream records through COPY on the DBAPI cursor behind `connection`."""

    column_list = ", ".join(f'"{column}"' for column in NAME_COLUMNS)
    cursor = connection.connection.cursor()
    try:
        cursor.copy_expert(
            f"COPY names ({column_list}) FROM STDIN WITH (FORMAT csv)",
            _csv_buffer(records),
        )
        return int(cursor.rowcount)
    finally:
        cursor.close()


def _insert_rows(connection: Connection, records: Sequence[NameRecord]) -> int:
    column_list = ", ".join(f'"{column}"' for column in NAME_COLUMNS)
    placeholders = ", ".join(f":{column}" for column in NAME_COLUMNS)
    result = connection.execute(
        text(f"INSERT INTO names ({column_list}) VALUES ({placeholders})"),
        [record.to_row() for record in records],
    )
    return int(result.rowcount or 0)


def bulk_insert_names(connection: Connection, records: Sequence[NameRecord]) -> int:
    """Write `records` in one bulk operation on the caller's transaction and return rows written."""

    if not records:
        return 0

    start_time = time.perf_counter()
    try:
        if connection.dialect.name == "postgresql":
            written = _copy_rows(connection, records)
        else:
            written = _insert_rows(connection, records)
    except SQLAlchemyError as exc:
        raise StorageError(f"bulk insert failed: {exc}") from exc
    except connection.dialect.loaded_dbapi.Error as exc:
        raise StorageError(f"copy failed: {exc}") from exc

    if written != len(records):
        raise ConsistencyError(expected=len(records), written=written)

    if written > PROGRESS_LOG_THRESHOLD:
        LOGGER.info("inserted %d records in %.2fs", written, time.perf_counter() - start_time)
    return written

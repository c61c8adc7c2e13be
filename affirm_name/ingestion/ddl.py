"""
Table definitions for the name-frequency store and helpers to apply them.
These tables are the storage contract shared with read-side consumers: `countries` is reference data,
`name_datasets` has one row per source file, and `names` holds the append-only yearly counts.
"""

from __future__ import annotations

import json

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.engine import Engine

from affirm_name.common.db import create_store_engine

metadata = MetaData()

countries = Table(
    "countries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("code", String(8), nullable=False, unique=True),
    Column("name", String(128), nullable=False),
    Column("data_source_name", String(256), nullable=False),
    Column("data_source_url", String(512), nullable=False),
    Column("data_source_description", Text, nullable=True),
    Column("data_source_requires_manual_download", Boolean, nullable=False, default=False),
)

name_datasets = Table(
    "name_datasets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("country_id", Integer, ForeignKey("countries.id"), nullable=False),
    Column("source_file_name", String(256), nullable=False),
    Column("year_from", Integer, nullable=False),
    Column("year_to", Integer, nullable=False),
    Column("file_type", String(32), nullable=False),
    Column("storage_path", Text, nullable=False),
    Column("checksum", String(64), nullable=True),
    Column("parse_status", String(16), nullable=False),
    Column("row_count", Integer, nullable=True),
    Column("error_message", Text, nullable=True),
    Column("uploaded_at", DateTime(timezone=True), nullable=False),
    Column("parsed_at", DateTime(timezone=True), nullable=True),
    UniqueConstraint("country_id", "year_from", "source_file_name", name="uq_name_datasets_source"),
    CheckConstraint("year_to >= year_from", name="ck_name_datasets_year_range"),
)

names = Table(
    "names",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("country_id", Integer, ForeignKey("countries.id"), nullable=False),
    Column("dataset_id", Integer, ForeignKey("name_datasets.id"), nullable=False),
    Column("year", Integer, nullable=False),
    Column("name", String(128), nullable=False),
    Column("gender", String(1), nullable=False),
    Column("count", Integer, nullable=False),
    CheckConstraint("gender IN ('M', 'F')", name="ck_names_gender"),
    CheckConstraint('"count" > 0', name="ck_names_count_positive"),
    Index("ix_names_country_year", "country_id", "year"),
    Index("ix_names_name_gender", "name", "gender"),
)

REFERENCE_JURISDICTIONS: list[dict[str, object]] = [
    {
        "code": "US",
        "name": "United States",
        "data_source_name": "US Social Security Administration",
        "data_source_url": "https://www.ssa.gov/oact/babynames/limits.html",
        "data_source_description": "National baby name counts by year of birth (names with at least 5 occurrences).",
        "data_source_requires_manual_download": False,
    },
]


def apply_ingestion_ddl(engine: Engine) -> None:
    """Create every import table that does not exist yet."""

    metadata.create_all(engine, checkfirst=True)


def seed_reference_jurisdictions(engine: Engine) -> list[str]:
    """Insert reference jurisdictions that are missing and return the codes added."""

    added: list[str] = []
    with engine.begin() as connection:
        existing = set(connection.execute(select(countries.c.code)).scalars())
        for row in REFERENCE_JURISDICTIONS:
            if row["code"] in existing:
                continue
            connection.execute(countries.insert().values(**row))
            added.append(str(row["code"]))
    return added


def main() -> None:
    engine = create_store_engine()
    try:
        apply_ingestion_ddl(engine)
        added = seed_reference_jurisdictions(engine)
    finally:
        engine.dispose()
    print(json.dumps({"tables": sorted(metadata.tables), "seeded_jurisdictions": added}, indent=2))


if __name__ == "__main__":
    main()

"""Resolve the pre-seeded jurisdiction an import run targets."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from affirm_name.ingestion.ddl import countries
from affirm_name.ingestion.errors import PreconditionError, StorageError


def resolve_jurisdiction(engine: Engine, code: str) -> int:
    """Return the id of the country with `code`; the import never creates one."""

    try:
        with engine.connect() as connection:
            country_id = connection.execute(
                select(countries.c.id).where(countries.c.code == code)
            ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        raise StorageError(f"Could not look up jurisdiction {code!r}: {exc}") from exc

    if country_id is None:
        raise PreconditionError(
            f"Jurisdiction {code!r} not found in database. Apply migrations / seed reference data first."
        )
    return int(country_id)

"""
Database connection utilities.
It centralizes cross-cutting concerns like settings, logging, and database access used by the import pipeline.
The engine is built explicitly and handed to each ingestion component rather than living at module scope.
"""

from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from affirm_name.common.settings import get_settings


def create_store_engine(database_url: str | None = None) -> Engine:
    """Build the long-lived engine used for every read and write of one import run."""

    url = database_url or get_settings().DATABASE_URL
    return create_engine(url, pool_pre_ping=True, future=True)


def test_connection(engine: Engine) -> bool:
    """Return True if the database can be reached and queried."""

    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False

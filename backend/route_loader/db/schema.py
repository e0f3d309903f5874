"""Idempotent schema bootstrap for the collection and feature tables.

The bootstrapper enables PostGIS and creates both tables when they are
missing. Every statement uses ``IF NOT EXISTS``, so running it against an
already-initialized database is a no-op. All DDL runs in one transaction:
either the whole schema is in place afterwards or nothing changed and a
SetupError is raised.

Example:
    Prepare a fresh database:
        >>> from route_loader.core import config
        >>> from route_loader.db import database, schema
        >>> settings = config.get_settings()
        >>> with database.open_connection(settings) as conn:
        ...     schema.ensure_schema(conn, settings)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from route_loader.core import errors
from route_loader.db import database

if TYPE_CHECKING:
    import psycopg2.extensions

    from route_loader.core import config

logger = logging.getLogger(__name__)

CREATE_EXTENSION_SQL = "CREATE EXTENSION IF NOT EXISTS postgis;"


def build_schema_sql(settings: config.Settings) -> list[str]:
    """Return the DDL statements for the configured table names.

    Table names are validated as plain identifiers by Settings, which is what
    makes interpolating them here safe.

    Args:
        settings: Settings naming the collection and feature tables.

    Returns:
        Statements in execution order: extension, collection table,
        feature table.
    """
    collection_table = settings.collection_table
    feature_table = settings.feature_table
    return [
        CREATE_EXTENSION_SQL,
        f"""
        CREATE TABLE IF NOT EXISTS {collection_table} (
          id SERIAL PRIMARY KEY,
          kind TEXT,
          generator TEXT,
          attribution TEXT,
          timestamp TIMESTAMP
        );
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {feature_table} (
          id SERIAL PRIMARY KEY,
          collection_id INTEGER NOT NULL REFERENCES {collection_table}(id),
          kind TEXT,
          external_id TEXT,
          properties JSONB NOT NULL DEFAULT '{{}}'::jsonb,
          geometry GEOMETRY
        );
        """,
    ]


def ensure_schema(
    conn: psycopg2.extensions.connection,
    settings: config.Settings,
) -> None:
    """Ensure the PostGIS extension and both tables exist.

    Args:
        conn: Open connection owned by the current run.
        settings: Settings naming the collection and feature tables.

    Raises:
        SetupError: If any DDL statement fails; the transaction is rolled
            back first.
    """
    with database.transaction(conn, error_type=errors.SetupError) as cur:
        for statement in build_schema_sql(settings):
            cur.execute(statement)
    logger.info(
        "Tables %s and %s are ready",
        settings.collection_table,
        settings.feature_table,
    )

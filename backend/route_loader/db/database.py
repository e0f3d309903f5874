"""Database helpers: connections, transaction scopes and read-back queries.

Connections are opened explicitly and threaded through the schema
bootstrapper and the importer; there is no module-level connection. Writes
happen inside :func:`transaction`, which commits when its block completes and
rolls back on every other exit path before re-raising. :func:`savepoint`
narrows a rollback to a single statement group inside an open transaction.

Example:
    Run a block of statements atomically:
        >>> from route_loader.core import config
        >>> from route_loader.db import database
        >>> settings = config.get_settings()
        >>> with database.open_connection(settings) as conn:
        ...     with database.transaction(conn) as cur:
        ...         cur.execute("SELECT 1")
"""

from __future__ import annotations

import contextlib
import json
import logging
from typing import TYPE_CHECKING, Any, cast

import psycopg2
import psycopg2.extensions
import psycopg2.extras

from route_loader.core import errors
from route_loader.db import models as db_models

if TYPE_CHECKING:
    from collections.abc import Iterator

    from route_loader.core import config

logger = logging.getLogger(__name__)


def get_connection(
    settings: config.Settings,
) -> psycopg2.extensions.connection:
    """Create a synchronous psycopg2 connection.

    Args:
        settings: Settings containing the database URL and connect timeout.

    Returns:
        psycopg2 connection object, not in autocommit mode.

    Raises:
        StoreConnectionError: If the server cannot be reached or refuses
            the credentials.
    """
    try:
        return psycopg2.connect(
            settings.database_url,
            connect_timeout=settings.connect_timeout,
        )
    except psycopg2.Error as exc:
        raise errors.StoreConnectionError(
            f"Cannot connect to database: {str(exc).strip()}"
        ) from exc


@contextlib.contextmanager
def open_connection(
    settings: config.Settings,
) -> Iterator[psycopg2.extensions.connection]:
    """Open a connection for the duration of a block and always close it.

    Closing a connection with a transaction still open makes the server
    discard that transaction.
    """
    logger.info("Connecting to PostgreSQL database...")
    conn = get_connection(settings)
    try:
        yield conn
    finally:
        conn.close()
        logger.info("Database connection closed")


def _rollback(conn: psycopg2.extensions.connection) -> None:
    try:
        conn.rollback()
    except psycopg2.Error as exc:
        # The server drops the transaction with the connection anyway.
        logger.warning("Rollback failed: %s", str(exc).strip())


@contextlib.contextmanager
def transaction(
    conn: psycopg2.extensions.connection,
    error_type: type[errors.LoaderError] = errors.InsertError,
) -> Iterator[psycopg2.extensions.cursor]:
    """Yield a cursor whose statements commit or roll back as one unit.

    The transaction commits when the block finishes normally. Any exception
    raised inside the block, or by the commit itself, rolls the whole
    transaction back. Raw ``psycopg2`` errors are re-raised as ``error_type``;
    loader errors and everything else are re-raised unchanged.

    Args:
        conn: Open connection, not in autocommit mode.
        error_type: Loader error used to wrap database failures.

    Yields:
        Cursor bound to the transaction.

    Raises:
        LoaderError: ``error_type`` for database failures, or whichever
            loader error the block raised.
    """
    cur = conn.cursor()
    try:
        yield cur
        conn.commit()
    except psycopg2.Error as exc:
        _rollback(conn)
        raise error_type(str(exc).strip() or type(exc).__name__) from exc
    except BaseException:
        _rollback(conn)
        raise
    finally:
        cur.close()


@contextlib.contextmanager
def savepoint(
    cur: psycopg2.extensions.cursor,
    name: str,
) -> Iterator[None]:
    """Release a savepoint on success, roll back to it on any exception.

    Only the work done since the savepoint is undone; the enclosing
    transaction stays usable. ``name`` must be a trusted identifier.
    """
    cur.execute(f"SAVEPOINT {name}")
    try:
        yield
    except BaseException:
        cur.execute(f"ROLLBACK TO SAVEPOINT {name}")
        raise
    else:
        cur.execute(f"RELEASE SAVEPOINT {name}")


class CollectionRepository:
    """Read-only access to imported collections and their features.

    Geometries are read back through ``ST_AsGeoJSON`` so callers get the same
    structure they imported.
    """

    def __init__(
        self,
        conn: psycopg2.extensions.connection,
        settings: config.Settings,
    ) -> None:
        self.conn = conn
        self.collection_table = settings.collection_table
        self.feature_table = settings.feature_table

    def _cursor(self) -> psycopg2.extensions.cursor:
        return self.conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    def get_collection(
        self,
        collection_id: int,
    ) -> db_models.CollectionRecord | None:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT id, kind, generator, attribution, timestamp
                FROM {self.collection_table}
                WHERE id = %s
                """,  # noqa: S608
                (collection_id,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return self._collection_from_row(cast(dict[str, Any], row))

    def count_features(self, collection_id: int) -> int:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT count(*) AS total
                FROM {self.feature_table}
                WHERE collection_id = %s
                """,  # noqa: S608
                (collection_id,),
            )
            row = cur.fetchone()
        return int(row["total"]) if row is not None else 0

    def features(
        self,
        collection_id: int,
    ) -> Iterator[db_models.FeatureRecord]:
        """Yield a collection's features in insertion order.

        Args:
            collection_id: Identifier of the owning collection.

        Yields:
            FeatureRecord objects with decoded GeoJSON geometries.
        """
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT id, collection_id, kind, external_id, properties,
                       ST_AsGeoJSON(geometry) AS geometry
                FROM {self.feature_table}
                WHERE collection_id = %s
                ORDER BY id
                """,  # noqa: S608
                (collection_id,),
            )
            for row in cur.fetchall():
                yield self._feature_from_row(cast(dict[str, Any], row))

    def feature_names(self) -> list[str]:
        """Return the distinct ``name`` properties across all features."""
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT DISTINCT properties->>'name' AS name
                FROM {self.feature_table}
                WHERE properties->>'name' IS NOT NULL
                ORDER BY name
                """  # noqa: S608
            )
            return [str(row["name"]) for row in cur.fetchall()]

    @staticmethod
    def _collection_from_row(
        row: dict[str, Any],
    ) -> db_models.CollectionRecord:
        return db_models.CollectionRecord(
            id=int(row["id"]),
            kind=row.get("kind"),
            generator=row.get("generator"),
            attribution=row.get("attribution"),
            timestamp=row.get("timestamp"),
        )

    @staticmethod
    def _feature_from_row(row: dict[str, Any]) -> db_models.FeatureRecord:
        """Convert a feature row to a FeatureRecord.

        ``properties`` arrives decoded for JSONB columns but may be text when
        read through a plain cast; ``geometry`` is GeoJSON text or NULL.
        """
        properties = row.get("properties") or {}
        if isinstance(properties, str):
            properties = json.loads(properties)
        geometry = row.get("geometry")
        if isinstance(geometry, str):
            geometry = json.loads(geometry)
        return db_models.FeatureRecord(
            id=int(row["id"]),
            collection_id=int(row["collection_id"]),
            kind=row.get("kind"),
            external_id=row.get("external_id"),
            properties=properties,
            geometry=geometry,
        )

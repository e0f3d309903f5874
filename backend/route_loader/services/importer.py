"""Collection importer: one document, one transaction.

The importer writes a collection metadata row and then one row per feature,
in document order, all inside a single transaction. The commit happens only
after every feature is written, so readers never see a partially imported
collection: a failure anywhere rolls back the collection row together with
every feature written before it.

With ``on_geometry_error="skip"`` each feature is wrapped in a savepoint and a
rejected geometry only discards that feature. Any other insert failure still
aborts the whole import.

Example:
    Import a parsed document over an open connection:
        >>> from route_loader.core import config
        >>> from route_loader.db import database
        >>> from route_loader.services import document, importer
        >>> settings = config.get_settings()
        >>> doc = document.load_document(path)
        >>> with database.open_connection(settings) as conn:
        ...     result = importer.import_collection(conn, doc, settings)
        >>> result.collection_id
        1
"""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any

import psycopg2.extras

from route_loader.core import errors
from route_loader.db import database
from route_loader.db import models as db_models
from route_loader.services import geometry

if TYPE_CHECKING:
    import psycopg2.extensions

    from route_loader.core import config
    from route_loader.services import document

logger = logging.getLogger(__name__)

FEATURE_SAVEPOINT = "route_loader_feature"


def extract_external_id(
    properties: dict[str, Any],
    key: str,
) -> str | None:
    """Return the external identifier stored under ``key``, if any.

    Empty values count as absent; non-string values are stringified.
    """
    value = properties.get(key)
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def _naive_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Express an aware timestamp as naive UTC for the TIMESTAMP column.

    psycopg2 binds aware datetimes as timestamptz, which PostgreSQL would
    shift into the session time zone. Naive values are stored as given.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(datetime.UTC).replace(tzinfo=None)


def _insert_collection(
    cur: psycopg2.extensions.cursor,
    doc: document.FeatureCollectionDocument,
    settings: config.Settings,
) -> int:
    cur.execute(
        f"""
        INSERT INTO {settings.collection_table}
            (kind, generator, attribution, timestamp)
        VALUES (%(kind)s, %(generator)s, %(attribution)s, %(timestamp)s)
        RETURNING id
        """,  # noqa: S608
        {
            "kind": doc.kind,
            "generator": doc.generator,
            "attribution": doc.attribution,
            "timestamp": _naive_utc(doc.timestamp),
        },
    )
    row = cur.fetchone()
    if row is None:
        raise errors.InsertError("Collection insert returned no id")
    return int(row[0])


def _insert_feature(
    cur: psycopg2.extensions.cursor,
    collection_id: int,
    index: int,
    feature: document.FeatureEntry,
    settings: config.Settings,
) -> None:
    spatial_value = geometry.build_spatial_value(
        cur,
        feature.geometry,
        srid=settings.srid,
        feature_index=index,
    )
    cur.execute(
        f"""
        INSERT INTO {settings.feature_table}
            (collection_id, kind, external_id, properties, geometry)
        VALUES (%(collection_id)s, %(kind)s, %(external_id)s,
            %(properties)s, %(geometry)s::geometry)
        """,  # noqa: S608
        {
            "collection_id": collection_id,
            "kind": feature.kind,
            "external_id": extract_external_id(
                feature.properties, settings.external_id_key
            ),
            "properties": psycopg2.extras.Json(feature.properties),
            "geometry": spatial_value,
        },
    )


def import_collection(
    conn: psycopg2.extensions.connection,
    doc: document.FeatureCollectionDocument,
    settings: config.Settings,
) -> db_models.ImportResult:
    """Import a parsed document as one atomic unit.

    Args:
        conn: Open connection owned exclusively by this run.
        doc: Parsed feature collection.
        settings: Table names, external id key, SRID, progress cadence and
            geometry failure policy.

    Returns:
        ImportResult with the assigned collection id and the number of
        features written (and skipped, under the "skip" policy).

    Raises:
        GeometryError: A geometry was rejected under the "abort" policy.
        InsertError: Any insert or the commit failed.
        In both cases nothing from this import is persisted.
    """
    features = doc.features
    total = len(features)
    skip_bad_geometry = settings.on_geometry_error == "skip"
    imported = 0
    skipped = 0

    with database.transaction(conn, error_type=errors.InsertError) as cur:
        logger.info("Importing feature collection metadata")
        collection_id = _insert_collection(cur, doc, settings)
        logger.info("Importing %d features", total)

        for index, feature in enumerate(features):
            if index > 0 and index % settings.progress_every == 0:
                logger.info("Imported %d/%d features...", index, total)

            if not skip_bad_geometry:
                _insert_feature(cur, collection_id, index, feature, settings)
                imported += 1
                continue

            try:
                with database.savepoint(cur, FEATURE_SAVEPOINT):
                    _insert_feature(
                        cur, collection_id, index, feature, settings
                    )
            except errors.GeometryError as exc:
                skipped += 1
                logger.warning("Skipping %s", exc)
            else:
                imported += 1

    if skipped:
        logger.info(
            "Imported %d of %d features, skipped %d with invalid geometry",
            imported,
            total,
            skipped,
        )
    else:
        logger.info("Successfully imported all %d features", imported)
    return db_models.ImportResult(
        collection_id=collection_id,
        imported=imported,
        skipped=skipped,
    )

"""End-to-end import run returning a result value.

Chains the stages of one run: read the document, connect, bootstrap the
schema, import, close the connection. Loader errors raised by any stage are
captured in the returned ImportResult instead of escaping, so callers branch
on ``result.ok`` rather than on exceptions.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from route_loader.core import errors
from route_loader.db import database, schema
from route_loader.db import models as db_models
from route_loader.services import document, importer

if TYPE_CHECKING:
    import pathlib

    from route_loader.core import config

logger = logging.getLogger(__name__)


def run_import(
    path: pathlib.Path,
    settings: config.Settings,
) -> db_models.ImportResult:
    """Load one document file into the configured database.

    Args:
        path: Document to import.
        settings: Connection, table and import policy settings.

    Returns:
        ImportResult holding the new collection id, or the LoaderError that
        stopped the run. A failed run leaves no rows behind.
    """
    try:
        logger.info("Reading GeoJSON file: %s", path)
        doc = document.load_document(path)
        with database.open_connection(settings) as conn:
            schema.ensure_schema(conn, settings)
            return importer.import_collection(conn, doc, settings)
    except errors.LoaderError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return db_models.ImportResult(error=exc)

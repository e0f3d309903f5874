"""Data models for persisted collections, features and import outcomes.

This module defines the plain data structures the loader hands around once
rows exist in the store. A CollectionRecord is the metadata row written once
per import run; every FeatureRecord references exactly one collection. The
ImportResult is the value returned by a run, carrying either the assigned
collection id or the error that caused the rollback.

Example:
    Inspect the outcome of a run:
        >>> from route_loader.db.models import ImportResult
        >>> result = ImportResult(collection_id=7, imported=42)
        >>> result.ok
        True
"""

from __future__ import annotations

import dataclasses
import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from route_loader.core import errors


@dataclasses.dataclass
class CollectionRecord:
    """One import run's metadata row.

    Attributes:
        id: Identifier assigned by the store on insert.
        kind: Top-level document type, usually "FeatureCollection".
        generator: Tool that produced the document, if stated.
        attribution: Copyright/attribution text, if stated.
        timestamp: Capture timestamp of the source data, if stated.
    """

    id: int
    kind: str | None
    generator: str | None = None
    attribution: str | None = None
    timestamp: datetime.datetime | None = None


@dataclasses.dataclass
class FeatureRecord:
    """One persisted feature row.

    Attributes:
        id: Identifier assigned by the store on insert.
        collection_id: Owning collection, never None.
        kind: Feature type label, usually "Feature".
        external_id: Value of the reserved external id property, if any.
        properties: Arbitrary property map stored as JSONB.
        geometry: Geometry read back from the store as a GeoJSON mapping.
    """

    id: int
    collection_id: int
    kind: str | None
    external_id: str | None
    properties: dict[str, Any] = dataclasses.field(default_factory=dict)
    geometry: dict[str, Any] | None = None


@dataclasses.dataclass
class ImportResult:
    """Outcome of one import run.

    A successful run carries the assigned collection id and the number of
    features written; a failed run carries the error and no collection id,
    since everything it wrote was rolled back.
    """

    collection_id: int | None = None
    imported: int = 0
    skipped: int = 0
    error: errors.LoaderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.collection_id is not None

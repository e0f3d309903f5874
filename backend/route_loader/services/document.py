"""Feature collection document reader.

Parses a GeoJSON-like document into pydantic models before any database work
starts, so a malformed file never opens a transaction. Only the shape the
importer relies on is enforced: a JSON object whose ``features`` member is a
list of objects. Missing metadata fields become None, unknown members are
ignored, and geometry payloads are left as raw mappings for the geometry
codec to judge.

Example:
    Load a document from disk:
        >>> import pathlib
        >>> from route_loader.services import document
        >>> doc = document.load_document(pathlib.Path("routes.geojson"))
        >>> doc.kind, len(doc.features)
        ('FeatureCollection', 12)
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

import pydantic

from route_loader.core import errors

if TYPE_CHECKING:
    import pathlib


class FeatureEntry(pydantic.BaseModel):
    """One entry of the document's ``features`` list.

    Attributes:
        kind: Entry type label, read from ``type``.
        properties: Arbitrary key/value map; ``{}`` when absent or null.
        geometry: Raw geometry payload, None when absent. Any JSON value is
            accepted here; the geometry codec rejects non-objects per feature.
    """

    model_config = pydantic.ConfigDict(extra="ignore", populate_by_name=True)

    kind: str | None = pydantic.Field(default=None, alias="type")
    properties: dict[str, Any] = pydantic.Field(default_factory=dict)
    geometry: Any = None

    @pydantic.field_validator("properties", mode="before")
    @classmethod
    def _null_properties(cls, value: Any) -> Any:
        return {} if value is None else value


class FeatureCollectionDocument(pydantic.BaseModel):
    """Top-level document: shared metadata plus an ordered feature list.

    Attributes:
        kind: Document type label, read from ``type``.
        generator: Producing tool, e.g. "overpass-turbo".
        attribution: Attribution text, read from ``copyright``.
        timestamp: Capture time of the source data.
        features: Entries in document order; ``[]`` when absent or null.
    """

    model_config = pydantic.ConfigDict(extra="ignore", populate_by_name=True)

    kind: str | None = pydantic.Field(default=None, alias="type")
    generator: str | None = None
    attribution: str | None = pydantic.Field(default=None, alias="copyright")
    timestamp: datetime.datetime | None = None
    features: list[FeatureEntry] = pydantic.Field(default_factory=list)

    @pydantic.field_validator("features", mode="before")
    @classmethod
    def _null_features(cls, value: Any) -> Any:
        return [] if value is None else value


def parse_document(text: str | bytes) -> FeatureCollectionDocument:
    """Parse JSON text into a FeatureCollectionDocument.

    Raises:
        ParseError: If the text is not JSON or does not have the expected
            shape.
    """
    try:
        return FeatureCollectionDocument.model_validate_json(text)
    except pydantic.ValidationError as exc:
        raise errors.ParseError(
            f"Invalid feature collection document: {exc}"
        ) from exc


def load_document(path: pathlib.Path) -> FeatureCollectionDocument:
    """Read and parse a feature collection document from disk.

    Args:
        path: Location of the .geojson/.json file.

    Returns:
        The parsed document.

    Raises:
        ParseError: If the file cannot be read or is not a well-formed
            feature collection.
    """
    try:
        text = path.read_bytes()
    except OSError as exc:
        raise errors.ParseError(f"Cannot read {path}: {exc}") from exc
    return parse_document(text)

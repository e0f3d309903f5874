"""Geometry codec: GeoJSON payloads to PostGIS spatial values.

The codec does not implement a geometry grammar. It runs a cheap structural
check (known shape tag, ``coordinates`` nested to the depth that tag implies,
numeric positions) and then lets PostGIS build the value with
``ST_GeomFromGeoJSON``. Ring closure, coordinate ranges and winding order are
left to the store, which parses the value and checks it with ``ST_IsValid``.
Whatever it rejects is reported as a GeometryError, which aborts the
enclosing transaction.

Example:
    Build a spatial value inside an open transaction:
        >>> from route_loader.services import geometry
        >>> payload = {"type": "Point", "coordinates": [121.0, 14.5]}
        >>> value = geometry.build_spatial_value(cur, payload, srid=4326)
        >>> # value is the store-native geometry (hex EWKB)
"""

from __future__ import annotations

import json
import numbers
from typing import TYPE_CHECKING, Any

import psycopg2

from route_loader.core import errors

if TYPE_CHECKING:
    from collections.abc import Mapping

    import psycopg2.extensions

# Nesting depth of ``coordinates`` per shape tag: a position is depth 1.
COORDINATE_DEPTHS: dict[str, int] = {
    "Point": 1,
    "MultiPoint": 2,
    "LineString": 2,
    "MultiLineString": 3,
    "Polygon": 3,
    "MultiPolygon": 4,
}
COLLECTION_TYPE = "GeometryCollection"


def _is_number(value: object) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _check_coordinates(value: Any, depth: int) -> bool:
    if not isinstance(value, list):
        return False
    if depth == 1:
        return len(value) >= 2 and all(_is_number(v) for v in value)
    return all(_check_coordinates(item, depth - 1) for item in value)


def validate_payload(
    payload: Any,
    feature_index: int | None = None,
) -> None:
    """Check that a payload is structurally a GeoJSON geometry.

    Args:
        payload: Geometry mapping taken from a feature, or None when the
            feature has no geometry.
        feature_index: Position of the owning feature, used in messages.

    Raises:
        GeometryError: If the payload is missing, has an unknown ``type`` or
            its coordinates are not nested arrays of numbers at the expected
            depth.
    """
    if payload is None:
        raise errors.GeometryError("geometry is missing", feature_index)
    if not isinstance(payload, dict):
        raise errors.GeometryError("geometry must be an object", feature_index)

    shape = payload.get("type")
    if shape == COLLECTION_TYPE:
        members = payload.get("geometries")
        if not isinstance(members, list):
            raise errors.GeometryError(
                "GeometryCollection requires a 'geometries' list",
                feature_index,
            )
        for member in members:
            validate_payload(member, feature_index)
        return

    depth = COORDINATE_DEPTHS.get(shape) if isinstance(shape, str) else None
    if depth is None:
        raise errors.GeometryError(
            f"unsupported geometry type {shape!r}", feature_index
        )
    if not _check_coordinates(payload.get("coordinates"), depth):
        raise errors.GeometryError(
            f"malformed coordinates for {shape}", feature_index
        )


def to_geojson_text(payload: Mapping[str, Any]) -> str:
    """Serialize a payload to compact, key-sorted GeoJSON text."""
    return json.dumps(payload, separators=(",", ":"), sort_keys=True)


def _parse_statement(srid: int | None) -> str:
    expression = (
        "ST_GeomFromGeoJSON(%s)"
        if srid is None
        else "ST_SetSRID(ST_GeomFromGeoJSON(%s), %s)"
    )
    return (
        "SELECT geom, ST_IsValid(geom), ST_IsValidReason(geom) "
        f"FROM (SELECT {expression} AS geom) AS parsed"
    )


def build_spatial_value(
    cur: psycopg2.extensions.cursor,
    payload: Any,
    srid: int | None = None,
    feature_index: int | None = None,
) -> str:
    """Have PostGIS parse a payload and return the resulting geometry.

    The parsed value is also run through ``ST_IsValid``: depending on the
    PostGIS version, ``ST_GeomFromGeoJSON`` either raises on an unclosed ring
    or builds the ring as given, and only the validity check catches the
    latter.

    Args:
        cur: Cursor inside the import transaction.
        payload: GeoJSON geometry mapping.
        srid: SRID to stamp on the geometry, or None to keep PostGIS' default.
        feature_index: Position of the owning feature, used in messages.

    Returns:
        The geometry as returned by psycopg2 (hex EWKB text), ready to be
        bound as a ``geometry`` parameter.

    Raises:
        GeometryError: If the structural check fails, PostGIS rejects the
            payload or reports the parsed geometry as invalid. After a parse
            error the transaction is unusable until it, or the enclosing
            savepoint, is rolled back.
    """
    validate_payload(payload, feature_index)
    text = to_geojson_text(payload)
    params = (text,) if srid is None else (text, srid)
    try:
        cur.execute(_parse_statement(srid), params)
        row = cur.fetchone()
    except psycopg2.Error as exc:
        raise errors.GeometryError(
            str(exc).strip() or "geometry rejected by PostGIS", feature_index
        ) from exc
    if row is None or row[0] is None:
        raise errors.GeometryError(
            "PostGIS returned no geometry", feature_index
        )
    value, is_valid, reason = row
    if not is_valid:
        raise errors.GeometryError(f"invalid geometry: {reason}", feature_index)
    return str(value)

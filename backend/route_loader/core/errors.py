"""Error kinds raised while loading a feature collection into PostGIS.

Every failure the loader can report derives from :class:`LoaderError`, so the
command-line layer needs a single ``except`` clause to turn any of them into an
error line and a non-zero exit code. Low-level ``psycopg2`` errors are wrapped
by the scope that owns them and chained with ``raise ... from`` so the original
database message stays available in tracebacks.

Example:
    Handle an import failure:
        >>> from route_loader.core import errors
        >>> try:
        ...     raise errors.GeometryError("unknown shape", feature_index=3)
        ... except errors.LoaderError as exc:
        ...     print(exc)
        feature #3: unknown shape
"""

from __future__ import annotations


class LoaderError(RuntimeError):
    """Base class for every error surfaced by the loader."""


class SetupError(LoaderError):
    """The PostGIS extension or the target tables could not be created.

    Fatal for the whole run: nothing can be imported without the schema.
    """


class ParseError(LoaderError):
    """The input document is unreadable or not a well-formed collection.

    Raised before any connection or transaction is opened.
    """


class GeometryError(LoaderError):
    """A feature's geometry payload was rejected.

    Raised either by the structural check of the geometry codec or by the
    store's own GeoJSON parser. Fatal to the current transaction.

    Attributes:
        feature_index: Zero-based position of the offending feature in the
            document, or None when the payload is checked outside an import.
    """

    def __init__(self, message: str, feature_index: int | None = None) -> None:
        self.feature_index = feature_index
        if feature_index is not None:
            message = f"feature #{feature_index}: {message}"
        super().__init__(message)


class InsertError(LoaderError):
    """A row insert (or the final commit) failed for a non-geometry reason."""


class StoreConnectionError(LoaderError):
    """The store could not be reached, or the connection failed to close."""

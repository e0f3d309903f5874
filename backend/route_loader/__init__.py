"""Bulk loader for GeoJSON feature collections into PostgreSQL/PostGIS.

One run reads a feature collection document, makes sure the PostGIS
extension and the collection/feature tables exist, and writes one collection
row plus one row per feature inside a single transaction. Either every row
of the run becomes visible at commit, or none does.

- Schema bootstrap is idempotent (``CREATE ... IF NOT EXISTS``)
- Geometries are parsed by PostGIS itself via ``ST_GeomFromGeoJSON``
- Property maps are stored unnormalized as JSONB
- Importing the same document twice creates two independent collections

See the module docstrings under ``core``, ``db`` and ``services`` for details.
"""

__version__ = "0.1.0"

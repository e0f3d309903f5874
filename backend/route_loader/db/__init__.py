"""Database access: connections, transaction scopes, schema and records.

Stages import the submodules directly: ``database`` for connections,
transactions, savepoints and the read-back repository, ``schema`` for table
bootstrap and ``models`` for the record types.

Example:
    >>> from route_loader.db import database
    >>> with database.open_connection(settings) as conn:
    ...     with database.transaction(conn) as cur:
    ...         cur.execute("SELECT 1")
"""

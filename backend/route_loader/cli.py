"""Command-line entry point for importing a feature collection.

Usage:
    route-loader path/to/routes.geojson
    route-loader path/to/routes.geojson --on-geometry-error skip
    python -m route_loader path/to/routes.json --database-url postgresql://...

Exits 0 after printing the new collection id, 1 when the argument is missing,
the file does not exist or any import step fails.
"""

from __future__ import annotations

import argparse
import pathlib
import sys

import pydantic

from route_loader.core import config
from route_loader.services import pipeline
from route_loader.utils.logger import setup_logging

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="route-loader",
        description="Import a GeoJSON feature collection into PostGIS.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        type=pathlib.Path,
        help="Path to a .geojson or .json feature collection",
    )
    parser.add_argument(
        "--database-url",
        help="PostgreSQL connection URL (default: DATABASE_URL setting)",
    )
    parser.add_argument(
        "--on-geometry-error",
        choices=["abort", "skip"],
        help="Roll back the whole import or skip the offending feature",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (default: LOG_LEVEL setting)",
    )
    return parser


def _resolve_settings(args: argparse.Namespace) -> config.Settings:
    """Apply command-line overrides on top of the cached settings."""
    settings = config.get_settings()
    overrides = {
        "database_url": args.database_url,
        "on_geometry_error": args.on_geometry_error,
        "log_level": args.log_level,
    }
    overrides = {key: value for key, value in overrides.items() if value}
    if not overrides:
        return settings
    return config.Settings.model_validate(
        {**settings.model_dump(), **overrides}
    )


def main(argv: list[str] | None = None) -> int:
    """Run the loader and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.path is None:
        print("Please provide the path to a GeoJSON file", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return EXIT_FAILURE

    try:
        settings = _resolve_settings(args)
    except pydantic.ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    logger = setup_logging(settings.log_level)

    path: pathlib.Path = args.path
    if not path.exists():
        print(f"File not found: {path}", file=sys.stderr)
        return EXIT_FAILURE

    if path.suffix.lower() not in settings.document_extensions:
        logger.warning(
            "File does not have a %s extension",
            " or ".join(settings.document_extensions),
        )

    result = pipeline.run_import(path, settings)
    if not result.ok:
        print(f"Error: {result.error}", file=sys.stderr)
        return EXIT_FAILURE

    print(f"Import complete! Collection ID: {result.collection_id}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

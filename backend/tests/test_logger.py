"""Tests for the loader's console logging setup."""

from __future__ import annotations

import logging

import pytest

from route_loader.utils import logger as loader_logger


def test_setup_logging_attaches_single_handler() -> None:
    logger = loader_logger.setup_logging("info")
    loader_logger.setup_logging("debug")
    assert logger.name == "route_loader"
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG


def test_module_loggers_inherit_handler(
    capsys: pytest.CaptureFixture[str],
) -> None:
    loader_logger.setup_logging(logging.INFO)
    logging.getLogger("route_loader.services.importer").info("Imported 10/20")
    out = capsys.readouterr().out
    assert "[INFO] Imported 10/20" in out

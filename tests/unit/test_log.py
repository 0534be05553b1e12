"""Tests for the get_logger script helper."""

from __future__ import annotations

import logging

import pytest

from ragstore.log import get_logger


@pytest.fixture
def fresh_logger():
    name = "ragstore.tests.fresh"
    logger = logging.getLogger(name)
    yield name
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_attaches_single_stdout_handler(fresh_logger):
    logger = get_logger(fresh_logger)
    again = get_logger(fresh_logger, level="debug")

    assert again is logger
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_output_format(fresh_logger, capsys):
    get_logger(fresh_logger).info("indexed %d resources", 3)

    line = capsys.readouterr().out.strip()
    assert line.endswith(f"| INFO | {fresh_logger} | indexed 3 resources")


def test_default_name_is_package_logger():
    logger = logging.getLogger("ragstore")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    try:
        assert get_logger().name == "ragstore"
    finally:
        logger.handlers[:] = saved[0]
        logger.setLevel(saved[1])
        logger.propagate = saved[2]

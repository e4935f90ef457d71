"""Logging setup and JSON formatting."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest

from RDFStreams.GeonamesArchive.logging_utils import LOGGER_NAME, JSONFormatter, setup_logging
from RDFStreams.GeonamesArchive.settings import LoggingConfiguration


@pytest.fixture
def decoder_logger():
    logger = logging.getLogger(LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handlers, level, propagate = saved
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


def test_json_formatter_includes_context_fields() -> None:
    record = logging.makeLogRecord(
        {
            "name": "RDFStreams.GeonamesArchive.framing",
            "levelname": "WARNING",
            "levelno": logging.WARNING,
            "msg": "archive truncated after %d units",
            "args": (12,),
            "stage": "framing",
            "entry": "0042.txt",
            "units": 12,
        }
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "RDFStreams.GeonamesArchive.framing"
    assert payload["message"] == "archive truncated after 12 units"
    assert payload["stage"] == "framing"
    assert payload["entry"] == "0042.txt"
    assert payload["units"] == 12
    assert payload["timestamp"].endswith("Z")


def test_json_formatter_serialises_exceptions() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.getLogger("test").makeRecord(
            "test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
        )

    payload = json.loads(JSONFormatter().format(record))

    assert "ValueError: boom" in payload["exc_info"]
    assert payload["stage"] is None


def test_setup_logging_writes_json(decoder_logger) -> None:
    stream = io.StringIO()

    logger = setup_logging(LoggingConfiguration(level="DEBUG", json_output=True), stream=stream)
    logger.debug("reading archive entry", extra={"stage": "archive", "entry": "a.txt"})

    line = json.loads(stream.getvalue().strip())
    assert logger is decoder_logger
    assert line["message"] == "reading archive entry"
    assert line["entry"] == "a.txt"
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_setup_logging_replaces_its_own_handlers(decoder_logger) -> None:
    foreign = logging.NullHandler()
    decoder_logger.addHandler(foreign)
    first, second = io.StringIO(), io.StringIO()

    setup_logging(level="info", stream=first)
    setup_logging(level="info", stream=second)
    decoder_logger.info("decoded archive")

    assert first.getvalue() == ""
    assert second.getvalue() == "INFO: decoded archive\n"
    assert foreign in decoder_logger.handlers
    assert len(decoder_logger.handlers) == 2

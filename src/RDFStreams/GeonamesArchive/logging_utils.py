"""Structured logging helpers shared across archive decoding components."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Optional

from .settings import LoggingConfiguration

__all__ = ["LOGGER_NAME", "JSONFormatter", "setup_logging"]

LOGGER_NAME = "RDFStreams.GeonamesArchive"

_RESERVED_FIELDS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string with decoder-specific fields."""

        now = datetime.now(timezone.utc)
        payload = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "stage": getattr(record, "stage", None),
            "entry": getattr(record, "entry", None),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_FIELDS or key in payload:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(
    config: Optional[LoggingConfiguration] = None,
    *,
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    stream: Optional[IO[str]] = None,
    propagate: bool = False,
) -> logging.Logger:
    """Configure the decoder logger, replacing handlers installed by earlier calls."""

    config = config or LoggingConfiguration()
    resolved_level = (level or config.level).upper()
    use_json = config.json_output if json_output is None else json_output

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, resolved_level, logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_geoarchive_managed", False):
            logger.removeHandler(handler)
            handler_stream = getattr(handler, "stream", None)
            if handler_stream in (sys.stdout, sys.stderr):
                continue
            handler.close()

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    if use_json:
        stream_handler.setFormatter(JSONFormatter())
    else:
        stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._geoarchive_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    logger.propagate = propagate
    return logger

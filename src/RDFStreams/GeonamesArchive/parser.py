"""
GeoNames Archive Decoder

This module decodes a GeoNames RDF dump (a compressed archive whose members
hold thousands of one-line RDF/XML documents, each preceded by its feature
URI) into a single logical RDF stream.  The caller's handler sees exactly one
``start_rdf`` and, on success, one ``end_rdf``; the lifecycle signals emitted
by the per-document parses are dropped on the way.

Key Features:
- Forward-only traversal; the archive source is never rewound
- Known trailing truncation of GeoNames dumps treated as end of input
- Malformed documents, archive damage and handler failures abort the decode
- rdflib parser plugin so ``Graph().parse(path, format="geonames")`` works

Usage:
    from RDFStreams.GeonamesArchive.parser import decode
    from RDFStreams.GeonamesArchive.handlers import collect

    quads = []
    with open("all-geonames-rdf.zip", "rb") as stream:
        decode(stream, collect(quads), "http://sws.geonames.org/")
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from rdflib import Graph
from rdflib.parser import InputSource, Parser

from .archive import close_quietly
from .errors import ConfigError, UnsupportedInputError
from .framing import FramedEntryReader
from .handlers import GraphHandler, RDFHandler, TrackingHandler, drop_start_end
from .payload import parse_payload
from .settings import DecoderSettings, get_default_settings

__all__ = [
    "DecodeStats",
    "GeonamesArchiveParser",
    "GeonamesRDFParser",
    "decode",
    "decode_file",
]

LOGGER = logging.getLogger(__name__)

BINARY_DATA_EXPECTED = "Binary data expected"


@dataclass(frozen=True, slots=True)
class DecodeStats:
    """Summary of one decode call.

    Attributes:
        entries: Archive members visited.
        units: Framed documents parsed.
        truncated: Whether the archive ended on the tolerated truncation defect.
    """

    entries: int
    units: int
    truncated: bool


def _is_text_source(source: Any) -> bool:
    if isinstance(source, (str, io.TextIOBase)):
        return True
    return hasattr(source, "encoding") and not hasattr(source, "readinto")


class _ReadableStream(io.RawIOBase):
    """Raw stream view over a source exposing only ``read``."""

    def __init__(self, source: Any) -> None:
        super().__init__()
        self._source = source

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        data = self._source.read(len(buffer))
        if not data:
            return 0
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if self.closed:
            return
        try:
            close = getattr(self._source, "close", None)
            if close is not None:
                close()
        finally:
            super().close()


def _as_binary_stream(source: Any) -> BinaryIO:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(source))
    if isinstance(source, io.IOBase) or (
        hasattr(source, "readinto") and hasattr(source, "seekable")
    ):
        return source
    if hasattr(source, "read"):
        return _ReadableStream(source)  # type: ignore[return-value]
    raise TypeError(
        f"archive source must be a readable binary stream, got {type(source).__name__}"
    )


class GeonamesArchiveParser:
    """Decode GeoNames RDF archives into a caller-supplied handler.

    Instances hold configuration only; every :meth:`parse` call is an
    independent traversal.
    """

    def __init__(
        self,
        handler: Optional[RDFHandler] = None,
        *,
        settings: Optional[DecoderSettings] = None,
        logger: Optional[logging.Logger] = None,
        track_progress: bool = False,
    ) -> None:
        self.handler = handler
        self.settings = settings or get_default_settings()
        self.logger = logger or LOGGER
        self.track_progress = track_progress

    def set_handler(self, handler: RDFHandler) -> None:
        """Replace the handler receiving decoded records."""

        self.handler = handler

    def parse(self, source: Union[BinaryIO, bytes], base_uri: str = "") -> DecodeStats:
        """Decode the archive read from ``source``.

        ``source`` is owned by the call and closed before it returns or raises.

        Raises:
            UnsupportedInputError: If ``source`` carries characters rather than bytes.
            ArchiveReadError: If the archive is damaged beyond the tolerated truncation.
            PayloadParseError: If an embedded document is malformed.
        """

        if _is_text_source(source):
            raise UnsupportedInputError(BINARY_DATA_EXPECTED)
        try:
            if self.handler is None:
                raise ConfigError("No RDF handler configured")
            stream = _as_binary_stream(source)
        except (ConfigError, TypeError):
            close_quietly(source, self.logger)
            raise
        handler: RDFHandler = self.handler
        if self.track_progress:
            handler = TrackingHandler(
                handler, logger=self.logger, every=self.settings.logging.progress_every
            )
        nested = drop_start_end(handler)

        with FramedEntryReader(
            stream, settings=self.settings.archive, logger=self.logger
        ) as reader:
            handler.start_rdf()
            for unit in reader:
                parse_payload(
                    unit.payload,
                    nested,
                    base_uri,
                    settings=self.settings.payload,
                    unit=unit,
                )
        handler.end_rdf()

        stats = DecodeStats(entries=reader.entries, units=reader.units, truncated=reader.truncated)
        self.logger.info(
            "decoded archive",
            extra={
                "stage": "decode",
                "entries": stats.entries,
                "units": stats.units,
                "truncated": stats.truncated,
            },
        )
        return stats

    def parse_text(self, reader: Any, base_uri: str = "") -> DecodeStats:
        """Always fail: the format is defined over archive bytes only."""

        raise UnsupportedInputError(BINARY_DATA_EXPECTED)


def decode(
    source: Union[BinaryIO, bytes],
    handler: RDFHandler,
    base_uri: str = "",
    *,
    settings: Optional[DecoderSettings] = None,
    logger: Optional[logging.Logger] = None,
) -> DecodeStats:
    """Decode ``source`` into ``handler``; see :meth:`GeonamesArchiveParser.parse`."""

    return GeonamesArchiveParser(handler, settings=settings, logger=logger).parse(
        source, base_uri
    )


def decode_file(
    path: Union[str, os.PathLike],
    handler: RDFHandler,
    base_uri: Optional[str] = None,
    *,
    settings: Optional[DecoderSettings] = None,
    logger: Optional[logging.Logger] = None,
) -> DecodeStats:
    """Decode the archive stored at ``path``; the base defaults to the file URI."""

    file_path = Path(path)
    base = file_path.resolve().as_uri() if base_uri is None else base_uri
    return decode(file_path.open("rb"), handler, base, settings=settings, logger=logger)


class GeonamesRDFParser(Parser):
    """rdflib parser plugin decoding GeoNames archives into the target graph."""

    def parse(self, source: InputSource, sink: Graph, **kwargs: Any) -> None:  # type: ignore[override]
        stream = source.getByteStream()
        if stream is None:
            raise UnsupportedInputError(BINARY_DATA_EXPECTED)
        base_uri = kwargs.get("publicID") or source.getPublicId() or ""
        GeonamesArchiveParser(GraphHandler(sink)).parse(stream, base_uri)

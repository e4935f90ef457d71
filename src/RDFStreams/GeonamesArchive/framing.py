"""Framed-entry reader: turn archive members into (identifier, payload) units.

GeoNames RDF dumps store every feature as two consecutive lines inside an
archive member: the feature URI, then a complete RDF/XML document on a single
line.  :func:`pair_lines` holds that convention; :class:`FramedEntryReader`
applies it to every member of an archive in order and hides member boundaries
from the caller.
"""

from __future__ import annotations

import logging
from contextlib import closing
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterable, Iterator, Optional, Tuple

from .archive import close_quietly, iter_entries
from .errors import TruncatedEntryError
from .settings import ArchiveSettings, get_default_settings

__all__ = ["FramedUnit", "Framing", "FramedEntryReader", "pair_lines", "iter_framed_units"]

LOGGER = logging.getLogger(__name__)

Framing = Callable[[Iterable[str]], Iterator[Tuple[int, str, str]]]


@dataclass(frozen=True, slots=True)
class FramedUnit:
    """One framed document read from an archive member.

    Attributes:
        identifier: Framing line preceding the payload (the feature URI).
        payload: Self-contained document text.
        entry: Name of the archive member holding the unit.
        entry_index: Position of that member among regular members.
        unit_index: Position of the unit inside its member.
        line: One-based line number of the payload inside its member.
    """

    identifier: str
    payload: str
    entry: str
    entry_index: int
    unit_index: int
    line: int


def pair_lines(lines: Iterable[str]) -> Iterator[Tuple[int, str, str]]:
    """Group ``lines`` into ``(payload_line_number, identifier, payload)`` triples.

    A trailing identifier without a payload line is dropped.
    """

    iterator = iter(lines)
    line_number = 0
    for identifier in iterator:
        line_number += 1
        try:
            payload = next(iterator)
        except StopIteration:
            return
        line_number += 1
        yield line_number, identifier, payload


class FramedEntryReader:
    """Single-use iterable over the framed units of an archive.

    A :class:`TruncatedEntryError` raised anywhere in the archive ends the
    whole sequence normally and sets :attr:`truncated`; any other error
    propagates.  The stream is closed once the sequence is exhausted, fails,
    or the reader is closed.

    Attributes:
        entries: Number of regular members visited so far.
        units: Number of units yielded so far.
        truncated: Whether iteration stopped on the truncation defect.
    """

    def __init__(
        self,
        stream: BinaryIO,
        *,
        settings: Optional[ArchiveSettings] = None,
        logger: Optional[logging.Logger] = None,
        framing: Framing = pair_lines,
    ) -> None:
        self.stream = stream
        self.settings = settings or get_default_settings().archive
        self.logger = logger or LOGGER
        self.framing = framing
        self.entries = 0
        self.units = 0
        self.truncated = False
        self._iterator: Optional[Iterator[FramedUnit]] = None
        self._released = False

    def __iter__(self) -> Iterator[FramedUnit]:
        if self._iterator is None:
            self._iterator = self._iter_units()
        return self._iterator

    def __enter__(self) -> "FramedEntryReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Stop iteration early and release the archive stream."""

        if self._iterator is not None:
            self._iterator.close()  # type: ignore[attr-defined]
        self._release()

    def _release(self) -> None:
        if not self._released:
            self._released = True
            close_quietly(self.stream, self.logger)

    def _iter_units(self) -> Iterator[FramedUnit]:
        try:
            with closing(
                iter_entries(self.stream, settings=self.settings, logger=self.logger)
            ) as members:
                for entry, lines in members:
                    self.entries += 1
                    for unit_index, (line, identifier, payload) in enumerate(
                        self.framing(lines)
                    ):
                        self.units += 1
                        yield FramedUnit(
                            identifier=identifier,
                            payload=payload,
                            entry=entry.pathname,
                            entry_index=entry.index,
                            unit_index=unit_index,
                            line=line,
                        )
        except TruncatedEntryError as exc:
            self.truncated = True
            self.logger.warning(
                "archive truncated, treating as end of input",
                extra={
                    "stage": "framing",
                    "entry": exc.entry,
                    "entries": self.entries,
                    "units": self.units,
                    "error": str(exc),
                },
            )
        finally:
            self._release()


def iter_framed_units(
    stream: BinaryIO,
    *,
    settings: Optional[ArchiveSettings] = None,
    logger: Optional[logging.Logger] = None,
    framing: Framing = pair_lines,
) -> Iterator[FramedUnit]:
    """Return a lazy iterator over the framed units of ``stream``."""

    return iter(FramedEntryReader(stream, settings=settings, logger=logger, framing=framing))

"""Forward-only access to the entries of a compressed archive.

The archive is read through libarchive's streaming interface, so the source
only needs to support ``readinto``; it is never rewound.  Every libarchive
failure leaves this module as a typed error: the known trailing truncation
defect of GeoNames dumps becomes :class:`TruncatedEntryError`, everything else
:class:`ArchiveReadError`.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, Optional, Sequence, Tuple

import libarchive
from libarchive.exception import ArchiveError

from .errors import ArchiveReadError, TruncatedEntryError
from .settings import ArchiveSettings, get_default_settings

__all__ = [
    "ArchiveEntry",
    "classify_archive_error",
    "close_quietly",
    "iter_entries",
]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """Header information of one archive member.

    Attributes:
        pathname: Member name as stored in the archive.
        index: Zero-based position among the non-directory members.
        size: Declared uncompressed size, when the format records one.
    """

    pathname: str
    index: int
    size: Optional[int] = None


def _error_text(exc: BaseException) -> str:
    message = getattr(exc, "msg", None)
    if isinstance(message, bytes):
        message = message.decode("utf-8", errors="replace")
    if not message:
        message = str(exc)
    return str(message)


def classify_archive_error(
    exc: BaseException,
    signatures: Sequence[str],
    *,
    entry: Optional[str] = None,
) -> ArchiveReadError:
    """Map a libarchive failure onto the decoder's error kinds.

    Args:
        exc: Exception raised by libarchive.
        signatures: Message fragments identifying the tolerated truncation defect.
        entry: Name of the member being read when the failure happened.

    Returns:
        :class:`TruncatedEntryError` when the message matches a signature,
        :class:`ArchiveReadError` otherwise.
    """

    text = _error_text(exc)
    lowered = text.lower()
    location = f" in entry '{entry}'" if entry else ""
    if any(signature.lower() in lowered for signature in signatures):
        return TruncatedEntryError(f"Truncated archive entry{location}: {text}", entry=entry)
    return ArchiveReadError(f"Failed to read archive{location}: {text}", entry=entry)


def close_quietly(stream: object, logger: Optional[logging.Logger] = None) -> None:
    """Close ``stream`` if possible, logging instead of raising on failure."""

    close = getattr(stream, "close", None)
    if close is None:
        return
    try:
        close()
    except (OSError, ValueError) as exc:
        (logger or LOGGER).debug(
            "ignoring error while closing archive stream",
            extra={"stage": "archive", "error": str(exc)},
        )


class _BlockReader(io.RawIOBase):
    """Raw stream view over the data blocks of a single archive member."""

    def __init__(self, blocks: Iterable[bytes]) -> None:
        super().__init__()
        self._blocks = iter(blocks)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        while not self._pending:
            try:
                self._pending = bytes(next(self._blocks))
            except StopIteration:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


def _iter_lines(
    blocks: Iterable[bytes],
    settings: ArchiveSettings,
    entry: str,
) -> Iterator[str]:
    """Decode member data into lines with their terminators removed."""

    text = io.TextIOWrapper(
        io.BufferedReader(_BlockReader(blocks)),
        encoding=settings.encoding,
        errors=settings.encoding_errors,
        newline=None,
    )
    try:
        for line in text:
            yield line[:-1] if line.endswith("\n") else line
    except ArchiveError as exc:
        raise classify_archive_error(exc, settings.truncation_signatures, entry=entry) from exc
    finally:
        text.close()


def _open_reader(stream: BinaryIO, settings: ArchiveSettings):
    """Open a libarchive streaming reader over ``stream``."""

    return libarchive.stream_reader(
        stream, format_name=settings.format_name, filter_name=settings.filter_name
    )


def iter_entries(
    stream: BinaryIO,
    *,
    settings: Optional[ArchiveSettings] = None,
    logger: Optional[logging.Logger] = None,
) -> Iterator[Tuple[ArchiveEntry, Iterator[str]]]:
    """Yield each regular member of the archive together with a lazy line iterator.

    The line iterator of a member must be consumed (or abandoned) before the
    next member is requested. Directory members are skipped. The stream is
    not closed here; ownership stays with the caller.

    Raises:
        TruncatedEntryError: When the archive ends with the known truncation defect.
        ArchiveReadError: For any other enumeration or decompression failure.
    """

    settings = settings or get_default_settings().archive
    log = logger or LOGGER
    current: Optional[str] = None
    index = 0
    try:
        with _open_reader(stream, settings) as archive:
            for member in archive:
                if member.isdir:
                    continue
                current = member.pathname
                entry = ArchiveEntry(pathname=current, index=index, size=member.size)
                log.debug(
                    "reading archive entry",
                    extra={"stage": "archive", "entry": current, "size": entry.size},
                )
                yield entry, _iter_lines(member.get_blocks(), settings, current)
                index += 1
    except ArchiveError as exc:
        raise classify_archive_error(exc, settings.truncation_signatures, entry=current) from exc

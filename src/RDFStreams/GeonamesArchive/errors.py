"""Exception hierarchy shared across archive traversal, payload parsing, and decoding.

Decoding a GeoNames archive touches three layers: the compressed container,
the line framing inside each entry, and the RDF/XML parser invoked once per
payload.  This module groups their failure modes so callers can react to
high-level categories (a damaged archive vs. a malformed payload) while the
decoder can single out the one truncation defect it tolerates by type instead
of by message text.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "GeonamesArchiveError",
    "ArchiveReadError",
    "TruncatedEntryError",
    "PayloadParseError",
    "UnsupportedInputError",
    "UserConfigError",
    "ConfigError",
]


class GeonamesArchiveError(RuntimeError):
    """Base exception for archive decoding failures."""


class ArchiveReadError(GeonamesArchiveError):
    """Raised when the archive container cannot be enumerated or decompressed."""

    def __init__(self, message: str, *, entry: Optional[str] = None) -> None:
        super().__init__(message)
        self.entry = entry


class TruncatedEntryError(ArchiveReadError):
    """Raised when an entry carries the known trailing truncation defect.

    The decoder treats this kind as end of input rather than as a failure.
    """


class PayloadParseError(GeonamesArchiveError):
    """Raised when an embedded RDF document is not well formed."""

    def __init__(
        self,
        message: str,
        *,
        entry: Optional[str] = None,
        identifier: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        location = []
        if entry is not None:
            location.append(f"entry={entry}")
        if line is not None:
            location.append(f"line={line}")
        if column is not None:
            location.append(f"column={column}")
        if location:
            message = f"{message} ({', '.join(location)})"
        super().__init__(message)
        self.entry = entry
        self.identifier = identifier
        self.line = line
        self.column = column


class UnsupportedInputError(GeonamesArchiveError, TypeError):
    """Raised when character data is supplied where archive bytes are required."""


class UserConfigError(RuntimeError):
    """Raised when settings files or environment overrides are invalid."""


# Shorter name raised for a missing handler and unreadable settings files.
ConfigError = UserConfigError

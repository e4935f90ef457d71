"""Public API for decoding GeoNames RDF archives into a single RDF stream.

This facade exposes the decoder entry points, the handler helpers used to
receive decoded statements, the format registration hook, and the error
types callers are expected to handle.  Attributes are imported lazily so
that importing the package does not load rdflib or libarchive.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict, Tuple

__version__ = "0.1.0"

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "decode": ("parser", "decode"),
    "decode_file": ("parser", "decode_file"),
    "DecodeStats": ("parser", "DecodeStats"),
    "GeonamesArchiveParser": ("parser", "GeonamesArchiveParser"),
    "FramedUnit": ("framing", "FramedUnit"),
    "iter_framed_units": ("framing", "iter_framed_units"),
    "RDFHandler": ("handlers", "RDFHandler"),
    "Quad": ("handlers", "Quad"),
    "collect": ("handlers", "collect"),
    "drop_start_end": ("handlers", "drop_start_end"),
    "GraphHandler": ("handlers", "GraphHandler"),
    "GEONAMES_FORMAT": ("formats", "GEONAMES_FORMAT"),
    "init": ("formats", "init"),
    "DecoderSettings": ("settings", "DecoderSettings"),
    "load_settings": ("settings", "load_settings"),
    "setup_logging": ("logging_utils", "setup_logging"),
    "GeonamesArchiveError": ("errors", "GeonamesArchiveError"),
    "ArchiveReadError": ("errors", "ArchiveReadError"),
    "TruncatedEntryError": ("errors", "TruncatedEntryError"),
    "PayloadParseError": ("errors", "PayloadParseError"),
    "UnsupportedInputError": ("errors", "UnsupportedInputError"),
}

__all__ = [*_EXPORTS, "__version__"]

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .errors import (
        ArchiveReadError,
        GeonamesArchiveError,
        PayloadParseError,
        TruncatedEntryError,
        UnsupportedInputError,
    )
    from .formats import GEONAMES_FORMAT, init
    from .framing import FramedUnit, iter_framed_units
    from .handlers import GraphHandler, Quad, RDFHandler, collect, drop_start_end
    from .logging_utils import setup_logging
    from .parser import DecodeStats, GeonamesArchiveParser, decode, decode_file
    from .settings import DecoderSettings, load_settings


def __getattr__(name: str) -> Any:
    """Lazily import API exports to keep package import cheap."""

    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    module_name, attribute = target
    value = getattr(import_module(f"{__name__}.{module_name}"), attribute)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    """Expose lazily-populated attributes in ``dir()`` results."""

    return sorted(set(globals()) | set(__all__))

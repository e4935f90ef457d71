"""Format identity and the process-wide format registry.

Nothing is registered at import time.  :func:`init` performs the
registration once per interpreter: it records :data:`GEONAMES_FORMAT` in the
local registry and exposes :class:`~RDFStreams.GeonamesArchive.parser.GeonamesRDFParser`
to rdflib under the format name and media type.  Later calls are no-ops.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, Optional, Tuple, Union

from rdflib import plugin
from rdflib.parser import Parser

__all__ = [
    "RDFFormat",
    "GEONAMES_FORMAT",
    "init",
    "is_initialized",
    "get_format",
    "format_for_filename",
    "list_formats",
    "reset_registry",
]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RDFFormat:
    """Identity of an RDF serialization.

    Attributes:
        name: Human-readable format name.
        mime_types: Media types, the first being the default one.
        file_extensions: Extensions without the leading dot, the first being the default one.
        charset: Character set for textual formats, ``None`` for binary ones.
        supports_namespaces: Whether documents carry namespace declarations.
        supports_contexts: Whether documents carry named-graph information.
    """

    name: str
    mime_types: Tuple[str, ...]
    file_extensions: Tuple[str, ...]
    charset: Optional[str]
    supports_namespaces: bool
    supports_contexts: bool

    @property
    def default_mime_type(self) -> str:
        return self.mime_types[0]

    @property
    def default_file_extension(self) -> str:
        return self.file_extensions[0]


GEONAMES_FORMAT = RDFFormat(
    name="Geonames RDF",
    mime_types=("application/x-geonames-rdf",),
    file_extensions=("geonames",),
    charset=None,
    supports_namespaces=True,
    supports_contexts=True,
)

_RDFLIB_PLUGIN_NAME = "geonames"
_PARSER_MODULE = "RDFStreams.GeonamesArchive.parser"
_PARSER_CLASS = "GeonamesRDFParser"

_REGISTRY_LOCK = threading.Lock()
_INITIALIZED = False
_FORMATS: "OrderedDict[str, RDFFormat]" = OrderedDict()


def init(*, logger: Optional[logging.Logger] = None) -> RDFFormat:
    """Register the GeoNames format exactly once per interpreter and return it."""

    global _INITIALIZED

    log = logger or LOGGER
    with _REGISTRY_LOCK:
        if not _INITIALIZED:
            _FORMATS[GEONAMES_FORMAT.name] = GEONAMES_FORMAT
            for name in (_RDFLIB_PLUGIN_NAME, *GEONAMES_FORMAT.mime_types):
                plugin.register(name, Parser, _PARSER_MODULE, _PARSER_CLASS)
            _INITIALIZED = True
            log.debug(
                "format registered",
                extra={"stage": "registry", "format": GEONAMES_FORMAT.name},
            )
    return GEONAMES_FORMAT


def is_initialized() -> bool:
    """Return whether :func:`init` has run in this interpreter."""

    return _INITIALIZED


def get_format(key: str) -> RDFFormat:
    """Look up a registered format by name, media type, or file extension."""

    lowered = key.lower().lstrip(".")
    for fmt in list_formats().values():
        if (
            fmt.name.lower() == lowered
            or lowered in (mime.lower() for mime in fmt.mime_types)
            or lowered in fmt.file_extensions
        ):
            return fmt
    raise KeyError(f"No RDF format registered for '{key}'")


def format_for_filename(path: Union[str, PurePath]) -> Optional[RDFFormat]:
    """Return the registered format matching ``path``'s extensions, if any.

    Compression suffixes are looked through, so ``dump.geonames.gz`` matches.
    """

    suffixes = [suffix.lstrip(".").lower() for suffix in PurePath(path).suffixes]
    for suffix in reversed(suffixes):
        for fmt in list_formats().values():
            if suffix in fmt.file_extensions:
                return fmt
    return None


def list_formats() -> Dict[str, RDFFormat]:
    """Return a snapshot of the registered formats keyed by name."""

    with _REGISTRY_LOCK:
        return dict(_FORMATS)


def reset_registry() -> None:
    """Forget local registrations so :func:`init` runs again (test hook).

    rdflib keeps its plugin entries; re-registering them is harmless.
    """

    global _INITIALIZED

    with _REGISTRY_LOCK:
        _FORMATS.clear()
        _INITIALIZED = False

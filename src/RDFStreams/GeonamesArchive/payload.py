"""Parse one embedded document and stream its statements into a handler."""

from __future__ import annotations

from typing import Any, Dict, Optional
from xml.sax import SAXParseException

from rdflib import Graph, plugin
from rdflib.exceptions import ParserError
from rdflib.parser import Parser, create_input_source
from rdflib.plugin import PluginException

from .errors import ConfigError, PayloadParseError
from .framing import FramedUnit
from .handlers import RDFHandler
from .settings import PayloadSettings, get_default_settings

__all__ = ["parse_payload"]

_BNODE_AWARE_FORMATS = frozenset({"xml", "application/rdf+xml"})


class _HandlerSink(Graph):
    """Graph that forwards parser output to a handler instead of storing it."""

    def __init__(self, handler: RDFHandler) -> None:
        self._handler = handler
        super().__init__()

    def add(self, triple):  # type: ignore[override]
        subject, predicate, obj = triple
        self._handler.handle_statement(subject, predicate, obj, None)
        return self

    def bind(self, prefix, namespace, override=True, replace=False) -> None:  # type: ignore[override]
        if not namespace:
            return
        self._handler.handle_namespace(prefix or "", str(namespace))


def _load_parser(name: str) -> Parser:
    try:
        return plugin.get(name, Parser)()
    except PluginException as exc:
        raise ConfigError(f"No rdflib parser registered for payload format '{name}'") from exc


def parse_payload(
    payload: str,
    handler: RDFHandler,
    base_uri: str = "",
    *,
    settings: Optional[PayloadSettings] = None,
    unit: Optional[FramedUnit] = None,
) -> None:
    """Parse ``payload`` as a standalone document, notifying ``handler``.

    The handler receives ``start_rdf``, the parsed namespaces and statements,
    then ``end_rdf``, exactly as for a standalone parse.

    Args:
        payload: Document text.
        handler: Receiver of the parsed content.
        base_uri: Base used to resolve relative references.
        settings: Parser options; defaults to the process-wide settings.
        unit: Framed unit the payload came from, used for error context.

    Raises:
        PayloadParseError: If the document is not well formed.
        ConfigError: If the configured payload format has no rdflib parser.
    """

    settings = settings or get_default_settings().payload
    parser = _load_parser(settings.payload_format)
    options: Dict[str, Any] = {}
    if settings.payload_format in _BNODE_AWARE_FORMATS:
        options["preserve_bnode_ids"] = settings.preserve_bnode_ids

    source = create_input_source(
        data=payload, publicID=base_uri or None, format=settings.payload_format
    )
    handler.start_rdf()
    try:
        parser.parse(source, _HandlerSink(handler), **options)
    except SAXParseException as exc:
        raise PayloadParseError(
            f"Malformed payload: {exc.getMessage()}",
            entry=unit.entry if unit else None,
            identifier=unit.identifier if unit else None,
            line=unit.line if unit else exc.getLineNumber(),
            column=exc.getColumnNumber(),
        ) from exc
    except ParserError as exc:
        raise PayloadParseError(
            f"Malformed payload: {exc}",
            entry=unit.entry if unit else None,
            identifier=unit.identifier if unit else None,
            line=unit.line if unit else None,
        ) from exc
    handler.end_rdf()

"""Record handlers receiving decoded RDF statements.

A handler is the consumer side of a decode: it is told once that the stream
starts, then receives namespace declarations, statements and comments, and is
finally told that the stream ended.  The helpers here build handlers by
decoration so that a decoder can, for example, hide the lifecycle signals a
nested parse emits from the handler supplied by the caller.

Usage:
    from RDFStreams.GeonamesArchive.handlers import collect

    quads = []
    handler = collect(quads)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, NamedTuple, Optional, Protocol, runtime_checkable

from rdflib import Dataset, Graph
from rdflib.term import Node

__all__ = [
    "Quad",
    "RDFHandler",
    "AbstractHandler",
    "DelegatingHandler",
    "DropStartEndHandler",
    "CollectingHandler",
    "GraphHandler",
    "TrackingHandler",
    "drop_start_end",
    "collect",
    "track",
]


class Quad(NamedTuple):
    """Statement delivered to a handler, with an optional graph context."""

    subject: Node
    predicate: Node
    object: Node
    context: Optional[Node] = None


@runtime_checkable
class RDFHandler(Protocol):
    """Protocol describing consumers of a decoded RDF stream."""

    def start_rdf(self) -> None:  # pragma: no cover - protocol only
        """Signal the beginning of the logical stream."""

    def handle_namespace(self, prefix: str, uri: str) -> None:  # pragma: no cover
        """Receive a namespace declaration."""

    def handle_statement(
        self, subject: Node, predicate: Node, obj: Node, context: Optional[Node] = None
    ) -> None:  # pragma: no cover
        """Receive a statement."""

    def handle_comment(self, comment: str) -> None:  # pragma: no cover
        """Receive a comment."""

    def end_rdf(self) -> None:  # pragma: no cover - protocol only
        """Signal the end of the logical stream."""


class AbstractHandler:
    """Handler ignoring every notification; subclasses override what they need."""

    def start_rdf(self) -> None:
        pass

    def handle_namespace(self, prefix: str, uri: str) -> None:
        pass

    def handle_statement(
        self, subject: Node, predicate: Node, obj: Node, context: Optional[Node] = None
    ) -> None:
        pass

    def handle_comment(self, comment: str) -> None:
        pass

    def end_rdf(self) -> None:
        pass


class DelegatingHandler(AbstractHandler):
    """Handler forwarding every notification to a wrapped handler."""

    def __init__(self, handler: RDFHandler) -> None:
        if handler is None:
            raise TypeError("handler must not be None")
        self.handler = handler

    def start_rdf(self) -> None:
        self.handler.start_rdf()

    def handle_namespace(self, prefix: str, uri: str) -> None:
        self.handler.handle_namespace(prefix, uri)

    def handle_statement(
        self, subject: Node, predicate: Node, obj: Node, context: Optional[Node] = None
    ) -> None:
        self.handler.handle_statement(subject, predicate, obj, context)

    def handle_comment(self, comment: str) -> None:
        self.handler.handle_comment(comment)

    def end_rdf(self) -> None:
        self.handler.end_rdf()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.handler!r})"


class DropStartEndHandler(DelegatingHandler):
    """Forward content notifications but swallow ``start_rdf`` and ``end_rdf``.

    Used when many standalone documents are parsed into one logical stream:
    each sub-parse opens and closes its own stream, which must not reach the
    caller's handler.
    """

    def start_rdf(self) -> None:
        pass

    def end_rdf(self) -> None:
        pass


class CollectingHandler(AbstractHandler):
    """Append received statements to a list and namespaces to a mapping."""

    def __init__(
        self,
        quads: Optional[List[Quad]] = None,
        namespaces: Optional[Dict[str, str]] = None,
    ) -> None:
        self.quads: List[Quad] = quads if quads is not None else []
        self.namespaces: Dict[str, str] = namespaces if namespaces is not None else {}
        self.comments: List[str] = []

    def handle_namespace(self, prefix: str, uri: str) -> None:
        self.namespaces.setdefault(prefix, uri)

    def handle_statement(
        self, subject: Node, predicate: Node, obj: Node, context: Optional[Node] = None
    ) -> None:
        self.quads.append(Quad(subject, predicate, obj, context))

    def handle_comment(self, comment: str) -> None:
        self.comments.append(comment)


class GraphHandler(AbstractHandler):
    """Write received statements into an rdflib graph.

    Statements carrying a context are routed to the matching named graph when
    the target is a :class:`~rdflib.Dataset`; otherwise the context is dropped.
    Namespaces are bound without overriding existing prefixes.
    """

    def __init__(self, graph: Optional[Graph] = None) -> None:
        self.graph = graph if graph is not None else Graph()

    def handle_namespace(self, prefix: str, uri: str) -> None:
        self.graph.bind(prefix, uri, override=False)

    def handle_statement(
        self, subject: Node, predicate: Node, obj: Node, context: Optional[Node] = None
    ) -> None:
        if context is not None and isinstance(self.graph, Dataset):
            self.graph.add((subject, predicate, obj, context))
        else:
            self.graph.add((subject, predicate, obj))


class TrackingHandler(DelegatingHandler):
    """Delegate to a handler while logging statement throughput."""

    def __init__(
        self,
        handler: RDFHandler,
        *,
        logger: Optional[logging.Logger] = None,
        every: int = 100_000,
        label: str = "records",
    ) -> None:
        super().__init__(handler)
        if every <= 0:
            raise ValueError("every must be positive")
        self.logger = logger or logging.getLogger(__name__)
        self.every = every
        self.label = label
        self.statements = 0
        self.namespaces = 0

    def start_rdf(self) -> None:
        self.statements = 0
        self.namespaces = 0
        super().start_rdf()

    def handle_namespace(self, prefix: str, uri: str) -> None:
        self.namespaces += 1
        super().handle_namespace(prefix, uri)

    def handle_statement(
        self, subject: Node, predicate: Node, obj: Node, context: Optional[Node] = None
    ) -> None:
        super().handle_statement(subject, predicate, obj, context)
        self.statements += 1
        if self.statements % self.every == 0:
            self.logger.info(
                "%d %s processed",
                self.statements,
                self.label,
                extra={"stage": "decode", "statements": self.statements},
            )

    def end_rdf(self) -> None:
        super().end_rdf()
        self.logger.info(
            "%d %s, %d namespaces processed",
            self.statements,
            self.label,
            self.namespaces,
            extra={"stage": "decode", "statements": self.statements},
        )


def drop_start_end(handler: RDFHandler) -> DropStartEndHandler:
    """Return ``handler`` wrapped so lifecycle signals are swallowed."""

    return DropStartEndHandler(handler)


def collect(quads: List[Quad], namespaces: Optional[Dict[str, str]] = None) -> CollectingHandler:
    """Return a handler appending statements to ``quads``."""

    return CollectingHandler(quads, namespaces)


def track(handler: RDFHandler, logger: Optional[logging.Logger] = None, **kwargs: Any) -> TrackingHandler:
    """Return ``handler`` wrapped with throughput logging."""

    return TrackingHandler(handler, logger=logger, **kwargs)

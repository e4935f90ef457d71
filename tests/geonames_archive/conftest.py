"""Shared fixtures for the geonames_archive test suite."""

from __future__ import annotations

import io
import zipfile
from contextlib import contextmanager
from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

from RDFStreams.GeonamesArchive import archive as archive_mod
from RDFStreams.GeonamesArchive.handlers import AbstractHandler

RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
GN_NS = "http://www.geonames.org/ontology#"


def feature_uri(feature_id: int) -> str:
    return f"http://sws.geonames.org/{feature_id}/"


def feature_document(feature_id: int, name: Optional[str] = None) -> str:
    """Return a one-line RDF/XML document holding a single statement."""

    label = name or f"Feature {feature_id}"
    return (
        f'<rdf:RDF xmlns:rdf="{RDF_NS}" xmlns:gn="{GN_NS}">'
        f'<rdf:Description rdf:about="{feature_uri(feature_id)}">'
        f"<gn:name>{label}</gn:name>"
        "</rdf:Description></rdf:RDF>"
    )


def feature_lines(feature_ids: Iterable[int]) -> List[str]:
    lines: List[str] = []
    for feature_id in feature_ids:
        lines.append(feature_uri(feature_id))
        lines.append(feature_document(feature_id))
    return lines


def build_zip(entries: Sequence[Tuple[str, str]]) -> bytes:
    """Build an in-memory ZIP archive from ``(name, text)`` pairs."""

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, text in entries:
            archive.writestr(name, text.encode("utf-8"))
    return buffer.getvalue()


class ClosingCounter(io.BytesIO):
    """BytesIO recording how many times it was closed and whether it was read."""

    def __init__(self, data: bytes = b"") -> None:
        super().__init__(data)
        self.close_calls = 0
        self.read_calls = 0

    def readinto(self, buffer) -> int:  # type: ignore[override]
        self.read_calls += 1
        return super().readinto(buffer)

    def close(self) -> None:
        self.close_calls += 1
        super().close()


class RecordingHandler(AbstractHandler):
    """Handler recording every notification in arrival order."""

    def __init__(self) -> None:
        self.events: List[Tuple] = []

    def start_rdf(self) -> None:
        self.events.append(("start",))

    def handle_namespace(self, prefix: str, uri: str) -> None:
        self.events.append(("namespace", prefix, uri))

    def handle_statement(self, subject, predicate, obj, context=None) -> None:
        self.events.append(("statement", subject, predicate, obj, context))

    def handle_comment(self, comment: str) -> None:
        self.events.append(("comment", comment))

    def end_rdf(self) -> None:
        self.events.append(("end",))

    def kinds(self) -> List[str]:
        return [event[0] for event in self.events]

    def statements(self) -> List[Tuple]:
        return [event[1:4] for event in self.events if event[0] == "statement"]


class FakeMember:
    """Stand-in for a libarchive entry."""

    def __init__(
        self,
        pathname: str,
        data: bytes = b"",
        *,
        isdir: bool = False,
        fail_with: Optional[BaseException] = None,
    ) -> None:
        self.pathname = pathname
        self.data = data
        self.isdir = isdir
        self.size = len(data)
        self.fail_with = fail_with

    def get_blocks(self):
        if self.data:
            yield self.data
        if self.fail_with is not None:
            raise self.fail_with


class FakeArchive:
    """Iterable of fake members optionally failing after the last one."""

    def __init__(self, members: Sequence[FakeMember], fail_with: Optional[BaseException]) -> None:
        self.members = list(members)
        self.fail_with = fail_with

    def __iter__(self):
        yield from self.members
        if self.fail_with is not None:
            raise self.fail_with


@pytest.fixture
def fake_archive(monkeypatch):
    """Replace the libarchive reader with scripted members and failures."""

    def _install(
        members: Sequence[FakeMember], *, fail_with: Optional[BaseException] = None
    ) -> Dict[str, int]:
        state = {"opened": 0}

        @contextmanager
        def _reader(stream, settings):
            state["opened"] += 1
            yield FakeArchive(members, fail_with)

        monkeypatch.setattr(archive_mod, "_open_reader", _reader)
        return state

    return _install


@pytest.fixture
def recording_handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def gn() -> SimpleNamespace:
    """Archive and document builders shared by the decoder tests."""

    return SimpleNamespace(
        feature_uri=feature_uri,
        feature_document=feature_document,
        feature_lines=feature_lines,
        build_zip=build_zip,
        ClosingCounter=ClosingCounter,
        FakeMember=FakeMember,
        RDF_NS=RDF_NS,
        GN_NS=GN_NS,
    )

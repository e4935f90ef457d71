"""Archive access layer: error classification, decoding and stream release."""

from __future__ import annotations

import io

import pytest
from libarchive.exception import ArchiveError

from RDFStreams.GeonamesArchive.archive import (
    ArchiveEntry,
    classify_archive_error,
    close_quietly,
    iter_entries,
)
from RDFStreams.GeonamesArchive.errors import ArchiveReadError, TruncatedEntryError
from RDFStreams.GeonamesArchive.settings import ArchiveSettings, DEFAULT_TRUNCATION_SIGNATURES


@pytest.mark.parametrize(
    "message",
    [
        "invalid entry size (expected 2147483648 but got 1024 bytes)",
        "ZIP uncompressed data is wrong size (read 0, expected 1187)",
        "Invalid Entry Size",
    ],
)
def test_truncation_signatures_map_to_truncated_kind(message: str) -> None:
    error = classify_archive_error(
        ArchiveError(message), DEFAULT_TRUNCATION_SIGNATURES, entry="0001.txt"
    )

    assert isinstance(error, TruncatedEntryError)
    assert error.entry == "0001.txt"
    assert message in str(error)


def test_other_messages_map_to_fatal_kind() -> None:
    error = classify_archive_error(ArchiveError("Unrecognized archive format"), ["invalid entry size"])

    assert type(error) is ArchiveReadError
    assert error.entry is None


def test_bytes_messages_are_decoded() -> None:
    exc = ArchiveError(b"invalid entry size")

    assert isinstance(classify_archive_error(exc, ["invalid entry size"]), TruncatedEntryError)


def test_custom_signatures_replace_defaults() -> None:
    signatures = ["premature end of file"]

    assert isinstance(
        classify_archive_error(ArchiveError("Premature end of file"), signatures),
        TruncatedEntryError,
    )
    assert not isinstance(
        classify_archive_error(ArchiveError("invalid entry size"), signatures),
        TruncatedEntryError,
    )


def test_close_quietly_suppresses_close_errors() -> None:
    class Broken:
        def close(self) -> None:
            raise OSError("disk gone")

    close_quietly(Broken())
    close_quietly(object())


def test_iter_entries_reads_members_in_order(gn) -> None:
    archive = gn.build_zip([("first.txt", "a\nb\n"), ("second.txt", "c")])

    seen = []
    for entry, lines in iter_entries(io.BytesIO(archive)):
        seen.append((entry, list(lines)))

    assert [entry.pathname for entry, _ in seen] == ["first.txt", "second.txt"]
    assert [entry.index for entry, _ in seen] == [0, 1]
    assert [lines for _, lines in seen] == [["a", "b"], ["c"]]
    assert isinstance(seen[0][0], ArchiveEntry)


def test_iter_entries_does_not_close_stream(gn) -> None:
    stream = gn.ClosingCounter(gn.build_zip([("first.txt", "a\n")]))

    for _, lines in iter_entries(stream):
        list(lines)

    assert stream.close_calls == 0


def test_invalid_utf8_is_replaced_by_default(gn, fake_archive) -> None:
    fake_archive([gn.FakeMember("a.txt", b"caf\xe9\nok\n")])

    [(_, lines)] = [(entry, list(lines)) for entry, lines in iter_entries(io.BytesIO())]

    assert lines == ["caf\ufffd", "ok"]


def test_strict_decoding_raises(gn, fake_archive) -> None:
    fake_archive([gn.FakeMember("a.txt", b"caf\xe9\n")])
    settings = ArchiveSettings(encoding_errors="strict")

    with pytest.raises(UnicodeDecodeError):
        for _, lines in iter_entries(io.BytesIO(), settings=settings):
            list(lines)


def test_header_failure_is_classified(gn, fake_archive) -> None:
    fake_archive([gn.FakeMember("a.txt", b"x\n")], fail_with=ArchiveError("invalid entry size"))

    entries = iter_entries(io.BytesIO())
    entry, lines = next(entries)
    assert list(lines) == ["x"]

    with pytest.raises(TruncatedEntryError) as excinfo:
        next(entries)

    assert excinfo.value.entry == "a.txt"

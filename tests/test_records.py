"""Tests for the bounded record log: append, lookup, cutoff and malformed lines."""

from pathlib import Path

import pytest

from symtabuploader.config import LOG_RECORD_SEPARATOR
from symtabuploader.hashing import file_sha1
from symtabuploader.records import Record, RecordLog


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "BuglyUploadLog.txt"


def _make_file(tmp_path: Path, name: str, body: str) -> Path:
    f = tmp_path / name
    f.write_text(body, encoding="utf-8")
    return f


def test_append_creates_file_with_record_line(tmp_path: Path, log_path: Path) -> None:
    """append() creates the log lazily and writes 'path --> hash --> extra'."""
    f = _make_file(tmp_path, "lib.so", "binary")
    record_log = RecordLog(log_path)
    assert not log_path.exists()
    assert record_log.append(f, "abc123", "/out/sym.zip") is True
    assert log_path.read_text(encoding="utf-8") == f"{f.absolute()} --> abc123 --> /out/sym.zip\n"


def test_append_without_extra_info_has_two_fields(tmp_path: Path, log_path: Path) -> None:
    """A record without extra info has only path and hash."""
    f = _make_file(tmp_path, "mapping.txt", "map")
    RecordLog(log_path).append(f, "deadbeef")
    assert log_path.read_text(encoding="utf-8") == f"{f.absolute()}{LOG_RECORD_SEPARATOR}deadbeef\n"


def test_lookup_after_record_returns_extra_info(tmp_path: Path, log_path: Path) -> None:
    """record() then lookup() with unchanged content returns the extra info."""
    f = _make_file(tmp_path, "lib.so", "binary")
    record_log = RecordLog(log_path)
    assert record_log.record(f, extra_info="/out/lib.zip")
    assert record_log.lookup(f) == "/out/lib.zip"
    assert record_log.exists(f) is True


def test_lookup_without_extra_info_returns_empty_string(tmp_path: Path, log_path: Path) -> None:
    """A record without extra info is found and yields ''."""
    f = _make_file(tmp_path, "mapping.txt", "map")
    record_log = RecordLog(log_path)
    record_log.record(f)
    assert record_log.lookup(f) == ""
    assert record_log.exists(f) is True


def test_lookup_after_content_change_returns_none(tmp_path: Path, log_path: Path) -> None:
    """Changing the file's content after logging makes lookup miss."""
    f = _make_file(tmp_path, "lib.so", "v1")
    record_log = RecordLog(log_path)
    record_log.record(f, extra_info="x")
    f.write_text("v2", encoding="utf-8")
    assert record_log.lookup(f) is None
    assert record_log.exists(f) is False


def test_lookup_missing_log_or_file_returns_none(tmp_path: Path, log_path: Path) -> None:
    """No log yet, or the looked-up file is gone: None."""
    f = _make_file(tmp_path, "lib.so", "v1")
    record_log = RecordLog(log_path)
    assert record_log.lookup(f) is None
    record_log.record(f)
    f.unlink()
    assert record_log.lookup(f) is None


def test_lookup_requires_matching_path(tmp_path: Path, log_path: Path) -> None:
    """Same content at another path is not a match."""
    a = _make_file(tmp_path, "a.txt", "same")
    b = _make_file(tmp_path, "b.txt", "same")
    record_log = RecordLog(log_path)
    record_log.record(a)
    assert record_log.exists(a) is True
    assert record_log.exists(b) is False


def test_lookup_last_matching_line_wins(tmp_path: Path, log_path: Path) -> None:
    """With duplicate keys the later line determines the result."""
    f = _make_file(tmp_path, "lib.so", "bin")
    digest = file_sha1(f)
    record_log = RecordLog(log_path)
    record_log.append(f, digest, "/first.zip")
    record_log.append(f, "0000", "/other-hash.zip")
    record_log.append(f, digest, "/second.zip")
    assert record_log.lookup(f) == "/second.zip"


def test_lookup_skips_malformed_lines(tmp_path: Path, log_path: Path) -> None:
    """Lines with fewer than two fields are ignored without error."""
    f = _make_file(tmp_path, "lib.so", "bin")
    digest = file_sha1(f)
    log_path.write_text(
        "garbage line\n\n" + f"{f.absolute()} --> {digest} --> /sym.zip\n" + "also garbage\n",
        encoding="utf-8",
    )
    assert RecordLog(log_path).lookup(f) == "/sym.zip"


def test_append_at_cap_clears_previous_records(tmp_path: Path, log_path: Path) -> None:
    """Appending to a full log truncates it first; earlier records are gone."""
    record_log = RecordLog(log_path, max_records=3)
    files = [_make_file(tmp_path, f"f{i}.txt", f"content {i}") for i in range(4)]
    for f in files[:3]:
        assert record_log.record(f)
    assert len(record_log) == 3
    assert record_log.exists(files[0]) is True

    assert record_log.record(files[3])
    assert len(record_log) == 1
    assert record_log.exists(files[0]) is False
    assert record_log.exists(files[3]) is True


def test_default_cap_is_200(tmp_path: Path, log_path: Path) -> None:
    """The 201st append resets a log holding 200 records."""
    record_log = RecordLog(log_path)
    assert record_log.max_records == 200
    first = _make_file(tmp_path, "first.txt", "first")
    record_log.record(first)
    for i in range(199):
        record_log.append(tmp_path / f"other{i}", f"{i:040x}")
    assert len(record_log) == 200
    assert record_log.exists(first) is True
    newest = _make_file(tmp_path, "newest.txt", "newest")
    record_log.record(newest)
    assert len(record_log) == 1
    assert record_log.exists(first) is False
    assert record_log.exists(newest) is True


def test_lookup_over_cap_deletes_log_and_returns_match_so_far(tmp_path: Path, log_path: Path) -> None:
    """A log longer than the maximum is deleted during lookup; matches before the cutoff still count."""
    f = _make_file(tmp_path, "lib.so", "bin")
    digest = file_sha1(f)
    lines = [f"{f.absolute()} --> {digest} --> /early.zip\n"]
    lines += [f"/x/{i} --> {i:040x}\n" for i in range(5)]
    lines.append(f"{f.absolute()} --> {digest} --> /late.zip\n")
    log_path.write_text("".join(lines), encoding="utf-8")

    assert RecordLog(log_path, max_records=3).lookup(f) == "/early.zip"
    assert not log_path.exists()


def test_lookup_skips_undecodable_lines(tmp_path: Path, log_path: Path) -> None:
    """Invalid UTF-8 spoils only its own line; valid records are still found."""
    f = _make_file(tmp_path, "lib.so", "bin")
    digest = file_sha1(f)
    log_path.write_bytes(
        b"\xff\xfe\xfa broken --> bytes\n" + f"{f.absolute()} --> {digest} --> /sym.zip\n".encode("utf-8")
    )
    assert RecordLog(log_path).lookup(f) == "/sym.zip"


def test_append_to_log_with_undecodable_line(tmp_path: Path, log_path: Path) -> None:
    """A corrupt line does not block appending; the new record is found afterwards."""
    f = _make_file(tmp_path, "mapping.txt", "map")
    log_path.write_bytes(b"\xff\xfe garbage --> line\n")
    record_log = RecordLog(log_path)
    assert record_log.record(f) is True
    assert len(record_log) == 2
    assert record_log.exists(f) is True


def test_append_to_full_log_with_undecodable_line_clears_it(tmp_path: Path, log_path: Path) -> None:
    """The cutoff still fires when the log contains invalid UTF-8."""
    f = _make_file(tmp_path, "mapping.txt", "map")
    log_path.write_bytes(b"\xff one --> x\n\xfe two --> y\n")
    record_log = RecordLog(log_path, max_records=2)
    assert record_log.record(f) is True
    assert len(record_log) == 1
    assert record_log.exists(f) is True


def test_append_to_unwritable_location_returns_false(tmp_path: Path) -> None:
    """append() reports False when the log's directory does not exist."""
    record_log = RecordLog(tmp_path / "missing-dir" / "log.txt")
    assert record_log.append(tmp_path / "a", "abc") is False


def test_record_of_missing_file_returns_false(tmp_path: Path, log_path: Path) -> None:
    """record() cannot hash a missing file and writes nothing."""
    assert RecordLog(log_path).record(tmp_path / "gone.so") is False
    assert not log_path.exists()


def test_records_lists_parsed_lines(tmp_path: Path, log_path: Path) -> None:
    """records() returns well-formed records in file order."""
    record_log = RecordLog(log_path)
    record_log.append(tmp_path / "a", "h1", "extra")
    record_log.append(tmp_path / "b", "h2")
    got = record_log.records()
    assert got == [
        Record(str((tmp_path / "a").absolute()), "h1", "extra"),
        Record(str((tmp_path / "b").absolute()), "h2", None),
    ]


def test_record_parse_rejects_single_field() -> None:
    """Record.parse returns None for a line without separator."""
    assert Record.parse("just a path\n") is None
    assert Record.parse("/p --> h\n") == Record("/p", "h", None)

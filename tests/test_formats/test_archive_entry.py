"""Tests for hotpatch_tools.formats.archive_entry module."""

import gc
import hashlib
import zipfile
from unittest.mock import patch

import pytest

from hotpatch_tools.core.digest import md5_stream
from hotpatch_tools.core.types import ErrorKind
from hotpatch_tools.formats.archive_entry import (
    ArchiveEntryStream,
    entry_names,
    md5_entry,
    open_entry,
    read_entry_text,
)


@pytest.fixture
def stored_archive(temp_dir):
    """Archive with an uncompressed entry and a prefix-colliding name."""
    path = temp_dir / "stored.zip"
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
        zf.writestr("classes.dex", b"hello")
        zf.writestr("classes.dex.bak", b"backup")
        zf.writestr("lib/classes.dex", b"nested")
    return path


class TestOpenEntry:
    """Test open_entry function."""

    def test_reads_entry_bytes(self, sample_patch_archive, code_bytes):
        result = open_entry(sample_patch_archive, "classes.dex")
        assert result.ok
        with result.unwrap() as stream:
            assert isinstance(stream, ArchiveEntryStream)
            assert stream.name == "classes.dex"
            assert stream.size == len(code_bytes)
            assert stream.read() == code_bytes

    def test_exact_name_match(self, stored_archive):
        """Test lookup does not match prefixes or nested paths."""
        with open_entry(stored_archive, "classes.dex").unwrap() as stream:
            assert stream.read() == b"hello"
        with open_entry(stored_archive, "lib/classes.dex").unwrap() as stream:
            assert stream.read() == b"nested"
        assert open_entry(stored_archive, "classes").error is ErrorKind.ENTRY_NOT_FOUND
        assert open_entry(stored_archive, "*.dex").error is ErrorKind.ENTRY_NOT_FOUND

    def test_entry_not_found(self, sample_patch_archive):
        result = open_entry(sample_patch_archive, "classes2.dex")
        assert result.error is ErrorKind.ENTRY_NOT_FOUND
        assert result.path == str(sample_patch_archive)

    def test_invalid_archive(self, temp_dir):
        path = temp_dir / "plain.txt"
        path.write_bytes(b"this is not a zip archive")
        assert open_entry(path, "classes.dex").error is ErrorKind.INVALID_ARCHIVE

    def test_missing_archive(self, temp_dir):
        assert open_entry(temp_dir / "missing.zip", "classes.dex").error is ErrorKind.INVALID_ARCHIVE

    def test_none_archive(self):
        assert open_entry(None, "classes.dex").error is ErrorKind.INVALID_ARCHIVE

    def test_entry_not_found_closes_archive(self, sample_patch_archive):
        with patch("hotpatch_tools.formats.archive_entry.close_quietly") as close:
            open_entry(sample_patch_archive, "absent")
        close.assert_called_once()
        assert isinstance(close.call_args.args[0], zipfile.ZipFile)


class TestArchiveEntryStream:
    """Test archive handle release."""

    def test_closed_at_end_of_entry(self, stored_archive):
        stream = open_entry(stored_archive, "classes.dex").unwrap()
        archive = stream._archive
        assert stream.read() == b"hello"
        assert stream.closed
        assert archive.fp is None

    def test_close_releases_archive(self, sample_patch_archive):
        stream = open_entry(sample_patch_archive, "classes.dex").unwrap()
        archive = stream._archive
        stream.read(10)
        stream.close()
        assert stream.closed
        assert archive.fp is None

    def test_close_idempotent(self, stored_archive):
        stream = open_entry(stored_archive, "classes.dex").unwrap()
        stream.close()
        stream.close()
        assert stream.closed

    def test_abandoned_stream_released(self, sample_patch_archive):
        stream = open_entry(sample_patch_archive, "classes.dex").unwrap()
        archive = stream._archive
        stream.read(5)
        del stream
        gc.collect()
        assert archive.fp is None

    def test_failed_entry_open_releases_archive(self, sample_patch_archive):
        archive = zipfile.ZipFile(sample_patch_archive)
        info = archive.getinfo("classes.dex")
        with patch.object(archive, "open", side_effect=RuntimeError("encrypted")):
            with pytest.raises(RuntimeError):
                ArchiveEntryStream(archive, info)
        gc.collect()
        assert archive.fp is None

    def test_chunked_reads(self, sample_patch_archive, code_bytes):
        stream = open_entry(sample_patch_archive, "classes.dex").unwrap()
        parts = []
        while True:
            chunk = stream.read(1000)
            if not chunk:
                break
            parts.append(chunk)
        assert b"".join(parts) == code_bytes
        assert stream.closed

    def test_pipes_into_digest(self, sample_patch_archive, code_md5):
        stream = open_entry(sample_patch_archive, "classes.dex").unwrap()
        result = md5_stream(stream, chunk_size=333)
        assert result.value == code_md5
        assert stream.closed


class TestMd5Entry:
    """Test md5_entry function."""

    def test_digest(self, sample_patch_archive, resource_md5):
        result = md5_entry(sample_patch_archive, "resources.arsc")
        assert result.ok
        assert result.value == resource_md5

    def test_known_value(self, stored_archive):
        assert md5_entry(stored_archive, "classes.dex").value == "5d41402abc4b2a76b9719d911017c592"

    def test_errors_pass_through(self, sample_patch_archive, temp_dir):
        assert md5_entry(sample_patch_archive, "missing").error is ErrorKind.ENTRY_NOT_FOUND
        bad = temp_dir / "bad.zip"
        bad.write_bytes(b"PK\x03\x04 truncated")
        assert md5_entry(bad, "classes.dex").error is ErrorKind.INVALID_ARCHIVE

    def test_corrupt_entry_data(self, temp_dir):
        """Test CRC failures while streaming map to READ_FAILURE."""
        path = temp_dir / "corrupt.zip"
        payload = b"A" * 4096
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_STORED) as zf:
            zf.writestr("classes.dex", payload)
        raw = bytearray(path.read_bytes())
        offset = raw.index(payload)
        raw[offset + 100] = ord("B")
        path.write_bytes(bytes(raw))

        result = md5_entry(path, "classes.dex")
        assert result.error is ErrorKind.READ_FAILURE


class TestEntryNames:
    """Test entry_names function."""

    def test_lists_entries(self, sample_patch_archive):
        result = entry_names(sample_patch_archive)
        assert result.unwrap() == ["classes.dex", "resources.arsc", "assets/dex_meta.txt"]

    def test_invalid(self, temp_dir):
        path = temp_dir / "x.zip"
        path.write_bytes(b"nope")
        assert entry_names(path).error is ErrorKind.INVALID_ARCHIVE


class TestReadEntryText:
    """Test read_entry_text function."""

    def test_reads_text(self, sample_patch_archive):
        result = read_entry_text(sample_patch_archive, "assets/dex_meta.txt")
        assert result.unwrap() == "classes.dex,,5d41402abc4b2a76b9719d911017c592\n"

    def test_large_text(self, temp_dir):
        path = temp_dir / "meta.zip"
        text = "line of meta\n" * 10000
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("meta.txt", text)
        assert read_entry_text(path, "meta.txt").unwrap() == text

    def test_undecodable_bytes_replaced(self, temp_dir):
        path = temp_dir / "meta.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("meta.txt", b"ok\xff")
        assert read_entry_text(path, "meta.txt").unwrap() == "ok\ufffd"

    def test_missing_entry(self, sample_patch_archive):
        assert read_entry_text(sample_patch_archive, "nope").error is ErrorKind.ENTRY_NOT_FOUND


def test_entry_bytes_match_hashlib(sample_patch_archive):
    with zipfile.ZipFile(sample_patch_archive) as zf:
        expected = hashlib.md5(zf.read("classes.dex")).hexdigest()
    assert md5_entry(sample_patch_archive, "classes.dex").value == expected

"""Read single named entries out of zip-structured patch archives.

Patch archives (and jar-style containers inside them) are zip files. Only
the entry being checked is decompressed, and only as it is read; nothing is
extracted to disk.
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Any

import structlog

from hotpatch_tools.core.digest import DEFAULT_CHUNK_SIZE, READ_ERRORS, md5_stream
from hotpatch_tools.core.types import ErrorKind, Result
from hotpatch_tools.core.utils import chunked_read, close_quietly

logger = structlog.get_logger()

TEXT_BUFFER_SIZE = 16 * 1024


class ArchiveEntryStream(io.RawIOBase):
    """Binary stream over one decompressed archive entry.

    The stream owns the archive handle. Both are released when the entry is
    read to the end, on ``close()``, when leaving a ``with`` block, or when
    the stream is garbage collected.
    """

    def __init__(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, log: Any = None):
        self._archive = archive
        self._log = log or logger
        self._entry = None
        super().__init__()
        self._entry = archive.open(info)
        self.name = info.filename
        self.size = info.file_size

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        if self.closed:
            return 0
        data = self._entry.read(len(buffer))
        count = len(data)
        buffer[:count] = data
        if count == 0:
            self.close()
        return count

    def close(self) -> None:
        if self.closed:
            return
        close_quietly(self._entry, self._log)
        close_quietly(self._archive, self._log)
        super().close()


def _open_archive(archive_path: str | Path, log: Any) -> Result[zipfile.ZipFile]:
    path = Path(archive_path)
    try:
        return Result.success(zipfile.ZipFile(path), path=str(path))
    except (OSError, zipfile.BadZipFile, EOFError) as e:
        log.warning("archive_open_failed", path=str(path), error=str(e))
        return Result.failure(ErrorKind.INVALID_ARCHIVE, f"Cannot open archive {path}: {e}", path=str(path))


def open_entry(
    archive_path: str | Path | None,
    entry_name: str,
    *,
    log: Any = None,
) -> Result[ArchiveEntryStream]:
    """Open a stream over one entry of a zip archive.

    Args:
        archive_path: Zip or jar-style container
        entry_name: Exact entry name, no wildcard or prefix matching
        log: Optional structlog logger receiving failure events

    Returns:
        Result holding an ``ArchiveEntryStream``. ``INVALID_ARCHIVE`` when
        the container is missing or unreadable, ``ENTRY_NOT_FOUND`` when it
        opens fine but has no such entry.
    """
    log = log or logger
    if archive_path is None:
        return Result.failure(ErrorKind.INVALID_ARCHIVE, "No archive given")

    opened = _open_archive(archive_path, log)
    if not opened.ok:
        return Result.failure(opened.error, opened.message, path=opened.path)  # type: ignore[arg-type]
    archive = opened.unwrap()

    try:
        info = archive.getinfo(entry_name)
    except KeyError:
        close_quietly(archive, log)
        log.info("archive_entry_missing", path=opened.path, entry=entry_name)
        return Result.failure(
            ErrorKind.ENTRY_NOT_FOUND,
            f"Entry {entry_name!r} not found in {opened.path}",
            path=opened.path,
        )

    try:
        stream = ArchiveEntryStream(archive, info, log)
    except (OSError, zipfile.BadZipFile, NotImplementedError, RuntimeError) as e:
        # Corrupt local header, unsupported compression or encrypted entry
        close_quietly(archive, log)
        log.warning("archive_entry_open_failed", path=opened.path, entry=entry_name, error=str(e))
        return Result.failure(
            ErrorKind.INVALID_ARCHIVE,
            f"Cannot open entry {entry_name!r} in {opened.path}: {e}",
            path=opened.path,
        )

    return Result.success(stream, path=opened.path)


def entry_names(archive_path: str | Path, *, log: Any = None) -> Result[list[str]]:
    """List the entry names of an archive in stored order."""
    log = log or logger
    opened = _open_archive(archive_path, log)
    if not opened.ok:
        return Result.failure(opened.error, opened.message, path=opened.path)  # type: ignore[arg-type]

    archive = opened.unwrap()
    try:
        return Result.success(archive.namelist(), path=opened.path)
    finally:
        close_quietly(archive, log)


def md5_entry(
    archive_path: str | Path | None,
    entry_name: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    *,
    log: Any = None,
) -> Result[str]:
    """Fingerprint the decompressed bytes of one archive entry."""
    opened = open_entry(archive_path, entry_name, log=log)
    if not opened.ok:
        return Result.failure(opened.error, opened.message, path=opened.path)  # type: ignore[arg-type]

    return md5_stream(opened.unwrap(), chunk_size, name=f"{opened.path}!{entry_name}", log=log)


def read_entry_text(
    archive_path: str | Path | None,
    entry_name: str,
    encoding: str = "utf-8",
    *,
    log: Any = None,
) -> Result[str]:
    """Read a small entry, such as an embedded digest list, as text.

    Undecodable bytes are replaced rather than failing the read.
    """
    log = log or logger
    opened = open_entry(archive_path, entry_name, log=log)
    if not opened.ok:
        return Result.failure(opened.error, opened.message, path=opened.path)  # type: ignore[arg-type]

    stream = opened.unwrap()
    parts: list[bytes] = []
    try:
        for chunk in chunked_read(stream, TEXT_BUFFER_SIZE):
            parts.append(chunk)
    except READ_ERRORS as e:
        log.warning("archive_entry_read_failed", path=opened.path, entry=entry_name, error=str(e))
        return Result.failure(ErrorKind.READ_FAILURE, f"Failed to read {entry_name!r}: {e}", path=opened.path)
    finally:
        close_quietly(stream, log)

    return Result.success(b"".join(parts).decode(encoding, errors="replace"), path=opened.path)

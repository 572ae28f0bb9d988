"""Streaming MD5 fingerprints for patch files.

A fingerprint is the lowercase hex MD5 of a byte source. Sources are always
read in bounded chunks so large patch archives never sit in memory whole,
and the chunk size has no effect on the result.
"""

from __future__ import annotations

import hashlib
import zipfile
import zlib
from pathlib import Path
from typing import IO, Any, BinaryIO

import structlog

from hotpatch_tools.core.types import ErrorKind, Result
from hotpatch_tools.core.utils import chunked_read, close_quietly

logger = structlog.get_logger()

DEFAULT_CHUNK_SIZE = 100 * 1024

# Faults a stream may raise mid-read; compressed archive entries add the last three
READ_ERRORS = (OSError, EOFError, zlib.error, zipfile.BadZipFile)


def md5_bytes(data: bytes) -> str:
    """Fingerprint of an in-memory buffer.

    Example:
        >>> md5_bytes(b"hello")
        '5d41402abc4b2a76b9719d911017c592'
    """
    return hashlib.md5(data).hexdigest()


def md5_stream(
    stream: BinaryIO | IO[bytes] | None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    *,
    name: str | None = None,
    log: Any = None,
) -> Result[str]:
    """Fingerprint a binary stream, closing it afterwards.

    The stream is closed on every path, including read failures.

    Args:
        stream: Open binary stream, or None
        chunk_size: Bytes per read
        name: Label used in log events and in the result path
        log: Optional structlog logger receiving failure events

    Returns:
        Result holding the 32-character hex fingerprint

    Raises:
        ValueError: If chunk_size is not positive
    """
    log = log or logger
    if chunk_size <= 0:
        close_quietly(stream, log)
        raise ValueError("chunk_size must be positive")

    if stream is None:
        log.warning("digest_no_stream", name=name)
        return Result.failure(ErrorKind.NOT_FOUND, "No stream to digest", path=name)

    md5 = hashlib.md5()
    try:
        for chunk in chunked_read(stream, chunk_size):
            md5.update(chunk)
    except READ_ERRORS as e:
        log.warning("digest_read_failed", name=name, error=str(e))
        return Result.failure(ErrorKind.READ_FAILURE, f"Failed to read stream: {e}", path=name)
    finally:
        close_quietly(stream, log)

    return Result.success(md5.hexdigest(), path=name)


def md5_file(
    path: str | Path | None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    *,
    log: Any = None,
) -> Result[str]:
    """Fingerprint a file on disk.

    Args:
        path: File to digest
        chunk_size: Bytes per read
        log: Optional structlog logger receiving failure events

    Returns:
        Result holding the fingerprint; ``NOT_FOUND`` when the file is
        missing, ``READ_FAILURE`` when it cannot be opened or read
    """
    log = log or logger
    if path is None:
        return Result.failure(ErrorKind.NOT_FOUND, "No file given")

    file_path = Path(path)
    if not file_path.exists():
        log.debug("digest_file_missing", path=str(file_path))
        return Result.failure(ErrorKind.NOT_FOUND, f"File not found: {file_path}", path=str(file_path))

    try:
        stream = open(file_path, "rb")
    except OSError as e:
        log.warning("digest_open_failed", path=str(file_path), error=str(e))
        return Result.failure(ErrorKind.READ_FAILURE, f"Cannot open {file_path}: {e}", path=str(file_path))

    return md5_stream(stream, chunk_size, name=str(file_path), log=log)

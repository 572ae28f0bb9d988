"""Shared utilities for hotpatch-tools."""

from __future__ import annotations

from collections.abc import Iterator
from typing import IO, Any, BinaryIO

import structlog

logger = structlog.get_logger()


def chunked_read(
    stream: BinaryIO | IO[bytes],
    chunk_size: int = 8192
) -> Iterator[bytes]:
    """Read stream in chunks.

    Args:
        stream: Binary stream to read from
        chunk_size: Size of each chunk in bytes

    Yields:
        Data chunks as bytes

    Raises:
        ValueError: If chunk_size is not positive

    Example:
        >>> import io
        >>> stream = io.BytesIO(b"hello world")
        >>> chunks = list(chunked_read(stream, chunk_size=5))
        >>> chunks
        [b'hello', b' worl', b'd']
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        yield chunk


def format_size(size: int) -> str:
    """Format byte size as human-readable string.

    Args:
        size: Size in bytes

    Returns:
        Formatted string with appropriate unit (e.g., "1.5 MB")

    Example:
        >>> format_size(1024)
        '1.0 KB'
        >>> format_size(1536)
        '1.5 KB'
        >>> format_size(1048576)
        '1.0 MB'
    """
    if size < 0:
        return "0 B"

    size_float = float(size)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_float < 1024.0:
            if unit == "B":
                return f"{int(size_float)} {unit}"
            return f"{size_float:.1f} {unit}"
        size_float /= 1024.0
    return f"{size_float:.1f} PB"


def validate_hash_string(hash_str: str | None, length: int | None = None) -> bool:
    """Validate hex hash string.

    Args:
        hash_str: Hash string to validate
        length: Required number of hex characters, any length if None

    Returns:
        True if valid hex string, False otherwise

    Example:
        >>> validate_hash_string("deadbeef")
        True
        >>> validate_hash_string("deadbeef", length=32)
        False
        >>> validate_hash_string("invalid")
        False
        >>> validate_hash_string("")
        False
    """
    if not hash_str or hash_str != hash_str.strip() or ' ' in hash_str or '\t' in hash_str:
        return False
    if length is not None and len(hash_str) != length:
        return False
    try:
        bytes.fromhex(hash_str)
        return True
    except ValueError:
        return False


def close_quietly(closeable: Any, log: Any = None) -> None:
    """Close a handle, logging instead of raising on failure.

    ``None`` and already closed handles are accepted.

    Args:
        closeable: Object with a ``close()`` method, or None
        log: Optional structlog logger to report close failures to
    """
    if closeable is None:
        return
    try:
        closeable.close()
    except (OSError, ValueError) as e:
        (log or logger).warning("close_failed", resource=type(closeable).__name__, error=str(e))

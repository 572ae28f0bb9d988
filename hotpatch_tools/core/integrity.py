"""Content integrity verification for patch files.

A patch file is accepted only when the MD5 of its bytes equals the
fingerprint recorded for it. Three kinds of artifact are checked:

1. Whole files (patch archives, raw code files)
2. Code containers, where the check runs against the embedded code entry
3. Resource archives, where the check runs against the resource table entry

Every check returns a ``Result``; a failed check means the artifact should
be treated as untrusted and discarded.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from hotpatch_tools.core.digest import DEFAULT_CHUNK_SIZE, md5_file
from hotpatch_tools.core.naming import (
    CODE_ENTRY_NAME,
    RESOURCE_TABLE_ENTRY_NAME,
    is_raw_code_file,
    is_well_formed,
)
from hotpatch_tools.core.types import ErrorKind, PatchFileError, Result
from hotpatch_tools.formats.archive_entry import md5_entry

logger = structlog.get_logger()


class IntegrityError(PatchFileError):
    """Raised when a computed fingerprint does not match the expected one.

    Attributes:
        expected: Expected fingerprint
        actual: Computed fingerprint
        path: File that was verified
    """

    def __init__(
        self,
        message: str,
        *,
        expected: str | None = None,
        actual: str | None = None,
        path: str | None = None,
    ):
        self.expected = expected
        self.actual = actual
        super().__init__(message, kind=ErrorKind.VERIFICATION_MISMATCH, path=path)


def _compare(computed: Result[str], expected: str, log: Any) -> Result[str]:
    if not computed.ok:
        return computed

    actual = computed.unwrap()
    if actual != expected:
        log.warning("fingerprint_mismatch", path=computed.path, expected=expected, actual=actual)
        return Result(
            value=actual,
            error=ErrorKind.VERIFICATION_MISMATCH,
            message=f"Fingerprint mismatch: expected {expected}, got {actual}",
            path=computed.path,
            expected=expected,
        )
    return computed


def _check_expected(expected: str | None, path: str | Path | None) -> Result[str] | None:
    if not is_well_formed(expected):
        return Result.failure(
            ErrorKind.MALFORMED_INPUT,
            f"Malformed fingerprint: {expected!r}",
            path=None if path is None else str(path),
        )
    return None


def verify_file_md5(
    path: str | Path | None,
    expected: str | None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    *,
    log: Any = None,
) -> Result[str]:
    """Verify a whole file against its fingerprint.

    Returns:
        The computed fingerprint on success, a ``VERIFICATION_MISMATCH``
        failure carrying it otherwise
    """
    log = log or logger
    rejected = _check_expected(expected, path)
    if rejected is not None:
        return rejected
    assert expected is not None
    return _compare(md5_file(path, chunk_size, log=log), expected, log)


def verify_entry_md5(
    archive_path: str | Path | None,
    entry_name: str,
    expected: str | None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    *,
    log: Any = None,
) -> Result[str]:
    """Verify one named entry of an archive against its fingerprint."""
    log = log or logger
    rejected = _check_expected(expected, archive_path)
    if rejected is not None:
        return rejected
    assert expected is not None
    return _compare(md5_entry(archive_path, entry_name, chunk_size, log=log), expected, log)


def verify_code_file_md5(
    path: str | Path | None,
    expected: str | None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    *,
    log: Any = None,
) -> Result[str]:
    """Verify a code file, which may be raw or wrapped in a container.

    Raw ``.dex`` files are digested whole. Any other file is opened as a
    zip and its ``classes.dex`` entry is checked instead; a container
    without that entry fails with ``ENTRY_NOT_FOUND``.
    """
    if path is not None and is_raw_code_file(Path(path).name):
        return verify_file_md5(path, expected, chunk_size, log=log)
    return verify_entry_md5(path, CODE_ENTRY_NAME, expected, chunk_size, log=log)


def verify_resource_table_md5(
    archive_path: str | Path | None,
    expected: str | None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    *,
    log: Any = None,
) -> Result[str]:
    """Verify the resource table entry of a resource archive."""
    return verify_entry_md5(archive_path, RESOURCE_TABLE_ENTRY_NAME, expected, chunk_size, log=log)

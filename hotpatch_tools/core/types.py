"""Core type definitions for hotpatch_tools."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(StrEnum):
    """Failure categories reported by patch file operations."""
    MALFORMED_INPUT = "malformed_input"
    NOT_FOUND = "not_found"
    ENTRY_NOT_FOUND = "entry_not_found"
    INVALID_ARCHIVE = "invalid_archive"
    READ_FAILURE = "read_failure"
    VERIFICATION_MISMATCH = "verification_mismatch"


class PatchFileError(Exception):
    """Raised when a failed result is unwrapped.

    Attributes:
        kind: Failure category
        path: File the operation was working on, if any
    """

    def __init__(self, message: str, *, kind: ErrorKind, path: str | None = None):
        self.kind = kind
        self.path = path
        super().__init__(message)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation that can fail in an expected way.

    A successful result has ``error`` set to None. A verification mismatch
    keeps the computed fingerprint in ``value`` and the wanted one in
    ``expected``; every other failure leaves ``value`` empty.
    """
    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""
    path: str | None = None
    expected: str | None = None

    @classmethod
    def success(cls, value: T, path: str | None = None) -> Result[T]:
        return cls(value=value, path=path)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, path: str | None = None) -> Result[T]:
        return cls(error=kind, message=message, path=path)

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or(self, default: T) -> T:
        """Return the value on success, ``default`` otherwise."""
        if self.error is None:
            return self.value  # type: ignore[return-value]
        return default

    def unwrap(self) -> T:
        """Return the value or raise the matching exception.

        Raises:
            IntegrityError: For verification mismatches
            PatchFileError: For every other failure kind
        """
        if self.error is None:
            return self.value  # type: ignore[return-value]
        if self.error is ErrorKind.VERIFICATION_MISMATCH:
            from hotpatch_tools.core.integrity import IntegrityError

            raise IntegrityError(
                self.message,
                expected=self.expected,
                actual=self.value if isinstance(self.value, str) else None,
                path=self.path,
            )
        raise PatchFileError(self.message, kind=self.error, path=self.path)

"""Hotpatch Tools - integrity checks for incrementally applied patches.

This package verifies patch files before they are trusted and activated.
Patches are identified by an MD5 fingerprint; the package derives the
canonical on-disk names for a fingerprint, digests whole files or single
archive entries in a streaming fashion, compares them against expected
fingerprints, and manages the patch directory tree.

Key modules:
- core: Shared functionality (types, digests, naming, lifecycle, integrity)
- formats: Archive entry reader
- commands: CLI command implementations
"""

__version__ = "0.1.0"
__author__ = "Hotpatch Tools Team"

# Re-export commonly used types and functions
from hotpatch_tools.core.types import (
    ErrorKind,
    PatchFileError,
    Result,
)

__all__ = [
    "__version__",
    "__author__",
    "ErrorKind",
    "PatchFileError",
    "Result",
]

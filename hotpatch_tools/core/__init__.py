"""Core functionality for hotpatch_tools.

This module provides shared functionality used across the entire package:
- Result and error types
- Fingerprint digests
- Patch version naming
- Patch tree lifecycle (size, delete, deferred cleanup)
- Utility functions

Integrity checks live in ``hotpatch_tools.core.integrity`` and
configuration in ``hotpatch_tools.core.config``.
"""

from hotpatch_tools.core.digest import md5_bytes, md5_file, md5_stream
from hotpatch_tools.core.lifecycle import (
    DeferredCleanup,
    delete_dir,
    ensure_parent_directory,
    safe_delete,
    size_of,
)
from hotpatch_tools.core.naming import (
    PatchLayout,
    is_well_formed,
    optimized_entry_path,
    version_archive_name,
    version_directory_name,
)
from hotpatch_tools.core.types import ErrorKind, PatchFileError, Result
from hotpatch_tools.core.utils import (
    chunked_read,
    close_quietly,
    format_size,
    validate_hash_string,
)

__all__ = [
    # Types
    "ErrorKind",
    "PatchFileError",
    "Result",
    # Digest
    "md5_bytes",
    "md5_file",
    "md5_stream",
    # Naming
    "PatchLayout",
    "is_well_formed",
    "optimized_entry_path",
    "version_archive_name",
    "version_directory_name",
    # Lifecycle
    "DeferredCleanup",
    "delete_dir",
    "ensure_parent_directory",
    "safe_delete",
    "size_of",
    # Utils
    "chunked_read",
    "close_quietly",
    "format_size",
    "validate_hash_string",
]

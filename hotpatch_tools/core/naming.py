"""Canonical on-disk names for patch versions.

The names here are shared by the writer that installs a patch and the
loader that picks it up after a restart, so they are fixed constants rather
than configuration.

Layout under an application data root::

    <root>/patch/
    ├── patch.info                 # current/previous active fingerprint
    ├── patch.lock                 # lock handle used by the external locker
    ├── patch-<first8>/            # version directory
    └── patch-<first8>.patch       # version archive
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

PATCH_DIRECTORY_NAME = "patch"
PATCH_INFO_NAME = "patch.info"
PATCH_INFO_LOCK_NAME = "patch.lock"
PATCH_BASE_NAME = "patch-"
PATCH_SUFFIX = ".patch"

CODE_SUFFIX = ".dex"
CODE_ENTRY_NAME = "classes.dex"
RESOURCE_TABLE_ENTRY_NAME = "resources.arsc"

FINGERPRINT_LENGTH = 32
VERSION_PREFIX_LENGTH = 8


def is_well_formed(fingerprint: str | None) -> bool:
    """Check that a fingerprint has the system-wide digest length.

    Only the length is checked; use ``validate_hash_string`` for a strict
    hex check.

    Example:
        >>> is_well_formed("5d41402abc4b2a76b9719d911017c592")
        True
        >>> is_well_formed("5d41402a")
        False
    """
    return fingerprint is not None and len(fingerprint) == FINGERPRINT_LENGTH


def version_directory_name(fingerprint: str | None) -> str | None:
    """Directory name for a patch version.

    Only the first eight characters of the fingerprint are used. Two
    fingerprints sharing that prefix map to the same directory; nothing
    here detects that.

    Returns:
        ``patch-<first8>``, or None for a malformed fingerprint

    Example:
        >>> version_directory_name("5d41402abc4b2a76b9719d911017c592")
        'patch-5d41402a'
    """
    if not is_well_formed(fingerprint):
        return None
    assert fingerprint is not None
    return PATCH_BASE_NAME + fingerprint[:VERSION_PREFIX_LENGTH]


def version_archive_name(fingerprint: str | None) -> str | None:
    """Archive file name for a patch version, or None if malformed.

    Example:
        >>> version_archive_name("5d41402abc4b2a76b9719d911017c592")
        'patch-5d41402a.patch'
    """
    directory = version_directory_name(fingerprint)
    if directory is None:
        return None
    return directory + PATCH_SUFFIX


def is_raw_code_file(file_name: str | None) -> bool:
    """True when the name already carries the code artifact suffix."""
    if file_name is None:
        return False
    return file_name.endswith(CODE_SUFFIX)


def optimized_entry_path(source_path: str | Path, target_directory: str | Path) -> Path:
    """Location of the optimized code artifact for a source file.

    The loader derives the same path on its own, so the rule must stay
    exactly this: keep names ending in ``.dex``, otherwise replace the text
    after the last dot with ``.dex`` or append it when there is no dot.

    Args:
        source_path: Code file or container holding code
        target_directory: Directory that receives optimized artifacts

    Returns:
        ``target_directory / <rewritten base name>``

    Example:
        >>> optimized_entry_path("/data/patch-1234abcd/code.jar", "/data/odex").as_posix()
        '/data/odex/code.dex'
    """
    file_name = Path(source_path).name
    if not is_raw_code_file(file_name):
        last_dot = file_name.rfind(".")
        if last_dot < 0:
            file_name += CODE_SUFFIX
        else:
            file_name = file_name[:last_dot] + CODE_SUFFIX

    return Path(target_directory) / file_name


class PatchLayout(BaseModel):
    """Paths of the patch tree under one application data root."""

    data_dir: Path = Field(..., description="Application-private root directory")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_data_dir(cls, data_dir: str | Path | None) -> PatchLayout | None:
        """Build a layout, or None when there is no application root.

        A missing root means the process runs without an install context
        (a test harness, for instance) and patching is off.
        """
        if data_dir is None:
            return None
        return cls(data_dir=Path(data_dir))

    @property
    def patch_directory(self) -> Path:
        return self.data_dir / PATCH_DIRECTORY_NAME

    @property
    def info_file(self) -> Path:
        return self.patch_directory / PATCH_INFO_NAME

    @property
    def lock_file(self) -> Path:
        return self.patch_directory / PATCH_INFO_LOCK_NAME

    def version_directory(self, fingerprint: str | None) -> Path | None:
        name = version_directory_name(fingerprint)
        if name is None:
            return None
        return self.patch_directory / name

    def version_archive(self, fingerprint: str | None) -> Path | None:
        """Archive path for a version; sits beside its version directory."""
        name = version_archive_name(fingerprint)
        if name is None:
            return None
        return self.patch_directory / name

    def is_active(self) -> bool:
        """Patching is active only once the patch directory exists."""
        return self.patch_directory.is_dir()

"""Sizing, deletion and creation of the on-disk patch tree.

This is the only module that removes or creates patch directories. Tree
walks use an explicit stack, so deep trees cannot exhaust the interpreter's
recursion limit. Symbolic links are never followed: a link counts as zero
bytes and deleting it removes the link, not its target.
"""

from __future__ import annotations

import atexit
import os
import stat
import threading
from pathlib import Path
from typing import Any

import structlog

from hotpatch_tools.core.utils import chunked_read

logger = structlog.get_logger()

BUFFER_SIZE = 16 * 1024


def _lstat(path: Path) -> os.stat_result | None:
    try:
        return path.lstat()
    except FileNotFoundError:
        return None


def _is_real_dir(st: os.stat_result) -> bool:
    return stat.S_ISDIR(st.st_mode)


class DeferredCleanup:
    """Paths whose deletion failed, retried when the process exits.

    The first scheduled path registers ``flush`` with ``atexit``.
    """

    def __init__(self) -> None:
        self._paths: list[Path] = []
        self._lock = threading.Lock()
        self._registered = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return Path(path) in self._paths  # type: ignore[arg-type]

    def schedule(self, path: str | Path) -> None:
        """Remember a path for deletion at exit."""
        path = Path(path)
        with self._lock:
            if path not in self._paths:
                self._paths.append(path)
            if not self._registered:
                atexit.register(self.flush)
                self._registered = True
        logger.debug("cleanup_deferred", path=str(path))

    def flush(self) -> int:
        """Retry every scheduled deletion.

        Paths that still cannot be removed stay scheduled.

        Returns:
            Number of paths removed
        """
        with self._lock:
            pending = list(self._paths)
            self._paths.clear()

        removed = 0
        remaining: list[Path] = []
        for path in pending:
            if _remove_path(path):
                removed += 1
            else:
                remaining.append(path)

        if remaining:
            with self._lock:
                self._paths.extend(p for p in remaining if p not in self._paths)
            logger.warning("cleanup_flush_incomplete", remaining=len(remaining))
        if removed > 0:
            logger.info("cleanup_flushed", removed=removed)
        return removed


def _remove_path(path: Path) -> bool:
    """Remove a file, link or directory tree without scheduling retries."""
    st = _lstat(path)
    if st is None:
        return True
    try:
        if not _is_real_dir(st):
            path.unlink()
            return True
    except OSError as e:
        logger.debug("cleanup_retry_failed", path=str(path), error=str(e))
        return False

    ok = True
    for child, child_st in _walk_post_order(path):
        try:
            if _is_real_dir(child_st):
                child.rmdir()
            else:
                child.unlink()
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.debug("cleanup_retry_failed", path=str(child), error=str(e))
            ok = False
    return ok and _lstat(path) is None


def _walk_post_order(root: Path, failed: list[Path] | None = None) -> list[tuple[Path, os.stat_result]]:
    """Children before parents, without recursion.

    Directories whose listing fails are appended to ``failed`` and left out
    of the result together with all of their ancestors.
    """
    root_st = _lstat(root)
    if root_st is None:
        return []

    order: list[tuple[Path, os.stat_result]] = []
    parents: dict[Path, Path | None] = {root: None}
    blocked: set[Path] = set()
    stack: list[tuple[Path, os.stat_result]] = [(root, root_st)]

    while stack:
        path, st = stack.pop()
        order.append((path, st))
        if not _is_real_dir(st):
            continue
        try:
            children = list(os.scandir(path))
        except OSError as e:
            logger.warning("directory_list_failed", path=str(path), error=str(e))
            if failed is not None:
                failed.append(path)
            node: Path | None = path
            while node is not None and node not in blocked:
                blocked.add(node)
                node = parents[node]
            continue
        for entry in children:
            child = Path(entry.path)
            try:
                child_st = entry.stat(follow_symlinks=False)
            except FileNotFoundError:
                continue
            parents[child] = path
            stack.append((child, child_st))

    # Pre-order reversed puts every child ahead of its parent
    order.reverse()
    return [(p, s) for p, s in order if p not in blocked]


deferred_cleanup = DeferredCleanup()


def file_exists(path: str | Path | None) -> bool:
    """True when something exists at ``path``."""
    if path is None:
        return False
    return Path(path).exists()


def size_of(path: str | Path | None) -> int:
    """Total size in bytes of a file or directory tree.

    Returns:
        0 for a missing path or a symlink, the file length for a file, and
        the sum over all files below a directory
    """
    if path is None:
        return 0
    root = Path(path)
    root_st = _lstat(root)
    if root_st is None:
        return 0
    if stat.S_ISREG(root_st.st_mode):
        return root_st.st_size
    if not stat.S_ISDIR(root_st.st_mode):
        return 0

    total = 0
    stack = [root]
    while stack:
        current = stack.pop()
        try:
            entries = list(os.scandir(current))
        except OSError as e:
            logger.warning("directory_list_failed", path=str(current), error=str(e))
            continue
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    stack.append(Path(entry.path))
                elif entry.is_file(follow_symlinks=False):
                    total += entry.stat(follow_symlinks=False).st_size
            except OSError as e:
                logger.debug("size_stat_failed", path=entry.path, error=str(e))
    return total


def safe_delete(
    path: str | Path | None,
    *,
    cleanup: DeferredCleanup | None = None,
    log: Any = None,
) -> bool:
    """Delete a single file, falling back to deletion at exit.

    Args:
        path: File or link to delete; an empty directory is also accepted
        cleanup: Deferred list to use, defaults to the process-wide one
        log: Optional structlog logger

    Returns:
        True if nothing was there or it was deleted now. False if deletion
        failed and was deferred; the space has not been reclaimed yet.
    """
    log = log or logger
    if path is None:
        return True

    target = Path(path)
    st = _lstat(target)
    if st is None:
        return True

    log.info("safe_delete", path=str(target))
    try:
        if _is_real_dir(st):
            target.rmdir()
        else:
            target.unlink()
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        log.error("delete_failed_deferred", path=str(target), error=str(e))
        (cleanup or deferred_cleanup).schedule(target)
        return False


def delete_dir(
    path: str | Path | None,
    *,
    cleanup: DeferredCleanup | None = None,
    log: Any = None,
) -> bool:
    """Delete a file or a whole directory tree.

    A directory that cannot be listed is left in place, along with every
    directory above it, and the call reports failure.

    Returns:
        False if ``path`` is None or missing, or if any part of the tree
        could not be removed right away; True otherwise
    """
    log = log or logger
    if path is None:
        return False

    root = Path(path)
    root_st = _lstat(root)
    if root_st is None:
        return False
    if not _is_real_dir(root_st):
        return safe_delete(root, cleanup=cleanup, log=log)

    failed: list[Path] = []
    ok = True
    for entry, _ in _walk_post_order(root, failed):
        if not safe_delete(entry, cleanup=cleanup, log=log):
            ok = False

    if failed:
        log.error("delete_dir_incomplete", path=str(root), unlisted=[str(p) for p in failed])
        return False
    return ok


def ensure_parent_directory(path: str | Path | None) -> None:
    """Create every missing ancestor directory of ``path``."""
    if path is None:
        return
    parent = Path(path).parent
    if not parent.exists():
        parent.mkdir(parents=True, exist_ok=True)


def copy_file(source: str | Path, dest: str | Path, buffer_size: int = BUFFER_SIZE) -> None:
    """Stream-copy a file, creating the destination's parent first.

    Raises:
        OSError: If either file cannot be opened, read or written
    """
    dest_path = Path(dest)
    ensure_parent_directory(dest_path)
    with open(source, "rb") as src, open(dest_path, "wb") as dst:
        for chunk in chunked_read(src, buffer_size):
            dst.write(chunk)

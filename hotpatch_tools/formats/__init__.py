"""Container format readers for hotpatch_tools."""

from hotpatch_tools.formats.archive_entry import (
    ArchiveEntryStream,
    entry_names,
    md5_entry,
    open_entry,
    read_entry_text,
)

__all__ = [
    "ArchiveEntryStream",
    "entry_names",
    "md5_entry",
    "open_entry",
    "read_entry_text",
]

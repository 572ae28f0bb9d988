"""CLI command implementations for hotpatch_tools.

This module contains all command-line interface implementations:
- digest: Compute the fingerprint of a file or archive entry
- verify: Check a patch file against its expected fingerprint
- layout: Show the canonical paths for a fingerprint
- size: Report the size of a patch tree
- clean: Delete a patch tree
- stage: Copy a verified patch archive into its version slot
"""

from hotpatch_tools.commands.clean import clean, size
from hotpatch_tools.commands.digest import digest, verify
from hotpatch_tools.commands.layout import layout
from hotpatch_tools.commands.stage import stage

__all__ = ["clean", "digest", "layout", "size", "stage", "verify"]

"""Stage a downloaded patch archive into its version slot."""

from __future__ import annotations

import json
from pathlib import Path

import click
import structlog
from rich.console import Console

from hotpatch_tools.core.config import AppConfig
from hotpatch_tools.core.integrity import verify_file_md5
from hotpatch_tools.core.lifecycle import copy_file, delete_dir, file_exists
from hotpatch_tools.core.naming import PatchLayout
from hotpatch_tools.core.utils import validate_hash_string

logger = structlog.get_logger()


@click.command()
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("fingerprint")
@click.option(
    "--root",
    "-r",
    type=click.Path(file_okay=False, path_type=Path),
    help="Application data root (defaults to the configured data_dir)",
)
@click.option("--force", "-f", is_flag=True, help="Replace an archive already staged for this fingerprint")
@click.pass_context
def stage(ctx: click.Context, archive: Path, fingerprint: str, root: Path | None, force: bool) -> None:
    """Verify ARCHIVE and copy it into the patch directory.

    The source is checked against FINGERPRINT before copying and the
    copy is checked again afterwards. A copy that fails the second
    check is deleted.
    """
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]
    chunk_size = config.digest.chunk_size

    if not validate_hash_string(fingerprint, length=32):
        raise click.BadParameter(f"not a 32-character hex fingerprint: {fingerprint}", param_hint="FINGERPRINT")

    source = verify_file_md5(archive, fingerprint, chunk_size)
    if not source.ok:
        raise click.ClickException(source.message)

    patch_layout = PatchLayout(data_dir=root) if root is not None else config.layout()
    target = patch_layout.version_archive(fingerprint)
    assert target is not None

    if file_exists(target) and not force:
        raise click.ClickException(f"Already staged: {target} (use --force to replace)")

    try:
        copy_file(archive, target, config.digest.copy_buffer_size)
    except OSError as e:
        delete_dir(target)
        raise click.ClickException(f"Failed to copy {archive} to {target}: {e}") from e

    copied = verify_file_md5(target, fingerprint, chunk_size)
    if not copied.ok:
        delete_dir(target)
        raise click.ClickException(f"Staged copy failed verification: {copied.message}")

    logger.info("patch_staged", source=str(archive), target=str(target), fingerprint=copied.value)

    if config.output_format == "json":
        print(json.dumps({
            "source": str(archive),
            "target": str(target),
            "fingerprint": copied.value,
        }, indent=2))
    else:
        console.print(f"[green]Staged[/green] {archive} -> {target}")

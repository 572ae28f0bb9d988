"""Commands for sizing and removing patch trees."""

from __future__ import annotations

import json
from pathlib import Path

import click
import structlog
from rich.console import Console

from hotpatch_tools.core.config import AppConfig
from hotpatch_tools.core.lifecycle import delete_dir, deferred_cleanup, size_of
from hotpatch_tools.core.utils import format_size

logger = structlog.get_logger()


@click.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_context
def size(ctx: click.Context, path: Path) -> None:
    """Show the total size of a patch file or directory."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]

    total = size_of(path)
    if config.output_format == "json":
        print(json.dumps({"path": str(path), "size": total}, indent=2))
        return
    console.print(f"{path}: {format_size(total)} ({total:,} bytes)")


@click.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clean(ctx: click.Context, path: Path, yes: bool) -> None:
    """Delete a patch version directory or archive."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]

    if not path.exists() and not path.is_symlink():
        raise click.ClickException(f"Nothing to delete at {path}")

    reclaimed = size_of(path)
    if not yes:
        click.confirm(f"Delete {path} ({format_size(reclaimed)})?", abort=True)

    deleted = delete_dir(path)
    logger.info("patch_tree_cleaned", path=str(path), deleted=deleted, size=reclaimed)

    if config.output_format == "json":
        print(json.dumps({
            "path": str(path),
            "deleted": deleted,
            "size": reclaimed,
            "deferred": len(deferred_cleanup),
        }, indent=2))
    elif deleted:
        console.print(f"[green]Deleted[/green] {path}, reclaimed {format_size(reclaimed)}")
    else:
        console.print(
            f"[yellow]Could not fully delete {path}[/yellow]; "
            f"{len(deferred_cleanup)} path(s) will be retried at exit"
        )

    if not deleted:
        ctx.exit(1)

"""Show where a patch version lives on disk."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from hotpatch_tools.core.config import AppConfig
from hotpatch_tools.core.naming import PatchLayout, is_well_formed


@click.command()
@click.argument("fingerprint")
@click.option(
    "--root",
    "-r",
    type=click.Path(file_okay=False, path_type=Path),
    help="Application data root (defaults to the configured data_dir)",
)
@click.pass_context
def layout(ctx: click.Context, fingerprint: str, root: Path | None) -> None:
    """Print the canonical paths for a patch fingerprint."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]

    if not is_well_formed(fingerprint):
        raise click.BadParameter(
            f"fingerprint must be 32 characters, got {len(fingerprint)}",
            param_hint="FINGERPRINT",
        )

    patch_layout = PatchLayout(data_dir=root) if root is not None else config.layout()
    rows = {
        "patch_directory": patch_layout.patch_directory,
        "info_file": patch_layout.info_file,
        "lock_file": patch_layout.lock_file,
        "version_directory": patch_layout.version_directory(fingerprint),
        "version_archive": patch_layout.version_archive(fingerprint),
    }

    if config.output_format == "json":
        data = {name: str(value) for name, value in rows.items()}
        data["fingerprint"] = fingerprint
        data["active"] = patch_layout.is_active()
        print(json.dumps(data, indent=2))
        return

    if config.output_format == "plain":
        for name, value in rows.items():
            console.print(f"{name}: {value}")
        return

    table = Table(title=f"Patch Layout for {fingerprint}")
    table.add_column("Item", style="cyan")
    table.add_column("Path", style="white")
    table.add_column("Exists", style="green")
    for name, value in rows.items():
        exists = value is not None and value.exists()
        table.add_row(name.replace("_", " ").title(), str(value), "yes" if exists else "no")
    console.print(table)
    if not patch_layout.is_active():
        console.print("[yellow]Patch directory missing: patching is not active[/yellow]")

"""Digest and verify commands for patch files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import structlog
from rich.console import Console
from rich.table import Table

from hotpatch_tools.core.config import AppConfig
from hotpatch_tools.core.digest import md5_file
from hotpatch_tools.core.integrity import (
    verify_code_file_md5,
    verify_entry_md5,
    verify_file_md5,
    verify_resource_table_md5,
)
from hotpatch_tools.core.lifecycle import delete_dir
from hotpatch_tools.core.types import ErrorKind, Result
from hotpatch_tools.core.utils import format_size, validate_hash_string
from hotpatch_tools.formats.archive_entry import entry_names, md5_entry

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract common context objects."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]
    verbose: bool = ctx.obj["verbose"]
    debug: bool = ctx.obj["debug"]
    return config, console, verbose, debug


def _output_json(data: dict[str, Any], console: Console) -> None:
    """Output data as JSON."""
    print(json.dumps(data, indent=2, default=str))


def _result_payload(path: Path, result: Result[str], entry: str | None = None) -> dict[str, Any]:
    return {
        "path": str(path),
        "entry": entry,
        "valid": result.ok,
        "fingerprint": result.value,
        "expected": result.expected,
        "error": None if result.error is None else str(result.error),
        "message": result.message,
    }


@click.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--entry", "-e", help="Digest this archive entry instead of the whole file")
@click.pass_context
def digest(ctx: click.Context, path: Path, entry: str | None) -> None:
    """Compute the MD5 fingerprint of a file or archive entry."""
    config, console, verbose, _ = _get_context_objects(ctx)
    chunk_size = config.digest.chunk_size

    if entry:
        result = md5_entry(path, entry, chunk_size)
    else:
        result = md5_file(path, chunk_size)

    if config.output_format == "json":
        _output_json(_result_payload(path, result, entry), console)
        if not result.ok:
            ctx.exit(1)
        return

    if not result.ok:
        message = result.message
        if result.error == ErrorKind.ENTRY_NOT_FOUND:
            names = entry_names(path)
            if names.ok:
                message = f"{message}; archive holds: {', '.join(names.unwrap()) or 'nothing'}"
        raise click.ClickException(message)

    console.print(result.unwrap())
    if verbose and path.is_file():
        console.print(f"Size: {format_size(path.stat().st_size)}")


@click.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("expected")
@click.option("--entry", "-e", help="Verify this archive entry")
@click.option("--code", "mode", flag_value="code", help="Verify a raw or wrapped code file")
@click.option("--resources", "mode", flag_value="resources", help="Verify the resource table entry")
@click.option("--delete", "delete_bad", is_flag=True, help="Delete the artifact if verification fails")
@click.pass_context
def verify(
    ctx: click.Context,
    path: Path,
    expected: str,
    entry: str | None,
    mode: str | None,
    delete_bad: bool,
) -> None:
    """Check a patch file against its expected fingerprint."""
    config, console, _, _ = _get_context_objects(ctx)
    chunk_size = config.digest.chunk_size

    if not validate_hash_string(expected, length=32):
        raise click.BadParameter(f"not a 32-character hex fingerprint: {expected}", param_hint="EXPECTED")
    if entry and mode:
        raise click.UsageError("--entry cannot be combined with --code or --resources")

    if entry:
        result = verify_entry_md5(path, entry, expected, chunk_size)
    elif mode == "code":
        result = verify_code_file_md5(path, expected, chunk_size)
    elif mode == "resources":
        result = verify_resource_table_md5(path, expected, chunk_size)
    else:
        result = verify_file_md5(path, expected, chunk_size)

    deleted = False
    if not result.ok and delete_bad:
        deleted = delete_dir(path)
        logger.info("untrusted_artifact_discarded", path=str(path), deleted=deleted)

    if config.output_format == "json":
        payload = _result_payload(path, result, entry)
        payload["deleted"] = deleted
        _output_json(payload, console)
    elif config.output_format == "plain":
        console.print(f"{'OK' if result.ok else 'FAILED'} {path} {result.message}".rstrip())
    else:
        table = Table(title="Patch Verification")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Path", str(path))
        if entry:
            table.add_row("Entry", entry)
        table.add_row("Expected", expected)
        table.add_row("Computed", result.value or "-")
        status = "[green]valid[/green]" if result.ok else f"[red]{result.error}[/red]"
        table.add_row("Status", status)
        if result.message:
            table.add_row("Message", result.message)
        if delete_bad and not result.ok:
            table.add_row("Deleted", "yes" if deleted else "deferred or missing")
        console.print(table)

    if not result.ok:
        ctx.exit(1)

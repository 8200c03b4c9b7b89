"""Scan command implementation.

Reconciles the files registered with the Hyper-V host against the VM
files on disk, lists the orphans and, unless in dry-run mode, offers to
delete them one by one.
"""

from enum import Enum
from functools import partial
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from hvclean.cli.display import (
    create_orphans_table,
    print_deletion_summary,
    print_orphans_json,
    print_orphans_summary,
)
from hvclean.core.config import CleanerConfig, load_config_or_default
from hvclean.core.paths import DEFAULT_PRIMARY_CONFIG_PATH, DEFAULT_SNAPSHOT_CONFIG_PATH
from hvclean.host.base import HostQueryError, VirtualizationHost
from hvclean.host.hyperv import HyperVHost
from hvclean.reconcile.collector import ActiveFileCollector, CollectionError
from hvclean.reconcile.deletion import DECISION_CHOICES, DeletionWorkflow
from hvclean.reconcile.models import OrphanRecord
from hvclean.reconcile.resolver import resolve_orphans
from hvclean.reconcile.scanner import DiskScanner
from hvclean.reconcile.validator import check_directory, validate_scan_paths
from hvclean.utils.formatting import (
    console,
    err_console,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Find orphaned VM files and optionally delete them.",
    invoke_without_command=True,
)


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def get_host() -> VirtualizationHost:
    """Create the virtualization host to reconcile against."""
    return HyperVHost()


@app.callback(invoke_without_command=True)
def scan_orphans(
    primary_config_path: Annotated[
        Path | None,
        typer.Option(
            "--primary-config-path",
            "-c",
            help="Directory with VM configuration files. Prompted if not set.",
        ),
    ] = None,
    snapshot_config_path: Annotated[
        Path | None,
        typer.Option(
            "--snapshot-config-path",
            "-s",
            help="Directory with snapshot configuration files. Prompted if not set.",
        ),
    ] = None,
    disk_scan_paths: Annotated[
        list[Path] | None,
        typer.Option(
            "--disk-scan-path",
            "-d",
            help="Directory to scan for disks and ISOs (repeatable). Prompted if not set.",
        ),
    ] = None,
    dry_run: Annotated[
        bool | None,
        typer.Option(
            "--dry-run/--no-dry-run",
            help="Only list orphans (default), or offer to delete them.",
            show_default=False,
        ),
    ] = None,
    include_isos: Annotated[
        bool | None,
        typer.Option(
            "--include-isos/--no-include-isos",
            help="Also scan for .iso files.",
            show_default=False,
        ),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Find VM files on disk that no registered VM or snapshot uses."""
    config = load_config_or_default()
    dry_run = config.dry_run if dry_run is None else dry_run
    include_isos = config.include_isos if include_isos is None else include_isos
    as_json = output_format == OutputFormat.JSON
    # Keep stdout to the JSON listing; anything interactive goes to stderr
    out = err_console if as_json else console

    primary_dir = _resolve_directory(
        primary_config_path,
        config.primary_config_path,
        "VM configuration directory",
        DEFAULT_PRIMARY_CONFIG_PATH,
        out=out,
    )
    snapshot_dir = _resolve_directory(
        snapshot_config_path,
        config.snapshot_config_path,
        "Snapshot configuration directory",
        DEFAULT_SNAPSHOT_CONFIG_PATH,
        out=out,
    )
    disk_dirs = _resolve_disk_paths(disk_scan_paths, config, out=out)

    host = get_host()
    if not host.is_available():
        print_error("Hyper-V is not available (PowerShell with the Hyper-V module is required).")
        raise typer.Exit(code=1)

    try:
        collection = ActiveFileCollector(host, primary_dir, snapshot_dir).collect()
    except (HostQueryError, CollectionError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not as_json:
        print_info(
            f"{len(collection.vms)} VM(s) registered, "
            f"{len(collection.active_files)} file(s) in use."
        )

    scan_dirs = validate_scan_paths([primary_dir, snapshot_dir, *disk_dirs]).valid
    candidates = DiskScanner(include_isos=include_isos).scan(scan_dirs)
    orphans = resolve_orphans(candidates, collection.active_files, collection.vm_index)

    if not orphans:
        if as_json:
            print_orphans_json([])
        else:
            print_success(f"No orphaned files found among {len(candidates)} scanned file(s).")
        return

    if as_json:
        print_orphans_json(orphans)
    else:
        console.print(create_orphans_table(orphans))
        print_orphans_summary(orphans)

    if dry_run:
        if not as_json:
            print_info("Dry run: no files were deleted. Use --no-dry-run to delete orphans.")
        return

    workflow = DeletionWorkflow(prompt=partial(_prompt_decision, out=out), on_warning=print_warning)
    outcome = workflow.run(orphans)
    print_deletion_summary(outcome, out=out)


# === Private helper functions ===


def _resolve_directory(
    cli_value: Path | None,
    config_value: str | None,
    label: str,
    default: str,
    *,
    out: Console = console,
) -> Path:
    """Pick a directory from the command line, the config file or a prompt.

    A directory given on the command line or in the config file must be
    valid; an invalid one aborts the run. A prompted directory is asked
    for again until it is valid.
    """
    given = cli_value if cli_value is not None else config_value
    if given is not None:
        validation = validate_scan_paths([given])
        if not validation.ok:
            invalid = validation.invalid[0]
            print_error(f"{label} {invalid.path} {invalid.reason}.")
            raise typer.Exit(code=1)
        return validation.valid[0]

    while True:
        answer = typer.prompt(label, default=default, err=out.stderr)
        path = Path(answer.strip()).expanduser().absolute()
        reason = check_directory(path)
        if reason is None:
            return path
        print_warning(f"{answer} {reason}.")


def _resolve_disk_paths(
    cli_values: list[Path] | None, config: CleanerConfig, *, out: Console = console
) -> list[Path]:
    """Pick disk scan directories from the command line, the config file or prompts."""
    given: list[str | Path] = list(cli_values or []) or list(config.disk_scan_paths)
    if given:
        validation = validate_scan_paths(given)
        if not validation.ok:
            for invalid in validation.invalid:
                print_error(f"Disk scan path {invalid.path} {invalid.reason}.")
            raise typer.Exit(code=1)
        return list(validation.valid)

    out.print("[info]Enter directories to scan for virtual disks (empty line to finish).[/]")
    collected: list[Path] = []
    while True:
        answer = typer.prompt(
            "Disk scan path", default="", show_default=False, err=out.stderr
        ).strip()
        if not answer:
            break
        validation = validate_scan_paths([*collected, answer])
        if not validation.ok:
            invalid = validation.invalid[0]
            print_warning(f"{invalid.path} {invalid.reason}.")
            continue
        collected = list(validation.valid)

    if not collected:
        print_error("No disk scan path given.")
        raise typer.Exit(code=1)
    return collected


def _prompt_decision(
    record: OrphanRecord, position: int, total: int, *, out: Console = console
) -> str:
    """Ask whether to delete one orphan. Ctrl-C or end of input quits."""
    out.print(
        f"\n[bold]({position}/{total})[/bold] [file.path]{escape(record.path)}[/file.path] "
        f"[muted]{format_size(record.file.size_bytes)}, owner: {escape(record.owner)}[/muted]"
    )
    try:
        return typer.prompt(f"Delete? {DECISION_CHOICES}", default="n", err=out.stderr)
    except typer.Abort:
        return "q"

"""Shared Rich display functions for orphans and deletion results.

Renders the orphan listing (table or JSON) and the final summary of a
deletion run.
"""

import json

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hvclean.reconcile.deletion import DeletionOutcome
from hvclean.reconcile.models import OrphanRecord, OwnershipMatch
from hvclean.utils.formatting import console, format_size, print_warning

_MATCH_LABELS: dict[OwnershipMatch, str] = {
    OwnershipMatch.MATCHED: "[match_matched]registered[/match_matched]",
    OwnershipMatch.UNMATCHED_WITH_GUESS: "[match_guess]not registered[/match_guess]",
    OwnershipMatch.UNMATCHED_NO_GUESS: "[match_unknown]unknown[/match_unknown]",
}


def create_orphans_table(orphans: list[OrphanRecord]) -> Table:
    """Create a Rich table listing orphaned files.

    Args:
        orphans: Orphans to display.

    Returns:
        Rich Table configured for orphan display.
    """
    table = Table(
        title="Orphaned VM Files",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Path", style="file.path", overflow="fold")
    table.add_column("Type", width=7)
    table.add_column("Size", style="file.size", justify="right", width=10)
    table.add_column("Modified", style="muted", width=16)
    table.add_column("Probable Owner", no_wrap=True)
    table.add_column("Owner Status")
    table.add_column("State", style="muted")

    for record in orphans:
        table.add_row(
            escape(record.path),
            record.file.extension.lstrip("."),
            format_size(record.file.size_bytes),
            _format_mtime(record.file.mtime),
            escape(record.owner),
            _MATCH_LABELS[record.match],
            record.owner_state or "-",
        )

    return table


def print_orphans_summary(orphans: list[OrphanRecord]) -> None:
    """Print the orphan count and total size."""
    total = sum(record.file.size_bytes for record in orphans)
    console.print(
        f"\n[dim]Found {len(orphans)} orphaned file(s) ({format_size(total)} total)[/dim]"
    )


def print_orphans_json(orphans: list[OrphanRecord]) -> None:
    """Print orphans as JSON."""
    console.print_json(json.dumps([record.to_dict() for record in orphans]))


def print_deletion_summary(outcome: DeletionOutcome, out: Console | None = None) -> None:
    """Print the result of a deletion run.

    Always reports processed, deleted, kept and failed counts. Failed
    files are listed with their error.

    Args:
        outcome: Result of the deletion workflow.
        out: Console to print on. Defaults to stdout; JSON runs pass the
            stderr console so stdout holds only the orphan listing.
    """
    target = out or console
    failed = outcome.failed
    if failed:
        table = Table(
            title="Failed Deletions",
            show_header=True,
            header_style="bold_header",
            border_style="border",
        )
        table.add_column("Path", style="file.path", overflow="fold")
        table.add_column("Error")
        for item in failed:
            table.add_row(escape(item.record.path), f"[error]{escape(item.error or '')}[/error]")
        target.print(table)

    deleted = len(outcome.deleted)
    kept = len(outcome.kept)
    target.print(
        f"\nSummary: {len(outcome.items)} processed, "
        f"[deleted]{deleted} deleted[/deleted], "
        f"[kept]{kept} kept[/kept], "
        f"[error]{len(failed)} failed[/error]"
    )

    if failed:
        print_warning(f"{len(failed)} file(s) could not be deleted.")
    elif deleted:
        target.print(f"[success]Freed {format_size(outcome.freed_bytes)}.[/]")
    else:
        target.print("[info]No files were deleted.[/]")


def _format_mtime(mtime: str) -> str:
    """Shorten an ISO 8601 timestamp to minutes."""
    return mtime[:16].replace("T", " ")

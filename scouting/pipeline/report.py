from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from scouting.models.enums import RefreshStatus
from scouting.models.refresh import RunSummary

STATUS_STYLE = {
    RefreshStatus.UPDATED: "green",
    RefreshStatus.UNCHANGED: "dim",
    RefreshStatus.SKIPPED: "yellow",
    RefreshStatus.FAILED: "red",
}


def print_summary(summary: RunSummary, console: Optional[Console] = None) -> None:
    """Per-entity table plus the count of modified files."""
    console = console or Console()
    table = Table(title=f"{summary.command} run", show_lines=False)
    table.add_column("Entity")
    table.add_column("Status")
    table.add_column("Rating", justify="right")
    table.add_column("Record")
    table.add_column("State #", justify="right")
    table.add_column("National #", justify="right")
    table.add_column("Note")

    for o in summary.outcomes:
        f = o.fields
        note = o.reason or ""
        if o.history_changed:
            note = f"{note} (history)".strip()
        table.add_row(
            o.label,
            f"[{STATUS_STYLE[o.status]}]{o.status.value}[/]",
            f"{f.rating:.2f}" if f and f.rating is not None else "-",
            f.record if f and f.record else "-",
            str(f.state_rank) if f and f.state_rank is not None else "-",
            str(f.national_rank) if f and f.national_rank is not None else "-",
            note,
        )
    if summary.outcomes:
        console.print(table)

    prefix = "[dry-run] " if summary.dry_run else ""
    console.print(
        Panel(
            f"{prefix}{summary.files_modified} file(s) modified · "
            f"{summary.count(RefreshStatus.UPDATED)} updated, "
            f"{summary.count(RefreshStatus.UNCHANGED)} unchanged, "
            f"{summary.count(RefreshStatus.SKIPPED)} skipped, "
            f"{summary.count(RefreshStatus.FAILED)} failed",
            title="Done",
            expand=False,
        )
    )

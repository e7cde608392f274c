"""Output formatting utilities for CLI."""

import json
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from migration_tracker.core.exceptions import MigrationTrackerError
from migration_tracker.tracking.models import MigrationRecord

console = Console()
error_console = Console(stderr=True)

OUTPUT_FORMATS = ("table", "json")
_output_format = "table"


def set_output_format(output_format: str) -> None:
    """Select table or json output for the rest of the invocation."""
    global _output_format
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format: {output_format}")
    _output_format = output_format


def format_timestamp(ts: datetime | None) -> str:
    """Format a timestamp for display."""
    if ts is None:
        return "-"
    return ts.strftime("%Y-%m-%d %H:%M:%S")


def format_status(status: str) -> Text:
    """Format status with color."""
    colors = {
        "pending": "yellow",
        "completed": "green",
        "failed": "red",
        "deleted": "dim",
    }
    color = colors.get(status.lower(), "white")
    return Text(status, style=color)


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    console.print_json(json.dumps(data, default=str, indent=2))


def print_error(message: str, details: dict | None = None) -> None:
    """Print an error message."""
    error_console.print(f"[red]Error:[/red] {message}")
    if details:
        for key, value in details.items():
            error_console.print(f"  [dim]{key}:[/dim] {value}")


def print_tracker_error(error: MigrationTrackerError) -> None:
    """Print a tracker error, as its JSON body in json mode."""
    if _output_format == "json":
        error_console.print_json(json.dumps(error.to_dict(), default=str))
        return
    print_error(error.message, {"code": error.error_code})


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_records_table(records: list[MigrationRecord], title: str = "Migrations") -> None:
    """Print migration records as a table (or JSON)."""
    if _output_format == "json":
        print_json([r.to_dict() for r in records])
        return

    if not records:
        print_info("No migrations found.")
        return

    table = Table(title=title, show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Author", style="white")
    table.add_column("Added", style="dim")
    table.add_column("Changed By", style="white")
    table.add_column("Changed", style="dim")

    for record in records:
        table.add_row(
            record.name,
            format_status(record.status.value),
            record.script_author,
            format_timestamp(record.date_added),
            record.changed_by or "-",
            format_timestamp(record.date_changed),
        )

    console.print(table)
    console.print(f"[dim]{len(records)} migration(s)[/dim]")


def print_record_details(record: MigrationRecord) -> None:
    """Print one migration with its audit trail."""
    if _output_format == "json":
        print_json(record.to_dict())
        return

    console.print()
    console.print(f"[bold]Migration[/bold] [cyan]{record.name}[/cyan]")
    console.print("  Status:  ", format_status(record.status.value))
    console.print(f"  Author:   {record.script_author}")
    console.print(f"  Added:    {format_timestamp(record.date_added)}")
    console.print(f"  Changed:  {format_timestamp(record.date_changed)} by {record.changed_by or '-'}")
    console.print()

    if record.history:
        table = Table(title="History", show_header=True)
        table.add_column("When", style="dim")
        table.add_column("Status")
        table.add_column("By", style="white")
        table.add_column("Script Checksum", style="dim")
        for change in record.history:
            table.add_row(
                format_timestamp(change.date_changed),
                format_status(change.status.value),
                change.changed_by,
                (change.script_checksum or "-")[:12],
            )
        console.print(table)


def print_summary(counts: dict[str, int]) -> None:
    """Print the number of migrations per status."""
    if _output_format == "json":
        print_json(counts)
        return

    table = Table(title="Migration Summary", show_header=True)
    table.add_column("Status")
    table.add_column("Count", justify="right")
    for status, count in counts.items():
        table.add_row(format_status(status), str(count))
    table.add_row(Text("total", style="bold"), str(sum(counts.values())))
    console.print(table)

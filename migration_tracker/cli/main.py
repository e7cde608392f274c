"""CLI entry point for the migration tracker."""

from typing import Annotated

import typer
from rich.console import Console

from migration_tracker.cli.commands import migrations
from migration_tracker.cli.output import OUTPUT_FORMATS, set_output_format

# Version from pyproject.toml
__version__ = "0.1.0"

# Create main app
app = typer.Typer(
    name="migration-tracker",
    help="Migration Tracker CLI - Record and report database migration status",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register sub-commands
app.add_typer(migrations.app, name="migrations", help="Migration tracking")

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"migration-tracker version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    output_format: Annotated[
        str,
        typer.Option("--output", "-o", help="Output format (table, json)"),
    ] = "table",
) -> None:
    """
    Migration Tracker CLI.

    Records when migrations are added, applied, failed or deleted.

    [bold]Quick Start:[/bold]

        # Create the collection indexes
        migration-tracker migrations init

        # Register and apply a migration
        migration-tracker migrations add 20240101120000_add_users --author alice
        migration-tracker migrations apply 20240101120000_add_users --user bob

        # Reports
        migration-tracker migrations current
        migration-tracker migrations list --status failed --author alice

    [bold]Environment Variables:[/bold]

        MONGODB               - MongoDB connection string
        MONGODB_DATABASE      - Database name
        STORE_TIMEOUT_SECONDS - Deadline for each store call
    """
    if output_format not in OUTPUT_FORMATS:
        raise typer.BadParameter(
            f"must be one of: {', '.join(OUTPUT_FORMATS)}", param_hint="--output"
        )
    set_output_format(output_format)


if __name__ == "__main__":
    app()

"""
Migration tracking commands.

Each command runs one tracking operation against MongoDB and exits with the
failing error kind's exit code (see ``migration_tracker.core.exceptions``).
"""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from migration_tracker.cli.output import (
    print_tracker_error,
    print_record_details,
    print_records_table,
    print_success,
    print_summary,
)
from migration_tracker.core.database import close_database, db_manager, init_database
from migration_tracker.core.exceptions import MigrationTrackerError
from migration_tracker.log.logging import logger
from migration_tracker.tracking.instance import MigrationInstance
from migration_tracker.tracking.naming import new_migration_name
from migration_tracker.tracking.reports import MigrationReports
from migration_tracker.tracking.store import MigrationStore, MongoMigrationStore

app = typer.Typer(help="Migration tracking commands")


def get_store() -> MigrationStore:
    """Store bound to the configured migrations collection."""
    return MongoMigrationStore(db_manager.migrations_collection)


def run_operation(operation: Callable[[], Awaitable[Any]]) -> Any:
    """
    Run an async operation, closing the connection afterwards.

    Tracker errors are reported on stderr and turned into their exit code.
    """

    async def _run():
        try:
            return await operation()
        finally:
            await close_database()

    try:
        return asyncio.run(_run())
    except MigrationTrackerError as e:
        logger.debug(
            "Command failed: {error}",
            error=e.message,
            error_code=e.error_code,
            event_type="cli_command_failed",
        )
        print_tracker_error(e)
        raise typer.Exit(e.exit_code)


@app.command("init")
def init() -> None:
    """Check the connection and create the collection indexes."""
    run_operation(init_database)
    print_success("Migration collection initialized.")


@app.command("add")
def add(
    name: Annotated[str, typer.Argument(help="Migration name")],
    author: Annotated[str, typer.Option("--author", "-a", help="Script author")],
) -> None:
    """Register a new migration as pending."""

    async def _add():
        return await MigrationInstance(name, get_store()).add(author)

    record = run_operation(_add)
    print_success(f"Added migration {record.name} (pending)")


@app.command("apply")
def apply(
    name: Annotated[str, typer.Argument(help="Migration name")],
    user: Annotated[str, typer.Option("--user", "-u", help="User applying the migration")],
    script: Annotated[
        Optional[Path],
        typer.Option(
            "--script",
            "-s",
            exists=True,
            dir_okay=False,
            readable=True,
            help="Script file, hashed into the audit trail",
        ),
    ] = None,
) -> None:
    """Mark a migration as completed."""
    script_content = script.read_text() if script else None

    async def _apply():
        result = await MigrationInstance(name, get_store()).apply(script_content, user)
        return result.raise_if_not_found()

    run_operation(_apply)
    print_success(f"Migration {name} marked completed by {user}")


@app.command("set-status")
def set_status(
    name: Annotated[str, typer.Argument(help="Migration name")],
    status: Annotated[
        str, typer.Argument(help="New status (pending, completed, failed, deleted)")
    ],
    user: Annotated[str, typer.Option("--user", "-u", help="User changing the status")],
) -> None:
    """Move a migration to an explicit status."""

    async def _set_status():
        result = await MigrationInstance(name, get_store()).update_status(status, user)
        return result.raise_if_not_found()

    run_operation(_set_status)
    print_success(f"Migration {name} marked {status.lower()} by {user}")


@app.command("show")
def show(name: Annotated[str, typer.Argument(help="Migration name")]) -> None:
    """Show one migration and its status history."""

    async def _show():
        return await MigrationInstance(name, get_store()).get()

    print_record_details(run_operation(_show))


@app.command("current")
def current() -> None:
    """Show the current status of every migration."""

    async def _current():
        return await MigrationReports(get_store()).get_current()

    print_records_table(run_operation(_current), title="Current Migrations")


@app.command("list")
def list_migrations(
    status: Annotated[
        Optional[str],
        typer.Option("--status", "-s", help="Filter by status (pending, completed, failed, deleted)"),
    ] = None,
    author: Annotated[
        Optional[str],
        typer.Option("--author", "-a", help="Filter by script author"),
    ] = None,
    changed_by: Annotated[
        Optional[str],
        typer.Option("--changed-by", "-c", help="Filter by the user of the last change"),
    ] = None,
) -> None:
    """List migrations matching every given filter."""

    async def _list():
        return await MigrationReports(get_store()).get(
            status=status, script_author=author, changed_by=changed_by
        )

    print_records_table(run_operation(_list))


@app.command("summary")
def summary() -> None:
    """Count migrations per status."""

    async def _summary():
        return await MigrationReports(get_store()).summary()

    print_summary(run_operation(_summary))


@app.command("new-name")
def new_name(
    description: Annotated[str, typer.Argument(help="Short description, e.g. 'add user index'")],
) -> None:
    """Print a timestamp-prefixed migration name."""
    try:
        name = new_migration_name(description)
    except MigrationTrackerError as e:
        print_tracker_error(e)
        raise typer.Exit(e.exit_code)
    typer.echo(name)

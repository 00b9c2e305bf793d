"""Mini README: Entry point CLI for the PayLog admin ledger.

This script exposes a Typer CLI that starts the FastAPI application, prepares
the database schema, and reconciles a roster file from the command line. All
commands draw their defaults from ``PAYLOG_*`` environment variables.
"""

from __future__ import annotations

from pathlib import Path

import typer
import uvicorn

from paylog.configuration import get_settings
from paylog.errors import PayLogError
from paylog.logging_utils import configure_root_logger
from paylog.roster import RosterReconciler
from paylog.storage import Database

cli = typer.Typer(help="Run and manage the PayLog admin ledger.")


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind."),
    port: int = typer.Option(None, help="Port to listen on."),
    production: bool = typer.Option(
        False, help="Use production server settings (disable auto-reload)."
    ),
) -> None:
    """Start the FastAPI application using uvicorn."""

    settings = get_settings()
    effective_host = host or settings.interface_host
    effective_port = port or settings.interface_port
    configure_root_logger(settings.log_level)

    # Browsers cannot open 0.0.0.0 directly, so point operators at localhost.
    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(
        "Starting PayLog on "
        f"{effective_host}:{effective_port}.\n"
        "Open your browser at "
        f"http://{browser_host}:{effective_port}"
    )
    uvicorn.run(
        "paylog.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not production,
    )


@cli.command("init-db")
def init_db() -> None:
    """Create the database tables if they do not exist yet."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    database = Database(settings.resolved_database_url())
    database.create_schema()
    database.dispose()
    typer.echo("Database ready.")


@cli.command("import-roster")
def import_roster(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV or XLSX roster."),
    dry_run: bool = typer.Option(False, help="Only report how many members would be removed."),
) -> None:
    """Reconcile stored members against a roster file."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    database = Database(settings.resolved_database_url())
    database.create_schema()
    reconciler = RosterReconciler(database)
    try:
        result = reconciler.import_file(path.read_bytes(), path.name, dry_run=dry_run)
    except PayLogError as error:
        typer.echo(f"Import failed: {error.message}", err=True)
        raise typer.Exit(code=1) from error
    finally:
        database.dispose()

    if dry_run:
        typer.echo(f"{result['toDelete']} member(s) would be removed.")
    else:
        typer.echo(
            f"Imported {result['imported']}, skipped {result['skipped']}, "
            f"removed {result['removed']}."
        )


if __name__ == "__main__":
    cli()

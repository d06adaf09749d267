"""Typer-based CLI for the behavior log."""

import csv
import json
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .api import create_server
from .append_log import COLUMNS
from .config import BehaveLogConfig
from .config_store import KNOWN_KEYS, SqliteConfigStore
from .db import connect, create_schema
from .ledger import LedgerWriter, read_ledger_tail
from .models import CandidateEntry, SubmissionErrorKind
from .service import EntryService

app = typer.Typer(
    name="behavelog",
    help="Behavior log - record behaviors against a configurable category schema",
    add_completion=False,
)

console = Console()

DB_OPTION_HELP = "Path to the SQLite database (default: BEHAVELOG_DB_PATH env or ./behavelog_data/behavelog.sqlite)"


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(db_path: Optional[str]) -> BehaveLogConfig:
    try:
        return BehaveLogConfig.from_env(cli_db_path=db_path)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def _require_db(config: BehaveLogConfig) -> None:
    if not config.db_path.exists():
        console.print(f"[red]Error: No behavior log at {config.db_path}[/red]")
        console.print("[yellow]Run 'behavelog init' first[/yellow]")
        raise typer.Exit(code=1)


@app.command()
def init(
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Create the database and ledger if they do not exist.

    This command is idempotent - it will not overwrite existing data.
    """
    config = _load_config(db_path)

    if config.db_path.exists():
        console.print(f"[dim]Database already exists: {config.db_path}[/dim]")
    else:
        console.print(f"[green]Initializing behavior log at:[/green] {config.db_path}")

    conn = connect(config.db_path, timeout=config.storage_timeout_seconds)
    try:
        create_schema(conn)
    finally:
        conn.close()

    ledger_path = config.effective_ledger_path
    if not ledger_path.exists():
        ledger_path.parent.mkdir(parents=True, exist_ok=True)
        ledger_path.touch()
        console.print(f"[green]+[/green] Created ledger: {ledger_path}")
    else:
        console.print(f"[dim]Ledger already exists: {ledger_path}[/dim]")

    console.print("[bold green]Behavior log ready.[/bold green]")


@app.command()
def options(
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
    as_json: bool = typer.Option(False, "--json", help="Print options as JSON"),
):
    """Show the categories and impact types currently accepted."""
    config = _load_config(db_path)
    service = EntryService.from_config(config, with_ledger=False)
    resolved = service.get_form_options()

    if as_json:
        typer.echo(json.dumps(resolved.model_dump(mode="json", by_alias=True)))
        return

    table = Table(title="Form Options")
    table.add_column("Categories", style="cyan")
    table.add_column("Impact Types", style="magenta")
    for i in range(max(len(resolved.categories), len(resolved.impact_types))):
        table.add_row(
            resolved.categories[i] if i < len(resolved.categories) else "",
            resolved.impact_types[i] if i < len(resolved.impact_types) else "",
        )
    console.print(table)
    console.print(f"[dim]Default user:[/dim] {resolved.default_user or '-'}")


@app.command("log")
def log_entry(
    behavior: str = typer.Argument(..., help="What you did"),
    category: str = typer.Option(..., "--category", "-c", help="Category (see 'behavelog options')"),
    impact_type: str = typer.Option(..., "--impact", "-i", help="Impact type (see 'behavelog options')"),
    user: str = typer.Option("", "--user", "-u", help="User name (default: DEFAULT_USER property)"),
    at: str = typer.Option(None, "--at", help="When it happened, ISO 8601 (default: now)"),
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Submit one behavior entry."""
    config = _load_config(db_path)
    service = EntryService.from_config(config)

    result = service.submit(
        CandidateEntry(behavior=behavior, category=category, impact_type=impact_type, user=user, timestamp=at)
    )

    if result.entry is not None:
        entry = result.entry
        console.print(f"[green]+[/green] Logged entry [bold]#{entry.id}[/bold]: {entry.behavior}")
        console.print(f"[dim]{entry.category} / {entry.impact_type} at {entry.timestamp.isoformat()}[/dim]")
        return

    error = result.error
    if error.kind is SubmissionErrorKind.REJECTED:
        console.print(f"[red]Rejected ({error.rejection.reason.value}):[/red] {error.rejection.message}")
    else:
        persist_error = error.persist_error
        console.print(f"[red]Could not save entry ({persist_error.kind.value}):[/red] {persist_error.message}")
        if persist_error.retryable:
            console.print("[yellow]This failure is temporary; try again.[/yellow]")
    raise typer.Exit(code=1)


@app.command()
def entries(
    n: int = typer.Option(20, "--n", help="Number of recent entries to display"),
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Display the most recent entries in append order."""
    config = _load_config(db_path)
    _require_db(config)
    service = EntryService.from_config(config, with_ledger=False)

    try:
        recent = service.recent_entries(limit=n)
    except sqlite3.Error as e:
        console.print(f"[red]Error reading entries: {e}[/red]")
        raise typer.Exit(code=1)

    if not recent:
        console.print("[dim]No entries logged yet[/dim]")
        return

    table = Table(title=f"Last {len(recent)} Entr{'y' if len(recent) == 1 else 'ies'}")
    table.add_column("ID", style="bold", justify="right")
    table.add_column("When (UTC)", style="cyan", no_wrap=True)
    table.add_column("Behavior")
    table.add_column("Category", style="magenta")
    table.add_column("Impact", style="yellow")
    table.add_column("User", style="dim")

    for entry in recent:
        behavior = entry.behavior if len(entry.behavior) <= 60 else entry.behavior[:57] + "..."
        table.add_row(
            str(entry.id),
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            behavior,
            entry.category,
            entry.impact_type,
            entry.user or "-",
        )
    console.print(table)


@app.command()
def export(
    output: Path = typer.Option(None, "--output", "-o", help="CSV file to write (default: stdout)"),
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Export every entry as CSV, one row per entry in append order."""
    config = _load_config(db_path)
    _require_db(config)
    service = EntryService.from_config(config, with_ledger=False)

    try:
        all_entries = service.recent_entries()
    except sqlite3.Error as e:
        console.print(f"[red]Error reading entries: {e}[/red]")
        raise typer.Exit(code=1)

    header = ["id", *COLUMNS]

    def _write(handle) -> None:
        writer = csv.writer(handle)
        writer.writerow(header)
        for entry in all_entries:
            writer.writerow(
                [
                    entry.id,
                    entry.recorded_at.isoformat(),
                    entry.timestamp.isoformat(),
                    entry.behavior,
                    entry.category,
                    entry.impact_type,
                    entry.user,
                ]
            )

    if output is None:
        _write(sys.stdout)
        return

    with open(output, "w", encoding="utf-8", newline="") as f:
        _write(f)
    console.print(f"[green]+[/green] Exported {len(all_entries)} entr{'y' if len(all_entries) == 1 else 'ies'} to {output}")


config_app = typer.Typer(help="Configuration property commands")
app.add_typer(config_app, name="config")


def _check_key(key: str) -> str:
    if key not in KNOWN_KEYS:
        console.print(f"[red]Error: Unknown property {key}[/red]")
        console.print(f"[yellow]Known properties: {', '.join(KNOWN_KEYS)}[/yellow]")
        raise typer.Exit(code=1)
    return key


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Property name, e.g. BEHAVIOR_CATEGORIES"),
    value: str = typer.Argument(..., help="Raw value; lists are comma-separated"),
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Set a configuration property."""
    config = _load_config(db_path)
    store = SqliteConfigStore(config.db_path, timeout=config.storage_timeout_seconds)
    store.set(_check_key(key), value)
    LedgerWriter(config.effective_ledger_path).append_event(
        "CONFIG_PROPERTY_SET", {"key": key, "value": value}
    )
    console.print(f"[green]+[/green] {key} = {value}")


@config_app.command("unset")
def config_unset(
    key: str = typer.Argument(..., help="Property name"),
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Remove a configuration property so its default applies."""
    config = _load_config(db_path)
    store = SqliteConfigStore(config.db_path, timeout=config.storage_timeout_seconds)
    if store.unset(_check_key(key)):
        LedgerWriter(config.effective_ledger_path).append_event("CONFIG_PROPERTY_UNSET", {"key": key})
        console.print(f"[green]-[/green] {key} removed; default applies")
    else:
        console.print(f"[dim]{key} was not set[/dim]")


@config_app.command("show")
def config_show(
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Show raw stored properties."""
    config = _load_config(db_path)
    store = SqliteConfigStore(config.db_path, timeout=config.storage_timeout_seconds)
    stored = {prop.key: prop.value for prop in store.items()}

    table = Table(title="Configuration Properties")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Stored Value")
    for key in KNOWN_KEYS:
        value = stored.get(key)
        table.add_row(key, value if value is not None else "[dim](default)[/dim]")
    console.print(table)


ledger_app = typer.Typer(help="Ledger commands")
app.add_typer(ledger_app, name="ledger")


@ledger_app.command("tail")
def ledger_tail(
    n: int = typer.Option(20, "--n", help="Number of recent events to display"),
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Display the last N submission ledger events."""
    config = _load_config(db_path)
    events = read_ledger_tail(config.effective_ledger_path, n=n)

    if not events:
        console.print("[dim]No events in ledger[/dim]")
        return

    table = Table(title=f"Last {len(events)} Ledger Event(s)")
    table.add_column("Timestamp (UTC)", style="cyan", no_wrap=True)
    table.add_column("Event Type", style="magenta", no_wrap=True)
    table.add_column("Entry", style="yellow")
    table.add_column("Payload", style="dim")

    for event in events:
        payload_str = str(event.payload)
        if len(payload_str) > 60:
            payload_str = payload_str[:57] + "..."
        table.add_row(
            event.ts.strftime("%Y-%m-%d %H:%M:%S"),
            event.event_type,
            str(event.entry_id) if event.entry_id is not None else "-",
            payload_str,
        )
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(8080, "--port", "-p", help="Port to listen on"),
    db_path: str = typer.Option(None, "--db", help=DB_OPTION_HELP),
):
    """Serve the JSON API (GET /options, POST /entries, GET /entries)."""
    config = _load_config(db_path)
    service = EntryService.from_config(config)
    server = create_server(service, host=host, port=port)

    bound_host, bound_port = server.server_address[:2]
    console.print(f"[green]Behavior log API on http://{bound_host}:{bound_port}[/green]")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        console.print("[dim]Shutting down[/dim]")
    finally:
        server.server_close()


if __name__ == "__main__":
    app()

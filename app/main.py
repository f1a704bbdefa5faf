"""
Trade Journal Importer CLI Application.

Command-line interface for importing broker reports into the journal.
"""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from app.config import get_default_user_id, settings
from app.journal.models import init_db
from app.logging_utils import configure_logging

# Initialize CLI app
app = typer.Typer(
    name="journal",
    help="Trade Journal Importer - load MetaTrader, NinjaTrader and Tradovate reports",
    add_completion=False,
)

console = Console()

# Configure logging
configure_logging()


def init():
    """Initialize database."""
    init_db()


def _parse_map_options(values: Optional[list[str]]) -> list[tuple[str, str]]:
    """--map field=header pairs."""
    pairs = []
    for value in values or []:
        field_name, sep, header = value.partition("=")
        if not sep or not field_name.strip():
            raise typer.BadParameter(f"Expected field=header, got '{value}'", param_hint="--map")
        pairs.append((field_name.strip(), header.strip()))
    return pairs


def _read_report(path: Path) -> bytes:
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)
    content = path.read_bytes()
    if len(content) > settings.max_upload_bytes:
        max_mb = settings.max_upload_bytes / (1024 * 1024)
        console.print(f"[red]File too large: {len(content) / (1024 * 1024):.1f} MB (max: {max_mb:.0f} MB)[/red]")
        raise typer.Exit(1)
    return content


# ==================== IMPORT COMMANDS ====================


@app.command("import")
def import_report(
    file_path: Path = typer.Argument(..., help="Broker report (xlsx/html/csv/pdf)"),
    source: str = typer.Option(..., "--source", "-s", help="metatrader, ninjatrader or tradovate"),
    account: str = typer.Option(..., "--account", "-a", help="Destination account id"),
    timezone: Optional[str] = typer.Option(None, "--timezone", "-z", help="Broker timezone (IANA name)"),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="append or replace"),
    mappings: Optional[List[str]] = typer.Option(None, "--map", help="Mapping override, field=header"),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="Owner stamped on imported trades"),
):
    """Import a broker report into an account."""
    init()

    from app.db.stores import get_trade_store
    from app.imports.errors import ImportPipelineError
    from app.imports.executor import ImportExecutor
    from app.imports.models import DataSource, ImportMode
    from app.imports.session import ImportSession

    content = _read_report(file_path)
    session = ImportSession(user_id=user_id if user_id is not None else get_default_user_id())

    try:
        session.select_source(DataSource(source.lower()))
        session.upload(file_path.name, content)
        for field_name, header in _parse_map_options(mappings):
            session.set_mapping(field_name, header)
        session.configure(
            broker_timezone=timezone,
            mode=ImportMode(mode.lower()) if mode else None,
            account_id=account,
        )
        store = get_trade_store()
        stats = session.run(ImportExecutor(store))
    except (ImportPipelineError, ValueError, KeyError) as e:
        console.print(f"[red]Import failed: {e}[/red]")
        raise typer.Exit(1)

    border = "green" if stats.failed == 0 else "yellow"
    console.print(
        Panel(
            f"[bold]{session.data_source.label}[/bold] → account {account}\n\n"
            f"File: {file_path.name}\n"
            f"Broker timezone: {session.broker_timezone}\n"
            f"Mode: {session.mode.value}\n\n"
            f"Total rows: {stats.total}\n"
            f"Imported: [green]{stats.success}[/green]\n"
            f"Skipped (duplicates): {stats.skipped}\n"
            f"Failed: [red]{stats.failed}[/red]\n\n"
            f"Trades in account: {store.count_trades(account)}",
            title="✅ Import Complete",
            border_style=border,
        )
    )


@app.command("preview")
def preview_report(
    file_path: Path = typer.Argument(..., help="Broker report (xlsx/html/csv/pdf)"),
    source: str = typer.Option(..., "--source", "-s", help="metatrader, ninjatrader or tradovate"),
    rows: int = typer.Option(5, "--rows", "-n", help="Number of rows to show"),
):
    """Parse a report and show the proposed column mapping. Nothing is saved."""
    from app.imports.errors import ImportPipelineError
    from app.imports.models import DataSource
    from app.imports.session import ImportSession

    content = _read_report(file_path)
    session = ImportSession()
    try:
        session.select_source(DataSource(source.lower()))
        parsed = session.upload(file_path.name, content)
    except (ImportPipelineError, ValueError) as e:
        console.print(f"[red]Cannot read report: {e}[/red]")
        raise typer.Exit(1)

    mapping_table = Table(title="Proposed Mapping")
    mapping_table.add_column("Field", style="cyan")
    mapping_table.add_column("Header")
    for field_name, header in session.mapping.to_dict().items():
        mapping_table.add_row(field_name, header or "[dim]-[/dim]")
    console.print(mapping_table)

    missing = session.mapping.missing_required()
    if missing:
        console.print(f"[yellow]Unmapped required fields: {', '.join(missing)}[/yellow]")

    preview_table = Table(title=f"{file_path.name} ({len(parsed.rows)} rows)")
    for header in parsed.headers:
        preview_table.add_column(header)
    for row in session.preview(rows):
        preview_table.add_row(*[str(row.get(h, "")) for h in parsed.headers])
    console.print(preview_table)

    if parsed.total_net_profit is not None:
        console.print(f"Report total net profit: {parsed.total_net_profit:+.2f}")


# ==================== REFERENCE COMMANDS ====================


@app.command("accounts")
def list_accounts(
    user_id: Optional[str] = typer.Option(None, "--user-id", help="Only this user's accounts"),
    add: Optional[str] = typer.Option(None, "--add", help="Create a local account with this name"),
    currency: str = typer.Option("USD", "--currency", help="Currency for --add"),
):
    """List destination accounts."""
    init()

    from app.db.stores import LocalAccountStore, get_account_store

    store = get_account_store()

    if add:
        if not isinstance(store, LocalAccountStore):
            console.print("[red]Accounts can only be created in the local database[/red]")
            raise typer.Exit(1)
        account = store.create_account(add, currency=currency, user_id=user_id)
        console.print(f"[green]✅ Created account {account.name} ({account.id})[/green]")

    accounts = store.list_accounts(user_id)
    if not accounts:
        console.print("[yellow]No accounts found[/yellow]")
        return

    table = Table(title="Accounts")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Currency")
    for account in accounts:
        table.add_row(account.id, account.name, account.currency)
    console.print(table)


@app.command("sources")
def list_sources():
    """List supported data sources."""
    from app.imports.detect import ACCEPTED_EXTENSIONS
    from app.imports.models import DataSource

    table = Table(title="Data Sources")
    table.add_column("Source", style="cyan")
    table.add_column("Name")
    table.add_column("Extensions")
    table.add_column("Default timezone")
    for source in DataSource:
        table.add_row(
            source.value,
            source.label,
            ", ".join(ACCEPTED_EXTENSIONS[source]),
            settings.default_broker_timezone(source.value),
        )
    console.print(table)


# ==================== WEB SERVER ====================


@app.command("web")
def run_web(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
):
    """Start the import API server."""
    init()

    console.print(
        Panel(
            f"[bold]📥 Trade Journal Importer API[/bold]\n\n"
            f"Docs: [cyan]http://{host}:{port}/docs[/cyan]\n\n"
            f"Press Ctrl+C to stop the server",
            title="Web Server",
            border_style="green",
        )
    )

    from app.web.server import run_server

    run_server(host=host, port=port)


# ==================== MAIN ====================


@app.callback()
def main():
    """
    Trade Journal Importer

    Imports MetaTrader, NinjaTrader and Tradovate reports into the journal,
    with New York time normalization and duplicate detection.

    QUICK START:

    1. Create an account: journal accounts --add "Main"
    2. Import a report:   journal import report.xlsx -s metatrader -a <account id>
    """
    pass


if __name__ == "__main__":
    app()

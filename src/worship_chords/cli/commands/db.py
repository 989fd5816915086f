"""Database commands for worship-chords.

Provides CLI commands for initializing the song database and showing its
statistics.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from worship_chords.config import settings
from worship_chords.db.client import DatabaseClient

console = Console()
app = typer.Typer(help="Database operations")


def _resolve_path(db_path: Optional[Path]) -> Path:
    return db_path or settings.DB_PATH


@app.command("init")
def init_db(
    db_path: Path = typer.Option(
        None,
        "--db",
        help="Path to the database file (defaults to DB_PATH)",
    ),
) -> None:
    """Create the database file and its tables.

    Safe to run on an existing database; tables and indexes that already
    exist are left alone.
    """
    path = _resolve_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    console.print(f"Initializing database at {path}...")
    with DatabaseClient(path) as client:
        client.initialize_schema()
    console.print("[green]Database initialized successfully![/green]")


@app.command("stats")
def show_stats(
    db_path: Path = typer.Option(
        None,
        "--db",
        help="Path to the database file (defaults to DB_PATH)",
    ),
) -> None:
    """Show row counts and health checks for the database."""
    path = _resolve_path(db_path)

    info_table = Table(title="Database Information")
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")
    info_table.add_row("Database Path", str(path))
    info_table.add_row("Exists", "Yes" if path.exists() else "No")
    if path.exists():
        size = path.stat().st_size
        info_table.add_row("File Size", f"{size:,} bytes ({size / 1024 / 1024:.2f} MB)")
    console.print(info_table)

    if not path.exists():
        console.print("\n[yellow]Database does not exist. Run 'worship-chords db init' to create it.[/yellow]")
        raise typer.Exit(1)

    with DatabaseClient(path) as client:
        stats = client.get_stats()

    stats_table = Table(title="Database Statistics")
    stats_table.add_column("Metric", style="cyan")
    stats_table.add_column("Value", style="green")
    for table_name, count in stats.table_counts.items():
        stats_table.add_row(table_name.replace("_", " ").title(), f"{count:,}")
    stats_table.add_row("Integrity Check", "[green]OK[/green]" if stats.integrity_ok else "[red]FAILED[/red]")
    stats_table.add_row(
        "Foreign Keys",
        "[green]Enabled[/green]" if stats.foreign_keys_enabled else "[red]Disabled[/red]",
    )
    console.print()
    console.print(stats_table)

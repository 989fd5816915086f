"""Main entry point for the worship-chords CLI.

Provides a Typer-based CLI for running the API, managing the song
database, transposing chord sheets and practicing with the player.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from worship_chords import __version__
from worship_chords.cli.commands import db as db_commands
from worship_chords.config import settings
from worship_chords.errors import InvalidKey
from worship_chords.music.chord_text import target_key_for, transpose_text
from worship_chords.music.keys import (
    KEY_NAMES,
    key_to_chromatic_position,
    normalize_semitones,
    prefers_flats,
    semitone_distance,
)

console = Console()

app = typer.Typer(
    name="worship-chords",
    help="Worship song chords, transposition and practice playback",
    rich_markup_mode="rich",
)

app.add_typer(db_commands.app, name="db", help="Database operations")


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"worship-chords version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """worship-chords: chord charts that follow the key you lead in.

    ## Commands

    * [bold cyan]serve[/bold cyan] - Run the web API
    * [bold cyan]db[/bold cyan] - Database operations (init, stats)
    * [bold cyan]transpose[/bold cyan] - Transpose a chord-over-lyrics file
    * [bold cyan]keys[/bold cyan] - List recognized keys
    * [bold cyan]practice[/bold cyan] - Practice player with live transposition
    """
    pass


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the web API with uvicorn."""
    import uvicorn

    uvicorn.run("worship_chords.web.main:app", host=host, port=port, reload=reload)


@app.command()
def transpose(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Chord-over-lyrics text file"),
    from_key: Optional[str] = typer.Option(None, "--from", "-f", help="Key the file is written in"),
    to_key: Optional[str] = typer.Option(None, "--to", "-t", help="Key to transpose to"),
    steps: Optional[int] = typer.Option(None, "--steps", "-s", help="Semitones to move (used without --to)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the result here"),
) -> None:
    """Transpose a chord-over-lyrics file to a key or by semitones.

    Examples:
        worship-chords transpose song.txt --from G --to A
        worship-chords transpose song.txt --steps -2
    """
    if to_key is None and steps is None:
        console.print("[red]Give --to or --steps[/red]")
        raise typer.Exit(1)

    try:
        if to_key is not None:
            if from_key is None:
                console.print("[red]--to needs --from[/red]")
                raise typer.Exit(1)
            target = target_key_for(from_key, key=to_key)
            semitones = semitone_distance(from_key, target)
        else:
            semitones = normalize_semitones(steps)
            target = target_key_for(from_key, steps=semitones) if from_key else None
    except InvalidKey as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    text = file.read_text(encoding="utf-8")
    result = transpose_text(text, semitones, prefer_flats=prefers_flats(target))

    summary = f"{semitones:+d} semitones"
    if target:
        summary = f"{from_key} -> {target} ({summary})"

    if output:
        output.write_text(result, encoding="utf-8")
        console.print(f"[green]Transposed {summary}:[/green] {output}")
    else:
        console.print(Panel.fit(summary, title="Transpose", border_style="green"))
        console.print(result, markup=False, highlight=False)


@app.command()
def keys() -> None:
    """List the recognized keys and their chromatic positions."""
    table = Table(title="Keys")
    table.add_column("Key", style="cyan")
    table.add_column("Position", justify="right")
    table.add_column("Spelling", style="green")
    for key in KEY_NAMES:
        table.add_row(key, str(key_to_chromatic_position(key)), "flats" if prefers_flats(key) else "sharps")
    console.print(table)


@app.command()
def practice(
    audio: str = typer.Argument(..., help="Audio file path or URL"),
    chart: Optional[Path] = typer.Option(None, "--chart", "-c", exists=True, dir_okay=False, help="Chord-over-lyrics file"),
    key: str = typer.Option("C", "--key", "-k", help="Key the chart is written in"),
    loop: bool = typer.Option(False, "--loop", "-l", help="Loop at the end of the track"),
) -> None:
    """Launch the practice player."""
    from worship_chords.logging_config import setup_logging
    from worship_chords.tui.practice import PracticeApp

    if key_to_chromatic_position(key) is None:
        console.print(f"[red]Unrecognized key: {key}[/red]")
        raise typer.Exit(1)

    logger = setup_logging(settings.LOG_DIR)
    console.print(f"[dim]Session log: {settings.LOG_DIR}/worship_chords.log[/dim]")

    lyrics_text = chart.read_text(encoding="utf-8") if chart else None
    app_instance = PracticeApp(
        audio,
        key,
        lyrics_text=lyrics_text,
        sample_rate=settings.AUDIO_SAMPLE_RATE,
        buffer_ms=settings.AUDIO_BUFFER_MS,
        volume=settings.AUDIO_VOLUME,
        loop=loop,
    )
    try:
        logger.info(f"Launching practice player for {audio}")
        app_instance.run()
        logger.info("Practice player exited normally")
    except KeyboardInterrupt:
        logger.info("Practice player interrupted by user (Ctrl+C)")
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(0)


def cli_entry() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli_entry()

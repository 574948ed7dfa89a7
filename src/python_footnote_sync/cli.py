"""Command-line interface for python-footnote-sync.

Provides commands for checking and repairing footnote numbering in HTML files.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from . import Document, __version__
from .config import SyncConfig, load_config
from .errors import FootnoteSyncError
from .sync.scheduler import ImmediateScheduler

app = typer.Typer(
    name="footnote-sync",
    help="Keep footnote numbering consistent in HTML documents.",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="YAML file with a 'sync' section")
]
OutputOption = Annotated[
    Path | None, typer.Option("--output", "-o", help="Output file path (default: overwrite)")
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"footnote-sync version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging.")] = False,
) -> None:
    """Keep footnote numbering consistent in HTML documents."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _open(file: Path, config: Path | None) -> Document:
    sync_config = load_config(config) if config else SyncConfig()
    return Document(file, config=sync_config, scheduler=ImmediateScheduler())


@app.command()
def sync(
    file: Annotated[Path, typer.Argument(help="Path to the HTML file")],
    output: OutputOption = None,
    config: ConfigOption = None,
) -> None:
    """Renumber footnotes and rebuild the footnote registry."""
    try:
        doc = _open(file, config)
        result = doc.sync()
        output_path = output or file
        if result.error is None:
            doc.save(output_path)
    except (FootnoteSyncError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if result.error is not None:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(1)
    typer.echo(str(result))
    typer.echo(f"Saved to {output_path}")


@app.command()
def check(
    file: Annotated[Path, typer.Argument(help="Path to the HTML file")],
    config: ConfigOption = None,
) -> None:
    """Report pending footnote changes; exit with code 1 if any."""
    try:
        plan = _open(file, config).check()
    except (FootnoteSyncError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if plan.is_consistent:
        typer.echo(f"Footnotes are consistent ({len(plan.build.entries)} footnotes)")
        return
    typer.echo("Footnotes are out of sync:")
    for line in plan.describe():
        typer.echo(f"  {line}")
    raise typer.Exit(1)


@app.command()
def insert(
    file: Annotated[Path, typer.Argument(help="Path to the HTML file")],
    text: Annotated[str, typer.Option("--text", "-t", help="Footnote text (inline markdown)")],
    at: Annotated[str, typer.Option("--at", "-a", help="Insert the marker after this text")],
    occurrence: Annotated[
        int | None, typer.Option("--occurrence", "-n", help="Use the Nth match of --at")
    ] = None,
    fuzzy: Annotated[
        float | None, typer.Option("--fuzzy", help="Fuzzy match threshold (0.0 to 1.0)")
    ] = None,
    output: OutputOption = None,
    config: ConfigOption = None,
) -> None:
    """Insert a footnote after some text and renumber."""
    if not text.strip():
        typer.echo("Error: Footnote text is empty", err=True)
        raise typer.Exit(1)

    try:
        doc = _open(file, config)
        result = doc.insert_footnote(text, at=at, occurrence=occurrence, fuzzy=fuzzy)
        output_path = output or file
        doc.save(output_path)
    except (FootnoteSyncError, OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    assert result is not None
    number = result.number
    for ref in doc.references:
        if ref.ref_id == result.ref_id:
            number = ref.number
    typer.echo(f"Inserted footnote [{number}] and saved to {output_path}")


@app.command("list")
def list_footnotes(
    file: Annotated[Path, typer.Argument(help="Path to the HTML file")],
) -> None:
    """List the footnotes of a document."""
    try:
        doc = Document(file, sync=False)
    except (FootnoteSyncError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    footnotes = doc.footnotes
    if not footnotes:
        typer.echo("No footnotes")
    for footnote in footnotes:
        typer.echo(f"[{footnote.number}] {footnote.text}")

    orphans = doc.find_orphaned_footnotes()
    if orphans:
        numbers = ", ".join(str(orphan.number) for orphan in orphans)
        typer.echo(f"Orphaned footnotes: {numbers}")


if __name__ == "__main__":
    app()

"""Main Typer application, the entry point for the ``webfuzz`` CLI."""

from __future__ import annotations

import typer

from webfuzz import __version__
from webfuzz.cli.run import run_cmd

app = typer.Typer(
    name="webfuzz",
    help="Concurrent HTTP content-discovery fuzzer.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Fuzz a URL or body template with a wordlist.")(run_cmd)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"webfuzz {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """webfuzz: substitute wordlist payloads for FUZZ and report responses."""

"""``webfuzz run``: fuzz a target with a wordlist and stream results."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from webfuzz._internal.config import (
    DEFAULT_THREADS,
    DEFAULT_TIMEOUT,
    FuzzConfig,
    clamp_threads,
    load_settings,
    parse_codes,
    validate_config,
)
from webfuzz._internal.errors import WebFuzzError
from webfuzz.cli.display import print_banner, print_summary
from webfuzz.engine.session import run_fuzz
from webfuzz.payloads.wordlist import load_wordlist

# Banner, diagnostics and summary go to stderr; stdout carries result lines only.
console = Console(stderr=True)


def run_cmd(
    url: str = typer.Option(
        ...,
        "--url",
        "-u",
        help="Target URL; FUZZ marks where payloads are substituted.",
    ),
    wordlist: Path = typer.Option(
        ...,
        "--wordlist",
        "-w",
        help="Wordlist file, one payload per line.",
    ),
    color: bool = typer.Option(
        False,
        "--color",
        "-c",
        help="Color result lines by status class.",
    ),
    threads: int = typer.Option(
        DEFAULT_THREADS,
        "--threads",
        "-t",
        help="Number of concurrent workers (clamped to 1..500).",
    ),
    data: str = typer.Option(
        "",
        "--data",
        "-d",
        help="POST data; may contain FUZZ.",
    ),
    header: list[str] | None = typer.Option(
        None,
        "--header",
        "-H",
        help="Request header as 'Name: value'. Repeatable.",
    ),
    method: str = typer.Option(
        "GET",
        "--method",
        "-X",
        help="HTTP method.",
    ),
    hide_codes: str | None = typer.Option(
        None,
        "--hc",
        help="Hide responses with these status codes (e.g. 404,403).",
    ),
    show_codes: str | None = typer.Option(
        None,
        "--sc",
        help="Show only responses with these status codes. Overrides --hc.",
    ),
    delay: int = typer.Option(
        0,
        "--delay",
        help="Delay between requests of each worker, in milliseconds.",
        min=0,
    ),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT,
        "--timeout",
        help="Request timeout in seconds.",
    ),
    follow: bool = typer.Option(
        False,
        "--follow",
        "-L",
        help="Follow redirects.",
    ),
    proxy: str | None = typer.Option(
        None,
        "--proxy",
        help="Proxy URL, e.g. http://127.0.0.1:8080.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Also write shown result lines to this file.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
) -> None:
    """Substitute each wordlist entry for FUZZ and report the responses."""
    try:
        config = FuzzConfig(
            url=url,
            method=method,
            headers=tuple(header or ()),
            data=data,
            show_codes=parse_codes(show_codes),
            hide_codes=parse_codes(hide_codes),
            delay_ms=delay,
            timeout=timeout,
            follow_redirects=follow,
            proxy=proxy,
            threads=clamp_threads(threads),
            output_file=output,
            color=color,
            verbose=verbose,
        )
        validate_config(config)
        settings = load_settings()
        payloads = load_wordlist(wordlist)
    except WebFuzzError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=1) from exc

    console.print(f"Loaded {len(payloads)} words", highlight=False)
    print_banner(console, config, settings, len(payloads))

    try:
        summary = run_fuzz(
            config,
            payloads,
            settings=settings,
            console=Console(highlight=False),
        )
    except WebFuzzError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(code=1) from exc

    print_summary(console, summary)

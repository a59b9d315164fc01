"""Rich rendering of the run banner and final summary."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from webfuzz import __version__

if TYPE_CHECKING:
    from rich.console import Console

    from webfuzz._internal.config import EngineSettings, FuzzConfig
    from webfuzz.results.models import RunSummary

_RULE = "=" * 69


def print_banner(
    console: Console,
    config: FuzzConfig,
    settings: EngineSettings,
    payload_count: int,
) -> None:
    """Print the run parameters and the result column header."""
    lines = [
        f"[bold]Target:[/bold]   {escape(config.url)}",
        f"[bold]Method:[/bold]   {config.method.upper()}",
    ]
    if config.data:
        lines.append(f"[bold]Data:[/bold]     {escape(config.data)}")
    lines.append(f"[bold]Requests:[/bold] {payload_count}")
    lines.append(f"[bold]Threads:[/bold]  {min(config.threads, payload_count)}")
    if config.verbose:
        lines.append(f"[bold]Reuse:[/bold]    {settings.connection_reuse} connections per thread")
        lines.append(f"[bold]Timeout:[/bold]  {config.timeout:g}s")

    console.print(
        Panel(
            "\n".join(lines),
            title=f"webfuzz {__version__}",
            border_style="cyan",
        ),
        highlight=False,
    )
    console.print(_RULE, highlight=False)
    console.print(
        "ID           Response   Lines    Word       Chars       Payload",
        highlight=False,
    )
    console.print(_RULE, highlight=False)


def print_summary(console: Console, summary: RunSummary) -> None:
    """Print the final totals of a run."""
    table = Table(
        title="Stopped" if summary.cancelled else "Finished",
        show_header=True,
        header_style="bold green",
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Total time", f"{summary.elapsed_seconds:.6f}s")
    table.add_row("Processed Requests", str(summary.completed))
    table.add_row("Filtered Requests", str(summary.filtered))
    table.add_row("Failed Requests", str(summary.failed))
    if summary.elapsed_seconds > 0:
        table.add_row("Requests/sec.", f"{summary.requests_per_second:.2f}")

    console.print()
    console.print(table)

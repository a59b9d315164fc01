"""Result line formatting and serialized reporting."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, TextIO

from rich.text import Text

from webfuzz.results.classifier import should_show

if TYPE_CHECKING:
    from rich.console import Console

    from webfuzz._internal.config import FuzzConfig
    from webfuzz.engine.dispatcher import RunState
    from webfuzz.results.models import ResponseRecord


def format_result_line(index: int, record: ResponseRecord, payload: str) -> str:
    """Format the fixed-field result line for a shown response.

    Args:
        index: Zero-based payload index; printed 1-based.
        record: The measured response.
        payload: The payload literal.

    Returns:
        e.g. ``00000001: 200        3 L\\t12      W\\t87      Ch\\t"admin"``
    """
    return (
        f"{index + 1:08d}: {record.status:<4d} {record.lines:7d} L\t"
        f"{record.words:<7d} W\t{record.size:<7d} Ch\t\"{payload}\""
    )


def status_style(status: int) -> str | None:
    """Return the console style for a status code class."""
    if 200 <= status < 300:
        return "green"
    if 300 <= status < 400:
        return "blue"
    if 400 <= status < 500:
        return "yellow"
    if status >= 500:
        return "red"
    return None


class Aggregator:
    """Reports classified results and keeps the run counters.

    One lock serializes everything written for a result, so a console line
    and its copy in the output file are never interleaved with another
    worker's output.
    """

    def __init__(
        self,
        config: FuzzConfig,
        state: RunState,
        console: Console,
        sink: TextIO | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            config: Run configuration (filters and color flag).
            state: Shared counters.
            console: Console receiving result lines.
            sink: Optional text file receiving an uncolored copy.
        """
        self._config = config
        self._state = state
        self._console = console
        self._sink = sink
        self._output_lock = threading.Lock()

    def report(self, index: int, record: ResponseRecord, payload: str) -> bool:
        """Report one completed exchange.

        Returns:
            True if the line was written, False if it was filtered.
        """
        shown = should_show(record, self._config)
        if shown:
            line = format_result_line(index, record, payload)
            style = status_style(record.status) if self._config.color else None
            with self._output_lock:
                self._console.print(
                    Text(line, style=style or ""),
                    soft_wrap=True,
                    highlight=False,
                )
                if self._sink is not None:
                    self._sink.write(line + "\n")
        else:
            self._state.record_filtered()

        self._state.record_completed()
        return shown

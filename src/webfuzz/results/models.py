"""Result dataclasses for webfuzz."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ResponseRecord:
    """Measurements of one completed HTTP exchange.

    Attributes:
        status: HTTP status code of the final response.
        size: Number of body bytes received.
        elapsed: Seconds from sending the request to reading the body.
        lines: Number of newline characters in the body.
        words: Number of whitespace-delimited words in the body.
    """

    status: int
    size: int
    elapsed: float
    lines: int
    words: int


@dataclass(frozen=True)
class RunSummary:
    """Totals of a finished run, produced after every worker has joined.

    Attributes:
        elapsed_seconds: Wall-clock duration of the run.
        total_payloads: Number of payloads in the wordlist.
        completed: Exchanges that returned a response.
        filtered: Completed exchanges hidden by the status filters.
        failed: Requests dropped by build, transport, or size-guard failures.
        dispatched: Payload indices claimed by workers.
        cancelled: True if the run was stopped before all payloads were sent.
    """

    elapsed_seconds: float
    total_payloads: int
    completed: int
    filtered: int
    failed: int = 0
    dispatched: int = 0
    cancelled: bool = False

    @property
    def shown(self) -> int:
        return self.completed - self.filtered

    @property
    def requests_per_second(self) -> float:
        """Completed requests per second, or 0.0 for a zero-length run."""
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.completed / self.elapsed_seconds

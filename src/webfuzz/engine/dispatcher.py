"""Shared run state: dispatch cursor, counters, and cancellation.

Each field has its own ``threading.Lock`` so that claiming work,
counting results and cancelling never serialize against each other.
Critical sections never await, so the same objects are safe to share
between asyncio tasks and plain threads.
"""

from __future__ import annotations

import threading


class CancellationToken:
    """Cooperative stop flag.

    Setting the token never interrupts work in flight. Workers observe it
    only when they ask the dispatcher for their next index.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request that no further payloads are dispatched."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class _Counter:
    """Integer counter guarded by its own lock."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class RunState:
    """Mutable state shared by all workers of one run.

    Attributes:
        token: Cancellation token checked on every claim.
    """

    def __init__(self, token: CancellationToken | None = None) -> None:
        self.token = token or CancellationToken()
        self._completed = _Counter()
        self._filtered = _Counter()
        self._failed = _Counter()

    @property
    def completed(self) -> int:
        """Exchanges that resolved with a response (shown or filtered)."""
        return self._completed.value

    @property
    def filtered(self) -> int:
        """Completed exchanges suppressed by the status filters."""
        return self._filtered.value

    @property
    def failed(self) -> int:
        """Requests dropped by build, transport, or size-guard failures."""
        return self._failed.value

    def record_completed(self) -> None:
        self._completed.increment()

    def record_filtered(self) -> None:
        self._filtered.increment()

    def record_failed(self) -> None:
        self._failed.increment()


class Dispatcher:
    """Hands out payload indices ``0..payload_count-1``, each exactly once.

    There is no queue: the payload list is static, so a single cursor is
    enough. Indices are claimed in increasing order across all workers;
    completion order is up to the network.

    Attributes:
        payload_count: Number of payloads in the run.
    """

    def __init__(self, payload_count: int, state: RunState) -> None:
        """Initialize the dispatcher.

        Args:
            payload_count: Number of payloads. Must not be negative.
            state: Run state whose token stops dispatching.

        Raises:
            ValueError: If payload_count is negative.
        """
        if payload_count < 0:
            msg = f"payload_count must be >= 0, got {payload_count}"
            raise ValueError(msg)

        self.payload_count = payload_count
        self._state = state
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def cursor(self) -> int:
        """Return the next unclaimed index."""
        with self._lock:
            return self._cursor

    def claim_next(self) -> int | None:
        """Claim the next payload index.

        Returns:
            The claimed index, or None once the payloads are exhausted or
            the run has been cancelled.
        """
        with self._lock:
            if self._state.token.is_cancelled or self._cursor >= self.payload_count:
                return None
            index = self._cursor
            self._cursor += 1
            return index

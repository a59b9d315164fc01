"""Fuzz session lifecycle: startup checks, workers, signals, summary."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, TextIO

from rich.console import Console

from webfuzz._internal.config import load_settings, validate_config
from webfuzz._internal.errors import ConfigError, WordlistError
from webfuzz._internal.logging import get_logger, setup_logging
from webfuzz.engine.dispatcher import CancellationToken, Dispatcher, RunState
from webfuzz.engine.executor import Executor
from webfuzz.engine.pool import ConnectionPool
from webfuzz.engine.worker import WorkerContext, install_uvloop, run_worker
from webfuzz.results.aggregator import Aggregator
from webfuzz.results.models import RunSummary

if TYPE_CHECKING:
    from collections.abc import Sequence

    from webfuzz._internal.config import EngineSettings, FuzzConfig

logger = get_logger("engine.session")

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SessionState(Enum):
    """State machine for a fuzz session."""

    CREATED = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()


class FuzzSession:
    """Runs every payload of a wordlist against the target.

    State machine: CREATED -> RUNNING -> COMPLETED, passing through
    STOPPING when a signal (or :meth:`stop`) cancels the run. Cancelling
    only stops new payloads from being claimed; requests already in
    flight finish and are reported.

    Attributes:
        config: The run configuration.
        payloads: The payload list.
        worker_count: Number of worker tasks the session starts.
    """

    def __init__(
        self,
        config: FuzzConfig,
        payloads: Sequence[str],
        *,
        settings: EngineSettings | None = None,
        console: Console | None = None,
        sink: TextIO | None = None,
        handle_signals: bool = True,
    ) -> None:
        """Initialize and validate a session.

        Args:
            config: Run configuration.
            payloads: Payloads in wordlist order.
            settings: Engine limits. Defaults to :func:`load_settings`.
            console: Console for result lines. Defaults to stdout.
            sink: Optional output file receiving shown lines.
            handle_signals: Install SIGINT/SIGTERM handlers while running.

        Raises:
            ConfigError: If the configuration is unusable.
            WordlistError: If there are no payloads.
        """
        validate_config(config)
        if not payloads:
            msg = "No payloads to send"
            raise WordlistError(msg)

        self.config = config
        self.payloads = payloads
        self.worker_count = min(config.threads, len(payloads))
        self._settings = settings or load_settings()
        self._console = console or Console(highlight=False)
        self._sink = sink
        self._handle_signals = handle_signals
        self._previous_handlers: dict[int, Any] = {}

        self._token = CancellationToken()
        self._run_state = RunState(self._token)
        self._state = SessionState.CREATED

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    @property
    def run_state(self) -> RunState:
        """Return the shared counters of this session."""
        return self._run_state

    def stop(self) -> None:
        """Stop dispatching new payloads. In-flight requests still finish."""
        if not self._token.is_cancelled:
            logger.warning("Stop requested, finishing pending requests...")
        self._token.cancel()
        if self._state is SessionState.RUNNING:
            self._state = SessionState.STOPPING

    async def run(self) -> RunSummary:
        """Run all workers to completion and return the summary.

        Returns:
            RunSummary built after every worker has joined.
        """
        self._state = SessionState.RUNNING
        logger.info(
            "Starting fuzz session: url=%s, payloads=%d, workers=%d",
            self.config.url,
            len(self.payloads),
            self.worker_count,
        )

        dispatcher = Dispatcher(len(self.payloads), self._run_state)
        pool = ConnectionPool(self.worker_count, self._settings.connection_reuse)
        executor = Executor(self.config, self._settings)
        aggregator = Aggregator(self.config, self._run_state, self._console, self._sink)

        if self._handle_signals:
            self._install_signal_handlers()

        start_time = time.monotonic()
        try:
            tasks = [
                asyncio.create_task(
                    run_worker(
                        WorkerContext.create(
                            worker_id=i,
                            config=self.config,
                            settings=self._settings,
                            payloads=self.payloads,
                            dispatcher=dispatcher,
                            pool=pool,
                            executor=executor,
                            aggregator=aggregator,
                            state=self._run_state,
                        )
                    ),
                    name=f"fuzz-worker-{i}",
                )
                for i in range(self.worker_count)
            ]
            await asyncio.gather(*tasks)
        finally:
            if self._handle_signals:
                self._remove_signal_handlers()
            await pool.close()

        elapsed = time.monotonic() - start_time
        self._state = SessionState.COMPLETED

        summary = RunSummary(
            elapsed_seconds=elapsed,
            total_payloads=len(self.payloads),
            completed=self._run_state.completed,
            filtered=self._run_state.filtered,
            failed=self._run_state.failed,
            dispatched=dispatcher.cursor,
            cancelled=self._token.is_cancelled,
        )
        logger.info(
            "Fuzz session completed: duration=%.2fs, completed=%d, filtered=%d, failed=%d",
            summary.elapsed_seconds,
            summary.completed,
            summary.filtered,
            summary.failed,
        )
        return summary

    def _install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to :meth:`stop`."""
        loop = asyncio.get_running_loop()

        if sys.platform != "win32":
            for sig in _STOP_SIGNALS:
                loop.add_signal_handler(sig, self.stop)
        else:
            # Windows doesn't support add_signal_handler
            for sig in _STOP_SIGNALS:
                self._previous_handlers[sig] = signal.getsignal(sig)
                signal.signal(sig, lambda _s, _f: loop.call_soon_threadsafe(self.stop))

    def _remove_signal_handlers(self) -> None:
        """Remove the stop handlers, restoring what was installed before."""
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            with contextlib.suppress(ValueError, RuntimeError):
                for sig in _STOP_SIGNALS:
                    loop.remove_signal_handler(sig)
        else:
            for sig, previous in self._previous_handlers.items():
                signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
            self._previous_handlers.clear()


def run_fuzz(
    config: FuzzConfig,
    payloads: Sequence[str],
    *,
    settings: EngineSettings | None = None,
    console: Console | None = None,
) -> RunSummary:
    """Run a fuzz session in the current process.

    Installs uvloop when available, configures logging, opens the output
    file (if any) before the first request, and blocks until the run ends.

    Args:
        config: Run configuration.
        payloads: Payloads in wordlist order.
        settings: Engine limits. Defaults to :func:`load_settings`.
        console: Console for result lines.

    Returns:
        The RunSummary of the finished run.

    Raises:
        ConfigError: If the configuration is unusable or the output file
            cannot be opened.
        WordlistError: If there are no payloads.
    """
    install_uvloop()
    setup_logging(level=logging.DEBUG if config.verbose else logging.WARNING)
    validate_config(config)

    with contextlib.ExitStack() as stack:
        sink: TextIO | None = None
        if config.output_file is not None:
            try:
                sink = stack.enter_context(config.output_file.open("w", encoding="utf-8"))
            except OSError as exc:
                msg = f"Error opening output file: {config.output_file} ({exc})"
                raise ConfigError(msg) from exc

        session = FuzzSession(
            config,
            payloads,
            settings=settings,
            console=console,
            sink=sink,
        )
        return asyncio.run(session.run())

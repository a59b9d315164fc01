"""Integration tests for FuzzSession and run_fuzz against a local target."""

from __future__ import annotations

import asyncio
import io
import os
import signal
import sys
from types import SimpleNamespace
from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from webfuzz._internal.config import EngineSettings, FuzzConfig
from webfuzz._internal.errors import ConfigError, WordlistError
from webfuzz.engine import session as session_module
from webfuzz.engine.session import FuzzSession, SessionState, run_fuzz
from webfuzz.payloads.wordlist import load_wordlist

if TYPE_CHECKING:
    from pathlib import Path

    from tests.conftest import FuzzTarget


def _console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=300, color_system=None, highlight=False), buffer


def _session(
    config: FuzzConfig,
    payloads: list[str],
    *,
    sink: io.StringIO | None = None,
    handle_signals: bool = False,
) -> tuple[FuzzSession, io.StringIO]:
    console, buffer = _console()
    session = FuzzSession(
        config,
        payloads,
        settings=EngineSettings(),
        console=console,
        sink=sink,
        handle_signals=handle_signals,
    )
    return session, buffer


class TestFuzzSessionSetup:
    def test_rejects_config_without_placeholder(self):
        with pytest.raises(ConfigError, match="FUZZ"):
            FuzzSession(FuzzConfig(url="http://127.0.0.1/"), ["a"])

    def test_rejects_empty_payloads(self):
        with pytest.raises(WordlistError, match="No payloads"):
            FuzzSession(FuzzConfig(url="http://127.0.0.1/FUZZ"), [])

    def test_worker_count_never_exceeds_payloads(self):
        session = FuzzSession(FuzzConfig(url="http://127.0.0.1/FUZZ", threads=50), ["a", "b"])
        assert session.worker_count == 2
        assert session.state is SessionState.CREATED


class TestFuzzSessionRun:
    @pytest.mark.timeout(15)
    async def test_single_worker_reports_in_order(self, target: FuzzTarget):
        sink = io.StringIO()
        config = FuzzConfig(url=target.url("/echo?p=FUZZ"), threads=1)
        session, _ = _session(config, ["a", "b"], sink=sink)

        summary = await session.run()

        lines = sink.getvalue().splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("00000001: 200 ")
        assert lines[0].endswith('"a"')
        assert lines[1].startswith("00000002: 200 ")
        assert lines[1].endswith('"b"')
        assert [r.path for r in target.seen] == ["/echo?p=a", "/echo?p=b"]
        assert summary.completed == 2
        assert summary.filtered == 0
        assert summary.failed == 0
        assert summary.cancelled is False
        assert session.state is SessionState.COMPLETED

    @pytest.mark.timeout(15)
    async def test_console_receives_shown_lines(self, target: FuzzTarget):
        config = FuzzConfig(url=target.url("/words/FUZZ"), threads=1)
        session, buffer = _session(config, ["admin"])

        await session.run()

        output = buffer.getvalue()
        assert output.startswith("00000001: 200 ")
        assert '"admin"' in output

    @pytest.mark.timeout(15)
    async def test_hide_codes_filter_results(self, target: FuzzTarget):
        sink = io.StringIO()
        config = FuzzConfig(
            url=target.url("/words/FUZZ"),
            hide_codes=frozenset({404}),
            threads=3,
        )
        payloads = ["admin", "nope", "backup", "nothing", "login"]
        session, _ = _session(config, payloads, sink=sink)

        summary = await session.run()

        shown = sink.getvalue().splitlines()
        assert sorted(line.rsplit("\t", 1)[1] for line in shown) == [
            '"admin"',
            '"backup"',
            '"login"',
        ]
        assert summary.completed == 5
        assert summary.filtered == 2
        assert summary.shown == 3

    @pytest.mark.timeout(15)
    async def test_show_codes_win_over_hide_codes(self, target: FuzzTarget):
        sink = io.StringIO()
        config = FuzzConfig(
            url=target.url("/words/FUZZ"),
            show_codes=frozenset({404}),
            hide_codes=frozenset({404}),
            threads=2,
        )
        session, _ = _session(config, ["admin", "nope"], sink=sink)

        summary = await session.run()

        lines = sink.getvalue().splitlines()
        assert len(lines) == 1
        assert lines[0].startswith("00000002: 404 ")
        assert summary.filtered == 1

    @pytest.mark.timeout(30)
    async def test_every_payload_sent_exactly_once(self, target: FuzzTarget):
        payloads = [f"word{i}" for i in range(200)]
        config = FuzzConfig(url=target.url("/words/FUZZ"), threads=16)
        session, _ = _session(config, payloads)

        summary = await session.run()

        paths = sorted(r.path for r in target.seen)
        assert paths == sorted(f"/words/{p}" for p in payloads)
        assert summary.completed == 200
        assert summary.filtered == 0
        assert summary.dispatched == 200

    @pytest.mark.timeout(15)
    async def test_post_body_fuzzing(self, target: FuzzTarget):
        config = FuzzConfig(
            url=target.url("/echo"),
            method="POST",
            data="user=FUZZ",
            threads=2,
        )
        session, _ = _session(config, ["alice", "bob"])

        await session.run()

        assert sorted(r.body for r in target.seen) == ["user=alice", "user=bob"]
        assert all(r.method == "POST" for r in target.seen)

    @pytest.mark.timeout(15)
    async def test_failed_requests_are_counted_and_run_continues(
        self, target: FuzzTarget, closed_port_url: str
    ):
        config = FuzzConfig(url=closed_port_url, threads=2, timeout=2.0)
        session, buffer = _session(config, ["a", "b", "c"])

        summary = await session.run()

        assert summary.failed == 3
        assert summary.completed == 0
        assert buffer.getvalue() == ""

    @pytest.mark.timeout(15)
    async def test_oversized_payload_skipped_without_request(self, target: FuzzTarget):
        config = FuzzConfig(url=target.url("/words/FUZZ"), threads=1)
        session, _ = _session(config, ["admin", "x" * 5000, "backup"])

        summary = await session.run()

        assert [r.path for r in target.seen] == ["/words/admin", "/words/backup"]
        assert summary.completed == 2
        assert summary.failed == 1


class TestFuzzSessionCancellation:
    @pytest.mark.timeout(15)
    async def test_stop_finishes_in_flight_requests(self, target: FuzzTarget):
        payloads = ["0.1"] * 100
        config = FuzzConfig(url=target.url("/slow?delay=FUZZ"), threads=4)
        session, _ = _session(config, payloads)

        asyncio.get_running_loop().call_later(0.35, session.stop)
        summary = await session.run()

        assert summary.cancelled is True
        assert 0 < summary.dispatched < 100
        assert summary.dispatched == summary.completed + summary.failed
        assert len(target.seen) == summary.dispatched

    @pytest.mark.timeout(15)
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
    async def test_sigint_stops_dispatching(self, target: FuzzTarget):
        payloads = ["0.1"] * 100
        config = FuzzConfig(url=target.url("/slow?delay=FUZZ"), threads=4)
        session, _ = _session(config, payloads, handle_signals=True)

        asyncio.get_running_loop().call_later(0.35, os.kill, os.getpid(), signal.SIGINT)
        summary = await session.run()

        assert summary.cancelled is True
        assert summary.dispatched < 100
        assert summary.dispatched == summary.completed + summary.failed
        assert session.state is SessionState.COMPLETED

    @pytest.mark.timeout(15)
    @pytest.mark.skipif(sys.platform == "win32", reason="sends SIGINT with os.kill")
    async def test_signal_fallback_without_loop_handlers(
        self, target: FuzzTarget, monkeypatch: pytest.MonkeyPatch
    ):
        """Plain signal handlers (used on Windows) also stop the run."""
        monkeypatch.setattr(session_module, "sys", SimpleNamespace(platform="win32"))
        before = (signal.getsignal(signal.SIGINT), signal.getsignal(signal.SIGTERM))
        payloads = ["0.1"] * 100
        config = FuzzConfig(url=target.url("/slow?delay=FUZZ"), threads=4)
        session, _ = _session(config, payloads, handle_signals=True)

        asyncio.get_running_loop().call_later(0.35, os.kill, os.getpid(), signal.SIGINT)
        summary = await session.run()

        assert summary.cancelled is True
        assert summary.dispatched < 100
        assert summary.dispatched == summary.completed + summary.failed
        assert (signal.getsignal(signal.SIGINT), signal.getsignal(signal.SIGTERM)) == before

    @pytest.mark.timeout(15)
    async def test_stop_before_run_sends_nothing(self, target: FuzzTarget):
        config = FuzzConfig(url=target.url("/words/FUZZ"), threads=2)
        session, _ = _session(config, ["admin", "backup"])

        session.stop()
        summary = await session.run()

        assert target.seen == []
        assert summary.dispatched == 0
        assert summary.completed == 0
        assert summary.cancelled is True


class TestRunFuzz:
    @pytest.mark.timeout(20)
    def test_writes_output_file(self, sync_target: FuzzTarget, wordlist_file: Path, tmp_path: Path):
        output = tmp_path / "results.txt"
        config = FuzzConfig(
            url=sync_target.url("/words/FUZZ"),
            hide_codes=frozenset({404}),
            threads=2,
            output_file=output,
        )
        console, _ = _console()

        summary = run_fuzz(config, load_wordlist(wordlist_file), console=console)

        lines = output.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        assert {line.rsplit("\t", 1)[1] for line in lines} == {'"admin"', '"backup"', '"login"'}
        assert summary.total_payloads == 4
        assert summary.completed == 4
        assert summary.filtered == 1

    def test_unwritable_output_file_is_config_error(self, tmp_path: Path):
        config = FuzzConfig(
            url="http://127.0.0.1/FUZZ",
            output_file=tmp_path / "no-such-dir" / "out.txt",
        )
        with pytest.raises(ConfigError, match="Error opening output file"):
            run_fuzz(config, ["a"])

    def test_invalid_config_leaves_output_file_untouched(self, tmp_path: Path):
        output = tmp_path / "keep.txt"
        output.write_text("previous results\n", encoding="utf-8")
        config = FuzzConfig(url="http://127.0.0.1/", output_file=output)

        with pytest.raises(ConfigError):
            run_fuzz(config, ["a"])

        assert output.read_text(encoding="utf-8") == "previous results\n"


class TestPayloadsOnTheWire:
    @pytest.mark.timeout(15)
    async def test_escaped_payloads_are_sent_byte_for_byte(self, target: FuzzTarget):
        payloads = ["%41dmin", "..%2fetc", "a%zz", "x/../admin", "%2e%2e/secret"]
        config = FuzzConfig(url=target.url("/p/FUZZ"), threads=1)
        session, _ = _session(config, payloads)

        summary = await session.run()

        assert [r.raw_path for r in target.seen] == [f"/p/{p}" for p in payloads]
        assert summary.completed == 5

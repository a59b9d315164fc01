"""Shared test fixtures for the webfuzz test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
    from pathlib import Path


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@pytest.fixture
def closed_port_url() -> str:
    """URL template pointing at a port nobody listens on."""
    return f"http://127.0.0.1:{_get_free_port()}/FUZZ"


# =============================================================================
# Fuzz target server
# =============================================================================

# Paths under /words/ that exist on the target. Everything else is a 404.
KNOWN_WORDS = {
    "admin": "welcome admin\nplease log in\n",
    "backup": "old files here\n",
    "login": "<form>\n<input name=user>\n</form>\n",
}


@dataclass
class SeenRequest:
    """One request as received by the target server."""

    method: str
    path: str
    raw_path: str
    body: str
    headers: dict[str, str]


@dataclass
class FuzzTarget:
    """A running target server and the requests it has received."""

    base_url: str
    seen: list[SeenRequest] = field(default_factory=list)

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"


def _create_target_app(seen: list[SeenRequest]) -> web.Application:
    """Build the target app with all test routes."""

    @web.middleware
    async def record(
        request: web.Request,
        handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
    ) -> web.StreamResponse:
        body = await request.read()
        seen.append(
            SeenRequest(
                method=request.method,
                path=request.path_qs,
                raw_path=request.raw_path,
                body=body.decode("utf-8", errors="replace"),
                headers=dict(request.headers),
            )
        )
        return await handler(request)

    async def words(request: web.Request) -> web.Response:
        name = request.match_info["name"]
        if name in KNOWN_WORDS:
            return web.Response(text=KNOWN_WORDS[name])
        return web.Response(status=404, text="not found\n")

    async def echo(request: web.Request) -> web.Response:
        body = await request.text()
        return web.Response(text=f"{request.method}\n{body}")

    async def status(request: web.Request) -> web.Response:
        return web.Response(status=int(request.match_info["code"]), text="status page")

    async def big(request: web.Request) -> web.Response:
        size = int(request.query.get("size", "2000000"))
        return web.Response(body=b"x" * size)

    async def slow(request: web.Request) -> web.Response:
        await asyncio.sleep(float(request.query.get("delay", "1.0")))
        return web.Response(text="late")

    async def redirect(request: web.Request) -> web.Response:
        raise web.HTTPFound("/words/admin")

    app = web.Application(middlewares=[record])
    app.router.add_get("/words/{name:.*}", words)
    app.router.add_route("*", "/echo", echo)
    app.router.add_get("/status/{code}", status)
    app.router.add_get("/big", big)
    app.router.add_get("/slow", slow)
    app.router.add_get("/redirect", redirect)
    return app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def target() -> AsyncIterator[FuzzTarget]:
    """Target server running on the test's event loop."""
    fuzz_target = FuzzTarget(base_url="")
    app = _create_target_app(fuzz_target.seen)
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    fuzz_target.base_url = f"http://127.0.0.1:{port}"
    yield fuzz_target
    await runner.cleanup()


@pytest.fixture
def sync_target() -> Iterator[FuzzTarget]:
    """Target server running in a background thread.

    For tests that call the blocking entry points (``run_fuzz``, the CLI),
    which start their own event loop.
    """
    port = _get_free_port()
    fuzz_target = FuzzTarget(base_url=f"http://127.0.0.1:{port}")
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        app = _create_target_app(fuzz_target.seen)
        runner = web.AppRunner(app)
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield fuzz_target

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


@pytest.fixture
def wordlist_file(tmp_path: Path) -> Path:
    """A small wordlist with a blank line and CRLF endings mixed in."""
    path = tmp_path / "words.txt"
    path.write_bytes(b"admin\r\nmissing\n\nbackup\nlogin\n")
    return path

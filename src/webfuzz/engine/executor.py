"""Single HTTP exchange with timing, size guard, and body analysis."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import aiohttp
from yarl import URL

from webfuzz._internal.config import parse_header
from webfuzz._internal.errors import ResponseTooLargeError, TransportError
from webfuzz.results.models import ResponseRecord

if TYPE_CHECKING:
    from webfuzz._internal.config import EngineSettings, FuzzConfig
    from webfuzz._internal.types import Header
    from webfuzz.payloads.template import BuiltRequest

_CHUNK_SIZE = 64 * 1024
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def count_lines_words(body: bytes) -> tuple[int, int]:
    """Count newlines and whitespace-delimited words in a response body.

    Args:
        body: Raw response body.

    Returns:
        ``(lines, words)``.
    """
    return body.count(b"\n"), len(body.split())


def build_headers(config: FuzzConfig, settings: EngineSettings) -> list[Header]:
    """Build the request headers for a run.

    Configured headers keep their order. A ``User-Agent`` is appended
    unless one is configured, and POST requests with a body template get
    a form ``Content-Type`` unless one is configured.
    """
    headers = [parse_header(raw) for raw in config.headers]
    names = {name.lower() for name, _ in headers}

    if "user-agent" not in names:
        headers.append(("User-Agent", settings.user_agent))
    if config.is_post and config.data and "content-type" not in names:
        headers.append(("Content-Type", _FORM_CONTENT_TYPE))
    return headers


class Executor:
    """Performs one exchange on a leased client session.

    Method handling: POST sends the built body when it is not empty, HEAD
    never downloads a body, and any other method is sent as-is without a
    body.
    """

    def __init__(self, config: FuzzConfig, settings: EngineSettings) -> None:
        self._method = config.method.upper()
        self._send_body = config.is_post
        self._read_body = not config.is_head
        self._timeout = aiohttp.ClientTimeout(total=config.timeout)
        self._follow_redirects = config.follow_redirects
        self._proxy = config.proxy or None
        self._max_bytes = settings.max_response_bytes

    async def perform(
        self,
        request: BuiltRequest,
        handle: aiohttp.ClientSession,
        headers: list[Header],
    ) -> ResponseRecord:
        """Send the request and measure the response.

        Args:
            request: The built URL and body.
            handle: Session leased from the connection pool.
            headers: Per-worker header list.

        Returns:
            The measured ResponseRecord.

        Raises:
            TransportError: On connection, DNS, protocol, or timeout errors.
            ResponseTooLargeError: If the body exceeds the size cap.
        """
        data = request.body.encode() if self._send_body and request.body else None

        start = time.monotonic()
        try:
            # The built URL goes out as-is: no requoting, no dot-segment removal
            url = URL(request.url, encoded=True)
            async with handle.request(
                self._method,
                url,
                headers=headers,
                data=data,
                timeout=self._timeout,
                allow_redirects=self._follow_redirects,
                proxy=self._proxy,
            ) as resp:
                body = await self._read_capped(resp) if self._read_body else b""
                status = resp.status
        except (aiohttp.ClientError, TimeoutError, ValueError) as exc:
            # yarl raises ValueError for URLs it cannot parse
            msg = f"{type(exc).__name__}: {exc}"
            raise TransportError(msg) from exc
        elapsed = time.monotonic() - start

        lines, words = count_lines_words(body)
        return ResponseRecord(
            status=status,
            size=len(body),
            elapsed=elapsed,
            lines=lines,
            words=words,
        )

    async def _read_capped(self, resp: aiohttp.ClientResponse) -> bytes:
        """Read the body, aborting once more than the cap has arrived."""
        chunks: list[bytes] = []
        received = 0
        async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
            received += len(chunk)
            if received > self._max_bytes:
                resp.close()
                msg = f"Response body exceeds {self._max_bytes} bytes"
                raise ResponseTooLargeError(msg)
            chunks.append(chunk)
        return b"".join(chunks)

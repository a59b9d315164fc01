"""Run configuration and engine settings for webfuzz."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from webfuzz import __version__
from webfuzz._internal.errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

    from webfuzz._internal.types import Header, StatusCodes

PLACEHOLDER = "FUZZ"

MAX_THREADS = 500
MAX_HEADERS = 50
MAX_CODES = 100

DEFAULT_THREADS = 50
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class FuzzConfig:
    """Configuration of a single fuzzing run.

    Built once by the CLI (or by a caller using the library directly) and
    shared read-only by every worker.

    Attributes:
        url: URL template, normally containing ``FUZZ``.
        method: HTTP method. POST and HEAD get special handling.
        headers: Raw ``Name: value`` header strings, in order.
        data: Body template. Only sent with POST.
        show_codes: If non-empty, only these status codes are shown.
        hide_codes: Status codes to hide when ``show_codes`` is empty.
        delay_ms: Pause after each successful request, per worker.
        timeout: Total timeout of one exchange, in seconds.
        follow_redirects: Follow 3xx responses.
        proxy: Proxy URL, e.g. ``http://127.0.0.1:8080``.
        threads: Number of concurrent workers.
        output_file: Optional file that receives a copy of every shown line.
        color: Color result lines on the console by status class.
        verbose: Enable DEBUG diagnostics.
    """

    url: str
    method: str = "GET"
    headers: tuple[str, ...] = ()
    data: str = ""
    show_codes: StatusCodes = field(default_factory=frozenset)
    hide_codes: StatusCodes = field(default_factory=frozenset)
    delay_ms: int = 0
    timeout: float = DEFAULT_TIMEOUT
    follow_redirects: bool = False
    proxy: str | None = None
    threads: int = DEFAULT_THREADS
    output_file: Path | None = None
    color: bool = False
    verbose: bool = False

    @property
    def has_placeholder(self) -> bool:
        """Return True if the URL or the body template contains ``FUZZ``."""
        return PLACEHOLDER in self.url or PLACEHOLDER in self.data

    @property
    def is_post(self) -> bool:
        return self.method.upper() == "POST"

    @property
    def is_head(self) -> bool:
        return self.method.upper() == "HEAD"


def clamp_threads(threads: int) -> int:
    """Clamp a requested worker count to ``[1, MAX_THREADS]``."""
    return max(1, min(threads, MAX_THREADS))


def parse_header(raw: str) -> Header:
    """Split a ``Name: value`` header string.

    Args:
        raw: Header as given on the command line.

    Returns:
        ``(name, value)`` with surrounding whitespace removed.

    Raises:
        ConfigError: If there is no colon or the name is empty.
    """
    name, sep, value = raw.partition(":")
    name = name.strip()
    if not sep or not name:
        msg = f"Header must be in 'Name: value' form, got: {raw!r}"
        raise ConfigError(msg)
    return name, value.strip()


def parse_codes(raw: str | None) -> frozenset[int]:
    """Parse a comma-separated list of status codes such as ``404,500``.

    Empty items are ignored.

    Raises:
        ConfigError: On a non-integer item or more than ``MAX_CODES`` codes.
    """
    if not raw:
        return frozenset()

    codes: list[int] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            codes.append(int(item))
        except ValueError:
            msg = f"Status code must be an integer, got: {item!r}"
            raise ConfigError(msg) from None

    if len(codes) > MAX_CODES:
        msg = f"At most {MAX_CODES} status codes are allowed, got: {len(codes)}"
        raise ConfigError(msg)
    return frozenset(codes)


def validate_config(config: FuzzConfig) -> None:
    """Check a configuration before any worker starts.

    Raises:
        ConfigError: If the configuration cannot be used for a run.
    """
    if not config.url:
        msg = "No URL specified"
        raise ConfigError(msg)

    if not config.has_placeholder:
        msg = f"URL or POST data must contain the {PLACEHOLDER} placeholder"
        raise ConfigError(msg)

    if not config.method:
        msg = "HTTP method must not be empty"
        raise ConfigError(msg)

    if len(config.headers) > MAX_HEADERS:
        msg = f"At most {MAX_HEADERS} headers are allowed, got: {len(config.headers)}"
        raise ConfigError(msg)
    for raw in config.headers:
        parse_header(raw)

    for name, codes in (("show", config.show_codes), ("hide", config.hide_codes)):
        if len(codes) > MAX_CODES:
            msg = f"At most {MAX_CODES} {name} codes are allowed, got: {len(codes)}"
            raise ConfigError(msg)

    if not 1 <= config.threads <= MAX_THREADS:
        msg = f"threads must be between 1 and {MAX_THREADS}, got: {config.threads}"
        raise ConfigError(msg)

    if config.timeout <= 0:
        msg = f"timeout must be positive, got: {config.timeout}"
        raise ConfigError(msg)

    if config.delay_ms < 0:
        msg = f"delay must be >= 0, got: {config.delay_ms}"
        raise ConfigError(msg)


@dataclass(frozen=True)
class EngineSettings:
    """Engine limits that rarely change between runs.

    Attributes:
        connection_reuse: Pooled connections allowed per worker.
        max_response_bytes: Bodies larger than this abort the transfer.
        max_url_length: Built URLs must be shorter than this.
        max_body_length: Built bodies must be shorter than this.
        user_agent: ``User-Agent`` sent with every request.
    """

    connection_reuse: int = 10
    max_response_bytes: int = 1_000_000
    max_url_length: int = 4096
    max_body_length: int = 1024
    user_agent: str = f"webfuzz/{__version__}"


def _positive_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got: {raw!r}"
        raise ConfigError(msg) from None
    if value < 1:
        msg = f"{name} must be >= 1, got: {value}"
        raise ConfigError(msg)
    return value


def load_settings() -> EngineSettings:
    """Load engine settings from environment variables with defaults.

    Environment variables:
        WEBFUZZ_CONNECTION_REUSE: Pooled connections per worker (default: 10).
        WEBFUZZ_MAX_RESPONSE_BYTES: Response size cap (default: 1000000).
        WEBFUZZ_USER_AGENT: User-Agent header (default: ``webfuzz/<version>``).

    Returns:
        Populated EngineSettings instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    defaults = EngineSettings()
    return EngineSettings(
        connection_reuse=_positive_int_env(
            "WEBFUZZ_CONNECTION_REUSE", defaults.connection_reuse
        ),
        max_response_bytes=_positive_int_env(
            "WEBFUZZ_MAX_RESPONSE_BYTES", defaults.max_response_bytes
        ),
        user_agent=os.environ.get("WEBFUZZ_USER_AGENT") or defaults.user_agent,
    )

"""webfuzz: concurrent HTTP content-discovery fuzzer."""

from __future__ import annotations

__version__ = "0.1.0"

from webfuzz._internal.config import EngineSettings, FuzzConfig  # noqa: E402
from webfuzz.engine.session import FuzzSession, run_fuzz  # noqa: E402
from webfuzz.payloads.template import build_body, build_url  # noqa: E402
from webfuzz.payloads.wordlist import load_wordlist  # noqa: E402
from webfuzz.results.models import ResponseRecord, RunSummary  # noqa: E402

__all__ = [
    "EngineSettings",
    "FuzzConfig",
    "FuzzSession",
    "ResponseRecord",
    "RunSummary",
    "__version__",
    "build_body",
    "build_url",
    "load_wordlist",
    "run_fuzz",
]

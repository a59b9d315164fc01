"""Shared type aliases for webfuzz."""

from __future__ import annotations

# A parsed request header (name, value), order preserved.
Header = tuple[str, str]

# Set of HTTP status codes used by the show/hide filters.
StatusCodes = frozenset[int]

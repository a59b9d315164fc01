"""Custom exception hierarchy for webfuzz."""

from __future__ import annotations


class WebFuzzError(Exception):
    """Base exception for all webfuzz errors.

    All custom exceptions in webfuzz inherit from this class, making it
    easy to catch any webfuzz-specific error with a single except clause.
    """


class ConfigError(WebFuzzError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Neither the URL nor the body template contains ``FUZZ``.
        - A header is not in ``Name: value`` form.
        - The output file cannot be opened.
        - An environment variable has an invalid value.
    """


class WordlistError(WebFuzzError):
    """Raised when the wordlist is missing, unreadable, or empty."""


class RequestBuildError(WebFuzzError):
    """Raised when a substituted template exceeds its maximum length.

    The request is skipped; it is never retried.
    """


class ExchangeError(WebFuzzError):
    """Base for failures of a single HTTP exchange.

    An exchange error drops the request: it is not counted as completed,
    not retried, and not shown.
    """


class TransportError(ExchangeError):
    """Raised on network errors, DNS failures, and timeouts."""


class ResponseTooLargeError(ExchangeError):
    """Raised when a response body exceeds the configured size cap."""

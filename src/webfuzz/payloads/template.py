"""Placeholder substitution for URL and body templates.

Only the first ``FUZZ`` in a template is a substitution point. Any later
occurrence is copied through literally.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from webfuzz._internal.config import PLACEHOLDER
from webfuzz._internal.errors import RequestBuildError

if TYPE_CHECKING:
    from webfuzz._internal.config import EngineSettings, FuzzConfig

DEFAULT_MAX_URL_LENGTH = 4096
DEFAULT_MAX_BODY_LENGTH = 1024


@dataclass(frozen=True)
class BuiltRequest:
    """A URL and body resolved for one payload.

    Attributes:
        url: Target URL with the payload substituted.
        body: Request body with the payload substituted (may be empty).
    """

    url: str
    body: str


def _substitute(template: str, payload: str, max_length: int, what: str) -> str:
    pos = template.find(PLACEHOLDER)
    if pos == -1:
        return template

    prefix = template[:pos]
    suffix = template[pos + len(PLACEHOLDER) :]
    if len(prefix) + len(payload) + len(suffix) >= max_length:
        msg = f"{what} for payload {payload!r} exceeds {max_length - 1} characters"
        raise RequestBuildError(msg)
    return prefix + payload + suffix


def build_url(template: str, payload: str, max_length: int = DEFAULT_MAX_URL_LENGTH) -> str:
    """Substitute ``payload`` at the first ``FUZZ`` of a URL template.

    Args:
        template: URL template.
        payload: Payload inserted verbatim.
        max_length: The built URL must be shorter than this.

    Returns:
        The built URL, or ``template`` unchanged if it has no ``FUZZ``.

    Raises:
        RequestBuildError: If the built URL would be too long.
    """
    return _substitute(template, payload, max_length, "URL")


def build_body(template: str, payload: str, max_length: int = DEFAULT_MAX_BODY_LENGTH) -> str:
    """Substitute ``payload`` at the first ``FUZZ`` of a body template.

    An empty template, or one without ``FUZZ``, is returned unchanged.

    Raises:
        RequestBuildError: If the built body would be too long.
    """
    if not template:
        return template
    return _substitute(template, payload, max_length, "Body")


def build_request(
    config: FuzzConfig,
    payload: str,
    settings: EngineSettings,
) -> BuiltRequest:
    """Build the URL and body for one payload.

    Raises:
        RequestBuildError: If either part would exceed its length limit.
    """
    return BuiltRequest(
        url=build_url(config.url, payload, settings.max_url_length),
        body=build_body(config.data, payload, settings.max_body_length),
    )

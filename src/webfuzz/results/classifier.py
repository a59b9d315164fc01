"""Show/hide classification of responses by status code."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from webfuzz._internal.config import FuzzConfig
    from webfuzz.results.models import ResponseRecord


def should_show(record: ResponseRecord, config: FuzzConfig) -> bool:
    """Decide whether a response is reported.

    A non-empty show list wins outright and the hide list is ignored.
    Otherwise a non-empty hide list suppresses its codes. With both lists
    empty every response is shown.
    """
    if config.show_codes:
        return record.status in config.show_codes
    if config.hide_codes:
        return record.status not in config.hide_codes
    return True

"""Wordlist file loading."""

from __future__ import annotations

from pathlib import Path

from webfuzz._internal.errors import WordlistError
from webfuzz._internal.logging import get_logger

logger = get_logger("payloads.wordlist")


def load_wordlist(file_path: str | Path) -> list[str]:
    """Load payloads from a wordlist file, one per line.

    Lines are split on newlines only and cut at the first carriage return,
    so CRLF endings are stripped. Empty lines are dropped. Order is preserved
    and duplicates are kept. Bytes that are not valid UTF-8 are replaced
    rather than rejected, since wordlists often carry stray encodings.

    Args:
        file_path: Path to the wordlist.

    Returns:
        The payloads in file order.

    Raises:
        WordlistError: If the file does not exist, cannot be read, or
            contains no payloads.
    """
    path = Path(file_path)

    if not path.is_file():
        msg = f"Wordlist not found: {path}"
        raise WordlistError(msg)

    try:
        with path.open(encoding="utf-8", errors="replace", newline="\n") as fh:
            payloads = [line.rstrip("\n").partition("\r")[0] for line in fh]
    except OSError as exc:
        msg = f"Error opening wordlist {path}: {exc}"
        raise WordlistError(msg) from exc

    payloads = [p for p in payloads if p]
    if not payloads:
        msg = f"Wordlist is empty: {path}"
        raise WordlistError(msg)

    logger.debug("Loaded %d payloads from %s", len(payloads), path)
    return payloads

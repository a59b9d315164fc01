"""Bounded pool of reusable HTTP client handles."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

from webfuzz._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger("engine.pool")


def new_client_session() -> aiohttp.ClientSession:
    """Create one client handle.

    Cookies are discarded so a ``Set-Cookie`` from one response cannot
    change the requests sent for later payloads.
    """
    return aiohttp.ClientSession(cookie_jar=aiohttp.DummyCookieJar())


@dataclass
class ConnectionSlot:
    """A pooled handle and its lease state.

    Attributes:
        handle: The client session.
        in_use: True while a worker holds the handle.
        index: Position of the slot in the pool.
    """

    handle: aiohttp.ClientSession
    in_use: bool
    index: int


class ConnectionPool:
    """Shares client sessions between workers so connections are reused.

    At most ``capacity`` slots are ever tracked. When every tracked slot is
    busy and the pool is full, ``acquire()`` hands out an unpooled session
    instead of waiting. Such a session is unknown to ``release()`` and
    ``close()``; the caller must dispose of it.

    Attributes:
        capacity: Maximum number of tracked slots.
    """

    def __init__(
        self,
        workers: int,
        reuse_factor: int = 10,
        *,
        session_factory: Callable[[], aiohttp.ClientSession] | None = None,
    ) -> None:
        """Initialize an empty pool.

        Args:
            workers: Number of workers sharing the pool.
            reuse_factor: Tracked slots allowed per worker.
            session_factory: Creates new handles. Defaults to
                :func:`new_client_session`.

        Raises:
            ValueError: If workers or reuse_factor is not positive.
        """
        if workers < 1 or reuse_factor < 1:
            msg = f"workers and reuse_factor must be >= 1, got {workers} and {reuse_factor}"
            raise ValueError(msg)

        self.capacity = workers * reuse_factor
        self._factory = session_factory or new_client_session
        self._slots: list[ConnectionSlot] = []
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        """Return the number of tracked slots."""
        with self._lock:
            return len(self._slots)

    @property
    def in_use(self) -> int:
        """Return the number of tracked slots currently leased."""
        with self._lock:
            return sum(1 for slot in self._slots if slot.in_use)

    def acquire(self) -> aiohttp.ClientSession:
        """Lease a handle.

        Returns the first idle tracked handle; otherwise creates and tracks
        a new one while below capacity; otherwise returns an untracked one.
        """
        with self._lock:
            for slot in self._slots:
                if not slot.in_use:
                    slot.in_use = True
                    return slot.handle

            if len(self._slots) < self.capacity:
                slot = ConnectionSlot(
                    handle=self._factory(),
                    in_use=True,
                    index=len(self._slots),
                )
                self._slots.append(slot)
                logger.debug("Created pooled connection #%d", slot.index)
                return slot.handle

        logger.debug("Pool exhausted (%d slots), using an unpooled connection", self.capacity)
        return self._factory()

    def release(self, handle: aiohttp.ClientSession) -> bool:
        """Return a leased handle to the idle set.

        Args:
            handle: A handle obtained from :meth:`acquire`.

        Returns:
            True if the handle is tracked and now idle, False if it is an
            unpooled handle that the caller still owns.
        """
        with self._lock:
            for slot in self._slots:
                if slot.handle is handle:
                    slot.in_use = False
                    return True
        return False

    async def close(self) -> None:
        """Close every tracked handle. Call once all workers have finished."""
        with self._lock:
            slots = list(self._slots)
            self._slots.clear()

        for slot in slots:
            await slot.handle.close()
        logger.debug("Closed %d pooled connections", len(slots))

"""Fuzz worker loop and event-loop setup."""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from webfuzz._internal.errors import ExchangeError, RequestBuildError
from webfuzz._internal.logging import get_logger
from webfuzz.engine.executor import Executor, build_headers
from webfuzz.payloads.template import build_request

if TYPE_CHECKING:
    from collections.abc import Sequence

    from webfuzz._internal.config import EngineSettings, FuzzConfig
    from webfuzz._internal.types import Header
    from webfuzz.engine.dispatcher import Dispatcher, RunState
    from webfuzz.engine.pool import ConnectionPool
    from webfuzz.results.aggregator import Aggregator

logger = get_logger("engine.worker")


def install_uvloop() -> None:
    """Install uvloop as the event loop policy if available.

    Falls back to the default asyncio event loop on Windows or when
    uvloop is not installed.
    """
    if sys.platform == "win32":
        return

    try:
        import uvloop

        uvloop.install()
        logger.debug("uvloop installed as event loop policy")
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")


@dataclass
class WorkerContext:
    """Everything one worker needs, built once when the worker starts.

    Attributes:
        worker_id: Worker number, used in task names and logs.
        config: Shared run configuration.
        settings: Shared engine settings.
        payloads: Shared payload list.
        dispatcher: Source of payload indices.
        pool: Shared connection pool.
        executor: Performs exchanges.
        aggregator: Reports results.
        state: Shared counters.
        headers: Request headers, reused for every request of this worker.
        claimed: Number of indices this worker has claimed.
    """

    worker_id: int
    config: FuzzConfig
    settings: EngineSettings
    payloads: Sequence[str]
    dispatcher: Dispatcher
    pool: ConnectionPool
    executor: Executor
    aggregator: Aggregator
    state: RunState
    headers: list[Header]
    claimed: int = 0

    @classmethod
    def create(
        cls,
        worker_id: int,
        config: FuzzConfig,
        settings: EngineSettings,
        payloads: Sequence[str],
        dispatcher: Dispatcher,
        pool: ConnectionPool,
        executor: Executor,
        aggregator: Aggregator,
        state: RunState,
    ) -> WorkerContext:
        """Create a context, building this worker's header list."""
        return cls(
            worker_id=worker_id,
            config=config,
            settings=settings,
            payloads=payloads,
            dispatcher=dispatcher,
            pool=pool,
            executor=executor,
            aggregator=aggregator,
            state=state,
            headers=build_headers(config, settings),
        )


async def run_worker(ctx: WorkerContext) -> None:
    """Claim and process payloads until the dispatcher is exhausted.

    Build failures skip the payload before any connection is leased.
    Exchange failures are dropped without retry. The connection is always
    released, and an unpooled fallback connection is closed here since
    the pool does not track it.

    Args:
        ctx: This worker's context.
    """
    delay = ctx.config.delay_ms / 1000

    while (index := ctx.dispatcher.claim_next()) is not None:
        ctx.claimed += 1
        payload = ctx.payloads[index]

        try:
            request = build_request(ctx.config, payload, ctx.settings)
        except RequestBuildError as exc:
            logger.debug("Skipping payload %d: %s", index + 1, exc)
            ctx.state.record_failed()
            continue

        handle = ctx.pool.acquire()
        try:
            record = await ctx.executor.perform(request, handle, ctx.headers)
        except ExchangeError as exc:
            logger.debug("Request %d (%r) failed: %s", index + 1, payload, exc)
            ctx.state.record_failed()
            continue
        else:
            ctx.aggregator.report(index, record, payload)
        finally:
            if not ctx.pool.release(handle):
                await handle.close()

        if delay > 0:
            await asyncio.sleep(delay)

    logger.debug("Worker %d finished after %d payloads", ctx.worker_id, ctx.claimed)

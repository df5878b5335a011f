"""Ordered, bounded-concurrency map over a stream of rows.

Each input row becomes one unit of work (an ``asyncio.Task``). At most
``concurrency`` units exist at any time: the window holds the oldest
unemitted rows, so a slot frees only once the head of the window has been
emitted. Rows are pulled from the input lazily, only when a slot is free,
and results are yielded in input order regardless of completion order.

Failure policy is fail-fast: the first unit that raises (including a unit
that exceeds its deadline) cancels every other in-flight unit and the error
propagates to the caller. Rows after the failure are never pulled.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterable
import logging
from typing import TYPE_CHECKING, TypeVar

from castor.errors import ConfigurationError, RemoteAnalyticsError, RowTimeoutError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterable

R = TypeVar("R")
S = TypeVar("S")

logger = logging.getLogger(__name__)


async def _iterate(rows: Iterable[R] | AsyncIterable[R]) -> AsyncIterator[R]:
    if isinstance(rows, AsyncIterable):
        async for row in rows:
            yield row
    else:
        for row in rows:
            yield row


async def _run_unit(
    unit: Callable[[R], Awaitable[S]], row: R, *, row_idx: int, timeout_s: float
) -> S:
    deadline = asyncio.timeout(timeout_s)
    try:
        async with deadline:
            return await unit(row)
    except TimeoutError as e:
        if not deadline.expired():
            raise
        raise RowTimeoutError(
            f"Row {row_idx} did not finish within {timeout_s}s",
            row_idx=row_idx,
            timeout_s=timeout_s,
            hint="Raise Config.timeout_s or lower Config.concurrency.",
        ) from e
    except RemoteAnalyticsError as e:
        if e.row_idx is None:
            e.row_idx = row_idx
        raise


async def _cancel_all(tasks: Iterable[asyncio.Task[S]]) -> None:
    pending = [t for t in tasks if not t.done()]
    for t in pending:
        t.cancel()
    if pending:
        # Collect outcomes so cancelled units never log "exception was never retrieved".
        await asyncio.gather(*pending, return_exceptions=True)


async def process_rows(
    rows: Iterable[R] | AsyncIterable[R],
    unit: Callable[[R], Awaitable[S]],
    *,
    concurrency: int,
    timeout_s: float,
) -> AsyncIterator[S]:
    """Yield ``await unit(row)`` for every row, in input order.

    Args:
        rows: Sync or async iterable of opaque rows; consumed lazily.
        unit: Coroutine function processing one row end to end.
        concurrency: Maximum number of units in flight (≥ 1).
        timeout_s: Per-unit deadline in seconds.

    Raises:
        RowTimeoutError: A unit exceeded ``timeout_s``.
        RemoteAnalyticsError: A unit's remote call failed as a whole.
    """
    if concurrency < 1:
        raise ConfigurationError(
            f"concurrency must be ≥ 1, got {concurrency}",
            hint="This controls how many rows are analyzed in parallel.",
        )
    if timeout_s <= 0:
        raise ConfigurationError(
            f"timeout_s must be > 0, got {timeout_s}",
            hint="This is the deadline for analyzing a single row.",
        )

    source = _iterate(rows)
    window: deque[asyncio.Task[S]] = deque()
    exhausted = False
    next_idx = 0
    logger.debug(
        "Processing rows concurrency=%d timeout=%.1fs", concurrency, timeout_s
    )

    try:
        while True:
            while not exhausted and len(window) < concurrency:
                try:
                    row = await anext(source)
                except StopAsyncIteration:
                    exhausted = True
                    break
                window.append(
                    asyncio.create_task(
                        _run_unit(unit, row, row_idx=next_idx, timeout_s=timeout_s)
                    )
                )
                next_idx += 1

            if not window:
                return

            await asyncio.wait(window, return_when=asyncio.FIRST_COMPLETED)

            # Deterministic: the earliest failed row wins, not the first to fail.
            for task in window:
                if task.done() and (task.cancelled() or task.exception() is not None):
                    logger.debug(
                        "Aborting: a unit failed; cancelling %d in-flight unit(s)",
                        sum(not t.done() for t in window),
                    )
                    task.result()

            while window and window[0].done():
                yield window.popleft().result()
    finally:
        await _cancel_all(window)
        await source.aclose()

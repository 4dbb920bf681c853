"""Bounded-parallelism worker pool over one job's planned variations."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Optional

import structlog

from mediagen.executor.retry import RetryPolicy
from mediagen.executor.stop import StopCondition

logger = structlog.get_logger(__name__)


@dataclass
class PoolResult:
    """Aggregate outcome of one invocation's units."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    last_error: Optional[str] = None
    cancelled: bool = False


async def run_worker_pool(
    work: Sequence[int],
    *,
    parallelism: int,
    run_unit: Callable[[int], Awaitable[object]],
    retry_policy: RetryPolicy,
    stop: StopCondition,
) -> PoolResult:
    """Run planned variations with at most `parallelism` units in flight.

    Workers share one cursor over `work`. A claim (read + advance) never
    spans an await, so two tasks can never take the same variation number.
    Before each claim the worker checks `stop`; a stopped worker lets its
    in-flight unit finish but claims nothing new.

    Unit errors are counted as failures and never escape the pool.

    Args:
        work: Variation numbers in the order they should be claimed
        parallelism: Maximum concurrent workers (values below 1 count as 1)
        run_unit: Coroutine function producing one variation
        retry_policy: Applied around every unit
        stop: Time budget + cancellation check

    Returns:
        PoolResult with counters, the last error message and the cancelled tag
    """
    result = PoolResult()
    cursor = 0

    async def worker(worker_index: int) -> None:
        nonlocal cursor
        while cursor < len(work):
            if await stop.should_stop():
                break
            if cursor >= len(work):
                # Another worker claimed the last item while we were polling.
                break
            variation_number = work[cursor]
            cursor += 1

            try:
                await retry_policy.run(
                    lambda: run_unit(variation_number),
                    variation_number=variation_number,
                    worker=worker_index,
                )
                result.succeeded += 1
            except Exception as e:
                result.failed += 1
                result.last_error = str(e) or type(e).__name__
                logger.error(
                    "variation.failed",
                    variation_number=variation_number,
                    worker=worker_index,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
            finally:
                result.processed += 1

    worker_count = min(max(1, parallelism), len(work))
    await asyncio.gather(*(worker(i) for i in range(worker_count)))

    result.cancelled = stop.cancelled
    return result

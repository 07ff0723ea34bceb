"""
Repeated execution of a non-deterministic operation.

run_times is sequential. run_times_parallel bounds concurrency with an
asyncio.Semaphore: up to ``max_concurrency`` invocations are in flight, and
each completion lets the next queued one start.

Results from run_times_parallel are in completion order, not submission
order. Callers that need to know which invocation produced a result must tag
their outputs. A failure in any invocation cancels the rest and propagates,
since a silently dropped sample would bias every statistic computed on it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

SampleFn = Callable[[], Union[T, Awaitable[T]]]


async def _invoke(fn: SampleFn) -> Any:
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return result


async def run_times(n: int, fn: SampleFn) -> list[Any]:
    """Call ``fn`` ``n`` times in sequence and collect the results in order."""
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")
    return [await _invoke(fn) for _ in range(n)]


async def run_times_parallel(n: int, fn: SampleFn, max_concurrency: int = 5) -> list[Any]:
    """
    Call ``fn`` ``n`` times with at most ``max_concurrency`` in flight.

    Raises:
        Whatever the first failing invocation raised; outstanding invocations
        are cancelled before it propagates.
    """
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

    semaphore = asyncio.Semaphore(max_concurrency)
    results: list[Any] = []

    async def _run_one() -> None:
        async with semaphore:
            results.append(await _invoke(fn))

    tasks = [asyncio.create_task(_run_one()) for _ in range(n)]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    logger.debug(f"Collected {len(results)} samples (max_concurrency={max_concurrency})")
    return results

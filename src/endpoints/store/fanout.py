"""Bounded concurrent execution of independent relation operations."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from typing import TypeVar

T = TypeVar("T")


async def gather_bounded(aws: Iterable[Awaitable[T]], limit: int) -> list[T]:
    """Run awaitables concurrently with at most ``limit`` in flight.

    Results are returned in input order. The first failure propagates and
    every task still pending is cancelled.

    Args:
        aws: Awaitables to run. Their completion order is not guaranteed.
        limit: Maximum number of awaitables running at the same time.

    Raises:
        ValueError: If ``limit`` is lower than 1.
    """
    if limit < 1:
        raise ValueError(f"Fan-out limit must be at least 1, got {limit}")

    semaphore = asyncio.Semaphore(limit)

    async def _run(aw: Awaitable[T]) -> T:
        async with semaphore:
            return await aw

    tasks = [asyncio.ensure_future(_run(aw)) for aw in aws]
    if not tasks:
        return []
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

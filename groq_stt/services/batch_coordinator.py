"""
batch_coordinator.py

Runs a list of items through an async handler on a fixed-size pool of workers.
Each worker claims the next unprocessed index from a shared cursor and writes its
result into that index's slot, so the output order always matches the input
order whatever order the items finish in.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from groq_stt.logger import get_logger

log = get_logger("Batch Coordinator")

T = TypeVar("T")
R = TypeVar("R")


async def map_with_concurrency(
    items: Sequence[T],
    max_concurrency: int,
    fn: Callable[[T, int], Awaitable[R]],
) -> List[R]:
    results: List[Optional[R]] = [None] * len(items)
    concurrency = max(1, int(max_concurrency))
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while True:
            # no await between the check and the increment: the claim is atomic on the loop
            current = next_index
            if current >= len(items):
                return
            next_index += 1
            results[current] = await fn(items[current], current)

    workers = [asyncio.create_task(worker()) for _ in range(min(concurrency, len(items)))]
    if workers:
        await asyncio.gather(*workers)
    return results  # type: ignore[return-value]


class BatchCoordinator:
    def __init__(self, max_concurrency: int = 10) -> None:
        self.max_concurrency = max_concurrency

    def effective_concurrency(self, requested: int, item_count: int) -> int:
        return max(1, min(int(requested), self.max_concurrency, max(1, item_count)))

    async def dispatch(
        self,
        items: Sequence[T],
        concurrency: int,
        handler: Callable[[T, int], Awaitable[R]],
    ) -> List[R]:
        workers = self.effective_concurrency(concurrency, len(items))
        log.info("Dispatch started | items=%d | workers=%d", len(items), workers)
        results = await map_with_concurrency(items, workers, handler)
        log.info("Dispatch finished | items=%d", len(results))
        return results

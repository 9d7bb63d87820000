"""Concurrency utilities for critical CSS extraction."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)

class TaskPool:
    """Bounded pool of concurrently running coroutines."""

    def __init__(self, max_workers: int = 10):
        """Initialize task pool.

        Args:
            max_workers: Maximum number of coroutines in flight at once

        Raises:
            ValueError: If max_workers is not positive
        """
        if max_workers <= 0:
            raise ValueError("Max workers must be positive")

        self.max_workers = max_workers
        self._semaphore: Optional[asyncio.Semaphore] = None
        self.active = 0
        self.peak_active = 0

    async def _run_one(self, fn: Callable[..., Awaitable[Any]], item: Any) -> Any:
        """Run a single task while holding a pool slot."""
        async with self._semaphore:
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
            try:
                return await fn(item)
            finally:
                self.active -= 1

    async def map(self, fn: Callable[..., Awaitable[Any]], items: Iterable[Any]) -> List[Any]:
        """Run ``fn`` over every item and wait for all of them to settle.

        Exceptions raised by a task are returned in its result slot instead
        of cancelling the sibling tasks.

        Args:
            fn: Coroutine function taking one item
            items: Items to process

        Returns:
            Results (or exceptions) in the order of ``items``
        """
        self._semaphore = asyncio.Semaphore(self.max_workers)
        tasks = [self._run_one(fn, item) for item in items]
        logger.debug(f"Running {len(tasks)} tasks with {self.max_workers} workers")
        return await asyncio.gather(*tasks, return_exceptions=True)

# Exported classes
__all__ = ['TaskPool']

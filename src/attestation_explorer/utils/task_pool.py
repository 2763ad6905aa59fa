"""
Bounded concurrency for asyncio tasks.

Limits how many network calls the pipeline has in flight at once. Waiters are
admitted in strict FIFO order; results of ``execute_all`` keep input order.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]

logger = logging.getLogger(__name__)


class BoundedTaskPool:
    """
    Fixed-capacity executor for async task factories.

    A task is a zero-argument callable returning an awaitable, so nothing
    starts running until the pool admits it.
    """

    def __init__(self, max_concurrent: int = 9):
        """
        Initialize the pool.

        Args:
            max_concurrent: Maximum number of tasks running at the same time
        """
        if max_concurrent <= 0:
            raise ValueError(f"max_concurrent must be positive, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self.current = 0
        self._waiters: deque[asyncio.Future] = deque()

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> None:
        if self.current < self.max_concurrent:
            self.current += 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            # release() hands the slot over without touching the counter
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                self.release()
            raise

    def release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self.current -= 1

    async def execute(self, task: TaskFactory[T]) -> T:
        """
        Run one task under the concurrency limit.

        Args:
            task: Zero-argument callable returning an awaitable

        Returns:
            The task's result; its exception is re-raised unchanged
        """
        await self.acquire()
        try:
            return await task()
        finally:
            self.release()

    async def execute_all(
        self,
        tasks: Sequence[TaskFactory[Any]],
        return_exceptions: bool = False
    ) -> list[Any]:
        """
        Run every task under the limit and collect results in input order.

        A failing task does not stop its siblings; with ``return_exceptions``
        left False the first failure is raised once it is observed.
        """
        return await asyncio.gather(
            *(self.execute(task) for task in tasks),
            return_exceptions=return_exceptions
        )

    def get_stats(self) -> dict[str, int]:
        return {
            "max_concurrent": self.max_concurrent,
            "in_flight": self.current,
            "waiting": self.waiting,
        }


async def run_bounded(tasks: Sequence[TaskFactory[Any]], pool_size: int = 9) -> list[Any]:
    """Run tasks through a fresh pool of ``pool_size`` and return ordered results."""
    pool = BoundedTaskPool(pool_size)
    return await pool.execute_all(tasks)

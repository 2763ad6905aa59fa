#!/usr/bin/env python3
"""
Search for the most recent block holding attestation activity.

The chain is split into fixed-width ranges walking back from the head. Range
checks run concurrently through a bounded pool, and the first hit cancels
every check still in flight or waiting.

Because several checks run at once, an older range can report a hit and
cancel a newer range whose request has not completed yet. The result is then
lower than the true latest active block. Callers treat the answer as a
starting point for a backward scan, where this only costs extra batches.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial

from .errors import TransportError
from .models import BlockRange
from .utils.node_client import NodeClient
from .utils.task_pool import BoundedTaskPool

logger = logging.getLogger(__name__)


def generate_search_ranges(latest_block: int, step: int = 1000) -> list[BlockRange]:
    """
    Split ``[0, latest_block]`` into descending, contiguous ranges.

    Args:
        latest_block: Highest block to cover
        step: Width of each range in blocks

    Returns:
        Ranges newest first; empty when ``latest_block`` is 0
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    if latest_block <= 0:
        return []

    ranges = []
    current = latest_block
    while current >= 0:
        from_block = max(0, current - step + 1)
        ranges.append(BlockRange(from_block=from_block, to_block=current, step=step))
        current = from_block - 1
    return ranges


@dataclass
class _SearchState:
    best: int = 0
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)


class LatestActiveBlockFinder:
    """Finds the highest block containing a log from the contract."""

    def __init__(self, node: NodeClient, step: int = 1000, pool_size: int = 5):
        self.node = node
        self.step = step
        self.pool_size = pool_size

    async def _check_range(self, block_range: BlockRange, state: _SearchState) -> int:
        if state.best > block_range.to_block or state.cancelled.is_set():
            return 0

        request = asyncio.ensure_future(
            self.node.get_logs(block_range.from_block, block_range.to_block)
        )
        cancel_wait = asyncio.ensure_future(state.cancelled.wait())
        try:
            done, _ = await asyncio.wait(
                {request, cancel_wait},
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_wait.cancel()
            if not request.done():
                request.cancel()

        if request not in done:
            logger.debug(f"Range {block_range} cancelled")
            return 0

        try:
            logs = request.result()
        except TransportError:
            state.cancelled.set()
            raise

        logger.debug(f"Range {block_range}: found {len(logs)} logs")
        if not logs:
            return 0

        hit = max(int(log["blockNumber"]) for log in logs)
        state.best = max(state.best, hit)
        state.cancelled.set()
        return hit

    async def find(self, latest_block: int | None = None) -> int:
        """
        Return the most recent active block, or 0 when none is found.

        Args:
            latest_block: Block to search back from; defaults to the chain head

        Raises:
            TransportError: If a range check fails for a reason other than
                cancellation
        """
        if latest_block is None:
            latest_block = await self.node.get_block_number()

        logger.debug(f"Starting search from block: {latest_block}")

        state = _SearchState()
        ranges = generate_search_ranges(latest_block, self.step)
        pool = BoundedTaskPool(self.pool_size)

        try:
            await pool.execute_all([partial(self._check_range, r, state) for r in ranges])
        except TransportError as e:
            logger.error(f"Latest active block search failed: {e}")
            raise

        logger.info(f"Latest active block: {state.best} (searched {len(ranges)} ranges)")
        return state.best

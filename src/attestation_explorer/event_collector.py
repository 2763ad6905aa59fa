#!/usr/bin/env python3
"""
Backward block-range scan that gathers correlated attestation records.
"""

import logging
from collections.abc import Callable
from functools import partial

from .block_finder import LatestActiveBlockFinder
from .block_pointer_cache import BlockPointerCache
from .config import FetchConfig
from .correlator import correlate_events
from .event_fetcher import EventBatchFetcher
from .models import FetchResult
from .utils.node_client import NodeClient
from .utils.task_pool import BoundedTaskPool

logger = logging.getLogger(__name__)

FinderFactory = Callable[[NodeClient], LatestActiveBlockFinder]


class PaginatedEventCollector:
    """
    Walks back from a start block one step at a time until enough records
    are collected.

    Each step fetches the data and risk batches for the same range together,
    correlates them and moves the pointer down to the lower of the two
    ``last_checked_block`` values. Whenever a step yields records, the
    pointer is remembered in the block pointer cache.
    """

    def __init__(
        self,
        fetcher: EventBatchFetcher,
        pointer_cache: BlockPointerCache,
        step: int = 1000,
        max_empty_batches: int = 200,
        batch_pool_size: int = 2,
        scan_pool_size: int = 5,
        finder_factory: FinderFactory | None = None
    ):
        """
        Initialize the collector.

        Args:
            fetcher: Batch fetcher used for both event types
            pointer_cache: Cache of the latest active block
            step: Blocks covered by one batch
            max_empty_batches: Consecutive empty batches tolerated before stopping
            batch_pool_size: Concurrent batch fetches per step
            scan_pool_size: Concurrent range checks when searching for activity
            finder_factory: Builds the active block finder for a node client
        """
        self.fetcher = fetcher
        self.pointer_cache = pointer_cache
        self.step = step
        self.max_empty_batches = max_empty_batches
        self.batch_pool_size = batch_pool_size

        if finder_factory is None:
            def finder_factory(node: NodeClient) -> LatestActiveBlockFinder:
                return LatestActiveBlockFinder(node, step=step, pool_size=scan_pool_size)
        self.finder_factory = finder_factory

    async def _resolve_start_block(self, config: FetchConfig, start_block: int | None) -> int:
        if start_block is not None:
            return start_block

        cached_block = self.pointer_cache.get(config.endpoint, config.contract_address)
        if cached_block is not None:
            logger.debug(f"Using cached block: {cached_block}")
            return cached_block

        finder = self.finder_factory(self.fetcher.client_for(config))
        return await finder.find()

    async def collect(
        self,
        config: FetchConfig,
        target_count: int,
        start_block: int | None = None
    ) -> FetchResult:
        """
        Collect at least ``target_count`` records, scanning backwards.

        Stops early when ``max_empty_batches`` consecutive steps find nothing
        or the pointer reaches block 0. Fetch errors abort the scan.

        Args:
            config: Endpoint and contract to scan
            target_count: Number of records wanted
            start_block: Block to start from; defaults to the cached pointer,
                then to a search for the latest active block

        Returns:
            Collected records and the block the scan stopped at
        """
        block_pointer = await self._resolve_start_block(config, start_block)
        pool = BoundedTaskPool(self.batch_pool_size)

        all_events = []
        empty_batch_count = 0

        while (
            len(all_events) < target_count
            and empty_batch_count < self.max_empty_batches
            and block_pointer > 0
        ):
            batch_config = config.with_block_range(
                max(0, block_pointer - self.step),
                block_pointer
            )

            data_result, risk_result = await pool.execute_all([
                partial(self.fetcher.fetch_data_events, batch_config),
                partial(self.fetcher.fetch_risk_events, batch_config),
            ])
            correlated = correlate_events(data_result.events, risk_result.events)

            if correlated:
                all_events.extend(correlated)
                empty_batch_count = 0
                self.pointer_cache.set(config.endpoint, config.contract_address, block_pointer)
            else:
                empty_batch_count += 1

            block_pointer = min(data_result.last_checked_block, risk_result.last_checked_block)

            logger.debug(
                f"Batch done: empty_batch_count={empty_batch_count}, "
                f"events={len(all_events)}/{target_count}, block_pointer={block_pointer}"
            )

        if empty_batch_count >= self.max_empty_batches:
            logger.info(f"Stopped after {empty_batch_count} empty batches at block {block_pointer}")

        logger.info(f"Collected {len(all_events)} records, last checked block {block_pointer}")
        return FetchResult(events=all_events, last_checked_block=block_pointer)

    async def fetch_until_enough(
        self,
        config: FetchConfig,
        target_count: int,
        start_block: int | None = None
    ) -> FetchResult:
        return await self.collect(config, target_count, start_block)

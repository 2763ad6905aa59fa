"""
Attestation explorer service.

This module wires the fetch pipeline together and runs it as a long-lived
service: the first page is loaded at startup, proofs are refreshed on a fixed
interval and a status line is logged periodically until shutdown.
"""

import asyncio
import logging

from .block_pointer_cache import BlockPointerCache
from .config import ExplorerConfig
from .event_collector import PaginatedEventCollector
from .event_fetcher import EventBatchFetcher
from .indexed_query import IndexedQuerySource
from .models import PageView
from .orchestrator import FetchOrchestrator
from .pagination import AlertHandler, ProofPaginationController, log_alert
from .proof_cache import ProofCache
from .record_reader import AttestationRecordReader
from .utils.storage import FileStore, KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)


class AttestationExplorer:
    """
    Main service that owns the caches, sources and pagination controller.
    """

    STATUS_LOG_INTERVAL = 60  # seconds

    def __init__(
        self,
        config: ExplorerConfig,
        store: KeyValueStore | None = None,
        alert_handler: AlertHandler = log_alert
    ):
        """
        Initialize the explorer.

        Args:
            config: Explorer configuration
            store: Backing store for both caches; defaults to a file store in
                ``config.storage.cache_dir``, or memory when unset
            alert_handler: Receives fetch failure alerts
        """
        self.config = config
        self.running = False

        if store is None:
            store = (
                FileStore(config.storage.cache_dir)
                if config.storage.cache_dir
                else MemoryStore()
            )
        self.store = store

        self._init_components(alert_handler)

        self.shutdown_event = asyncio.Event()

    def _init_components(self, alert_handler: AlertHandler) -> None:
        tuning = self.config.tuning
        self.fetch_config = self.config.to_fetch_config()

        self.fetcher = EventBatchFetcher(request_timeout=tuning.request_timeout)
        self.pointer_cache = BlockPointerCache(self.store, ttl_seconds=tuning.block_pointer_ttl)
        self.collector = PaginatedEventCollector(
            fetcher=self.fetcher,
            pointer_cache=self.pointer_cache,
            step=tuning.block_step_size,
            max_empty_batches=tuning.max_empty_batches,
            batch_pool_size=tuning.batch_pool_size,
            scan_pool_size=tuning.scan_pool_size,
        )

        self.indexed_source = (
            IndexedQuerySource(
                graphql_endpoint=self.config.indexer.graphql_endpoint,
                request_timeout=tuning.request_timeout,
                max_rounds=tuning.max_index_rounds,
            )
            if self.config.indexer.use_graphql
            else None
        )
        self.orchestrator = FetchOrchestrator(primary=self.indexed_source, fallback=self.collector)

        self.proof_cache = ProofCache(self.store, namespace=self.config.storage.namespace)
        self.controller = ProofPaginationController(
            source=self.orchestrator,
            cache=self.proof_cache,
            fetch_config=self.fetch_config,
            page_size=tuning.page_size,
            refresh_interval=tuning.refresh_interval,
            alert_handler=alert_handler,
        )

        self.record_reader = AttestationRecordReader(self.fetcher.client_for(self.fetch_config))

        logger.info(
            f"Initialized explorer with {'GraphQL + RPC fallback' if self.indexed_source else 'RPC only'}"
        )

    @classmethod
    def from_env(cls, use_graphql: bool | None = None) -> "AttestationExplorer":
        """
        Create an AttestationExplorer instance from environment variables.

        Args:
            use_graphql: Overrides USE_GRAPHQL when given

        Returns:
            Configured AttestationExplorer instance

        Raises:
            ValueError: If required environment variables are missing
        """
        config = ExplorerConfig.from_env()
        if use_graphql is not None:
            config = config.with_graphql(use_graphql)
        config.log_config()
        return cls(config)

    async def get_page(self, page_number: int) -> PageView:
        return await self.controller.get_page(page_number)

    async def refresh(self) -> None:
        await self.controller.refresh()

    async def _periodic_status_logger(self) -> None:
        """Log status periodically while running."""
        while self.running:
            await asyncio.sleep(self.STATUS_LOG_INTERVAL)
            stats = self.controller.get_stats()
            logger.info(
                f"Status: {stats['cached_proofs']} proofs cached, "
                f"page {stats['current_page']}, has_more={stats['has_more']}"
            )

    async def run(self, start_page: int = 0) -> None:
        """Main loop: load the start page, then refresh until stopped."""
        self.running = True
        logger.info("Attestation explorer starting...")
        logger.info(f"Refresh interval: {self.config.tuning.refresh_interval}s")

        status_task: asyncio.Task | None = None
        try:
            view = await self.controller.get_page(start_page)
            logger.info(
                f"Page {view.page}: {len(view.proofs)} of {view.total_items} proofs "
                f"({view.total_pages} pages)"
            )

            self.controller.start()
            status_task = asyncio.create_task(self._periodic_status_logger())

            await self.shutdown_event.wait()

        except Exception as e:
            logger.error(f"Error in main loop: {e}", exc_info=True)
            raise
        finally:
            self.running = False
            await self.controller.stop()
            if status_task is not None and not status_task.done():
                status_task.cancel()
                try:
                    await status_task
                except asyncio.CancelledError:
                    pass  # Expected when cancelling
            await self.close()
            logger.info("Attestation explorer stopped")

    async def close(self) -> None:
        await self.fetcher.close()

    def stop(self) -> None:
        """Stop the explorer service."""
        self.running = False
        self.shutdown_event.set()

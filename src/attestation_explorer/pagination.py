#!/usr/bin/env python3
"""
Page-oriented access to cached proofs, fetching more when a page is not
covered yet and refreshing everything on a fixed interval.
"""

import asyncio
import logging
from collections.abc import Callable
from math import ceil

from .config import FetchConfig
from .models import PageView, Proof
from .orchestrator import EventSource
from .proof_cache import ProofCache

logger = logging.getLogger(__name__)

AlertHandler = Callable[[dict[str, str]], None]


def log_alert(alert: dict[str, str]) -> None:
    logger.error(f"[{alert['severity']}] {alert['message']}")


class ProofPaginationController:
    """
    Serves pages of proofs from a ProofCache, backed by an event source.

    Fetches are serialized: a page change arriving while the periodic refresh
    is running waits for it instead of racing it.
    """

    def __init__(
        self,
        source: EventSource,
        cache: ProofCache,
        fetch_config: FetchConfig,
        page_size: int = 25,
        refresh_interval: int = 600,
        alert_handler: AlertHandler = log_alert
    ):
        """
        Initialize the controller.

        Args:
            source: Where records come from (usually a FetchOrchestrator)
            cache: Proof store shared with other readers
            fetch_config: Endpoint, contract and source selection for fetches
            page_size: Proofs per page
            refresh_interval: Seconds between forced refreshes
            alert_handler: Receives ``{"severity", "message"}`` on fetch failures
        """
        self.source = source
        self.cache = cache
        self.fetch_config = fetch_config
        self.page_size = page_size
        self.refresh_interval = refresh_interval
        self.alert_handler = alert_handler

        self.loading = False
        self.has_more = True

        self._fetch_lock = asyncio.Lock()
        self._initialized = False
        self._refresh_task: asyncio.Task | None = None

    @property
    def current_page(self) -> int:
        return self.cache.current_page

    def get_earliest_block(self) -> int | None:
        return self.cache.earliest_block()

    async def _fetch(self, target_count: int, start_block: int | None) -> list[Proof]:
        config = self.fetch_config.with_pagination_offset(self.current_page)
        result = await self.source.fetch_until_enough(config, target_count, start_block)
        return list(result.events)

    async def fetch_and_cache(
        self,
        start_block: int | None = None,
        force_refresh: bool = False
    ) -> list[Proof]:
        """
        Fetch one page worth of proofs and merge them into the cache.

        Without ``start_block`` or ``force_refresh`` a non-empty cache is
        returned as is. A short result triggers one supplemental fetch below
        the oldest returned block. Failures are reported to the alert handler
        and leave ``has_more`` set so the caller can retry.

        Args:
            start_block: Fetch records strictly older than this block
            force_refresh: Clear the cache before fetching

        Returns:
            The fetched proofs, or an empty list on failure
        """
        async with self._fetch_lock:
            self.loading = True
            try:
                if len(self.cache) > 0 and not force_refresh and start_block is None:
                    return self.cache.get()

                if force_refresh:
                    self.cache.clear()

                events = await self._fetch(self.page_size, start_block)

                if not events:
                    self.has_more = False
                elif len(events) < self.page_size:
                    earliest_block = events[-1].data_events[0].block_number
                    if earliest_block:
                        events.extend(
                            await self._fetch(self.page_size - len(events), earliest_block - 1)
                        )
                    self.has_more = len(events) >= self.page_size
                else:
                    self.has_more = True

                self.cache.merge(events)
                logger.info(f"Cached {len(events)} proofs (has_more={self.has_more})")
                return events

            except Exception as e:
                logger.error(f"Error fetching events: {e}", exc_info=True)
                self.alert_handler({
                    "severity": "error",
                    "message": f"Error fetching events: {e}",
                })
                self.has_more = True
                return []

            finally:
                self.loading = False

    async def ensure_loaded(self) -> None:
        """Fetch the first page once if the cache starts out empty."""
        if self._initialized:
            return
        self._initialized = True
        if len(self.cache) == 0:
            await self.fetch_and_cache()

    async def handle_page_change(self, new_page: int) -> None:
        """
        Move to ``new_page``, fetching older proofs first when it is not
        fully cached and more are available.
        """
        if new_page < 0:
            raise ValueError(f"Page must not be negative, got {new_page}")

        required_events = (new_page + 1) * self.page_size
        if required_events > len(self.cache) and self.has_more:
            earliest_block = self.get_earliest_block()
            await self.fetch_and_cache(earliest_block - 1 if earliest_block else None)

        self.cache.set_current_page(new_page)

    on_page_change = handle_page_change

    def view(self) -> PageView:
        """The current page as cached, without fetching."""
        proofs = self.cache.get()
        page = self.current_page
        return PageView(
            proofs=proofs[page * self.page_size:(page + 1) * self.page_size],
            page=page,
            loading=self.loading,
            has_more=self.has_more,
            total_items=len(proofs),
            total_pages=ceil(len(proofs) / self.page_size),
        )

    async def get_page(self, page_number: int) -> PageView:
        await self.ensure_loaded()
        await self.handle_page_change(page_number)
        return self.view()

    async def refresh(self) -> None:
        """Clear the cache and refetch the first page."""
        await self.fetch_and_cache(None, force_refresh=True)

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            logger.info("Periodic proof refresh")
            await self.refresh()

    def start(self) -> None:
        """Start the periodic refresh task."""
        if self._refresh_task is not None and not self._refresh_task.done():
            logger.warning("Periodic refresh already running")
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop())
        logger.info(f"Periodic refresh every {self.refresh_interval} seconds")

    async def stop(self) -> None:
        """Stop the periodic refresh task."""
        task, self._refresh_task = self._refresh_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass  # Expected when cancelling

    def get_stats(self) -> dict[str, int | bool]:
        return {
            "cached_proofs": len(self.cache),
            "current_page": self.current_page,
            "loading": self.loading,
            "has_more": self.has_more,
        }

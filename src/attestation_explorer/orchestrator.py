"""
Source selection for record fetches: event index first, node scan as fallback.
"""

import logging
from typing import Protocol

from .config import FetchConfig
from .errors import NoFetchSourceError
from .models import FetchResult

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    """Anything that can gather ``target_count`` correlated records."""

    async def fetch_until_enough(
        self,
        config: FetchConfig,
        target_count: int,
        start_block: int | None = None
    ) -> FetchResult: ...


class FetchOrchestrator:
    """
    Tries the primary source and falls back once on failure.

    With ``config.use_graphql`` disabled the primary is skipped entirely.
    There is no retry and no circuit breaker: every call starts with the
    primary again.
    """

    def __init__(self, primary: EventSource | None = None, fallback: EventSource | None = None):
        self.primary = primary
        self.fallback = fallback

    async def fetch_until_enough(
        self,
        config: FetchConfig,
        target_count: int,
        start_block: int | None = None
    ) -> FetchResult:
        """
        Fetch records from the best available source.

        Raises:
            NoFetchSourceError: If no usable source is configured
            Exception: The primary's error when there is no fallback, or the
                fallback's error when it fails too
        """
        if config.use_graphql and self.primary is not None:
            try:
                logger.debug("Fetching from the event index")
                return await self.primary.fetch_until_enough(config, target_count, start_block)
            except Exception as e:
                if self.fallback is None:
                    logger.error(f"Event index fetch failed with no fallback: {e}")
                    raise
                logger.warning(f"Event index fetch failed, falling back to node scan: {e}")

        if self.fallback is None:
            raise NoFetchSourceError("no fetch source available")

        try:
            return await self.fallback.fetch_until_enough(config, target_count, start_block)
        except Exception as e:
            logger.error(f"Fallback fetch failed: {e}")
            raise

"""
Short-lived cache of the last block known to hold attestation activity.

Entries are keyed by endpoint and contract and expire after a TTL, so a
restarted scan can skip re-discovering the chain's active region. Storage
problems never reach the caller: reads degrade to a miss and writes to a
no-op.
"""

import json
import logging
import time
from collections.abc import Callable

from .errors import PersistenceError
from .models import CachedBlockPointer
from .utils.storage import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY = "latestActiveBlock"
DEFAULT_TTL_SECONDS = 10 * 60


def _now_ms() -> int:
    return int(time.time() * 1000)


class BlockPointerCache:
    """
    Persists the latest active block per (endpoint, contract_address).
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], int] = _now_ms
    ):
        """
        Initialize the cache.

        Args:
            store: Backing key/value store
            ttl_seconds: How long an entry stays valid
            clock: Returns the current time in epoch milliseconds
        """
        self.store = store
        self.ttl_ms = ttl_seconds * 1000
        self.clock = clock

    @staticmethod
    def cache_key(endpoint: str, contract_address: str) -> str:
        return f"{CACHE_KEY}:{endpoint}:{contract_address}"

    def get(self, endpoint: str, contract_address: str) -> int | None:
        """Return the cached block, or None when missing, expired or unreadable."""
        key = self.cache_key(endpoint, contract_address)
        try:
            raw = self.store.get_item(key)
            if not raw:
                return None
            pointer = CachedBlockPointer.from_dict(json.loads(raw))
        except (PersistenceError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Error reading block pointer cache: {e}")
            return None

        if pointer.is_expired(self.clock(), self.ttl_ms):
            logger.debug(f"Block pointer for {endpoint} expired")
            self.clear(endpoint, contract_address)
            return None

        return pointer.block_number

    def set(self, endpoint: str, contract_address: str, block_number: int) -> None:
        key = self.cache_key(endpoint, contract_address)
        pointer = CachedBlockPointer(block_number=block_number, timestamp=self.clock())
        try:
            self.store.set_item(key, json.dumps(pointer.to_dict()))
        except PersistenceError as e:
            logger.warning(f"Error writing block pointer cache: {e}")

    def clear(self, endpoint: str, contract_address: str) -> None:
        try:
            self.store.remove_item(self.cache_key(endpoint, contract_address))
        except PersistenceError as e:
            logger.warning(f"Error clearing block pointer cache: {e}")

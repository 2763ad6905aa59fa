#!/usr/bin/env python3
"""
Persisted, deduplicated store of correlated records ("proofs").

At most one proof is kept per (trader_id, epoch); a newer proof for the same
key replaces the old one whole. The collection is kept sorted by epoch
(newest first), then trader id, also descending.
"""

import logging

from .errors import DecodeError, PersistenceError
from .models import Proof
from .utils.cbor_codec import ProofCodec
from .utils.storage import KeyValueStore

logger = logging.getLogger(__name__)


def sort_proofs(proofs: list[Proof]) -> list[Proof]:
    return sorted(proofs, key=lambda proof: (int(proof.epoch), proof.trader_id), reverse=True)


class ProofCache:
    """
    Sorted proof collection and current page, mirrored to a key/value store.

    Every mutation is synchronous, so concurrent coroutines never observe a
    half-merged collection. Storage failures are logged and leave the
    in-memory state authoritative.
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = "taas",
        codec: ProofCodec | None = None
    ):
        """
        Initialize the cache and load any persisted state.

        Args:
            store: Backing key/value store
            namespace: Prefix of the storage keys
            codec: Encoder for the proof collection
        """
        self.store = store
        self.namespace = namespace
        self.codec = codec or ProofCodec()
        self.proofs_key = f"{namespace}-proofs-cache"
        self.page_key = f"{namespace}-proofs-current-page"

        self._proofs: list[Proof] = self._load_proofs()
        self._current_page: int = self._load_current_page()

    def _load_proofs(self) -> list[Proof]:
        try:
            raw = self.store.get_item(self.proofs_key)
            if not raw:
                return []
            proofs = sort_proofs(self.codec.decode(raw))
        except (PersistenceError, DecodeError) as e:
            logger.warning(f"Could not load cached proofs, starting empty: {e}")
            return []
        logger.info(f"Loaded {len(proofs)} cached proofs")
        return proofs

    def _load_current_page(self) -> int:
        try:
            raw = self.store.get_item(self.page_key)
            return int(raw) if raw else 0
        except (PersistenceError, ValueError) as e:
            logger.warning(f"Could not load current page, starting at 0: {e}")
            return 0

    def _persist_proofs(self) -> None:
        try:
            self.store.set_item(self.proofs_key, self.codec.encode(self._proofs))
        except PersistenceError as e:
            logger.warning(f"Error writing proof cache: {e}")

    def _persist_current_page(self) -> None:
        try:
            self.store.set_item(self.page_key, str(self._current_page))
        except PersistenceError as e:
            logger.warning(f"Error writing current page: {e}")

    def get(self) -> list[Proof]:
        return list(self._proofs)

    def merge(self, new_proofs: list[Proof]) -> None:
        """
        Upsert proofs by (trader_id, epoch) and re-sort.

        Args:
            new_proofs: Proofs from the latest fetch; they win over cached ones
        """
        proofs_by_key = {proof.key: proof for proof in self._proofs}
        for proof in new_proofs:
            proofs_by_key[proof.key] = proof

        self._proofs = sort_proofs(list(proofs_by_key.values()))
        self._persist_proofs()
        logger.debug(f"Merged {len(new_proofs)} proofs, cache now holds {len(self._proofs)}")

    def clear(self) -> None:
        self._proofs = []
        self._current_page = 0
        self._persist_proofs()
        self._persist_current_page()
        logger.info("Proof cache cleared")

    @property
    def current_page(self) -> int:
        return self._current_page

    def set_current_page(self, page: int) -> None:
        if page < 0:
            raise ValueError(f"Page must not be negative, got {page}")
        self._current_page = page
        self._persist_current_page()

    def earliest_block(self) -> int | None:
        """Lowest first-data-event block across all proofs, None when empty."""
        blocks = [
            proof.data_events[0].block_number
            for proof in self._proofs
            if proof.data_events and proof.data_events[0].block_number
        ]
        return min(blocks, default=None)

    def __len__(self) -> int:
        return len(self._proofs)

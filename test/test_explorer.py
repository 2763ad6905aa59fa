#!/usr/bin/env python3
"""Tests for the explorer service wiring and lifecycle."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import CONTRACT_ADDRESS, RPC_URL, make_record

from attestation_explorer.config import ChainConfig, ExplorerConfig, IndexerConfig, StorageConfig
from attestation_explorer.explorer import AttestationExplorer
from attestation_explorer.indexed_query import IndexedQuerySource
from attestation_explorer.models import FetchResult
from attestation_explorer.utils.storage import FileStore, MemoryStore


def make_config(use_graphql=True, cache_dir=None):
    return ExplorerConfig(
        chain=ChainConfig(rpc_url=RPC_URL, contract_address=CONTRACT_ADDRESS),
        indexer=IndexerConfig(use_graphql=use_graphql),
        storage=StorageConfig(cache_dir=cache_dir),
    )


class TestAttestationExplorer:
    """Test suite for AttestationExplorer."""

    def test_graphql_enabled_wiring(self):
        explorer = AttestationExplorer(make_config(), store=MemoryStore())

        assert isinstance(explorer.indexed_source, IndexedQuerySource)
        assert explorer.orchestrator.primary is explorer.indexed_source
        assert explorer.orchestrator.fallback is explorer.collector
        assert explorer.controller.source is explorer.orchestrator

    def test_rpc_only_wiring(self):
        explorer = AttestationExplorer(make_config(use_graphql=False), store=MemoryStore())

        assert explorer.indexed_source is None
        assert explorer.orchestrator.primary is None

    def test_file_store_from_cache_dir(self, tmp_path):
        explorer = AttestationExplorer(make_config(cache_dir=str(tmp_path / "cache")))

        assert isinstance(explorer.store, FileStore)
        assert (tmp_path / "cache").is_dir()

    def test_memory_store_by_default(self):
        explorer = AttestationExplorer(make_config())

        assert isinstance(explorer.store, MemoryStore)

    @pytest.mark.asyncio
    async def test_get_page_uses_orchestrator(self):
        explorer = AttestationExplorer(make_config(), store=MemoryStore())
        explorer.controller.source = MagicMock(
            fetch_until_enough=AsyncMock(return_value=FetchResult([make_record()], 100))
        )

        view = await explorer.get_page(0)

        assert len(view.proofs) == 1
        assert view.to_dict()["total_items"] == 1

    @pytest.mark.asyncio
    async def test_run_until_stopped(self):
        explorer = AttestationExplorer(make_config(), store=MemoryStore())
        explorer.fetcher.close = AsyncMock()

        async def fetch_and_stop(config, target_count, start_block=None):
            explorer.stop()
            return FetchResult([make_record()], 100)

        explorer.controller.source = MagicMock(fetch_until_enough=AsyncMock(side_effect=fetch_and_stop))

        await explorer.run()

        assert explorer.running is False
        assert explorer.controller._refresh_task is None
        explorer.fetcher.close.assert_awaited_once()
        assert len(explorer.proof_cache) == 1

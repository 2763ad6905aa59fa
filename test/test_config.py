#!/usr/bin/env python3
"""Tests for the configuration module."""

import os
import pytest
from unittest.mock import patch

from web3.providers import WebSocketProvider

from attestation_explorer.config import (
    ChainConfig,
    ExplorerConfig,
    FetchConfig,
    FetchTuning,
    IndexerConfig,
    StorageConfig,
)
from attestation_explorer.utils.node_client import NodeClient

ADDRESS = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"


class TestChainConfig:
    """Tests for ChainConfig."""

    def test_valid_chain_config(self):
        """Test creating a valid chain configuration."""
        config = ChainConfig(rpc_url="https://testnet-rpc.monad.xyz", contract_address=ADDRESS)

        assert config.rpc_url == "https://testnet-rpc.monad.xyz"
        assert config.contract_address == ADDRESS

    def test_checksum_address_conversion(self):
        """Test that addresses are converted to checksum format."""
        config = ChainConfig(rpc_url="https://test.rpc", contract_address=ADDRESS.lower())

        assert config.contract_address == ADDRESS

    def test_invalid_rpc_url_scheme(self):
        with pytest.raises(ValueError, match="Invalid RPC URL scheme"):
            ChainConfig(rpc_url="ftp://invalid.scheme", contract_address=ADDRESS)

    def test_missing_rpc_url(self):
        with pytest.raises(ValueError, match="RPC URL is required"):
            ChainConfig(rpc_url="", contract_address=ADDRESS)

    def test_invalid_contract_address(self):
        """Test that invalid contract address raises an error."""
        with pytest.raises(ValueError, match="Invalid attestation contract address"):
            ChainConfig(rpc_url="https://test.rpc", contract_address="invalid-address")

    @pytest.mark.asyncio
    async def test_websocket_rpc_url_gets_websocket_provider(self):
        """Test that WebSocket URLs are accepted and served over a WebSocket provider."""
        config = ChainConfig(rpc_url="wss://testnet-rpc.example.org", contract_address=ADDRESS)

        client = NodeClient(config.rpc_url, config.contract_address)

        assert isinstance(client.w3.provider, WebSocketProvider)

    def test_missing_contract_address(self):
        with pytest.raises(ValueError, match="Attestation contract address is required"):
            ChainConfig(rpc_url="https://test.rpc", contract_address="")


class TestIndexerConfig:
    def test_defaults(self):
        config = IndexerConfig()

        assert config.use_graphql is True
        assert config.graphql_endpoint.startswith("https://")

    def test_invalid_endpoint_when_enabled(self):
        with pytest.raises(ValueError, match="Invalid GraphQL URL scheme"):
            IndexerConfig(graphql_endpoint="ws://index.example.org")

    def test_endpoint_ignored_when_disabled(self):
        config = IndexerConfig(graphql_endpoint="", use_graphql=False)

        assert config.use_graphql is False


class TestFetchTuning:
    """Tests for FetchTuning validation."""

    def test_defaults(self):
        tuning = FetchTuning()

        assert tuning.block_step_size == 1000
        assert tuning.max_empty_batches == 200
        assert tuning.scan_pool_size == 5
        assert tuning.block_pointer_ttl == 600
        assert tuning.page_size == 25

    @pytest.mark.parametrize("field,value,message", [
        ("block_step_size", 0, "Block step size must be positive"),
        ("max_empty_batches", -1, "Max empty batches must be positive"),
        ("scan_pool_size", 0, "Pool sizes must be positive"),
        ("page_size", 0, "Page size must be between"),
        ("request_timeout", 121, "Request timeout too long"),
        ("max_index_rounds", 0, "Max index rounds must be positive"),
    ])
    def test_invalid_values(self, field, value, message):
        with pytest.raises(ValueError, match=message):
            FetchTuning(**{field: value})


class TestFetchConfig:
    def test_with_block_range_copies(self):
        config = FetchConfig(endpoint="https://test.rpc", contract_address=ADDRESS)

        ranged = config.with_block_range(10, 20)

        assert (ranged.from_block, ranged.to_block) == (10, 20)
        assert (config.from_block, config.to_block) == (0, 0)
        assert ranged.endpoint == config.endpoint

    def test_with_pagination_offset(self):
        config = FetchConfig(endpoint="https://test.rpc", contract_address=ADDRESS)

        assert config.with_pagination_offset(3).pagination_offset == 3


class TestExplorerConfig:
    """Tests for ExplorerConfig."""

    @patch.dict(os.environ, {
        "RPC_URL": "https://test.rpc",
        "ATTESTATION_ADDRESS": ADDRESS.lower(),
        "USE_GRAPHQL": "false",
        "PAGE_SIZE": "10",
        "CACHE_DIR": "/tmp/explorer-cache",
    }, clear=True)
    def test_from_env(self):
        """Test loading configuration from environment variables."""
        config = ExplorerConfig.from_env()

        assert config.chain.rpc_url == "https://test.rpc"
        assert config.chain.contract_address == ADDRESS
        assert config.indexer.use_graphql is False
        assert config.tuning.page_size == 10
        assert config.tuning.refresh_interval == 600
        assert config.storage.namespace == "taas"
        assert config.storage.cache_dir == "/tmp/explorer-cache"

    @patch.dict(os.environ, {
        "RPC_URL": "https://test.rpc",
        "ATTESTATION_ADDRESS": ADDRESS,
        "SCAN_POOL_SIZE": "8",
        "BATCH_POOL_SIZE": "4",
        "BLOCK_POINTER_TTL": "120",
        "MAX_INDEX_ROUNDS": "5",
    }, clear=True)
    def test_from_env_tuning(self):
        """Test that pool sizes, pointer TTL and index rounds come from the environment."""
        tuning = ExplorerConfig.from_env().tuning

        assert tuning.scan_pool_size == 8
        assert tuning.batch_pool_size == 4
        assert tuning.block_pointer_ttl == 120
        assert tuning.max_index_rounds == 5

    @patch.dict(os.environ, {
        "RPC_URL": "https://test.rpc",
        "ATTESTATION_ADDRESS": ADDRESS,
        "BATCH_POOL_SIZE": "0",
    }, clear=True)
    def test_from_env_invalid_pool_size(self):
        with pytest.raises(ValueError, match="Pool sizes must be positive"):
            ExplorerConfig.from_env()

    @patch.dict(os.environ, {}, clear=True)
    def test_from_env_missing_rpc_url(self):
        with pytest.raises(ValueError, match="RPC_URL"):
            ExplorerConfig.from_env()

    @patch.dict(os.environ, {"RPC_URL": "https://test.rpc"}, clear=True)
    def test_from_env_missing_contract(self):
        with pytest.raises(ValueError, match="ATTESTATION_ADDRESS"):
            ExplorerConfig.from_env()

    def test_to_fetch_config(self):
        config = ExplorerConfig(
            chain=ChainConfig(rpc_url="https://test.rpc", contract_address=ADDRESS),
            indexer=IndexerConfig(graphql_endpoint="https://index.example.org/graphql"),
        )

        fetch_config = config.to_fetch_config(pagination_offset=2)

        assert fetch_config.endpoint == "https://test.rpc"
        assert fetch_config.contract_address == ADDRESS
        assert fetch_config.pagination_offset == 2
        assert fetch_config.graphql_endpoint == "https://index.example.org/graphql"
        assert fetch_config.use_graphql is True

    def test_with_graphql(self):
        config = ExplorerConfig(
            chain=ChainConfig(rpc_url="https://test.rpc", contract_address=ADDRESS)
        )

        disabled = config.with_graphql(False)

        assert disabled.indexer.use_graphql is False
        assert config.indexer.use_graphql is True
        assert disabled.chain is config.chain

    def test_storage_namespace_required(self):
        with pytest.raises(ValueError, match="namespace"):
            StorageConfig(namespace="")

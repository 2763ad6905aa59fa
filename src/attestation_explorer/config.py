#!/usr/bin/env python3
"""Configuration management for the attestation explorer.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables with sensible defaults
where appropriate. ``FetchConfig`` is the per-call value passed through the
fetch pipeline; it is never mutated, only derived by copy-with-override.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from urllib.parse import urlparse

from web3 import Web3

# Get logger for this module
logger = logging.getLogger(__name__)

DEFAULT_GRAPHQL_ENDPOINT = "https://api.studio.thegraph.com/query/111697/tread/v0.0.2"

_TRUTHY = {"1", "true", "yes", "on"}


def _validate_url(url: str, label: str, schemes: tuple[str, ...]) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in schemes:
        raise ValueError(
            f"Invalid {label} URL scheme: {parsed.scheme}. "
            f"Expected {', '.join(schemes)}"
        )


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Configuration for the ledger node holding the attestations contract.

    Attributes:
        rpc_url: HTTP(S) or WS(S) RPC endpoint of the node
        contract_address: Checksummed address of the Attestations contract
    """

    rpc_url: str
    contract_address: str

    def __post_init__(self) -> None:
        """Validate chain configuration."""
        if not self.rpc_url:
            raise ValueError("RPC URL is required (RPC_URL)")

        _validate_url(self.rpc_url, "RPC", ('http', 'https', 'ws', 'wss'))

        if not self.contract_address:
            raise ValueError(
                "Attestation contract address is required (ATTESTATION_ADDRESS)"
            )

        if not Web3.is_address(self.contract_address):
            raise ValueError(
                f"Invalid attestation contract address: {self.contract_address}"
            )

        checksummed = Web3.to_checksum_address(self.contract_address)
        if checksummed != self.contract_address:
            # Use object.__setattr__ since dataclass is frozen
            object.__setattr__(self, 'contract_address', checksummed)


@dataclass(frozen=True, slots=True)
class IndexerConfig:
    """Configuration for the queryable event index (GraphQL)."""

    graphql_endpoint: str = DEFAULT_GRAPHQL_ENDPOINT
    use_graphql: bool = True

    def __post_init__(self) -> None:
        if self.use_graphql:
            if not self.graphql_endpoint:
                raise ValueError("GraphQL endpoint is required when USE_GRAPHQL is enabled")
            _validate_url(self.graphql_endpoint, "GraphQL", ('http', 'https'))


@dataclass(frozen=True, slots=True)
class FetchTuning:
    """Sizing and timing knobs for fetching, scanning and refreshing."""
    block_step_size: int = 1000  # blocks per log query
    max_empty_batches: int = 200  # consecutive empty ranges before giving up
    scan_pool_size: int = 5  # concurrent range checks while searching for activity
    batch_pool_size: int = 2  # data + risk batch fetched together
    block_pointer_ttl: int = 600  # seconds a cached active block stays valid
    refresh_interval: int = 600  # seconds between forced proof refreshes
    page_size: int = 25
    request_timeout: int = 30  # seconds, passed to the transports
    max_index_rounds: int = 3  # GraphQL pages requested per fetch

    def __post_init__(self) -> None:
        """Validate fetch tuning."""
        if self.block_step_size <= 0:
            raise ValueError(f"Block step size must be positive, got {self.block_step_size}")
        if self.max_empty_batches <= 0:
            raise ValueError(f"Max empty batches must be positive, got {self.max_empty_batches}")
        if self.scan_pool_size <= 0 or self.batch_pool_size <= 0:
            raise ValueError(
                f"Pool sizes must be positive, got scan={self.scan_pool_size} "
                f"batch={self.batch_pool_size}"
            )
        if self.block_pointer_ttl <= 0:
            raise ValueError(f"Block pointer TTL must be positive, got {self.block_pointer_ttl}")
        if self.refresh_interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {self.refresh_interval}")
        if not 0 < self.page_size <= 1000:
            raise ValueError(f"Page size must be between 1 and 1000, got {self.page_size}")
        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")
        if self.max_index_rounds <= 0:
            raise ValueError(f"Max index rounds must be positive, got {self.max_index_rounds}")


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Where cached proofs and block pointers are persisted.

    Attributes:
        namespace: Prefix of the proof cache keys
        cache_dir: Directory for the file store; None keeps everything in memory
    """

    namespace: str = "taas"
    cache_dir: str | None = None

    def __post_init__(self) -> None:
        if not self.namespace:
            raise ValueError("Cache namespace must not be empty")


@dataclass(frozen=True, slots=True)
class FetchConfig:
    """Per-call fetch parameters.

    Attributes:
        endpoint: RPC endpoint of the node
        contract_address: Attestations contract address
        from_block: Lowest block of the current batch
        to_block: Highest block of the current batch
        pagination_offset: Page offset the fetch was issued for
        graphql_endpoint: Event index endpoint
        use_graphql: Whether the event index is tried before the node
    """

    endpoint: str
    contract_address: str
    from_block: int = 0
    to_block: int = 0
    pagination_offset: int = 0
    graphql_endpoint: str = DEFAULT_GRAPHQL_ENDPOINT
    use_graphql: bool = True

    def with_block_range(self, from_block: int, to_block: int) -> "FetchConfig":
        """Create a new config covering another block range."""
        return replace(self, from_block=from_block, to_block=to_block)

    def with_pagination_offset(self, offset: int) -> "FetchConfig":
        return replace(self, pagination_offset=offset)


@dataclass(frozen=True, slots=True)
class ExplorerConfig:
    """Main configuration for the attestation explorer.

    Attributes:
        chain: Node and contract configuration
        indexer: Event index configuration
        tuning: Fetch sizing and timing
        storage: Persistence configuration
    """

    chain: ChainConfig
    indexer: IndexerConfig = field(default_factory=IndexerConfig)
    tuning: FetchTuning = field(default_factory=FetchTuning)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def from_env(cls) -> "ExplorerConfig":
        """Load configuration from environment variables.

        Returns:
            ExplorerConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        rpc_url = os.environ.get("RPC_URL", "")
        if not rpc_url:
            raise ValueError(
                "RPC_URL environment variable is required. "
                "Example: https://testnet-rpc.monad.xyz"
            )

        contract_address = os.environ.get("ATTESTATION_ADDRESS", "")
        if not contract_address:
            raise ValueError(
                "ATTESTATION_ADDRESS environment variable is required. "
                "This should be the Attestations contract address."
            )

        chain = ChainConfig(rpc_url=rpc_url, contract_address=contract_address)

        indexer = IndexerConfig(
            graphql_endpoint=os.environ.get("GRAPHQL_ENDPOINT", DEFAULT_GRAPHQL_ENDPOINT),
            use_graphql=os.environ.get("USE_GRAPHQL", "true").strip().lower() in _TRUTHY,
        )

        tuning = FetchTuning(
            block_step_size=int(os.environ.get("BLOCK_STEP_SIZE", "1000")),
            max_empty_batches=int(os.environ.get("MAX_EMPTY_BATCHES", "200")),
            scan_pool_size=int(os.environ.get("SCAN_POOL_SIZE", "5")),
            batch_pool_size=int(os.environ.get("BATCH_POOL_SIZE", "2")),
            block_pointer_ttl=int(os.environ.get("BLOCK_POINTER_TTL", "600")),
            refresh_interval=int(os.environ.get("REFRESH_INTERVAL", "600")),
            page_size=int(os.environ.get("PAGE_SIZE", "25")),
            request_timeout=int(os.environ.get("REQUEST_TIMEOUT", "30")),
            max_index_rounds=int(os.environ.get("MAX_INDEX_ROUNDS", "3")),
        )

        storage = StorageConfig(
            namespace=os.environ.get("CACHE_NAMESPACE", "taas"),
            cache_dir=os.environ.get("CACHE_DIR") or None,
        )

        return cls(chain=chain, indexer=indexer, tuning=tuning, storage=storage)

    def to_fetch_config(self, pagination_offset: int = 0) -> FetchConfig:
        """Build the per-call fetch config for the configured node and index."""
        return FetchConfig(
            endpoint=self.chain.rpc_url,
            contract_address=self.chain.contract_address,
            pagination_offset=pagination_offset,
            graphql_endpoint=self.indexer.graphql_endpoint,
            use_graphql=self.indexer.use_graphql,
        )

    def with_graphql(self, enabled: bool) -> "ExplorerConfig":
        """Create a new config with the event index switched on or off."""
        return replace(
            self,
            indexer=IndexerConfig(
                graphql_endpoint=self.indexer.graphql_endpoint,
                use_graphql=enabled,
            ),
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Attestation Explorer Configuration")
        logger.info("=" * 60)

        logger.info("Chain:")
        logger.info(f"  RPC URL: {self.chain.rpc_url}")
        logger.info(f"  Attestations: {self.chain.contract_address}")

        logger.info("Event Index:")
        logger.info(f"  GraphQL: {'ENABLED' if self.indexer.use_graphql else 'DISABLED'}")
        logger.info(f"  Endpoint: {self.indexer.graphql_endpoint}")

        logger.info("Fetch Settings:")
        logger.info(f"  Block Step Size: {self.tuning.block_step_size}")
        logger.info(f"  Max Empty Batches: {self.tuning.max_empty_batches}")
        logger.info(f"  Pool Sizes: scan={self.tuning.scan_pool_size} batch={self.tuning.batch_pool_size}")
        logger.info(f"  Max Index Rounds: {self.tuning.max_index_rounds}")
        logger.info(f"  Page Size: {self.tuning.page_size}")
        logger.info(f"  Refresh Interval: {self.tuning.refresh_interval} seconds")
        logger.info(f"  Block Pointer TTL: {self.tuning.block_pointer_ttl} seconds")
        logger.info(f"  Request Timeout: {self.tuning.request_timeout} seconds")

        logger.info("Storage:")
        logger.info(f"  Namespace: {self.storage.namespace}")
        logger.info(f"  Cache Dir: {self.storage.cache_dir or '[IN MEMORY]'}")

        logger.info("=" * 60)

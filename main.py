#!/usr/bin/env python3
"""Entry point for the attestation explorer.

Loads a page of correlated trader attestations, either once for inspection
or as a service that keeps the proof cache fresh.
"""

import argparse
import asyncio
import json
import logging
import os
import sys


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


# Get logger for this module
logger = logging.getLogger(__name__)

from attestation_explorer.errors import PersistenceError  # noqa: E402
from attestation_explorer.explorer import AttestationExplorer  # noqa: E402


async def print_page(explorer: AttestationExplorer, page_number: int) -> None:
    """Print one page as JSON, closing the explorer's node connections afterwards."""
    try:
        view = await explorer.get_page(page_number)
        print(json.dumps(view.to_dict(), indent=2))
    finally:
        await explorer.close()


async def main() -> None:
    """Main entry point for the attestation explorer.

    Raises:
        SystemExit: On configuration or runtime errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Attestation Explorer - browse correlated trader data and risk attestations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  RPC_URL               - RPC endpoint of the ledger node
  ATTESTATION_ADDRESS   - Attestations contract address
  GRAPHQL_ENDPOINT      - Event index endpoint (default: hosted subgraph)
  USE_GRAPHQL           - Try the event index before the node (default: true)
  PAGE_SIZE             - Proofs per page (default: 25)
  BLOCK_STEP_SIZE       - Blocks per log query (default: 1000)
  MAX_EMPTY_BATCHES     - Empty ranges tolerated per scan (default: 200)
  SCAN_POOL_SIZE        - Concurrent range checks in the active block search (default: 5)
  BATCH_POOL_SIZE       - Concurrent batch fetches per scan step (default: 2)
  BLOCK_POINTER_TTL     - Seconds a cached active block stays valid (default: 600)
  MAX_INDEX_ROUNDS      - Event index pages requested per fetch (default: 3)
  REFRESH_INTERVAL      - Seconds between forced refreshes (default: 600)
  REQUEST_TIMEOUT       - Transport timeout in seconds (default: 30)
  CACHE_NAMESPACE       - Prefix of the proof cache keys (default: taas)
  CACHE_DIR             - Directory for persisted caches (default: in memory)
  LOG_LEVEL             - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--page",
        type=int,
        default=0,
        help="Page to load first (default: 0)"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Print the requested page as JSON and exit"
    )
    parser.add_argument(
        "--no-graphql",
        action="store_true",
        default=False,
        help="Skip the event index and scan the node directly"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)

    if args.page < 0:
        parser.error("--page must not be negative")

    logger.info("=== Attestation Explorer Starting ===")

    try:
        explorer = AttestationExplorer.from_env(use_graphql=False if args.no_graphql else None)
    except (ValueError, PersistenceError) as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Required environment variables:")
        logger.error("  - RPC_URL: RPC endpoint of the ledger node")
        logger.error("  - ATTESTATION_ADDRESS: Attestations contract address")
        sys.exit(1)

    try:
        if args.once:
            await print_page(explorer, args.page)
        else:
            await explorer.run(start_page=args.page)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        explorer.stop()
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())

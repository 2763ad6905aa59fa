"""
Async RPC access to the ledger node holding the Attestations contract.

Every call goes straight to the node with no retry; failures surface as
``TransportError`` so callers can fall back or alert. ``ws``/``wss`` endpoints
use a persistent websocket connection, opened on first use and closed by
``close()``.
"""

import asyncio
import logging
from typing import Any
from urllib.parse import urlparse

from web3 import AsyncWeb3
from web3.providers import WebSocketProvider
from web3.types import EventData, LogReceipt

from ..errors import TransportError
from .contract_utility import get_contract_abi

ATTESTATIONS_CONTRACT = "Attestations"

WEBSOCKET_SCHEMES = ("ws", "wss")


def is_websocket_url(url: str) -> bool:
    return urlparse(url).scheme in WEBSOCKET_SCHEMES


def build_provider(rpc_url: str, request_timeout: int = 30) -> Any:
    """Pick the web3 provider matching the endpoint's URL scheme."""
    if is_websocket_url(rpc_url):
        return WebSocketProvider(rpc_url, request_timeout=request_timeout)
    return AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout})


class NodeClient:
    """
    Thin async wrapper around web3 for one endpoint and contract.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        request_timeout: int = 30
    ):
        """
        Initialize the node client.

        Args:
            rpc_url: HTTP(S) or WS(S) RPC endpoint URL
            contract_address: Address of the Attestations contract
            request_timeout: Per-request timeout in seconds
        """
        self.rpc_url = rpc_url
        self.contract_address = AsyncWeb3.to_checksum_address(contract_address)
        self.persistent = is_websocket_url(rpc_url)

        abi = get_contract_abi(ATTESTATIONS_CONTRACT)
        self.event_names = {entry["name"] for entry in abi if entry.get("type") == "event"}
        self.function_names = {entry["name"] for entry in abi if entry.get("type") == "function"}

        self.w3 = AsyncWeb3(build_provider(rpc_url, request_timeout))
        self.contract = self.w3.eth.contract(address=self.contract_address, abi=abi)

        self._connected = False
        self._connect_lock = asyncio.Lock()

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _ensure_connected(self) -> None:
        if not self.persistent or self._connected:
            return
        async with self._connect_lock:
            if self._connected:
                return
            try:
                await self.w3.provider.connect()
            except Exception as e:
                self.logger.error(f"Could not connect to {self.rpc_url}: {e}")
                raise TransportError(f"connection to {self.rpc_url} failed: {e}") from e
            self._connected = True
            self.logger.info(f"WebSocket connected to {self.rpc_url}")

    async def get_block_number(self) -> int:
        await self._ensure_connected()
        try:
            return await self.w3.eth.block_number
        except Exception as e:
            self.logger.error(f"Error fetching block number from {self.rpc_url}: {e}")
            raise TransportError(f"get_block_number failed: {e}") from e

    async def get_logs(self, from_block: int, to_block: int) -> list[LogReceipt]:
        """
        Fetch raw contract logs for an inclusive block range.

        Bounds are sent hex-encoded, as the node's filter API expects.
        """
        await self._ensure_connected()
        try:
            return await self.w3.eth.get_logs({
                "address": self.contract_address,
                "fromBlock": hex(from_block),
                "toBlock": hex(to_block),
            })
        except Exception as e:
            self.logger.debug(f"get_logs failed for [{from_block}, {to_block}]: {e}")
            raise TransportError(f"get_logs failed for [{from_block}, {to_block}]: {e}") from e

    async def get_event_logs(
        self,
        event_name: str,
        from_block: int,
        to_block: int
    ) -> list[EventData]:
        """
        Fetch and ABI-decode one event type's logs for a block range.

        Args:
            event_name: Contract event name, e.g. ``AttestedToData``
            from_block: First block (inclusive)
            to_block: Last block (inclusive)

        Returns:
            Decoded event entries with ``args``, ``blockNumber`` and
            ``transactionHash``
        """
        if event_name not in self.event_names:
            raise ValueError(f"Event {event_name} not found in contract ABI")
        event_obj = getattr(self.contract.events, event_name)

        await self._ensure_connected()
        try:
            return await event_obj.get_logs(from_block=from_block, to_block=to_block)
        except Exception as e:
            self.logger.error(
                f"Error fetching {event_name} logs in blocks {from_block}-{to_block}: {e}"
            )
            raise TransportError(f"{event_name} log query failed: {e}") from e

    async def call(self, function_name: str, *args: Any) -> Any:
        """Call a read-only contract function and return its decoded output."""
        if function_name not in self.function_names:
            raise ValueError(f"Function {function_name} not found in contract ABI")
        function = getattr(self.contract.functions, function_name)

        await self._ensure_connected()
        try:
            return await function(*args).call()
        except Exception as e:
            self.logger.error(f"Error calling {function_name}: {e}")
            raise TransportError(f"{function_name} call failed: {e}") from e

    async def close(self) -> None:
        if self.persistent and not self._connected:
            return
        provider = self.w3.provider
        if hasattr(provider, "disconnect"):
            await provider.disconnect()
        self._connected = False

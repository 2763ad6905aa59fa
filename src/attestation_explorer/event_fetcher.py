#!/usr/bin/env python3
"""
Block-range batch fetching of attestation events from the node.

Raw web3 log entries are decoded into ``DataEvent`` / ``RiskEvent`` by the
pure formatters below. A batch is one event type over one block range; there
is no retry at this level.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from .config import FetchConfig
from .errors import DecodeError
from .models import BatchResult, DataEvent, RiskEvent
from .utils.node_client import NodeClient

logger = logging.getLogger(__name__)

DATA_EVENT = "AttestedToData"
RISK_EVENT = "AttestedToRisk"

NodeClientFactory = Callable[[str, str], NodeClient]


def _to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


def _record_field(record: Any, name: str, position: int) -> Any:
    # Struct args decode either as a named mapping or as a plain tuple
    if isinstance(record, Mapping):
        return record[name]
    return record[position]


def format_data_event(event: Mapping[str, Any]) -> DataEvent:
    """
    Decode an AttestedToData log entry.

    Args:
        event: Decoded web3 event entry (``args``, ``blockNumber``,
            ``transactionHash``)

    Returns:
        The typed data event

    Raises:
        DecodeError: If a required field is missing or malformed
    """
    try:
        args = event["args"]
        record = args["record"]
        return DataEvent(
            transaction_hash=_to_hex(event["transactionHash"]),
            block_number=int(event["blockNumber"]),
            trader_id=_to_hex(args["traderId"]),
            epoch=int(args["epoch"]),
            attester=str(args["attester"]),
            merkle_root=_to_hex(_record_field(record, "merkleRoot", 0)),
            cid=str(_record_field(record, "cid", 1)),
        )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed {DATA_EVENT} entry: {e!r}") from e


def format_risk_event(event: Mapping[str, Any]) -> RiskEvent:
    """
    Decode an AttestedToRisk log entry.

    Raises:
        DecodeError: If a required field is missing or malformed
    """
    try:
        args = event["args"]
        return RiskEvent(
            transaction_hash=_to_hex(event["transactionHash"]),
            block_number=int(event["blockNumber"]),
            trader_id=_to_hex(args["traderId"]),
            epoch=int(args["epoch"]),
            attester=str(args["attester"]),
            parameter_id=int(args["parameterId"]),
            value=int(_record_field(args["record"], "value", 0)),
        )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed {RISK_EVENT} entry: {e!r}") from e


EVENT_KINDS: dict[str, tuple[str, Callable[[Mapping[str, Any]], Any]]] = {
    "data": (DATA_EVENT, format_data_event),
    "risk": (RISK_EVENT, format_risk_event),
}


class EventBatchFetcher:
    """Fetches one block-range batch of one event type from the node."""

    def __init__(
        self,
        client_factory: NodeClientFactory | None = None,
        request_timeout: int = 30
    ):
        """
        Initialize the batch fetcher.

        Args:
            client_factory: Builds a node client for (endpoint, contract_address);
                defaults to ``NodeClient``
            request_timeout: Timeout passed to default node clients
        """
        if client_factory is None:
            def client_factory(endpoint: str, contract_address: str) -> NodeClient:
                return NodeClient(endpoint, contract_address, request_timeout)
        self.client_factory = client_factory
        self._clients: dict[tuple[str, str], NodeClient] = {}

    def client_for(self, config: FetchConfig) -> NodeClient:
        key = (config.endpoint, config.contract_address)
        if key not in self._clients:
            self._clients[key] = self.client_factory(config.endpoint, config.contract_address)
        return self._clients[key]

    async def fetch_batch(self, config: FetchConfig, event_kind: str) -> BatchResult:
        """
        Fetch and decode one event type over the config's block range.

        Bounds are clamped so that ``0 <= from_block <= to_block``. Entries
        that fail to decode are skipped with a warning.

        Args:
            config: Fetch config carrying endpoint, contract and block range
            event_kind: ``"data"`` or ``"risk"``

        Returns:
            BatchResult whose ``last_checked_block`` is the clamped from_block

        Raises:
            TransportError: If the node query fails
        """
        if event_kind not in EVENT_KINDS:
            raise ValueError(f"Unknown event kind: {event_kind}")
        event_name, formatter = EVENT_KINDS[event_kind]

        safe_from = max(0, int(config.from_block))
        safe_to = max(safe_from, int(config.to_block))

        raw_events = await self.client_for(config).get_event_logs(event_name, safe_from, safe_to)

        events = []
        for raw_event in raw_events:
            try:
                events.append(formatter(raw_event))
            except DecodeError as e:
                logger.warning(f"Skipping malformed {event_name} log in [{safe_from}, {safe_to}]: {e}")

        logger.debug(f"Fetched {len(events)} {event_name} events in blocks {safe_from}-{safe_to}")
        return BatchResult(events=events, last_checked_block=safe_from)

    async def fetch_data_events(self, config: FetchConfig) -> BatchResult:
        return await self.fetch_batch(config, "data")

    async def fetch_risk_events(self, config: FetchConfig) -> BatchResult:
        return await self.fetch_batch(config, "risk")

    async def fetch_latest_block_number(self, config: FetchConfig) -> int:
        try:
            block_number = await self.client_for(config).get_block_number()
        except Exception as e:
            logger.error(f"Error fetching latest block number: {e}")
            raise
        logger.debug(f"Got latest block: {block_number}")
        return block_number

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()

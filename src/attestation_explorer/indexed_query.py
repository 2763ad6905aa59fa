#!/usr/bin/env python3
"""
Fetching attestations from the GraphQL event index.

The index serves the same events as the node, already decoded and ordered,
so pages can be requested directly instead of scanning block ranges. Every
number arrives as a string and is parsed explicitly.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

import httpx

from .config import DEFAULT_GRAPHQL_ENDPOINT, FetchConfig
from .correlator import correlate_events
from .errors import DecodeError, TransportError
from .models import (
    ConsensusDataEvent,
    ConsensusPage,
    ConsensusRiskEvent,
    DataEvent,
    EpochRecords,
    FetchResult,
    IndexedPage,
    RiskEvent,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ATTESTATIONS_QUERY = """
query GetEvents(
  $first: Int!,
  $skip: Int!,
  $orderBy: AttestedToData_orderBy,
  $direction: OrderDirection,
  $where: AttestedToData_filter
) {
  attestedToDatas(first: $first, skip: $skip, orderBy: $orderBy, orderDirection: $direction, where: $where) {
    id
    traderId
    epoch
    attester
    record_merkleRoot
    record_cid
    blockNumber
    blockTimestamp
    transactionHash
  }
  attestedToRisks(first: $first, skip: $skip, orderBy: $orderBy, orderDirection: $direction, where: $where) {
    id
    traderId
    epoch
    parameterId
    attester
    record_value
    blockNumber
    blockTimestamp
    transactionHash
  }
}
"""

CONSENSUS_QUERY = """
query GetConsensusEvents(
  $first: Int!,
  $skip: Int!,
  $orderBy: RecordedConsensusForData_orderBy,
  $direction: OrderDirection,
  $where: RecordedConsensusForData_filter
) {
  recordedConsensusForDatas(first: $first, skip: $skip, orderBy: $orderBy, orderDirection: $direction, where: $where) {
    id
    traderId
    epoch
    parameterId
    record_merkleRoot
    blockNumber
    blockTimestamp
    transactionHash
  }
  recordedConsensusForRisks(first: $first, skip: $skip, orderBy: $orderBy, orderDirection: $direction, where: $where) {
    id
    traderId
    epoch
    parameterId
    riskGroupId
    record_value
    blockNumber
    blockTimestamp
    transactionHash
  }
}
"""

RECORDS_BY_EPOCH_QUERY = """
query GetRecordsByEpoch($epoch: String!, $traderId: String!, $orderBy: RecordedConsensusForData_orderBy, $direction: OrderDirection) {
  recordedConsensusForDatas(where: { epoch: $epoch, traderId: $traderId }, orderBy: $orderBy, orderDirection: $direction) {
    id
    traderId
    epoch
    parameterId
    record_merkleRoot
    blockNumber
    blockTimestamp
    transactionHash
  }
  recordedConsensusForRisks(where: { epoch: $epoch, traderId: $traderId }, orderBy: $orderBy, orderDirection: $direction) {
    id
    traderId
    epoch
    parameterId
    riskGroupId
    record_value
    blockNumber
    blockTimestamp
    transactionHash
  }
  attestedToDatas(where: { epoch: $epoch, traderId: $traderId }, orderBy: $orderBy, orderDirection: $direction) {
    id
    traderId
    epoch
    attester
    record_merkleRoot
    record_cid
    blockNumber
    blockTimestamp
    transactionHash
  }
  attestedToRisks(where: { epoch: $epoch, traderId: $traderId }, orderBy: $orderBy, orderDirection: $direction) {
    id
    traderId
    epoch
    parameterId
    attester
    record_value
    blockNumber
    blockTimestamp
    transactionHash
  }
}
"""


def format_indexed_data_event(entry: Mapping[str, Any]) -> DataEvent:
    """Decode an ``attestedToDatas`` entry."""
    try:
        return DataEvent(
            transaction_hash=entry["transactionHash"],
            block_number=int(entry["blockNumber"]),
            trader_id=entry["traderId"],
            epoch=int(entry["epoch"]),
            attester=entry["attester"],
            merkle_root=entry["record_merkleRoot"],
            cid=entry["record_cid"],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed indexed data entry: {e!r}") from e


def format_indexed_risk_event(entry: Mapping[str, Any]) -> RiskEvent:
    """Decode an ``attestedToRisks`` entry."""
    try:
        return RiskEvent(
            transaction_hash=entry["transactionHash"],
            block_number=int(entry["blockNumber"]),
            trader_id=entry["traderId"],
            epoch=int(entry["epoch"]),
            attester=entry["attester"],
            parameter_id=int(entry["parameterId"]),
            value=int(entry["record_value"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed indexed risk entry: {e!r}") from e


def format_consensus_data_event(entry: Mapping[str, Any]) -> ConsensusDataEvent:
    try:
        return ConsensusDataEvent(
            transaction_hash=entry["transactionHash"],
            block_number=int(entry["blockNumber"]),
            trader_id=entry["traderId"],
            epoch=int(entry["epoch"]),
            parameter_id=int(entry["parameterId"]),
            merkle_root=entry["record_merkleRoot"],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed consensus data entry: {e!r}") from e


def format_consensus_risk_event(entry: Mapping[str, Any]) -> ConsensusRiskEvent:
    try:
        return ConsensusRiskEvent(
            transaction_hash=entry["transactionHash"],
            block_number=int(entry["blockNumber"]),
            trader_id=entry["traderId"],
            epoch=int(entry["epoch"]),
            parameter_id=int(entry["parameterId"]),
            risk_group_id=int(entry["riskGroupId"]),
            value=int(entry["record_value"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed consensus risk entry: {e!r}") from e


def _format_all(entries: list[Mapping[str, Any]] | None, formatter: Callable[[Mapping[str, Any]], T]) -> list[T]:
    formatted = []
    for entry in entries or []:
        try:
            formatted.append(formatter(entry))
        except DecodeError as e:
            logger.warning(f"Skipping entry: {e}")
    return formatted


class IndexedQuerySource:
    """Event source backed by the GraphQL event index."""

    def __init__(
        self,
        graphql_endpoint: str = DEFAULT_GRAPHQL_ENDPOINT,
        transport: httpx.AsyncBaseTransport | None = None,
        request_timeout: int = 30,
        max_rounds: int = 3
    ) -> None:
        """Initialize the index source.

        Args:
            graphql_endpoint: Default GraphQL endpoint URL
            transport: Optional httpx transport (tests pass a MockTransport)
            request_timeout: Per-request timeout in seconds
            max_rounds: Pages requested at most per ``fetch_until_enough``
        """
        self.graphql_endpoint = graphql_endpoint
        self.transport = transport
        self.request_timeout = request_timeout
        self.max_rounds = max_rounds

    async def _post_query(
        self,
        query: str,
        variables: dict[str, Any],
        endpoint: str | None = None
    ) -> dict[str, Any]:
        """Post a GraphQL query and return its ``data`` payload.

        Raises:
            TransportError: On HTTP failure, GraphQL errors or a missing ``data``
        """
        url = endpoint or self.graphql_endpoint
        logger.debug(f"Posting GraphQL query to {url} with variables {variables}")

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    url,
                    json={"query": query, "variables": variables},
                    timeout=float(self.request_timeout)
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"GraphQL request to {url} failed: {e}")
            raise TransportError(f"GraphQL request failed: {e}") from e
        except ValueError as e:
            logger.error(f"GraphQL response from {url} is not JSON: {e}")
            raise TransportError(f"Invalid GraphQL response: {e}") from e

        if not isinstance(payload, dict):
            raise TransportError("Invalid GraphQL response: expected an object")

        errors = payload.get("errors")
        if errors:
            messages = ", ".join(
                error.get("message", str(error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            logger.error(f"GraphQL errors: {messages}")
            raise TransportError(f"GraphQL errors: {messages}")

        data = payload.get("data")
        if not data:
            logger.error("No data returned from GraphQL")
            raise TransportError("No data returned from GraphQL")

        return data

    async def fetch_page(
        self,
        first: int = 25,
        skip: int = 0,
        order_by: str = "blockNumber",
        order_direction: str = "desc",
        where: dict[str, Any] | None = None,
        endpoint: str | None = None
    ) -> IndexedPage:
        """Fetch one page of data and risk attestations."""
        data = await self._post_query(
            ATTESTATIONS_QUERY,
            {
                "first": first,
                "skip": skip,
                "orderBy": order_by,
                "direction": order_direction,
                "where": where or {},
            },
            endpoint
        )

        page = IndexedPage(
            data_events=_format_all(data.get("attestedToDatas"), format_indexed_data_event),
            risk_events=_format_all(data.get("attestedToRisks"), format_indexed_risk_event),
        )
        logger.info(
            f"Fetched {len(page.data_events)} data events and "
            f"{len(page.risk_events)} risk events"
        )
        return page

    async def fetch_consensus_page(
        self,
        first: int = 25,
        skip: int = 0,
        order_by: str = "blockNumber",
        order_direction: str = "desc",
        where: dict[str, Any] | None = None,
        endpoint: str | None = None
    ) -> ConsensusPage:
        """Fetch one page of consensus data and risk records."""
        data = await self._post_query(
            CONSENSUS_QUERY,
            {
                "first": first,
                "skip": skip,
                "orderBy": order_by,
                "direction": order_direction,
                "where": where or {},
            },
            endpoint
        )

        page = ConsensusPage(
            consensus_data_events=_format_all(
                data.get("recordedConsensusForDatas"), format_consensus_data_event
            ),
            consensus_risk_events=_format_all(
                data.get("recordedConsensusForRisks"), format_consensus_risk_event
            ),
        )
        logger.info(
            f"Fetched {len(page.consensus_data_events)} consensus data events and "
            f"{len(page.consensus_risk_events)} consensus risk events"
        )
        return page

    async def fetch_records_by_epoch(self, epoch: int, trader_id: str) -> EpochRecords:
        """Fetch every attestation and consensus entry for one trader and epoch."""
        data = await self._post_query(
            RECORDS_BY_EPOCH_QUERY,
            {
                "epoch": str(epoch),
                "traderId": trader_id,
                "orderBy": "blockNumber",
                "direction": "desc",
            }
        )

        return EpochRecords(
            consensus_data_events=_format_all(
                data.get("recordedConsensusForDatas"), format_consensus_data_event
            ),
            consensus_risk_events=_format_all(
                data.get("recordedConsensusForRisks"), format_consensus_risk_event
            ),
            attested_data_events=_format_all(data.get("attestedToDatas"), format_indexed_data_event),
            attested_risk_events=_format_all(data.get("attestedToRisks"), format_indexed_risk_event),
        )

    async def fetch_until_enough(
        self,
        config: FetchConfig,
        target_count: int,
        start_block: int | None = None
    ) -> FetchResult:
        """
        Page through the index until ``target_count`` records are gathered.

        Each round asks for twice the target so correlation still fills the
        page. Paging stops at ``max_rounds`` rounds, on an empty page, or on
        a page shorter than requested.

        Args:
            config: Fetch config; its ``graphql_endpoint`` is used when set
            target_count: Number of records wanted
            start_block: Only return events strictly below this block

        Returns:
            At most ``target_count`` records; ``last_checked_block`` is the
            lowest block among them, 0 when there are none
        """
        batch_size = target_count * 2
        where = {"blockNumber_lt": str(start_block)} if start_block is not None else {}
        endpoint = config.graphql_endpoint or self.graphql_endpoint

        all_events = []
        skip = 0
        rounds = 0

        while len(all_events) < target_count and rounds < self.max_rounds:
            rounds += 1

            page = await self.fetch_page(
                first=batch_size,
                skip=skip,
                where=where,
                endpoint=endpoint
            )

            if not page.data_events:
                break

            all_events.extend(correlate_events(page.data_events, page.risk_events))
            skip += batch_size

            if len(page.data_events) < batch_size:
                break

        last_checked_block = min((event.block_number for event in all_events), default=0)

        logger.info(f"Fetched {len(all_events)} records from the event index in {rounds} rounds")
        return FetchResult(events=all_events[:target_count], last_checked_block=last_checked_block)

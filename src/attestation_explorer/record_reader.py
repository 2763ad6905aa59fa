"""
Read-only queries of consensus records, groups and risk parameters from the
Attestations contract.
"""

import logging
from collections.abc import Mapping
from typing import Any

from .models import DataRecordResult, GroupParams, RiskParameter, RiskRecordResult
from .utils.node_client import NodeClient

logger = logging.getLogger(__name__)

DEFAULT_RISK_GROUP_ID = 1


def _field(struct: Any, name: str, position: int) -> Any:
    if isinstance(struct, Mapping):
        return struct[name]
    return struct[position]


def _to_bytes32(trader_id: str | bytes) -> bytes:
    if isinstance(trader_id, bytes):
        return trader_id
    return bytes.fromhex(trader_id.removeprefix("0x"))


class AttestationRecordReader:
    """Contract reads that complement the event stream."""

    def __init__(self, node: NodeClient):
        self.node = node

    async def fetch_data_record(
        self,
        trader_id: str,
        epoch: int,
        parameter_id: int
    ) -> DataRecordResult:
        """
        Fetch the consensus data record for a trader, epoch and parameter.

        Args:
            trader_id: bytes32 trader identifier as hex
            epoch: Trading epoch
            parameter_id: Data parameter identifier

        Returns:
            The merkle root and whether consensus was reached
        """
        key = (_to_bytes32(trader_id), epoch, parameter_id)
        try:
            record, has_consensus = await self.node.call("getDataRecord", key)
        except Exception as e:
            logger.error(f"Error fetching data record for {trader_id} epoch {epoch}: {e}")
            raise

        merkle_root = _field(record, "merkleRoot", 0)
        if isinstance(merkle_root, (bytes, bytearray)):
            merkle_root = "0x" + bytes(merkle_root).hex()
        logger.debug(f"Data record {trader_id} epoch {epoch}: consensus={has_consensus}")
        return DataRecordResult(merkle_root=merkle_root, has_consensus=bool(has_consensus))

    async def fetch_risk_record(
        self,
        trader_id: str,
        epoch: int,
        parameter_id: int,
        risk_group_id: int = DEFAULT_RISK_GROUP_ID
    ) -> RiskRecordResult:
        key = (_to_bytes32(trader_id), epoch, parameter_id)
        try:
            record, has_consensus = await self.node.call("getRiskRecord", key, risk_group_id)
        except Exception as e:
            logger.error(
                f"Error fetching risk record for {trader_id} epoch {epoch} "
                f"parameter {parameter_id} group {risk_group_id}: {e}"
            )
            raise

        return RiskRecordResult(
            value=int(_field(record, "value", 0)),
            has_consensus=bool(has_consensus),
        )

    async def fetch_data_group(self) -> GroupParams:
        try:
            group = await self.node.call("getDataGroup")
        except Exception as e:
            logger.error(f"Error fetching data group: {e}")
            raise

        return GroupParams(
            threshold=int(_field(group, "threshold", 0)),
            members=list(_field(group, "members", 1)),
        )

    async def fetch_risk_group(self, risk_group_id: int = DEFAULT_RISK_GROUP_ID) -> GroupParams:
        try:
            group = await self.node.call("getRiskGroup", risk_group_id)
        except Exception as e:
            logger.error(f"Error fetching risk group {risk_group_id}: {e}")
            raise

        return GroupParams(
            threshold=int(_field(group, "threshold", 0)),
            members=list(_field(group, "members", 1)),
        )

    async def fetch_risk_parameter(self, parameter_id: int) -> RiskParameter:
        try:
            parameter = await self.node.call("getRiskParameter", parameter_id)
        except Exception as e:
            logger.error(f"Error fetching risk parameter {parameter_id}: {e}")
            raise

        return RiskParameter(
            name=_field(parameter, "metadataName", 0),
            description=_field(parameter, "metadataDescription", 1),
        )

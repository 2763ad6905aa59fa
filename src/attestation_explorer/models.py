#!/usr/bin/env python3
"""Data models for the attestation explorer.

This module provides immutable data classes for the attestation events read
from the ledger, the correlated trader/epoch records built from them, and the
small result types passed between the fetch, cache and pagination layers.
"""

from dataclasses import dataclass, field
from typing import Any

from .utils.epoch import epoch_bounds, timestamp_from_epoch


@dataclass(frozen=True, slots=True)
class DataEvent:
    """Represents an AttestedToData event.

    Attributes:
        transaction_hash: Hash of the transaction that emitted the event
        block_number: Block number where the event was emitted
        trader_id: bytes32 trader identifier as 0x-prefixed hex
        epoch: Trading epoch number
        attester: Address of the attesting party
        merkle_root: Merkle root of the attested trade data
        cid: Content ID pointing at the full trade data
    """

    transaction_hash: str
    block_number: int
    trader_id: str
    epoch: int
    attester: str
    merkle_root: str
    cid: str

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"DataEvent(trader={self.trader_id[:10]}..., "
            f"epoch={self.epoch}, "
            f"block={self.block_number})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "trader_id": self.trader_id,
            "epoch": self.epoch,
            "attester": self.attester,
            "merkle_root": self.merkle_root,
            "cid": self.cid,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DataEvent":
        return cls(**data)

    @property
    def key(self) -> tuple[str, int]:
        return (self.trader_id, self.epoch)


@dataclass(frozen=True, slots=True)
class RiskEvent:
    """Represents an AttestedToRisk event.

    Attributes:
        transaction_hash: Hash of the transaction that emitted the event
        block_number: Block number where the event was emitted
        trader_id: bytes32 trader identifier as 0x-prefixed hex
        epoch: Trading epoch number
        attester: Address of the attesting party
        parameter_id: Identifier of the risk parameter
        value: Attested risk value (uint256)
    """

    transaction_hash: str
    block_number: int
    trader_id: str
    epoch: int
    attester: str
    parameter_id: int
    value: int

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"RiskEvent(trader={self.trader_id[:10]}..., "
            f"epoch={self.epoch}, "
            f"parameter={self.parameter_id}, "
            f"block={self.block_number})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "trader_id": self.trader_id,
            "epoch": self.epoch,
            "attester": self.attester,
            "parameter_id": self.parameter_id,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RiskEvent":
        return cls(**data)

    @property
    def key(self) -> tuple[str, int]:
        return (self.trader_id, self.epoch)


@dataclass(frozen=True, slots=True)
class ConsensusDataEvent:
    """A RecordedConsensusForData entry from the event index."""

    transaction_hash: str
    block_number: int
    trader_id: str
    epoch: int
    parameter_id: int
    merkle_root: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "trader_id": self.trader_id,
            "epoch": self.epoch,
            "parameter_id": self.parameter_id,
            "merkle_root": self.merkle_root,
        }


@dataclass(frozen=True, slots=True)
class ConsensusRiskEvent:
    """A RecordedConsensusForRisk entry from the event index."""

    transaction_hash: str
    block_number: int
    trader_id: str
    epoch: int
    parameter_id: int
    risk_group_id: int
    value: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "trader_id": self.trader_id,
            "epoch": self.epoch,
            "parameter_id": self.parameter_id,
            "risk_group_id": self.risk_group_id,
            "value": self.value,
        }


@dataclass(frozen=True, slots=True)
class CorrelatedRecord:
    """The join of data and risk events sharing one (trader_id, epoch) key.

    A record only exists because at least one data event matched the key, so
    ``data_events`` is never empty. ``risk_events`` may be empty.
    ``block_number`` is the block of the first data event seen for the key.
    """

    trader_id: str
    epoch: int
    block_number: int
    data_events: tuple[DataEvent, ...]
    risk_events: tuple[RiskEvent, ...] = ()

    def __post_init__(self) -> None:
        if not self.data_events:
            raise ValueError(
                f"CorrelatedRecord for {self.trader_id}-{self.epoch} requires at least one data event"
            )
        # Accept lists from callers but keep the stored value immutable
        object.__setattr__(self, "data_events", tuple(self.data_events))
        object.__setattr__(self, "risk_events", tuple(self.risk_events))

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"CorrelatedRecord(trader={self.trader_id[:10]}..., "
            f"epoch={self.epoch}, "
            f"data={len(self.data_events)}, "
            f"risk={len(self.risk_events)})"
        )

    @property
    def key(self) -> tuple[str, int]:
        return (self.trader_id, self.epoch)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "trader_id": self.trader_id,
            "epoch": self.epoch,
            "block_number": self.block_number,
            "data_events": [event.to_dict() for event in self.data_events],
            "risk_events": [event.to_dict() for event in self.risk_events],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CorrelatedRecord":
        """Rebuild a record from its ``to_dict`` form."""
        return cls(
            trader_id=data["trader_id"],
            epoch=int(data["epoch"]),
            block_number=int(data["block_number"]),
            data_events=tuple(DataEvent.from_dict(e) for e in data["data_events"]),
            risk_events=tuple(RiskEvent.from_dict(e) for e in data.get("risk_events", [])),
        )


# A proof is a correlated record as persisted by the proof cache
Proof = CorrelatedRecord


@dataclass(frozen=True, slots=True)
class BlockRange:
    """An inclusive block range searched in one log query."""

    from_block: int
    to_block: int
    step: int

    def __post_init__(self) -> None:
        if self.from_block > self.to_block:
            raise ValueError(
                f"Invalid block range: from_block {self.from_block} > to_block {self.to_block}"
            )

    def __str__(self) -> str:
        return f"[{self.from_block}, {self.to_block}]"


@dataclass(frozen=True, slots=True)
class CachedBlockPointer:
    """The last known active block, stamped with when it was cached.

    Attributes:
        block_number: Block number that last showed activity
        timestamp: Cache time in epoch milliseconds
    """

    block_number: int
    timestamp: int

    def is_expired(self, now_ms: int, ttl_ms: int) -> bool:
        return now_ms - self.timestamp >= ttl_ms

    def to_dict(self) -> dict[str, int]:
        return {"blockNumber": self.block_number, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CachedBlockPointer":
        return cls(block_number=int(data["blockNumber"]), timestamp=int(data["timestamp"]))


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Decoded events of one type from one block range."""

    events: list[Any]
    last_checked_block: int


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Correlated records gathered by an event source."""

    events: list[CorrelatedRecord]
    last_checked_block: int


@dataclass(frozen=True, slots=True)
class IndexedPage:
    """One page of attestation events from the event index."""

    data_events: list[DataEvent] = field(default_factory=list)
    risk_events: list[RiskEvent] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ConsensusPage:
    """One page of consensus events from the event index."""

    consensus_data_events: list[ConsensusDataEvent] = field(default_factory=list)
    consensus_risk_events: list[ConsensusRiskEvent] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class EpochRecords:
    """Every indexed attestation and consensus entry for one trader and epoch."""

    consensus_data_events: list[ConsensusDataEvent]
    consensus_risk_events: list[ConsensusRiskEvent]
    attested_data_events: list[DataEvent]
    attested_risk_events: list[RiskEvent]


@dataclass(frozen=True, slots=True)
class DataRecordResult:
    merkle_root: str
    has_consensus: bool


@dataclass(frozen=True, slots=True)
class RiskRecordResult:
    value: int
    has_consensus: bool


@dataclass(frozen=True, slots=True)
class GroupParams:
    threshold: int
    members: list[str]


@dataclass(frozen=True, slots=True)
class RiskParameter:
    name: str
    description: str


def _with_epoch_window(proof: CorrelatedRecord) -> dict[str, Any]:
    """Serialize a proof with the wall-clock window its epoch covers."""
    epoch_start, epoch_end = epoch_bounds(int(proof.epoch))
    return {
        **proof.to_dict(),
        "epoch_start": epoch_start,
        "epoch_end": epoch_end,
        "epoch_timestamp_ms": timestamp_from_epoch(int(proof.epoch)),
    }


@dataclass(frozen=True, slots=True)
class PageView:
    """A page of proofs plus the pagination state a UI needs to render it."""

    proofs: list[CorrelatedRecord]
    page: int
    loading: bool
    has_more: bool
    total_items: int
    total_pages: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "proofs": [_with_epoch_window(proof) for proof in self.proofs],
            "page": self.page,
            "loading": self.loading,
            "has_more": self.has_more,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
        }

"""Shared fixtures for the attestation explorer tests."""

import pytest

from attestation_explorer.config import FetchConfig
from attestation_explorer.models import CorrelatedRecord, DataEvent, RiskEvent

RPC_URL = "https://testnet-rpc.example.org"
CONTRACT_ADDRESS = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
TRADER_A = "0x" + "aa" * 32
TRADER_B = "0x" + "bb" * 32


def make_data_event(trader_id=TRADER_A, epoch=1, block_number=100, tx="0x01"):
    return DataEvent(
        transaction_hash=tx,
        block_number=block_number,
        trader_id=trader_id,
        epoch=epoch,
        attester="0x0000000000000000000000000000000000000001",
        merkle_root="0x" + "11" * 32,
        cid="bafy-test",
    )


def make_risk_event(trader_id=TRADER_A, epoch=1, block_number=100, parameter_id=0, value=42):
    return RiskEvent(
        transaction_hash="0x02",
        block_number=block_number,
        trader_id=trader_id,
        epoch=epoch,
        attester="0x0000000000000000000000000000000000000002",
        parameter_id=parameter_id,
        value=value,
    )


def make_record(trader_id=TRADER_A, epoch=1, block_number=100, risk_value=None):
    risk_events = () if risk_value is None else (
        make_risk_event(trader_id, epoch, block_number, value=risk_value),
    )
    return CorrelatedRecord(
        trader_id=trader_id,
        epoch=epoch,
        block_number=block_number,
        data_events=(make_data_event(trader_id, epoch, block_number),),
        risk_events=risk_events,
    )


@pytest.fixture
def fetch_config():
    """A fetch config pointing at a test node."""
    return FetchConfig(endpoint=RPC_URL, contract_address=CONTRACT_ADDRESS)

#!/usr/bin/env python3
"""Unit tests for event correlation."""

from conftest import TRADER_A, TRADER_B, make_data_event, make_risk_event

from attestation_explorer.correlator import correlate_events
from attestation_explorer.models import DataEvent


class TestCorrelateEvents:
    """Test suite for correlate_events."""

    def test_joins_on_trader_and_epoch(self):
        """Data {A,1},{A,2},{B,1} with risk {A,1},{A,1},{C,1}."""
        trader_c = "0x" + "cc" * 32
        data = [
            make_data_event(TRADER_A, 1, tx="0xa1"),
            make_data_event(TRADER_A, 2, tx="0xa2"),
            make_data_event(TRADER_B, 1, tx="0xb1"),
        ]
        risk = [
            make_risk_event(TRADER_A, 1, parameter_id=0),
            make_risk_event(TRADER_A, 1, parameter_id=1),
            make_risk_event(trader_c, 1),
        ]

        records = correlate_events(data, risk)

        assert [record.key for record in records] == [(TRADER_A, 1), (TRADER_A, 2), (TRADER_B, 1)]
        assert len(records[0].risk_events) == 2
        assert records[1].risk_events == ()
        assert records[2].risk_events == ()

    def test_record_block_is_first_data_event(self):
        data = [
            make_data_event(TRADER_A, 1, block_number=150),
            make_data_event(TRADER_A, 1, block_number=120),
        ]

        records = correlate_events(data, [])

        assert len(records) == 1
        assert records[0].block_number == 150
        assert len(records[0].data_events) == 2

    def test_risk_only_keys_are_dropped(self):
        assert correlate_events([], [make_risk_event()]) == []

    def test_none_and_single_inputs(self):
        event = make_data_event()

        assert correlate_events(None, None) == []
        records = correlate_events(event, None)
        assert len(records) == 1
        assert records[0].data_events == (event,)

    def test_skips_events_without_key(self):
        bad = DataEvent(
            transaction_hash="0x0",
            block_number=1,
            trader_id="",
            epoch=1,
            attester="0x0",
            merkle_root="0x0",
            cid="",
        )

        records = correlate_events([bad, make_data_event()], [])

        assert [record.key for record in records] == [(TRADER_A, 1)]

    def test_epoch_zero_is_kept(self):
        records = correlate_events([make_data_event(epoch=0)], [make_risk_event(epoch=0)])

        assert len(records) == 1
        assert records[0].epoch == 0
        assert len(records[0].risk_events) == 1

    def test_idempotent_and_keys_unique(self):
        data = [make_data_event(TRADER_A, e) for e in (1, 2, 1, 3)]
        risk = [make_risk_event(TRADER_A, e) for e in (3, 1)]

        first = correlate_events(data, risk)
        second = correlate_events(data, risk)

        assert first == second
        keys = [record.key for record in first]
        assert len(keys) == len(set(keys))
        assert all(record.data_events for record in first)

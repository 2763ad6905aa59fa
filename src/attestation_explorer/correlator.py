"""
Join of data and risk attestations on (trader_id, epoch).
"""

import logging
from collections.abc import Iterable
from typing import Any

from .models import CorrelatedRecord, DataEvent, RiskEvent

logger = logging.getLogger(__name__)


def _as_list(events: Any) -> list:
    if events is None:
        return []
    if isinstance(events, (list, tuple)):
        return list(events)
    return [events]


def _group_by_key(events: Iterable[Any], label: str) -> dict[tuple[str, int], list]:
    grouped: dict[tuple[str, int], list] = {}
    for event in events:
        trader_id = getattr(event, "trader_id", None)
        epoch = getattr(event, "epoch", None)
        if not trader_id or epoch is None:
            logger.debug(f"Skipping {label} event without trader/epoch: {event!r}")
            continue
        grouped.setdefault((trader_id, epoch), []).append(event)
    return grouped


def correlate_events(
    data_events: Iterable[DataEvent] | DataEvent | None,
    risk_events: Iterable[RiskEvent] | RiskEvent | None
) -> list[CorrelatedRecord]:
    """
    Group data and risk events into one record per (trader_id, epoch).

    Records follow the first-seen order of their data events. Keys that only
    appear among risk events produce no record.

    Args:
        data_events: Data events; None or a single event are accepted
        risk_events: Risk events; None or a single event are accepted

    Returns:
        Correlated records, each with at least one data event
    """
    data_list = _as_list(data_events)
    risk_list = _as_list(risk_events)

    data_by_key = _group_by_key(data_list, "data")
    risk_by_key = _group_by_key(risk_list, "risk")

    records = [
        CorrelatedRecord(
            trader_id=trader_id,
            epoch=epoch,
            block_number=grouped[0].block_number,
            data_events=tuple(grouped),
            risk_events=tuple(risk_by_key.get((trader_id, epoch), ())),
        )
        for (trader_id, epoch), grouped in data_by_key.items()
    ]

    logger.debug(
        f"Correlated {len(data_list)} data and {len(risk_list)} risk events "
        f"into {len(records)} records"
    )
    return records

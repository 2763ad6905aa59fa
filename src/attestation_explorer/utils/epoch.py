"""Conversions between unix timestamps and trading epochs."""

EPOCH_START = 0
EPOCH_LENGTH = 600  # seconds


def epoch_bounds(epoch: int) -> tuple[int, int]:
    """Return the [start, end) unix seconds covered by ``epoch``."""
    return (EPOCH_START + epoch * EPOCH_LENGTH, EPOCH_START + (epoch + 1) * EPOCH_LENGTH)


def timestamp_from_epoch(epoch: int) -> int:
    """Start of ``epoch`` in milliseconds."""
    start, _ = epoch_bounds(epoch)
    return start * 1000

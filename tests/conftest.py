"""Shared test fixtures for memtop."""

from datetime import datetime

import pytest

from memtop.snapshot import Snapshot
from memtop.surface import CellBuffer


def make_snapshot(
    values: dict[str, float] | None = None,
    raw: dict[str, str] | None = None,
    monotonic: float = 1000.0,
    timestamp: datetime | None = None,
) -> Snapshot:
    """Create a Snapshot for testing.

    When raw is omitted it is derived from values, so the numeric keys are
    always a subset of the raw keys.
    """
    values = values or {}
    if raw is None:
        raw = {key: f"{val:g}" for key, val in values.items()}
    return Snapshot(
        timestamp=timestamp or datetime(2024, 1, 2, 3, 4, 5),
        monotonic=monotonic,
        values=values,
        raw=raw,
    )


@pytest.fixture
def surface() -> CellBuffer:
    """An 80x20 in-memory surface."""
    return CellBuffer(80, 20)

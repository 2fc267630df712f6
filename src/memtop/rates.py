# src/memtop/rates.py
"""Per-second rates derived from two snapshots."""

from __future__ import annotations

from collections.abc import Mapping

from memtop.snapshot import Snapshot

RateTable = dict[str, float]


def compute_rates(current: Snapshot | None, previous: Snapshot | None) -> RateTable:
    """Compare two snapshots and return per-second deltas for shared numeric keys.

    Counters that went backwards (server restart) clamp to a rate of 0.
    Returns an empty table if either snapshot is missing or the elapsed time
    is not strictly positive; a repeated instant and a clock going backwards
    are treated the same.
    """
    result: RateTable = {}
    if current is None or previous is None:
        return result

    elapsed = current.monotonic - previous.monotonic
    if elapsed <= 0:
        return result

    for key, current_val in current.values.items():
        if key not in previous.values:
            continue
        diff = current_val - previous.values[key]
        if diff < 0:
            diff = 0.0
        result[key] = diff / elapsed
    return result


def rate_value(rates: Mapping[str, float] | None, key: str) -> float:
    """Rate for key, 0.0 when the table is missing or lacks the key."""
    if not rates:
        return 0.0
    return rates.get(key, 0.0)

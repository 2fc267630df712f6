# src/memtop/snapshot.py
"""Point-in-time reading of a server's stats counters."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType


@dataclass(frozen=True)
class Snapshot:
    """One sample of the stats feed.

    `raw` holds every recognised key with its original string value.
    `values` holds the subset of keys whose value parsed as a finite number.
    `monotonic` is used for elapsed-time math; `timestamp` is for display only.
    """

    timestamp: datetime
    monotonic: float
    values: Mapping[str, float] = field(default_factory=dict)
    raw: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        extra = set(self.values) - set(self.raw)
        if extra:
            raise ValueError(f"numeric keys missing from raw map: {sorted(extra)}")
        # Read-only copies of both maps
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "raw", MappingProxyType(dict(self.raw)))

    @classmethod
    def capture(cls, values: Mapping[str, float], raw: Mapping[str, str]) -> Snapshot:
        """Build a Snapshot stamped with the current wall and monotonic clocks."""
        return cls(
            timestamp=datetime.now(),
            monotonic=time.monotonic(),
            values=values,
            raw=raw,
        )

    def value(self, key: str) -> float:
        """Numeric value for key, 0.0 when absent or non-numeric."""
        return self.values.get(key, 0.0)

    def text(self, key: str) -> str:
        """Raw string value for key, empty when absent."""
        return self.raw.get(key, "")

# splitter/types.py
"""Shared types for split calculation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

__all__ = ["BoundaryKey", "Split"]

BoundaryKey = Mapping[str, Any]


@dataclass(frozen=True)
class Split:
    """Represents one contiguous key range of the input collection."""

    split_id: str
    """Unique identifier for this split within its sequence"""

    lower_bound: Optional[BoundaryKey]
    """Lower boundary key (inclusive), None for beginning of keyspace"""

    upper_bound: Optional[BoundaryKey]
    """Upper boundary key (exclusive), None for end of keyspace"""

    @property
    def is_unbounded(self) -> bool:
        """True for the single split that covers the whole collection."""
        return self.lower_bound is None and self.upper_bound is None

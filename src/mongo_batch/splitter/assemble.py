# splitter/assemble.py
"""Turn boundary keys into a complete tiling of the key space."""

from __future__ import annotations

from typing import Iterable, List, Optional

from mongo_batch.splitter.types import BoundaryKey, Split

__all__ = ["assemble_splits", "format_splits_summary", "make_split_id"]


def make_split_id(index: int) -> str:
    return f"split_{index:04d}"


def assemble_splits(boundary_keys: Iterable[BoundaryKey]) -> List[Split]:
    """
    Create splits from an ordered sequence of boundary keys.

    splitVector returns only the interior boundaries; "min" and "max" are
    implicit. Each boundary closes the previous split and opens the next:

    - Split 0: None → key_1 (beginning of keyspace to first boundary)
    - Split 1: key_1 → key_2
    - ...
    - Split N: key_N → None (last boundary to end of keyspace)

    Args:
        boundary_keys: Boundary documents in collection sort order

    Returns:
        N+1 splits for N boundary keys; a single unbounded split when N == 0

    Example:
        >>> splits = assemble_splits([{"_id": 10}, {"_id": 20}])
        >>> len(splits)
        3
        >>> splits[0].lower_bound is None
        True
        >>> splits[0].upper_bound == splits[1].lower_bound
        True
        >>> splits[-1].upper_bound is None
        True
        >>> assemble_splits([])[0].is_unbounded
        True
    """
    splits: List[Split] = []
    previous: Optional[BoundaryKey] = None  # lower boundary of the first split

    for current in boundary_keys:
        splits.append(Split(make_split_id(len(splits)), previous, current))
        previous = current

    # Last split, with open upper boundary
    splits.append(Split(make_split_id(len(splits)), previous, None))
    return splits


def format_splits_summary(splits: List[Split]) -> str:
    """
    Format a summary of splits for display.

    Example:
        >>> print(format_splits_summary(assemble_splits([{"_id": 5}])))
        Calculated 2 splits:
          split_0000: <min> → {'_id': 5}
          split_0001: {'_id': 5} → <max>
    """
    lines = [f"Calculated {len(splits)} splits:"]

    for split in splits:
        lower = dict(split.lower_bound) if split.lower_bound is not None else "<min>"
        upper = dict(split.upper_bound) if split.upper_bound is not None else "<max>"
        lines.append(f"  {split.split_id}: {lower} → {upper}")

    return "\n".join(lines)

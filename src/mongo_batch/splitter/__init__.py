"""Partition a collection into contiguous key ranges for parallel scans."""

from .types import BoundaryKey, Split
from .assemble import assemble_splits, format_splits_summary
from .boundaries import BoundaryKeyFetcher
from .standalone import MongoSplitter, StandaloneSplitter, get_splitter

__all__ = [
    # Types
    "BoundaryKey",
    "Split",

    # Assembly
    "assemble_splits",
    "format_splits_summary",

    # Strategies
    "BoundaryKeyFetcher",
    "MongoSplitter",
    "StandaloneSplitter",
    "get_splitter",
]

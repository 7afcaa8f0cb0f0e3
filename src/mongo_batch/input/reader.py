# input/reader.py
"""Stream the documents of one split."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from pymongo.collection import Collection

from mongo_batch.splitter.types import BoundaryKey, Split

logger = logging.getLogger(__name__)

__all__ = ["SplitReader", "bound_to_index_key"]


def bound_to_index_key(bound: BoundaryKey) -> List[Tuple[str, Any]]:
    """Convert a boundary document into the ordered (key, value) list min/max expect."""
    return list(bound.items())


class SplitReader:
    """
    Iterates the documents inside a single split.

    The split bounds are passed to find() as ``min`` (inclusive) and ``max``
    (exclusive) against the split key index, so adjacent splits never return
    the same document. Open bounds are left out.

    Example:
        >>> reader = SplitReader(coll, split, {"_id": 1})
        >>> for doc in reader:
        ...     process(doc)
    """

    def __init__(
        self,
        collection: Collection,
        split: Split,
        key_pattern: Mapping[str, Any],
        query: Optional[Mapping[str, Any]] = None,
        fields: Optional[Mapping[str, Any]] = None,
        no_timeout: bool = False,
    ):
        self.collection = collection
        self.split = split
        self.key_pattern = dict(key_pattern)
        self.query = dict(query or {})
        self.fields = dict(fields) if fields is not None else None
        self.no_timeout = no_timeout
        self.docs_read = 0

    def find_kwargs(self) -> Dict[str, Any]:
        """Arguments passed to Collection.find() for this split."""
        kwargs: Dict[str, Any] = {
            "filter": self.query,
            "projection": self.fields,
            "no_cursor_timeout": self.no_timeout,
        }
        if self.split.lower_bound is not None or self.split.upper_bound is not None:
            # min/max require an explicit index hint
            kwargs["hint"] = list(self.key_pattern.items())
            if self.split.lower_bound is not None:
                kwargs["min"] = bound_to_index_key(self.split.lower_bound)
            if self.split.upper_bound is not None:
                kwargs["max"] = bound_to_index_key(self.split.upper_bound)
        return kwargs

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        logger.debug("Reading %s from %s", self.split.split_id, self.collection.full_name)
        cursor = self.collection.find(**self.find_kwargs())
        try:
            for doc in cursor:
                self.docs_read += 1
                yield doc
        finally:
            cursor.close()

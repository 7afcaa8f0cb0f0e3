"""Write buffer for batching bulk_write requests."""

from __future__ import annotations

from typing import Any, List

from pymongo.collection import Collection
from pymongo.results import BulkWriteResult

__all__ = ["WriteBuffer"]


class WriteBuffer:
    """Buffer for batching collection writes."""

    def __init__(self, max_items: int):
        """
        Initialize write buffer.

        Args:
            max_items: Maximum number of requests to buffer
        """
        if max_items < 1:
            raise ValueError(f"max_items must be >= 1, got {max_items}")
        self.max_items = max_items
        self.items: List[Any] = []

    def add(self, request: Any) -> bool:
        """
        Add a write request to the buffer.

        Args:
            request: pymongo ReplaceOne / InsertOne / UpdateOne / UpdateMany

        Returns:
            True if buffer should be flushed, False otherwise
        """
        self.items.append(request)
        return len(self.items) >= self.max_items

    def flush(self, collection: Collection) -> BulkWriteResult | None:
        """
        Send buffered requests as one ordered bulk_write.

        The buffer is emptied before the call, so a failed batch is never
        resubmitted by a later flush.

        Args:
            collection: Target collection

        Returns:
            The bulk write result, or None if the buffer was empty
        """
        if not self.items:
            return None

        requests, self.items = self.items, []
        return collection.bulk_write(requests, ordered=True)

    def __len__(self) -> int:
        """Return number of requests in buffer."""
        return len(self.items)

"""Read the documents of a split."""

from .reader import SplitReader, bound_to_index_key

__all__ = ["SplitReader", "bound_to_index_key"]

# mongo_batch/errors.py
"""Exception hierarchy shared by the split and write paths."""
from __future__ import annotations

from typing import Any, Mapping, Optional

__all__ = [
    "MongoBatchError",
    "SplitFailedError",
    "AuthenticationError",
    "SplitCalculationError",
    "WriteError",
]


class MongoBatchError(Exception):
    """Base class for all errors raised by mongo_batch."""


class SplitFailedError(MongoBatchError):
    """Split calculation could not produce a split sequence."""


class AuthenticationError(SplitFailedError):
    """Credentials were rejected by the admin database."""


class SplitCalculationError(SplitFailedError):
    """The splitVector command reported an error."""

    def __init__(self, message: str, response: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.response = dict(response) if response is not None else None


class WriteError(MongoBatchError, OSError):
    """A write to the output collection was rejected."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

# mongo_batch/config.py
"""Configuration for split calculation, output, and the local pipeline."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

__all__ = [
    "DEFAULT_SPLIT_KEY",
    "DEFAULT_SPLIT_SIZE_MB",
    "InputConfig",
    "OutputConfig",
    "PipelineConfig",
]

DEFAULT_SPLIT_KEY: Mapping[str, Any] = {"_id": 1}
DEFAULT_SPLIT_SIZE_MB = 8

_URI_PREFIXES = ("mongodb://", "mongodb+srv://")


def _check_uri(name: str, uri: Optional[str]) -> None:
    if uri is None:
        return
    if not isinstance(uri, str) or not uri.startswith(_URI_PREFIXES):
        raise ValueError(f"{name} must be a mongodb:// URI, got {uri!r}")


@dataclass(frozen=True)
class InputConfig:
    """Where to read from and how to partition it."""

    input_uri: str

    # Partitioning
    split_key: Mapping[str, Any] = field(default_factory=lambda: dict(DEFAULT_SPLIT_KEY))
    split_size: int = DEFAULT_SPLIT_SIZE_MB  # maxChunkSize hint for splitVector, in MB

    # Optional URI of an already-privileged database; skips ad-hoc admin auth
    auth_uri: Optional[str] = None

    # Applied when reading each split
    query: Mapping[str, Any] = field(default_factory=dict)
    fields: Optional[Mapping[str, Any]] = None
    no_timeout: bool = False

    def __post_init__(self) -> None:
        _check_uri("input_uri", self.input_uri)
        _check_uri("auth_uri", self.auth_uri)
        if not self.split_key:
            raise ValueError("split_key must name at least one field")
        if self.split_size < 1:
            raise ValueError(f"split_size must be >= 1, got {self.split_size}")


@dataclass(frozen=True)
class OutputConfig:
    """Where results are written and which write mode to use."""

    output_uri: str

    # Conditional-update mode when set; full replace otherwise
    update_keys: Optional[Tuple[str, ...]] = None
    multi_update: bool = False

    # Operations buffered per bulk_write; 1 writes through immediately
    batch_size: int = 1

    def __post_init__(self) -> None:
        _check_uri("output_uri", self.output_uri)
        if self.update_keys is not None:
            keys = (self.update_keys,) if isinstance(self.update_keys, str) else tuple(self.update_keys)
            if not keys:
                raise ValueError("update_keys must be None or non-empty")
            object.__setattr__(self, "update_keys", keys)
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")


@dataclass(frozen=True)
class PipelineConfig:
    """Local pipeline orchestration."""

    input: InputConfig
    output: OutputConfig

    # Parallelism
    num_workers: int = 4
    use_threads: bool = False

    # Progress reporting
    progress: bool = True
    log_dir: Optional[Union[str, Path]] = None
    log_level: int = logging.INFO

    def __post_init__(self) -> None:
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {self.num_workers}")

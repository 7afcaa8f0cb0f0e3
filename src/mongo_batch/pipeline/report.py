# mongo_batch/pipeline/report.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from mongo_batch.connection import redact_uri
from mongo_batch.splitter.types import Split

logger = logging.getLogger(__name__)


def _abbrev(s: str, width: int = 96) -> str:
    """Return s truncated with an ellipsis if it exceeds width."""
    return s if len(s) <= width else (s[: max(0, width - 1)] + "…")


def _output_mode(update_keys: Optional[Sequence[str]], multi_update: bool) -> str:
    if not update_keys:
        return "replace (upsert by _id)"
    mode = f"update $set on {', '.join(update_keys)}"
    return mode + (" (multi)" if multi_update else "")


def format_run_summary(
    *,
    input_uri: str,
    output_uri: str,
    split_key: Mapping[str, Any],
    split_size: int,
    splits: Sequence[Split],
    workers: int,
    executor_name: str,
    start_time: datetime,
    update_keys: Optional[Sequence[str]] = None,
    multi_update: bool = False,
    batch_size: int = 1,
    color: bool = True,
) -> str:
    """
    Build a formatted, human-readable summary of the planned run.

    Credentials embedded in either URI are masked.
    """
    heading = f"Start Time: {start_time:%Y-%m-%d %H:%M:%S}"
    if color:
        heading = f"\033[31m{heading}\033[0m"

    lines = [
        heading,
        ("\033[4mSplit & Write Configuration\033[0m" if color
         else "Split & Write Configuration"),
        f"Input collection:           {_abbrev(redact_uri(input_uri))}",
        f"Output collection:          {_abbrev(redact_uri(output_uri))}",
        f"Split key pattern:          {dict(split_key)}",
        f"Split size (MB):            {split_size}",
        f"Splits calculated:          {len(splits)}",
        f"Output mode:                {_output_mode(update_keys, multi_update)}",
    ]

    if len(splits) == 1 and splits[0].is_unbounded:
        lines.append("Single split:               whole collection")

    if batch_size > 1:
        lines.append(f"Write batch size:           {batch_size:,}")

    lines.append(f"Worker processes/threads:   {workers} ({executor_name})")
    return "\n".join(lines) + "\n"


def print_run_summary(**kwargs) -> None:
    """Print the run summary to stdout (CLI usage)."""
    print(format_run_summary(**kwargs), end="")


def log_run_summary(*, color: bool = False, **kwargs) -> None:
    """Log the run summary at INFO level (pipelines using logging)."""
    summary = format_run_summary(color=color, **kwargs)
    for line in summary.rstrip("\n").splitlines():
        logger.info(line)

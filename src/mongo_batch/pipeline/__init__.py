"""Local driver: split, read, map, and write with a worker pool."""

from .logger import setup_logger
from .report import format_run_summary, log_run_summary, print_run_summary
from .worker import SplitResult, identity_mapper, process_split
from .runner import PipelineResult, run_pipeline

__all__ = [
    "run_pipeline",
    "PipelineResult",
    "process_split",
    "identity_mapper",
    "SplitResult",
    "setup_logger",
    "format_run_summary",
    "log_run_summary",
    "print_run_summary",
]

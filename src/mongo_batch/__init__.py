"""
Parallel batch processing over MongoDB collections.

Main entry points:
    StandaloneSplitter.calculate_splits() - Partition a collection by splitVector
    open_record_sink() / RecordSink       - Idempotent replace or $set upsert writes
    SplitReader                           - Stream the documents of one split
    run_pipeline()                        - Local driver tying the three together
"""

from mongo_batch.config import InputConfig, OutputConfig, PipelineConfig
from mongo_batch.errors import (
    AuthenticationError,
    MongoBatchError,
    SplitCalculationError,
    SplitFailedError,
    WriteError,
)
from mongo_batch.input import SplitReader
from mongo_batch.output import MongoOutput, RecordSink, open_record_sink
from mongo_batch.pipeline import run_pipeline
from mongo_batch.splitter import Split, StandaloneSplitter, assemble_splits, get_splitter

__all__ = [
    # Configuration
    "InputConfig",
    "OutputConfig",
    "PipelineConfig",

    # Errors
    "MongoBatchError",
    "SplitFailedError",
    "AuthenticationError",
    "SplitCalculationError",
    "WriteError",

    # Splitting
    "Split",
    "StandaloneSplitter",
    "assemble_splits",
    "get_splitter",

    # Reading and writing
    "SplitReader",
    "MongoOutput",
    "RecordSink",
    "open_record_sink",

    # Pipeline
    "run_pipeline",
]

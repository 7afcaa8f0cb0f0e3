# mongo_batch/pipeline/worker.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Tuple

from setproctitle import setproctitle

from mongo_batch.config import PipelineConfig
from mongo_batch.connection import ConnectionDescriptor, get_collection, open_client
from mongo_batch.input.reader import SplitReader
from mongo_batch.output.sink import open_record_sink
from mongo_batch.splitter.types import Split

logger = logging.getLogger(__name__)

__all__ = ["Mapper", "SplitResult", "identity_mapper", "process_split"]

Mapper = Callable[[Mapping[str, Any]], Iterable[Tuple[Any, Any]]]


@dataclass
class SplitResult:
    """Counters reported back to the driver for one split."""

    split_id: str
    docs_read: int
    records_written: int


def identity_mapper(doc: Mapping[str, Any]) -> Iterable[Tuple[Any, Any]]:
    """Emit each document unchanged, keyed by its _id."""
    yield doc.get("_id"), doc


def process_split(
    split: Split,
    config: PipelineConfig,
    mapper: Mapper = identity_mapper,
) -> SplitResult:
    """
    Read one split, map each document, and write the resulting pairs.

    The worker opens its own input client and its own record sink; nothing
    is shared with other workers. Errors propagate to the driver unchanged.

    Args:
        split: The key range owned by this worker
        config: Pipeline configuration (input and output sides)
        mapper: Picklable callable turning a document into (key, value) pairs

    Returns:
        SplitResult with documents read and records written
    """
    if not config.use_threads:
        setproctitle(f"mb:worker[{split.split_id}]")

    in_cfg = config.input
    descriptor = ConnectionDescriptor.from_uri(in_cfg.input_uri)
    logger.info("Worker %s: Processing split %s", split.split_id, split)

    client = open_client(in_cfg.input_uri)
    try:
        reader = SplitReader(
            get_collection(client, descriptor),
            split,
            in_cfg.split_key,
            query=in_cfg.query,
            fields=in_cfg.fields,
            no_timeout=in_cfg.no_timeout,
        )
        with open_record_sink(config.output) as sink:
            for doc in reader:
                for key, value in mapper(doc):
                    sink.write(key, value)
    finally:
        client.close()

    result = SplitResult(split.split_id, reader.docs_read, sink.records_written)
    logger.info(
        "Worker %s: %s documents read, %s records written",
        split.split_id,
        f"{result.docs_read:,}",
        f"{result.records_written:,}",
    )
    return result

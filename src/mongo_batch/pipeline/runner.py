# mongo_batch/pipeline/runner.py
from __future__ import annotations

import logging
import multiprocessing as mp
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Type

from setproctitle import setproctitle
from tqdm import tqdm

from mongo_batch.config import PipelineConfig
from mongo_batch.pipeline.logger import setup_logger
from mongo_batch.pipeline.report import log_run_summary
from mongo_batch.pipeline.worker import Mapper, SplitResult, identity_mapper, process_split
from mongo_batch.splitter.standalone import get_splitter
from mongo_batch.splitter.types import Split

logger = logging.getLogger(__name__)

__all__ = ["PipelineResult", "run_pipeline"]


@dataclass
class PipelineResult:
    """Outcome of a pipeline run."""

    splits: List[Split]
    results: List[SplitResult] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def docs_read(self) -> int:
        return sum(r.docs_read for r in self.results)

    @property
    def records_written(self) -> int:
        return sum(r.records_written for r in self.results)

    @property
    def ok(self) -> bool:
        return not self.failures


def run_pipeline(
    config: PipelineConfig,
    mapper: Mapper = identity_mapper,
    *,
    executor_class: Optional[Type] = None,
) -> PipelineResult:
    """
    Split the input collection and process every split in parallel.

    Process
    -------
    1. Calculate splits once, in this process (SplitFailedError propagates)
    2. Log the run summary
    3. Submit one task per split; each task owns its clients and sink
    4. Collect per-split results; failed splits are recorded, not retried

    Args:
        config: Pipeline configuration
        mapper: Picklable callable turning a document into (key, value) pairs
        executor_class: ThreadPoolExecutor or ProcessPoolExecutor (default
            chosen from ``config.use_threads``)

    Returns:
        PipelineResult with per-split counters and failure messages
    """
    if not config.use_threads:
        setproctitle("mb:driver")

    if config.log_dir is not None:
        setup_logger(config)

    start_time = datetime.now()

    with get_splitter(config.input) as splitter:
        splits = splitter.calculate_splits()

    if executor_class is None:
        executor_class = ThreadPoolExecutor if config.use_threads else ProcessPoolExecutor

    log_run_summary(
        input_uri=config.input.input_uri,
        output_uri=config.output.output_uri,
        split_key=config.input.split_key,
        split_size=config.input.split_size,
        splits=splits,
        workers=config.num_workers,
        executor_name="threads" if issubclass(executor_class, ThreadPoolExecutor) else "processes",
        start_time=start_time,
        update_keys=config.output.update_keys,
        multi_update=config.output.multi_update,
        batch_size=config.output.batch_size,
    )

    result = PipelineResult(splits=splits)

    kwargs = {"max_workers": min(config.num_workers, len(splits))}
    if issubclass(executor_class, ProcessPoolExecutor):
        # fork keeps the driver's logging handlers in the workers
        kwargs["mp_context"] = mp.get_context("fork")

    with tqdm(
        total=len(splits),
        desc="Splits Processed:",
        unit="splits",
        ncols=100,
        disable=not config.progress,
    ) as pbar:
        with executor_class(**kwargs) as executor:
            futures = {
                executor.submit(process_split, split, config, mapper): split.split_id
                for split in splits
            }

            for fut in as_completed(futures):
                split_id = futures[fut]
                try:
                    split_result = fut.result()
                    result.results.append(split_result)
                    logger.info("Processed: %s", split_id)
                except Exception as exc:
                    msg = f"ERROR: {split_id} - {exc}"
                    result.failures[split_id] = msg
                    logger.error(msg)
                finally:
                    pbar.update(1)

    result.results.sort(key=lambda r: r.split_id)
    elapsed = datetime.now() - start_time
    logger.info(
        "Pipeline finished in %s: %d/%d splits, %s documents read, %s records written",
        elapsed,
        len(result.results),
        len(splits),
        f"{result.docs_read:,}",
        f"{result.records_written:,}",
    )
    return result

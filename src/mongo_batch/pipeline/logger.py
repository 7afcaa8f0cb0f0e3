# mongo_batch/pipeline/logger.py
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from mongo_batch.config import PipelineConfig
from mongo_batch.connection import ConnectionDescriptor

DEFAULT_PREFIX = "mongo_batch"

# pymongo's command/connection loggers are chatty below WARNING
_DRIVER_LOGGERS = ("pymongo", "pymongo.command", "pymongo.connection", "pymongo.serverSelection")


def log_file_prefix(input_uri: str) -> str:
    """Name log files after the input namespace, e.g. ``shop.orders``."""
    try:
        return ConnectionDescriptor.from_uri(input_uri).namespace
    except ValueError:
        return DEFAULT_PREFIX


def setup_logger(
    config: PipelineConfig,
    *,
    console: bool = False,
    force: bool = False,
) -> Path:
    """
    Configure root logging for a pipeline run.

    Writes to ``<log_dir>/<db>.<collection>_<timestamp>.log``. Records are
    tagged with the worker that produced them: the thread name when workers
    are threads, the process name when they are forked processes (forked
    workers inherit the handler installed here).

    Args:
        config: Pipeline configuration; ``log_dir`` must be set
        console: Also log to stderr
        force: Remove existing root handlers first

    Returns:
        Path to the log file
    """
    if config.log_dir is None:
        raise ValueError("setup_logger requires config.log_dir")

    log_dir = Path(config.log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = log_dir / f"{log_file_prefix(config.input.input_uri)}_{ts}.log"

    root = logging.getLogger()
    if force:
        for h in list(root.handlers):
            root.removeHandler(h)

    level = config.log_level
    root.setLevel(level)
    for name in _DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    worker_field = "%(threadName)s" if config.use_threads else "%(processName)s"
    fmt = logging.Formatter(
        f"%(asctime)s %(levelname)s {worker_field} %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    fhandler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    fhandler.setLevel(level)
    fhandler.setFormatter(fmt)
    root.addHandler(fhandler)

    if console:
        shandler = logging.StreamHandler()
        shandler.setLevel(level)
        shandler.setFormatter(fmt)
        root.addHandler(shandler)

    root.info("Logging to: %s", str(log_path))
    return log_path

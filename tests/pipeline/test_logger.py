# tests/pipeline/test_logger.py
from pathlib import Path
import logging
import threading
from logging import StreamHandler, FileHandler

import pytest

from mongo_batch.config import InputConfig, OutputConfig, PipelineConfig
from mongo_batch.pipeline.logger import log_file_prefix, setup_logger

pytestmark = pytest.mark.usefixtures("clean_root_handlers")

IN_URI = "mongodb://localhost/shop.orders"
OUT_URI = "mongodb://localhost/shop.totals"


@pytest.fixture()
def clean_root_handlers():
    """Start each test with a clean root logger; restore afterwards."""
    root = logging.getLogger()
    prev = list(root.handlers)
    prev_level = root.level
    drivers = [
        logging.getLogger(n)
        for n in ("pymongo", "pymongo.command", "pymongo.connection", "pymongo.serverSelection")
    ]
    prev_driver_levels = [d.level for d in drivers]
    try:
        for h in list(root.handlers):
            root.removeHandler(h)
        yield
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in prev:
            root.addHandler(h)
        root.setLevel(prev_level)
        for d, lvl in zip(drivers, prev_driver_levels):
            d.setLevel(lvl)


def _config(log_dir, input_uri=IN_URI, **kwargs):
    return PipelineConfig(
        input=InputConfig(input_uri),
        output=OutputConfig(OUT_URI),
        log_dir=log_dir,
        **kwargs,
    )


def test_log_file_named_after_input_namespace(tmp_path: Path):
    log_dir = tmp_path / "logs"

    log_path = setup_logger(_config(log_dir), force=True)
    assert log_path.parent == log_dir
    assert log_path.name.startswith("shop.orders_")
    assert log_path.suffix == ".log"

    logging.getLogger("mongo_batch.test").info("hello world")
    text = log_path.read_text(encoding="utf-8")
    assert "Logging to:" in text
    assert "hello world" in text
    assert "mongo_batch.test" in text


def test_prefix_falls_back_without_namespace():
    assert log_file_prefix("mongodb://localhost/") == "mongo_batch"
    assert log_file_prefix("mongodb://localhost/shop") == "mongo_batch"
    assert log_file_prefix(IN_URI) == "shop.orders"


def test_requires_log_dir():
    with pytest.raises(ValueError):
        setup_logger(_config(None))


def test_thread_mode_tags_records_with_thread_name(tmp_path: Path):
    log_path = setup_logger(_config(tmp_path, use_threads=True), force=True)

    t = threading.Thread(
        target=lambda: logging.getLogger("mongo_batch.worker").info("from worker"),
        name="split-worker-7",
    )
    t.start()
    t.join()

    line = next(l for l in log_path.read_text(encoding="utf-8").splitlines() if "from worker" in l)
    assert "split-worker-7" in line


def test_process_mode_tags_records_with_process_name(tmp_path: Path):
    log_path = setup_logger(_config(tmp_path), force=True)

    logging.getLogger("mongo_batch.runner").info("from driver")

    line = next(l for l in log_path.read_text(encoding="utf-8").splitlines() if "from driver" in l)
    assert "MainProcess" in line


def test_level_comes_from_config_and_driver_is_quieted(tmp_path: Path):
    log_path = setup_logger(_config(tmp_path, log_level=logging.DEBUG), force=True)

    logging.getLogger("mongo_batch.sink").debug("debug detail")
    logging.getLogger("pymongo").info("driver chatter")

    text = log_path.read_text(encoding="utf-8")
    assert "debug detail" in text
    assert "driver chatter" not in text
    assert logging.getLogger("pymongo").level == logging.WARNING


def test_force_replaces_handlers_and_console(tmp_path: Path):
    setup_logger(_config(tmp_path), console=True, force=True)
    types1 = {type(h) for h in logging.getLogger().handlers}
    assert FileHandler in types1
    assert StreamHandler in types1

    setup_logger(_config(tmp_path), force=True)
    types2 = {type(h) for h in logging.getLogger().handlers}
    assert types2 == {FileHandler}

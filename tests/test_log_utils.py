from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler

from nexalink.log_utils import EventFormatter, LogConfig, build_log_config, configure_logging, log_context, log_event


def _collecting_logger(logger_name: str = "nexalink.test") -> tuple[logging.Logger, list[logging.LogRecord]]:
    records: list[logging.LogRecord] = []

    class _Collect(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    logger = logging.getLogger(logger_name)
    logger.handlers = [_Collect()]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger, records


def test_build_log_config_reads_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("NEXALINK_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("NEXALINK_LOG_LEVEL", "debug")
    monkeypatch.setenv("NEXALINK_LOG_JSON", "yes")
    monkeypatch.setenv("NEXALINK_LOG_MAX_BYTES", "not-a-number")

    config = build_log_config(log_file_name="x.log")

    assert config.log_file == tmp_path / "logs" / "x.log"
    assert config.level == logging.DEBUG
    assert config.json is True
    assert config.stderr is False
    assert config.max_bytes == 2_000_000


def test_unknown_level_falls_back_to_default(monkeypatch) -> None:
    monkeypatch.setenv("NEXALINK_LOG_LEVEL", "chatty")
    assert build_log_config(default_level=logging.WARNING).level == logging.WARNING


def test_bound_and_event_fields_are_formatted() -> None:
    logger, records = _collecting_logger()

    with log_context(connection_id="c1", thread_id=None):
        log_event(logger, "task.start", started=True, model="gpt 5")
    log_event(logger, "task.done")

    first, second = records
    assert EventFormatter(fmt="%(message)s").format(first) == 'task.start connection_id=c1 model="gpt 5" started=True'
    assert EventFormatter(fmt="%(message)s").format(second) == "task.done"

    payload = json.loads(EventFormatter(as_json=True).format(first))
    assert payload["event"] == "task.start"
    assert payload["context"] == {"connection_id": "c1"}
    assert payload["fields"] == {"started": True, "model": "gpt 5"}


def test_plain_log_records_pick_up_bound_fields() -> None:
    logger, records = _collecting_logger("nexalink.plain")

    with log_context(cwd="/repo"):
        logger.warning("listing failed")
        (record,) = records
        assert EventFormatter(fmt="%(message)s").format(record) == "listing failed cwd=/repo"


def test_configure_logging_writes_rotating_file(tmp_path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(LogConfig(log_file=tmp_path / "out.log", level=logging.INFO))
        log_event(logging.getLogger("nexalink.check"), "store.ready", connections=2, ids=["a", "b"])
        for handler in root.handlers:
            handler.flush()

        assert [type(h) for h in root.handlers] == [RotatingFileHandler]
        assert 'store.ready connections=2 ids=["a","b"]' in (tmp_path / "out.log").read_text(encoding="utf-8")
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

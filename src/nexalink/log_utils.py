"""Logging setup for nexalink.

Records carry two kinds of key/value fields: the ones passed to ``log_event``
and the ones bound by an enclosing ``log_context`` block (connection id,
thread id, cwd). Both are rendered after the message, either as ``key=value``
pairs or as a JSON object per line.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Iterator

from nexalink import paths

DEFAULT_LOG_FILE = "nexalink.log"
DEFAULT_LOG_MAX_BYTES = 2_000_000
DEFAULT_LOG_BACKUPS = 3

_bound_fields: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar("nexalink_bound_fields", default={})


@dataclass(frozen=True)
class LogConfig:
    log_file: Path
    level: int = logging.INFO
    stderr: bool = False
    json: bool = False
    max_bytes: int = DEFAULT_LOG_MAX_BYTES
    backup_count: int = DEFAULT_LOG_BACKUPS


def _env_level(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper()) if raw else default
    return level if isinstance(level, int) else default


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw.isdigit() else default


def build_log_config(*, log_file_name: str = DEFAULT_LOG_FILE, default_level: int = logging.INFO) -> LogConfig:
    """Read ``NEXALINK_LOG_*`` overrides on top of the platform log directory."""

    override = os.getenv("NEXALINK_LOG_DIR")
    directory = paths.ensure_dir(Path(override)) if override else paths.log_dir()
    return LogConfig(
        log_file=directory / log_file_name,
        level=_env_level("NEXALINK_LOG_LEVEL", default_level),
        stderr=_env_flag("NEXALINK_LOG_STDERR"),
        json=_env_flag("NEXALINK_LOG_JSON"),
        max_bytes=_env_int("NEXALINK_LOG_MAX_BYTES", DEFAULT_LOG_MAX_BYTES),
        backup_count=_env_int("NEXALINK_LOG_BACKUPS", DEFAULT_LOG_BACKUPS),
    )


def configure_logging(config: LogConfig) -> None:
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(config.level)

    formatter = EventFormatter(as_json=config.json)
    file_handler = RotatingFileHandler(
        config.log_file, maxBytes=config.max_bytes, backupCount=config.backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if config.stderr:
        stderr_handler = logging.StreamHandler()
        stderr_handler.setFormatter(formatter)
        root.addHandler(stderr_handler)


@contextlib.contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind non-None ``fields`` to every record logged inside the block."""

    bound = {**_bound_fields.get(), **{key: value for key, value in fields.items() if value is not None}}
    token = _bound_fields.set(bound)
    try:
        yield
    finally:
        _bound_fields.reset(token)


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    logger.log(level, event, extra={"event_fields": fields, "bound_fields": dict(_bound_fields.get())})


def _pair(key: str, value: Any) -> str:
    if isinstance(value, str) and (not value or any(ch.isspace() or ch in '="' for ch in value)):
        return f"{key}={json.dumps(value)}"
    if isinstance(value, (list, tuple, dict)):
        return f"{key}={json.dumps(value, separators=(',', ':'), default=str)}"
    return f"{key}={value}"


class EventFormatter(logging.Formatter):
    """Appends bound and event fields as ``key=value`` text, or emits JSON lines."""

    def __init__(self, *, as_json: bool = False, fmt: str = "%(asctime)s %(levelname)s %(name)s %(message)s") -> None:
        super().__init__(fmt)
        self.as_json = as_json

    def format(self, record: logging.LogRecord) -> str:
        bound = getattr(record, "bound_fields", None)
        if bound is None:
            bound = dict(_bound_fields.get())
        fields = getattr(record, "event_fields", {})

        if self.as_json:
            payload: Dict[str, Any] = {
                "timestamp": self.formatTime(record),
                "level": record.levelname,
                "logger": record.name,
                "event": record.getMessage(),
            }
            if bound:
                payload["context"] = bound
            if fields:
                payload["fields"] = fields
            return json.dumps(payload, default=str)

        merged = {**bound, **fields}
        pairs = " ".join(_pair(key, merged[key]) for key in sorted(merged) if merged[key] is not None)
        base = super().format(record)
        return f"{base} {pairs}" if pairs else base

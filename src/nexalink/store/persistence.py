"""Load and save the saved-connection list as JSON."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import TypeAdapter, ValidationError

from nexalink import paths
from nexalink.config import LegacyConnectionSettings, legacy_connection_settings
from nexalink.log_utils import log_event
from nexalink.store.models import DEFAULT_HOST, DEFAULT_PORT, SavedConnection

logger = logging.getLogger(__name__)

_CONNECTIONS_ADAPTER = TypeAdapter(list[SavedConnection])


def load(path: Path | None = None, settings: LegacyConnectionSettings | None = None) -> list[SavedConnection]:
    """Return saved connections, seeding a "Local" entry when none are stored."""

    target = path or paths.connections_file()
    decoded = _decode(target)
    if decoded:
        return decoded

    migrated = migrated_default_connection(settings or legacy_connection_settings())
    save([migrated], target)
    log_event(logger, "connections.migrated_default", host=migrated.host, port=migrated.port)
    return [migrated]


def save(connections: list[SavedConnection], path: Path | None = None) -> None:
    target = path or paths.connections_file()
    payload = [connection.to_json_dict() for connection in connections]
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _decode(path: Path) -> list[SavedConnection]:
    if not path.exists():
        return []
    try:
        return _CONNECTIONS_ADAPTER.validate_json(path.read_bytes())
    except (OSError, UnicodeDecodeError, ValidationError) as exc:
        log_event(logger, "connections.decode_failed", level=logging.WARNING, path=str(path), error=str(exc))
        return []


def migrated_default_connection(settings: LegacyConnectionSettings) -> SavedConnection:
    host = settings.host or DEFAULT_HOST
    port = settings.port or DEFAULT_PORT

    if settings.url:
        parsed = host_and_port(settings.url)
        if parsed is not None:
            host, port = parsed

    return SavedConnection(name="Local", host=host, port=port, is_enabled=True)


def host_and_port(raw_url: str) -> tuple[str, str] | None:
    normalized = raw_url.strip()
    if not normalized:
        return None
    if "://" not in normalized:
        normalized = f"ws://{normalized}"
    try:
        parts = urlsplit(normalized)
        port = parts.port
    except ValueError:
        return None
    if not parts.hostname:
        return None
    return parts.hostname, str(port) if port is not None else DEFAULT_PORT

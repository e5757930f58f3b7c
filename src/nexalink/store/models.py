"""Value types shared by the connection store, composer and thread views."""

from __future__ import annotations

import string
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_COLOR_HEX = "#4A8DFF"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = "9281"


def normalized_hex_color(raw: str) -> str:
    trimmed = raw.strip().upper()
    prefixed = trimmed if trimmed.startswith("#") else f"#{trimmed}"
    if len(prefixed) != 7:
        return DEFAULT_COLOR_HEX
    if not all(ch in string.hexdigits for ch in prefixed[1:]):
        return DEFAULT_COLOR_HEX
    return prefixed


def port_digits(raw: str) -> str:
    return "".join(ch for ch in raw.strip() if ch.isdigit())


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class ActivityKind(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class AppThread:
    id: str
    cwd: str
    title: str
    subtitle: str
    updated_at: datetime


@dataclass(frozen=True)
class RunningTask:
    id: str
    name: str
    type: str
    thread_id: str
    turn_id: str
    started_at: datetime


@dataclass
class ActivityEntry:
    thread_id: str | None
    created_at: datetime
    kind: ActivityKind
    text: str
    image_urls: list[str] = field(default_factory=list)
    local_image_paths: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class ReasoningEffortOption:
    id: str
    reasoning_effort: str
    description: str = ""


@dataclass(frozen=True)
class ModelOption:
    id: str
    model: str
    display_name: str
    is_default: bool = False
    default_reasoning_effort: str = ""
    supported_reasoning_efforts: tuple[ReasoningEffortOption, ...] = ()


@dataclass(frozen=True)
class CollaborationModeOption:
    id: str
    mode: str
    display_name: str
    is_default: bool = False
    settings_model: str | None = None


@dataclass(frozen=True)
class CollaborationModeSelection:
    """Collaboration mode sent alongside a task submission."""

    mode: str
    model: str
    reasoning_effort: str | None = None


class SavedConnection(BaseModel):
    """A persisted app-server connection.

    Decoding tolerates older payloads that stored an ``ipAddress`` or a full
    ``url``/``serverURLString`` instead of ``host``/``port``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Connection"
    host: str = DEFAULT_HOST
    port: str = DEFAULT_PORT
    is_enabled: bool = Field(True, alias="isEnabled")
    color_hex: str = Field(DEFAULT_COLOR_HEX, alias="colorHex")

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        payload = dict(data)

        raw_id = _clean(payload.get("id"))
        payload["id"] = raw_id or str(uuid.uuid4())
        payload["name"] = _clean(payload.get("name")) or "Connection"

        host = _clean(payload.get("host"))
        port = _clean(payload.get("port"))
        legacy_ip = _clean(payload.get("ipAddress")) or _clean(payload.get("connectionIPAddress"))
        if not host:
            legacy_url = _clean(payload.get("url")) or _clean(payload.get("serverURLString"))
            if legacy_url:
                parsed_host, parsed_port = _split_url(legacy_url)
                if parsed_host:
                    host = parsed_host
                    if parsed_port:
                        port = parsed_port
        payload["host"] = host or legacy_ip or DEFAULT_HOST
        payload["port"] = port or DEFAULT_PORT

        for key in ("ipAddress", "connectionIPAddress", "url", "serverURLString"):
            payload.pop(key, None)
        if not isinstance(payload.get("isEnabled", payload.get("is_enabled", True)), bool):
            payload.pop("isEnabled", None)
            payload.pop("is_enabled", None)
        return payload

    @field_validator("color_hex", mode="before")
    @classmethod
    def _normalize_color(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_COLOR_HEX
        return normalized_hex_color(str(value))

    @property
    def normalized_host(self) -> str:
        return self.host.strip() or DEFAULT_HOST

    @property
    def normalized_port(self) -> str:
        return port_digits(self.port) or DEFAULT_PORT

    @property
    def url(self) -> str:
        return f"ws://{self.normalized_host}:{self.normalized_port}"

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _clean(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def _split_url(raw: str) -> tuple[str | None, str | None]:
    normalized = raw if "://" in raw else f"ws://{raw}"
    try:
        parts = urlsplit(normalized)
        port = parts.port
    except ValueError:
        return None, None
    return parts.hostname or None, str(port) if port is not None else None


@dataclass(frozen=True)
class MergedThread:
    """A server thread tagged with the connection it came from."""

    id: str
    connection_id: str
    connection_name: str
    connection_color_hex: str
    thread: AppThread

    @property
    def raw_thread_id(self) -> str:
        return self.thread.id

    @property
    def cwd(self) -> str:
        return self.thread.cwd

    @property
    def title(self) -> str:
        return self.thread.title

    @property
    def updated_at(self) -> datetime:
        return self.thread.updated_at


@dataclass(frozen=True)
class MergedRunningTask:
    id: str
    connection_id: str
    connection_name: str
    merged_thread_id: str
    task: RunningTask

    @property
    def name(self) -> str:
        return self.task.name

    @property
    def type(self) -> str:
        return self.task.type

    @property
    def started_at(self) -> datetime:
        return self.task.started_at


@dataclass(frozen=True)
class ConnectionStatus:
    id: str
    name: str
    host: str
    port: str
    is_enabled: bool
    color_hex: str
    state: ConnectionState

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    @property
    def state_label(self) -> str:
        return self.state.label


@dataclass(frozen=True)
class ConnectedProject:
    id: str
    connection_id: str
    project_path: str


@dataclass(frozen=True)
class ComposerChoice:
    id: str
    label: str
    value: str | None

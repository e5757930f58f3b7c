"""Input normalization for the connection editor and connect-project flow."""

from __future__ import annotations

import posixpath
from typing import Iterable

from nexalink.store.models import DEFAULT_COLOR_HEX, DEFAULT_HOST, DEFAULT_PORT, port_digits


class ConnectionDraftDefaults:
    host = DEFAULT_HOST
    port = DEFAULT_PORT
    color_hex = DEFAULT_COLOR_HEX


def merged_folder_options(remote_folders: Iterable[str], known_folders: Iterable[str]) -> list[str]:
    """Remote listing first, then known thread folders; trimmed and de-duplicated."""
    seen: set[str] = set()
    merged: list[str] = []
    for folder in [*remote_folders, *known_folders]:
        trimmed = folder.strip()
        if not trimmed or trimmed in seen:
            continue
        seen.add(trimmed)
        merged.append(trimmed)
    return merged


def parent_path(browse_path: str | None) -> str | None:
    if browse_path is None:
        return None
    trimmed = browse_path.strip()
    if not trimmed or trimmed == "/":
        return None
    parent = posixpath.dirname(trimmed.rstrip("/"))
    if not parent:
        return "/"
    if parent == trimmed:
        return None
    return parent


def resolved_folder_path(manual_path: str, selected_path: str | None) -> str | None:
    trimmed = manual_path.strip()
    if trimmed:
        return trimmed
    return selected_path.strip() if selected_path is not None else None


def normalized_host(raw_host: str, fallback: str = ConnectionDraftDefaults.host) -> str:
    return raw_host.strip() or fallback


def normalized_port(raw_port: str, fallback: str = ConnectionDraftDefaults.port) -> str:
    return port_digits(raw_port) or fallback


def can_submit_connection(name: str, host: str, normalized_port: str) -> bool:
    return bool(name.strip()) and bool(host.strip()) and bool(normalized_port)

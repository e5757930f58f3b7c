"""Multi-server connection store.

Owns the saved connection list, one ``ServerSession`` per connection and the
merged thread/task views derived from them. Task submission, thread archive
and folder browsing are routed to the session that owns the target.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from nexalink.log_utils import log_context, log_event
from nexalink.store import persistence
from nexalink.store.derived_state import DerivedState, build_derived_state, merged_id, parse_merged_id
from nexalink.store.models import (
    ActivityEntry,
    CollaborationModeOption,
    CollaborationModeSelection,
    ConnectionState,
    ConnectionStatus,
    MergedRunningTask,
    MergedThread,
    ModelOption,
    SavedConnection,
    normalized_hex_color,
    port_digits,
)
from nexalink.store.server import ServerFactory, ServerSession

logger = logging.getLogger(__name__)

NEW_THREAD_TITLE = "New thread"

ERROR_CONNECTION_NOT_FOUND = "Connection not found."
ERROR_CONNECTION_DISABLED = "Connection is disabled. Enable it in Settings first."
ERROR_SERVER_UNAVAILABLE = "Connection server is unavailable."
ERROR_NOT_CONNECTED = "Connection is not connected yet."
ERROR_FOLDER_REQUIRED = "Choose a folder path first."
ERROR_THREAD_UNAVAILABLE = "Thread is unavailable."
ERROR_CREATE_THREAD_FAILED = "Failed to create thread."


@dataclass(frozen=True, slots=True)
class _Target:
    connection: SavedConnection
    server: ServerSession
    raw_thread_id: str | None


class ConnectionStore:
    """Aggregate state across every saved app-server connection."""

    def __init__(
        self,
        server_factory: ServerFactory,
        *,
        storage_path: Path | None = None,
        connections: Iterable[SavedConnection] | None = None,
    ) -> None:
        self._server_factory = server_factory
        self._storage_path = storage_path
        if connections is None:
            self._connections = persistence.load(storage_path)
        else:
            self._connections = list(connections)
        self._servers: dict[str, ServerSession] = {}
        self._latest_task_start_counts: dict[str, int] = {}
        self._derived = DerivedState()
        self.task_start_success_count = 0
        self._reconcile()

    # -- derived views -----------------------------------------------------

    @property
    def connections(self) -> list[SavedConnection]:
        return list(self._connections)

    @property
    def connection_statuses(self) -> list[ConnectionStatus]:
        return list(self._derived.statuses)

    @property
    def merged_threads(self) -> list[MergedThread]:
        return list(self._derived.merged_threads)

    @property
    def merged_running_tasks(self) -> list[MergedRunningTask]:
        return list(self._derived.merged_running_tasks)

    @property
    def enabled_count(self) -> int:
        return self._derived.enabled_count

    @property
    def connected_enabled_count(self) -> int:
        return self._derived.connected_enabled_count

    @property
    def connection_summary_label(self) -> str:
        if self.enabled_count == 0:
            return "No Connections Enabled"
        return f"{self.connected_enabled_count}/{self.enabled_count} Connected"

    def server_for(self, connection_id: str) -> ServerSession | None:
        return self._servers.get(connection_id)

    def close(self) -> None:
        for server in self._servers.values():
            server.disconnect()

    # -- connection management --------------------------------------------

    def add_connection(self, name: str, host: str, port: str, color_hex: str) -> SavedConnection | None:
        trimmed_name = name.strip()
        trimmed_host = host.strip()
        digits = port_digits(port)
        if not trimmed_name or not trimmed_host or not digits:
            return None

        connection = SavedConnection(
            name=trimmed_name,
            host=trimmed_host,
            port=digits,
            is_enabled=True,
            color_hex=color_hex,
        )
        self._connections.append(connection)
        log_event(logger, "connections.added", connection_id=connection.id, url=connection.url)
        self._persist()
        self._reconcile()
        return connection

    def set_connection_enabled(self, is_enabled: bool, connection_id: str) -> None:
        connection = self._find(connection_id)
        if connection is None or connection.is_enabled == is_enabled:
            return
        connection.is_enabled = is_enabled
        self._persist()
        self._reconcile()

    def delete_connection(self, connection_id: str) -> None:
        connection = self._find(connection_id)
        if connection is None:
            return
        self._connections.remove(connection)
        log_event(logger, "connections.deleted", connection_id=connection_id)
        self._persist()
        self._reconcile()

    def update_connection(self, connection_id: str, name: str, host: str, port: str, color_hex: str) -> None:
        connection = self._find(connection_id)
        if connection is None:
            return

        trimmed_name = name.strip()
        trimmed_host = host.strip()
        digits = port_digits(port)
        if not trimmed_name or not trimmed_host or not digits:
            return

        connection.name = trimmed_name
        connection.host = trimmed_host
        connection.port = digits
        connection.color_hex = normalized_hex_color(color_hex)
        self._persist()
        self._reconcile()

    def set_connection_color(self, color_hex: str, connection_id: str) -> None:
        connection = self._find(connection_id)
        if connection is None:
            return
        normalized = normalized_hex_color(color_hex)
        if connection.color_hex == normalized:
            return
        connection.color_hex = normalized
        self._persist()
        self.refresh()

    # -- per-target queries ------------------------------------------------

    def available_models(self, selected_merged_thread_id: str | None) -> list[ModelOption]:
        target = self._target_context(selected_merged_thread_id)
        return list(target.server.available_models) if target else []

    def available_models_for_connection(self, connection_id: str) -> list[ModelOption]:
        server = self._enabled_server(connection_id)
        return list(server.available_models) if server is not None else []

    def available_collaboration_modes(self, selected_merged_thread_id: str | None) -> list[CollaborationModeOption]:
        target = self._target_context(selected_merged_thread_id)
        return list(target.server.available_collaboration_modes) if target else []

    def available_collaboration_modes_for_connection(self, connection_id: str) -> list[CollaborationModeOption]:
        server = self._enabled_server(connection_id)
        return list(server.available_collaboration_modes) if server is not None else []

    def can_start_task(self, selected_merged_thread_id: str | None) -> bool:
        target = self._target_context(selected_merged_thread_id)
        if target is None:
            return False
        return _ready_for_task(target.server)

    def can_start_task_for_connection(self, connection_id: str) -> bool:
        server = self._enabled_server(connection_id)
        return server is not None and _ready_for_task(server)

    def is_target_submitting_task(self, selected_merged_thread_id: str | None) -> bool:
        target = self._target_context(selected_merged_thread_id)
        return target is not None and target.server.is_submitting_task

    def is_submitting_task(self, connection_id: str) -> bool:
        server = self._enabled_server(connection_id)
        return server is not None and server.is_submitting_task

    def selected_thread_title(self, selected_merged_thread_id: str | None) -> str:
        if selected_merged_thread_id is None:
            return NEW_THREAD_TITLE

        for thread in self._derived.merged_threads:
            if thread.id == selected_merged_thread_id:
                return thread.title

        resolved = self._resolve_thread(selected_merged_thread_id)
        if resolved is not None:
            for thread in resolved.server.threads:
                if thread.id == resolved.raw_thread_id:
                    return thread.title

        parsed = parse_merged_id(selected_merged_thread_id)
        if parsed is not None:
            return f"Thread {parsed[1][:8]}"
        return NEW_THREAD_TITLE

    def activity_entries(self, selected_merged_thread_id: str | None) -> list[ActivityEntry]:
        if selected_merged_thread_id is None:
            return []
        resolved = self._resolve_thread(selected_merged_thread_id)
        if resolved is None:
            return []
        return [
            entry
            for entry in resolved.server.activity
            if entry.thread_id is None or entry.thread_id == resolved.raw_thread_id
        ]

    def known_project_folders(self, connection_id: str) -> list[str]:
        """Distinct thread folders for a connection, most recently updated first."""
        server = self._servers.get(connection_id)
        if server is None:
            return []
        seen: set[str] = set()
        folders: list[str] = []
        for thread in sorted(server.threads, key=lambda t: t.updated_at, reverse=True):
            trimmed = thread.cwd.strip()
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            folders.append(trimmed)
        return folders

    # -- task submission ---------------------------------------------------

    def start_task(
        self,
        prompt: str,
        selected_merged_thread_id: str | None,
        model: str | None,
        effort: str | None,
        collaboration_mode: CollaborationModeSelection | None,
    ) -> bool:
        target = self._target_context(selected_merged_thread_id)
        if target is None:
            log_event(logger, "task.start_rejected", level=logging.WARNING, reason="no_target")
            return False
        with log_context(connection_id=target.connection.id, thread_id=target.raw_thread_id):
            started = target.server.start_task(
                prompt,
                target.raw_thread_id,
                model,
                effort,
                collaboration_mode,
            )
            log_event(logger, "task.start", started=started, model=model, effort=effort)
        return started

    def start_task_in_project(
        self,
        prompt: str,
        connection_id: str,
        cwd: str,
        model: str | None,
        effort: str | None,
        collaboration_mode: CollaborationModeSelection | None,
    ) -> bool:
        server = self._enabled_server(connection_id)
        if server is None:
            log_event(logger, "task.start_rejected", level=logging.WARNING, reason="no_server", connection_id=connection_id)
            return False

        trimmed_cwd = cwd.strip()
        if not trimmed_cwd:
            return False

        with log_context(connection_id=connection_id, cwd=trimmed_cwd):
            started = server.start_task(
                prompt,
                None,
                model,
                effort,
                collaboration_mode,
                cwd=trimmed_cwd,
            )
            log_event(logger, "task.start", started=started, model=model, effort=effort)
        return started

    # -- thread operations -------------------------------------------------

    def load_thread_history(self, merged_thread_id: str) -> None:
        resolved = self._resolve_thread(merged_thread_id)
        if resolved is None:
            return
        resolved.server.load_thread_history(resolved.raw_thread_id)

    async def archive_thread(self, merged_thread_id: str) -> tuple[bool, str | None]:
        resolved = self._resolve_thread(merged_thread_id)
        if resolved is None:
            return False, ERROR_THREAD_UNAVAILABLE
        with log_context(connection_id=resolved.connection.id, thread_id=resolved.raw_thread_id):
            ok, error = await resolved.server.archive_thread(resolved.raw_thread_id)
            log_event(logger, "thread.archive", ok=ok, error=error)
        return ok, error

    async def create_thread(self, connection_id: str, cwd: str) -> tuple[str | None, str | None]:
        """Create a thread in ``cwd`` and return its merged id, or an error message."""
        server, error = self._checked_server(connection_id, require_connected=False)
        if server is None:
            return None, error

        trimmed_cwd = cwd.strip()
        if not trimmed_cwd:
            return None, ERROR_FOLDER_REQUIRED

        raw_thread_id, error = await server.create_thread(trimmed_cwd)
        if raw_thread_id:
            return merged_id(connection_id, raw_thread_id), None
        return None, error or ERROR_CREATE_THREAD_FAILED

    async def list_remote_folders(
        self, connection_id: str, cwd: str | None
    ) -> tuple[str | None, list[str], str | None]:
        server, error = self._checked_server(connection_id, require_connected=True)
        if server is None:
            return None, [], error
        return await server.list_directories(cwd)

    # -- internals ---------------------------------------------------------

    def refresh(self) -> None:
        """Rebuild merged views from the current session state."""
        self._derived = build_derived_state(self._connections, self._servers)

    def _find(self, connection_id: str) -> SavedConnection | None:
        for connection in self._connections:
            if connection.id == connection_id:
                return connection
        return None

    def _enabled_server(self, connection_id: str) -> ServerSession | None:
        connection = self._find(connection_id)
        if connection is None or not connection.is_enabled:
            return None
        return self._servers.get(connection_id)

    def _checked_server(
        self, connection_id: str, *, require_connected: bool
    ) -> tuple[ServerSession | None, str | None]:
        connection = self._find(connection_id)
        if connection is None:
            return None, ERROR_CONNECTION_NOT_FOUND
        if not connection.is_enabled:
            return None, ERROR_CONNECTION_DISABLED
        server = self._servers.get(connection_id)
        if server is None:
            return None, ERROR_SERVER_UNAVAILABLE
        if require_connected and server.state != ConnectionState.CONNECTED:
            return None, ERROR_NOT_CONNECTED
        return server, None

    def _resolve_thread(self, merged_thread_id: str) -> _Target | None:
        ids = self._derived.merged_thread_lookup.get(merged_thread_id)
        if ids is not None:
            connection_id, raw_thread_id = ids
            server = self._enabled_server(connection_id)
            connection = self._find(connection_id)
            if server is not None and connection is not None:
                return _Target(connection, server, raw_thread_id)

        parsed = parse_merged_id(merged_thread_id)
        if parsed is None:
            return None
        connection_id, raw_thread_id = parsed
        server = self._enabled_server(connection_id)
        connection = self._find(connection_id)
        if server is None or connection is None:
            return None
        return _Target(connection, server, raw_thread_id)

    def _target_context(self, selected_merged_thread_id: str | None) -> _Target | None:
        if selected_merged_thread_id is not None:
            resolved = self._resolve_thread(selected_merged_thread_id)
            if resolved is not None:
                return resolved

        enabled = [connection for connection in self._connections if connection.is_enabled]
        for connection in enabled:
            server = self._servers.get(connection.id)
            if server is not None and server.state == ConnectionState.CONNECTED:
                return _Target(connection, server, None)

        if enabled:
            fallback = self._servers.get(enabled[0].id)
            if fallback is not None:
                return _Target(enabled[0], fallback, None)
        return None

    def _persist(self) -> None:
        persistence.save(self._connections, self._storage_path)

    def _change_callback(self, connection_id: str) -> Callable[[], None]:
        def _on_change() -> None:
            server = self._servers.get(connection_id)
            if server is None:
                return
            self._record_task_start_count(connection_id, server.task_start_success_count)
            self.refresh()

        return _on_change

    def _record_task_start_count(self, connection_id: str, new_value: int) -> None:
        previous = self._latest_task_start_counts.get(connection_id, new_value)
        if new_value > previous:
            self.task_start_success_count += new_value - previous
        self._latest_task_start_counts[connection_id] = new_value

    def _reconcile(self) -> None:
        active_ids = {connection.id for connection in self._connections}

        for connection_id in [key for key in self._servers if key not in active_ids]:
            stale = self._servers.pop(connection_id)
            stale.disconnect()
            self._latest_task_start_counts.pop(connection_id, None)
            log_event(logger, "connections.session_dropped", connection_id=connection_id)

        for connection in self._connections:
            server = self._servers.get(connection.id)
            if server is None:
                server = self._server_factory(self._change_callback(connection.id))
                self._servers[connection.id] = server
                self._latest_task_start_counts[connection.id] = server.task_start_success_count

            target_url = connection.url
            url_changed = server.server_url != target_url
            if url_changed:
                server.server_url = target_url

            if connection.is_enabled:
                if url_changed:
                    if server.state != ConnectionState.DISCONNECTED:
                        server.disconnect()
                    server.connect()
                elif server.state in (ConnectionState.DISCONNECTED, ConnectionState.FAILED):
                    server.connect()
            elif server.state != ConnectionState.DISCONNECTED:
                server.disconnect()

        self.refresh()


def _ready_for_task(server: ServerSession) -> bool:
    return server.state == ConnectionState.CONNECTED and not server.is_submitting_task

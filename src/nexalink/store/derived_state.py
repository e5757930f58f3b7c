"""Flatten per-connection server state into merged, sorted views."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

from nexalink.store.models import (
    ConnectionState,
    ConnectionStatus,
    MergedRunningTask,
    MergedThread,
    SavedConnection,
)
from nexalink.store.server import ServerSession

MERGED_ID_SEPARATOR = "::"


def merged_id(connection_id: str, raw_id: str) -> str:
    return f"{connection_id}{MERGED_ID_SEPARATOR}{raw_id}"


def parse_merged_id(value: str) -> tuple[str, str] | None:
    connection_id, sep, raw_id = value.partition(MERGED_ID_SEPARATOR)
    if not sep or not connection_id or not raw_id:
        return None
    return connection_id, raw_id


@dataclass(frozen=True)
class DerivedState:
    statuses: list[ConnectionStatus] = field(default_factory=list)
    merged_threads: list[MergedThread] = field(default_factory=list)
    merged_running_tasks: list[MergedRunningTask] = field(default_factory=list)
    merged_thread_lookup: dict[str, tuple[str, str]] = field(default_factory=dict)
    enabled_count: int = 0
    connected_enabled_count: int = 0


def build_derived_state(
    connections: Sequence[SavedConnection],
    servers_by_connection_id: Mapping[str, ServerSession],
) -> DerivedState:
    statuses: list[ConnectionStatus] = []
    merged_threads: list[MergedThread] = []
    merged_running_tasks: list[MergedRunningTask] = []
    lookup: dict[str, tuple[str, str]] = {}
    enabled_count = 0
    connected_enabled_count = 0

    for connection in connections:
        server = servers_by_connection_id.get(connection.id)
        server_state = server.state if server is not None else ConnectionState.DISCONNECTED
        if connection.is_enabled:
            enabled_count += 1
            if server_state == ConnectionState.CONNECTED:
                connected_enabled_count += 1

        statuses.append(
            ConnectionStatus(
                id=connection.id,
                name=connection.name,
                host=connection.normalized_host,
                port=connection.normalized_port,
                is_enabled=connection.is_enabled,
                color_hex=connection.color_hex,
                state=server_state,
            )
        )

        if not connection.is_enabled or server is None:
            continue

        for thread in server.threads:
            thread_key = merged_id(connection.id, thread.id)
            lookup[thread_key] = (connection.id, thread.id)
            merged_threads.append(
                MergedThread(
                    id=thread_key,
                    connection_id=connection.id,
                    connection_name=connection.name,
                    connection_color_hex=connection.color_hex,
                    thread=thread,
                )
            )

        for task in server.running_tasks:
            merged_running_tasks.append(
                MergedRunningTask(
                    id=merged_id(connection.id, task.id),
                    connection_id=connection.id,
                    connection_name=connection.name,
                    merged_thread_id=merged_id(connection.id, task.thread_id),
                    task=task,
                )
            )

    merged_threads.sort(key=lambda item: item.updated_at, reverse=True)
    merged_running_tasks.sort(key=lambda item: item.started_at, reverse=True)

    return DerivedState(
        statuses=statuses,
        merged_threads=merged_threads,
        merged_running_tasks=merged_running_tasks,
        merged_thread_lookup=lookup,
        enabled_count=enabled_count,
        connected_enabled_count=connected_enabled_count,
    )

"""Interface the connection store expects from a live app-server session.

The transport (websocket, stdio, ...) lives outside this package; anything
with these attributes and methods can be plugged in through a factory.
"""

from __future__ import annotations

from typing import Callable, Protocol, Sequence

from nexalink.store.models import (
    ActivityEntry,
    AppThread,
    CollaborationModeOption,
    CollaborationModeSelection,
    ConnectionState,
    ModelOption,
    RunningTask,
)

ChangeCallback = Callable[[], None]


class ServerSession(Protocol):
    state: ConnectionState
    server_url: str
    threads: Sequence[AppThread]
    running_tasks: Sequence[RunningTask]
    activity: Sequence[ActivityEntry]
    available_models: Sequence[ModelOption]
    available_collaboration_modes: Sequence[CollaborationModeOption]
    is_submitting_task: bool
    task_start_success_count: int

    def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    def start_task(
        self,
        prompt: str,
        thread_id: str | None,
        model: str | None,
        effort: str | None,
        collaboration_mode: CollaborationModeSelection | None,
        cwd: str | None = None,
    ) -> bool: ...

    def load_thread_history(self, thread_id: str) -> None: ...

    async def archive_thread(self, thread_id: str) -> tuple[bool, str | None]: ...

    async def create_thread(self, cwd: str) -> tuple[str | None, str | None]: ...

    async def list_directories(self, cwd: str | None) -> tuple[str | None, list[str], str | None]: ...


# Called with the store's change callback; the session must invoke it whenever
# any attribute above changes.
ServerFactory = Callable[[ChangeCallback], ServerSession]


class DetachedSession:
    """A session that never dials out; used when only saved settings are edited."""

    def __init__(self, on_change: ChangeCallback) -> None:
        self._on_change = on_change
        self.state = ConnectionState.DISCONNECTED
        self.server_url = ""
        self.threads: list[AppThread] = []
        self.running_tasks: list[RunningTask] = []
        self.activity: list[ActivityEntry] = []
        self.available_models: list[ModelOption] = []
        self.available_collaboration_modes: list[CollaborationModeOption] = []
        self.is_submitting_task = False
        self.task_start_success_count = 0

    def connect(self) -> None:
        pass

    def disconnect(self) -> None:
        pass

    def start_task(
        self,
        prompt: str,
        thread_id: str | None,
        model: str | None,
        effort: str | None,
        collaboration_mode: CollaborationModeSelection | None,
        cwd: str | None = None,
    ) -> bool:
        return False

    def load_thread_history(self, thread_id: str) -> None:
        pass

    async def archive_thread(self, thread_id: str) -> tuple[bool, str | None]:
        return False, "Connection is not connected yet."

    async def create_thread(self, cwd: str) -> tuple[str | None, str | None]:
        return None, "Connection is not connected yet."

    async def list_directories(self, cwd: str | None) -> tuple[str | None, list[str], str | None]:
        return None, [], "Connection is not connected yet."

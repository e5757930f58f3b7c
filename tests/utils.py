from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable

from nexalink.store.models import (
    AppThread,
    CollaborationModeOption,
    ConnectionState,
    ModelOption,
    ReasoningEffortOption,
    RunningTask,
    SavedConnection,
)

BASE_TIME = datetime(2026, 2, 22, 12, 0, 0)


def make_thread(thread_id: str, cwd: str = "/repo", *, minutes_ago: int = 0, title: str | None = None) -> AppThread:
    return AppThread(
        id=thread_id,
        cwd=cwd,
        title=title or f"Thread {thread_id}",
        subtitle="",
        updated_at=BASE_TIME - timedelta(minutes=minutes_ago),
    )


def make_task(task_id: str, thread_id: str, *, minutes_ago: int = 0) -> RunningTask:
    return RunningTask(
        id=task_id,
        name=f"task {task_id}",
        type="turn",
        thread_id=thread_id,
        turn_id=f"turn-{task_id}",
        started_at=BASE_TIME - timedelta(minutes=minutes_ago),
    )


def make_connection(connection_id: str, *, name: str | None = None, enabled: bool = True, port: str = "9281") -> SavedConnection:
    return SavedConnection(id=connection_id, name=name or connection_id, host="127.0.0.1", port=port, is_enabled=enabled)


def model_option(model: str, *, is_default: bool = False, efforts: tuple[str, ...] = (), default_effort: str = "") -> ModelOption:
    return ModelOption(
        id=model,
        model=model,
        display_name=model.upper(),
        is_default=is_default,
        default_reasoning_effort=default_effort,
        supported_reasoning_efforts=tuple(ReasoningEffortOption(id=e, reasoning_effort=e) for e in efforts),
    )


def mode_option(mode: str, *, is_default: bool = False, settings_model: str | None = None) -> CollaborationModeOption:
    return CollaborationModeOption(
        id=mode,
        mode=mode,
        display_name=mode.title(),
        is_default=is_default,
        settings_model=settings_model,
    )


class FakeSession:
    """In-memory ServerSession that records calls."""

    def __init__(self, on_change: Callable[[], None]) -> None:
        self.on_change = on_change
        self.state = ConnectionState.DISCONNECTED
        self.server_url = ""
        self.threads: list[AppThread] = []
        self.running_tasks: list[RunningTask] = []
        self.activity: list[Any] = []
        self.available_models: list[ModelOption] = []
        self.available_collaboration_modes: list[CollaborationModeOption] = []
        self.is_submitting_task = False
        self.task_start_success_count = 0
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.start_calls: list[dict[str, Any]] = []
        self.start_result = True
        self.history_requests: list[str] = []
        self.archive_result: tuple[bool, str | None] = (True, None)
        self.archived: list[str] = []
        self.create_result: tuple[str | None, str | None] = ("new-thread", None)
        self.created_in: list[str] = []
        self.directories: tuple[str | None, list[str], str | None] = ("/", ["/repo"], None)

    def connect(self) -> None:
        self.connect_calls += 1
        self.state = ConnectionState.CONNECTED

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.state = ConnectionState.DISCONNECTED

    def start_task(self, prompt, thread_id, model, effort, collaboration_mode, cwd=None) -> bool:
        self.start_calls.append(
            {
                "prompt": prompt,
                "thread_id": thread_id,
                "model": model,
                "effort": effort,
                "collaboration_mode": collaboration_mode,
                "cwd": cwd,
            }
        )
        return self.start_result

    def load_thread_history(self, thread_id: str) -> None:
        self.history_requests.append(thread_id)

    async def archive_thread(self, thread_id: str):
        self.archived.append(thread_id)
        return self.archive_result

    async def create_thread(self, cwd: str):
        self.created_in.append(cwd)
        return self.create_result

    async def list_directories(self, cwd):
        return self.directories

    def update(self, **attrs: Any) -> None:
        for key, value in attrs.items():
            setattr(self, key, value)
        self.on_change()


class SessionRegistry:
    """Factory that keeps every session it builds, in creation order."""

    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []

    def __call__(self, on_change: Callable[[], None]) -> FakeSession:
        session = FakeSession(on_change)
        self.sessions.append(session)
        return session

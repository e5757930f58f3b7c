"""Selection bookkeeping triggered by thread/connection changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Awaitable, Callable, Protocol, Sequence

from nexalink.log_utils import log_event
from nexalink.project_identity import parse_project_selection_id
from nexalink.store.models import ConnectedProject, ConnectionStatus, MergedThread

logger = logging.getLogger(__name__)


class ThreadArchiver(Protocol):
    async def archive_thread(self, merged_thread_id: str) -> tuple[bool, str | None]: ...


@dataclass
class ThreadSelectionSideEffects:
    archiving_thread_ids: set[str] = field(default_factory=set)
    archive_error_message: str | None = None

    def clear_archive_error(self) -> None:
        self.archive_error_message = None

    def begin_new_thread_selection(self, project_id: str) -> tuple[str | None, str | None, bool]:
        """Returns (selected project, selected thread, scroll to bottom)."""
        return project_id, None, True

    def merged_threads_update(
        self,
        merged_threads: Sequence[MergedThread],
        selected_thread_id: str | None,
        plan_mode_enabled_thread_ids: AbstractSet[str],
    ) -> tuple[str | None, set[str]]:
        thread_ids = {thread.id for thread in merged_threads}
        selected = selected_thread_id if selected_thread_id in thread_ids else None
        return selected, set(plan_mode_enabled_thread_ids) & thread_ids

    def connection_statuses_update(
        self,
        statuses: Sequence[ConnectionStatus],
        connected_projects: Sequence[ConnectedProject],
        selected_project_id: str | None,
        plan_mode_enabled_project_ids: AbstractSet[str],
    ) -> tuple[list[ConnectedProject], str | None, set[str]]:
        """Forget projects, selection and plan flags of removed connections."""

        valid_ids = {status.id for status in statuses}
        projects = [project for project in connected_projects if project.connection_id in valid_ids]

        selected = selected_project_id
        if selected is not None:
            parsed = parse_project_selection_id(selected)
            if parsed is not None and parsed[0] not in valid_ids:
                selected = None

        project_modes: set[str] = set()
        for project_id in plan_mode_enabled_project_ids:
            parsed = parse_project_selection_id(project_id)
            if parsed is not None and parsed[0] in valid_ids:
                project_modes.add(project_id)

        return projects, selected, project_modes

    def selected_thread_change(
        self, thread_id: str | None, selected_project_id: str | None
    ) -> tuple[str | None, bool, str | None]:
        """Returns (selected project, scroll on next update, thread history to load)."""
        return (selected_project_id if thread_id is None else None), True, thread_id

    async def archive_thread(
        self,
        thread: MergedThread,
        connection_store: ThreadArchiver,
        on_archived: Callable[[], Awaitable[None] | None],
    ) -> None:
        thread_id = thread.id
        if thread_id in self.archiving_thread_ids:
            return
        self.archiving_thread_ids.add(thread_id)
        try:
            ok, error = await connection_store.archive_thread(thread_id)
        finally:
            self.archiving_thread_ids.discard(thread_id)

        if not ok:
            self.archive_error_message = error or f'Could not archive "{thread.title}".'
            log_event(logger, "thread.archive_failed", level=logging.WARNING, thread_id=thread_id, error=error)
            return

        result = on_archived()
        if result is not None:
            await result

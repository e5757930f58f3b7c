"""State for the connect-project wizard: pick a connection, then a folder."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence

from nexalink.connections.helpers import merged_folder_options, parent_path, resolved_folder_path
from nexalink.log_utils import log_event
from nexalink.project_identity import canonical_project_path, project_selection_id
from nexalink.store.models import ConnectedProject, ConnectionState, ConnectionStatus

logger = logging.getLogger(__name__)

ERROR_CONNECTION_REQUIRED = "Choose a connection first."
ERROR_FOLDER_REQUIRED = "Choose a folder path first."


class WizardStep(str, Enum):
    CONNECTION = "connection"
    FOLDER = "folder"


class FolderSource(Protocol):
    def known_project_folders(self, connection_id: str) -> list[str]: ...

    async def list_remote_folders(
        self, connection_id: str, cwd: str | None
    ) -> tuple[str | None, list[str], str | None]: ...


@dataclass(frozen=True)
class ProjectCreation:
    connected_projects: list[ConnectedProject]
    selected_project_id: str
    selected_thread_id: str | None = None
    scroll_to_bottom: bool = True


def preferred_connection_id(statuses: Sequence[ConnectionStatus]) -> str | None:
    """Enabled and connected first, then any enabled, then whatever is listed first."""
    for status in statuses:
        if status.is_enabled and status.state == ConnectionState.CONNECTED:
            return status.id
    for status in statuses:
        if status.is_enabled:
            return status.id
    return statuses[0].id if statuses else None


@dataclass
class ConnectProjectFlow:
    is_presented: bool = False
    step: WizardStep = WizardStep.CONNECTION
    connection_id: str | None = None
    selected_folder_path: str | None = None
    manual_folder_path: str = ""
    browse_path: str | None = None
    remote_folders: list[str] = field(default_factory=list)
    is_loading_folders: bool = False
    folder_load_generation: int = 0
    is_creating: bool = False
    error_message: str | None = None

    @property
    def trimmed_manual_folder_path(self) -> str:
        return self.manual_folder_path.strip()

    @property
    def parent_browse_path(self) -> str | None:
        return parent_path(self.browse_path)

    @property
    def resolved_folder_path(self) -> str | None:
        return resolved_folder_path(self.manual_folder_path, self.selected_folder_path)

    def _reset_folders(self) -> None:
        self.manual_folder_path = ""
        self.selected_folder_path = None
        self.browse_path = None
        self.remote_folders = []
        self.error_message = None

    def present(self, statuses: Sequence[ConnectionStatus]) -> None:
        self.dismiss()
        self.connection_id = preferred_connection_id(statuses)
        self.is_presented = True

    def dismiss(self) -> None:
        self._reset_folders()
        self.is_presented = False
        self.step = WizardStep.CONNECTION
        self.is_creating = False
        self.is_loading_folders = False
        self.folder_load_generation = 0

    def select_connection(self, connection_id: str) -> None:
        self.connection_id = connection_id
        self._reset_folders()

    def selected_connection(self, statuses: Sequence[ConnectionStatus]) -> ConnectionStatus | None:
        if self.connection_id is None:
            return None
        return next((status for status in statuses if status.id == self.connection_id), None)

    def move_to_step(self, step: WizardStep) -> None:
        self.error_message = None
        self.step = step

    def select_folder(self, folder_path: str) -> None:
        self.selected_folder_path = folder_path
        self.manual_folder_path = ""
        self.error_message = None

    def set_manual_folder_path(self, value: str) -> None:
        self.manual_folder_path = value
        if value.strip():
            self.selected_folder_path = None

    def can_continue(self, selected: ConnectionStatus | None) -> bool:
        return selected is not None and selected.is_enabled

    def can_create_project_thread(self, selected: ConnectionStatus | None) -> bool:
        if selected is None or not selected.is_enabled:
            return False
        if selected.state != ConnectionState.CONNECTED:
            return False
        if not self.resolved_folder_path:
            return False
        return not self.is_creating

    def folder_options(self, source: FolderSource) -> list[str]:
        known = source.known_project_folders(self.connection_id) if self.connection_id is not None else []
        return merged_folder_options(self.remote_folders, known)

    def begin_folder_load(self) -> int:
        self.folder_load_generation += 1
        self.is_loading_folders = True
        self.error_message = None
        return self.folder_load_generation

    def apply_folder_load_result(
        self,
        base_path: str | None,
        requested_cwd: str | None,
        folders: list[str],
        error_message: str | None,
    ) -> None:
        self.is_loading_folders = False
        if base_path:
            self.browse_path = base_path
        elif requested_cwd:
            self.browse_path = requested_cwd
        self.remote_folders = list(folders)
        self.error_message = error_message

    async def load_folders(self, source: FolderSource, cwd: str | None = None) -> None:
        """List ``cwd`` on the chosen connection; results of superseded loads are dropped."""

        connection_id = self.connection_id
        if connection_id is None:
            self.error_message = ERROR_CONNECTION_REQUIRED
            return

        generation = self.begin_folder_load()
        base_path, folders, error = await source.list_remote_folders(connection_id, cwd)
        if generation != self.folder_load_generation or connection_id != self.connection_id:
            log_event(logger, "connect_project.stale_folder_load", connection_id=connection_id, cwd=cwd)
            return

        self.apply_folder_load_result(base_path, cwd, folders, error or None)

        if not self.trimmed_manual_folder_path:
            options = self.folder_options(source)
            if self.selected_folder_path not in options:
                self.selected_folder_path = options[0] if options else None

    async def load_folders_if_needed(self, source: FolderSource) -> None:
        if not self.folder_options(source) and not self.is_loading_folders:
            await self.load_folders(source, self.browse_path)

    def create_project(self, connected_projects: Sequence[ConnectedProject]) -> ProjectCreation | None:
        connection_id = self.connection_id
        if connection_id is None:
            self.error_message = ERROR_CONNECTION_REQUIRED
            return None
        folder_path = self.resolved_folder_path
        if not folder_path:
            self.error_message = ERROR_FOLDER_REQUIRED
            return None

        project_path = canonical_project_path(folder_path)
        project_id = project_selection_id(connection_id, project_path)
        projects = list(connected_projects)
        if not any(project.id == project_id for project in projects):
            projects.insert(0, ConnectedProject(id=project_id, connection_id=connection_id, project_path=project_path))
            log_event(logger, "connect_project.created", project_id=project_id)

        self.dismiss()
        return ProjectCreation(connected_projects=projects, selected_project_id=project_id)

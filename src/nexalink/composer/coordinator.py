"""Composer task submission and the selection bookkeeping around it.

A prompt goes to the selected thread when there is one, otherwise to the
selected project (connection + folder). After a successful submission the UI
moves focus to a thread, and model/effort overrides are pruned whenever the
target's advertised options change.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Iterable, Protocol, Sequence

from nexalink.composer.selection import ComposerSelectionState
from nexalink.log_utils import log_event
from nexalink.project_identity import UNKNOWN_PROJECT_PATH, canonical_project_path, project_selection_id
from nexalink.store.models import CollaborationModeSelection, ComposerChoice, ConnectedProject, MergedThread

logger = logging.getLogger(__name__)


class TaskStarter(Protocol):
    def start_task(
        self,
        prompt: str,
        selected_merged_thread_id: str | None,
        model: str | None,
        effort: str | None,
        collaboration_mode: CollaborationModeSelection | None,
    ) -> bool: ...

    def start_task_in_project(
        self,
        prompt: str,
        connection_id: str,
        cwd: str,
        model: str | None,
        effort: str | None,
        collaboration_mode: CollaborationModeSelection | None,
    ) -> bool: ...


def start_task(
    prompt: str,
    selected_thread_id: str | None,
    selected_project_context: ConnectedProject | None,
    composer_selection: ComposerSelectionState,
    connection_store: TaskStarter,
) -> bool:
    """Submit ``prompt`` to the selected thread, else to the selected project.

    Returns the store's result unchanged, or False when there is no usable
    target (the store is not called in that case).
    """

    model = composer_selection.selected_model_value
    effort = composer_selection.selected_effort_value
    collaboration_mode = composer_selection.selected_collaboration_mode_value

    if selected_thread_id is not None:
        return connection_store.start_task(
            prompt,
            selected_thread_id,
            model,
            effort,
            collaboration_mode,
        )

    if selected_project_context is None or selected_project_context.project_path == UNKNOWN_PROJECT_PATH:
        log_event(logger, "composer.no_target", level=logging.DEBUG)
        return False

    return connection_store.start_task_in_project(
        prompt,
        selected_project_context.connection_id,
        selected_project_context.project_path,
        model,
        effort,
        collaboration_mode,
    )


def selection_after_task_start_success(
    selected_thread_id: str | None,
    selected_project_id: str | None,
    merged_threads: Sequence[MergedThread],
    plan_mode_enabled_project_ids: AbstractSet[str],
    plan_mode_enabled_thread_ids: AbstractSet[str],
) -> tuple[str | None, set[str]]:
    """Pick the thread to focus after a task started.

    A selected thread stays selected. Otherwise the first thread belonging to
    the selected project wins and inherits the project's plan-mode flag; with
    no match the first merged thread (if any) is selected.
    """

    thread_modes = set(plan_mode_enabled_thread_ids)
    if selected_thread_id is not None:
        return selected_thread_id, thread_modes

    if selected_project_id is not None:
        matching = _first_thread_in_project(merged_threads, selected_project_id)
        if matching is not None:
            if selected_project_id in plan_mode_enabled_project_ids:
                thread_modes.add(matching.id)
            return matching.id, thread_modes

    first_id = merged_threads[0].id if merged_threads else None
    return first_id, thread_modes


def _first_thread_in_project(merged_threads: Iterable[MergedThread], project_id: str) -> MergedThread | None:
    for thread in merged_threads:
        thread_project = project_selection_id(thread.connection_id, canonical_project_path(thread.cwd))
        if thread_project == project_id:
            return thread
    return None


def sanitize_model_and_effort_overrides(
    active_model_ids: Iterable[str],
    selected_model_override: str,
    selected_effort_override: str,
    effort_choices: Iterable[ComposerChoice],
) -> tuple[str, str]:
    """Clear overrides that no longer name an available model/effort."""

    model = selected_model_override
    if model and model not in set(active_model_ids):
        model = ""

    effort = sanitize_effort_override(selected_effort_override, effort_choices)
    return model, effort


def sanitize_effort_override(selected_effort_override: str, effort_choices: Iterable[ComposerChoice]) -> str:
    if not selected_effort_override:
        return ""
    if not any(choice.value == selected_effort_override for choice in effort_choices):
        return ""
    return selected_effort_override

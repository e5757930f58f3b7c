from nexalink.composer.coordinator import (
    sanitize_effort_override,
    sanitize_model_and_effort_overrides,
    selection_after_task_start_success,
    start_task,
)
from nexalink.composer.selection import ComposerSelectionState, reasoning_effort_display_name

__all__ = [
    "ComposerSelectionState",
    "reasoning_effort_display_name",
    "sanitize_effort_override",
    "sanitize_model_and_effort_overrides",
    "selection_after_task_start_success",
    "start_task",
]

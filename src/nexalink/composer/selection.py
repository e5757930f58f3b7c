"""Composer model/effort/collaboration-mode selection state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from nexalink.store.models import (
    CollaborationModeOption,
    CollaborationModeSelection,
    ComposerChoice,
    ModelOption,
)

SERVER_DEFAULT_LABEL = "Server Default"
DEFAULT_REASONING_LABEL = "Default Reasoning"
PLAN_MODE = "plan"
DEFAULT_MODE = "default"

_EFFORT_LABELS = {
    "none": "No Reasoning",
    "minimal": "Minimal",
    "low": "Low",
    "medium": "Medium",
    "high": "High",
    "xhigh": "Extra High",
}


def reasoning_effort_display_name(reasoning_effort: str) -> str:
    label = _EFFORT_LABELS.get(reasoning_effort)
    if label is not None:
        return label
    return " ".join(word.capitalize() for word in reasoning_effort.split(" "))


@dataclass(frozen=True)
class ComposerSelectionState:
    """What the composer controls show and what a submission will send.

    Overrides are free-form strings ("" means "use the server default") and
    only take effect while they still name an option the target server
    advertises.
    """

    active_model_options: Sequence[ModelOption] = ()
    active_collaboration_mode_options: Sequence[CollaborationModeOption] = ()
    selected_model_override: str = ""
    selected_effort_override: str = ""
    is_plan_mode_enabled_for_current_context: bool = False

    @property
    def default_model_option(self) -> ModelOption | None:
        for option in self.active_model_options:
            if option.is_default:
                return option
        return self.active_model_options[0] if self.active_model_options else None

    @property
    def default_model_label(self) -> str:
        option = self.default_model_option
        return option.display_name if option is not None else SERVER_DEFAULT_LABEL

    @property
    def model_choices(self) -> list[ComposerChoice]:
        choices = [ComposerChoice(id="model-default", label=f"Default ({self.default_model_label})", value=None)]
        choices.extend(
            ComposerChoice(id=f"model-{model.id}", label=model.display_name, value=model.model)
            for model in self.active_model_options
        )
        return choices

    @property
    def selected_model_value(self) -> str | None:
        override = self.selected_model_override
        if not override:
            return None
        if not any(option.model == override for option in self.active_model_options):
            return None
        return override

    @property
    def selected_model_option(self) -> ModelOption | None:
        value = self.selected_model_value
        if value is not None:
            for option in self.active_model_options:
                if option.model == value:
                    return option
        return self.default_model_option

    @property
    def default_reasoning_label(self) -> str:
        option = self.selected_model_option
        if option is None or not option.default_reasoning_effort:
            return DEFAULT_REASONING_LABEL
        return f"Default ({reasoning_effort_display_name(option.default_reasoning_effort)})"

    @property
    def effort_choices(self) -> list[ComposerChoice]:
        choices = [ComposerChoice(id="effort-default", label=self.default_reasoning_label, value=None)]
        option = self.selected_model_option
        if option is None:
            return choices

        seen: set[str] = set()
        for effort in option.supported_reasoning_efforts:
            if effort.reasoning_effort in seen:
                continue
            seen.add(effort.reasoning_effort)
            choices.append(
                ComposerChoice(
                    id=f"effort-{effort.id}",
                    label=reasoning_effort_display_name(effort.reasoning_effort),
                    value=effort.reasoning_effort,
                )
            )
        return choices

    @property
    def selected_effort_value(self) -> str | None:
        override = self.selected_effort_override
        if not override:
            return None
        if not any(choice.value == override for choice in self.effort_choices):
            return None
        return override

    @property
    def selected_model_label(self) -> str:
        value = self.selected_model_value
        if value is None:
            return self.default_model_label
        for choice in self.model_choices:
            if choice.value == value:
                return choice.label
        return value

    @property
    def selected_effort_label(self) -> str:
        value = self.selected_effort_value
        if value is not None:
            for choice in self.effort_choices:
                if choice.value == value:
                    return choice.label
            return value
        option = self.selected_model_option
        if option is None or not option.default_reasoning_effort:
            return "Reasoning"
        return reasoning_effort_display_name(option.default_reasoning_effort)

    @property
    def plan_collaboration_mode(self) -> CollaborationModeOption | None:
        for option in self.active_collaboration_mode_options:
            if option.mode.casefold() == PLAN_MODE:
                return option
        return None

    @property
    def default_collaboration_mode(self) -> CollaborationModeOption | None:
        for option in self.active_collaboration_mode_options:
            if option.mode.casefold() == DEFAULT_MODE:
                return option
        for option in self.active_collaboration_mode_options:
            if option.is_default:
                return option
        if self.plan_collaboration_mode is None:
            return None
        # Servers that only advertise "plan" still accept an explicit default.
        return CollaborationModeOption(
            id=DEFAULT_MODE,
            mode=DEFAULT_MODE,
            display_name="Default",
            is_default=True,
        )

    @property
    def collaboration_mode_model_value(self) -> str | None:
        if self.selected_model_value is not None:
            return self.selected_model_value
        default_model = self.default_model_option
        if default_model is not None and default_model.model:
            return default_model.model
        default_mode = self.default_collaboration_mode
        if default_mode is not None and default_mode.settings_model:
            return default_mode.settings_model
        plan_mode = self.plan_collaboration_mode
        if plan_mode is not None and plan_mode.settings_model:
            return plan_mode.settings_model
        return None

    @property
    def selected_collaboration_mode_value(self) -> CollaborationModeSelection | None:
        model = self.collaboration_mode_model_value
        if model is None:
            return None
        mode = self.plan_collaboration_mode if self.is_plan_mode_enabled_for_current_context else self.default_collaboration_mode
        if mode is None:
            return None
        return CollaborationModeSelection(mode=mode.mode, model=model, reasoning_effort=self.selected_effort_value)

    @property
    def can_toggle_plan_mode(self) -> bool:
        return self.plan_collaboration_mode is not None and self.collaboration_mode_model_value is not None

    @property
    def active_model_ids(self) -> list[str]:
        return [option.model for option in self.active_model_options]

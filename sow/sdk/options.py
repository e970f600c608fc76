"""Functional options for phases and project-level transitions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

from sow.sdk.types import Action, GuardTemplate, State

if TYPE_CHECKING:
    from sow.sdk.config import PhaseConfig, TransitionConfig
    from sow.sdk.project import Project

PhaseOpt = Callable[["PhaseConfig"], None]
TransitionOption = Callable[["TransitionConfig"], None]


def with_start_state(state: State) -> PhaseOpt:
    """Set the state in which the phase begins."""

    def apply(pc: PhaseConfig) -> None:
        pc.start_state = State(state)

    return apply


def with_end_state(state: State) -> PhaseOpt:
    """Set the state from which the phase is left when it completes."""

    def apply(pc: PhaseConfig) -> None:
        pc.end_state = State(state)

    return apply


def with_inputs(*types: str) -> PhaseOpt:
    """Restrict input artifact types. No types means any type is allowed."""

    def apply(pc: PhaseConfig) -> None:
        pc.allowed_input_types = tuple(types)

    return apply


def with_outputs(*types: str) -> PhaseOpt:
    """Restrict output artifact types. No types means any type is allowed."""

    def apply(pc: PhaseConfig) -> None:
        pc.allowed_output_types = tuple(types)

    return apply


def with_tasks() -> PhaseOpt:
    """Allow the phase to carry a task list."""

    def apply(pc: PhaseConfig) -> None:
        pc.supports_tasks = True

    return apply


def with_metadata_schema(schema: dict[str, type | tuple[type, ...]]) -> PhaseOpt:
    """Validate phase metadata against ``{key: type}``.

    Keys are optional; unknown keys and values of the wrong type are
    rejected by ``ProjectTypeConfig.validate``.
    """

    def apply(pc: PhaseConfig) -> None:
        pc.metadata_schema = dict(schema)

    return apply


def with_guard(
    description: str, guard_func: Optional[Callable[[Project], bool]]
) -> TransitionOption:
    """Gate the transition on ``guard_func(project)``.

    The description says what must hold and shows up in error messages and
    transition listings, e.g. ``with_guard("task list approved", ...)``.
    """

    def apply(tc: TransitionConfig) -> None:
        tc.guard_template = GuardTemplate(description=description, func=guard_func)

    return apply


def with_on_entry(action: Action) -> TransitionOption:
    """Run ``action(project)`` after entering the target state."""

    def apply(tc: TransitionConfig) -> None:
        tc.on_entry = action

    return apply


def with_on_exit(action: Action) -> TransitionOption:
    """Run ``action(project)`` before leaving the source state."""

    def apply(tc: TransitionConfig) -> None:
        tc.on_exit = action

    return apply


def with_failed_phase(phase_name: str) -> TransitionOption:
    """Mark ``phase_name`` failed (instead of completed) on this transition.

    Used by rework loops, e.g. review failing back to implementation.
    """

    def apply(tc: TransitionConfig) -> None:
        tc.failed_phase = phase_name

    return apply


def with_description(description: str) -> TransitionOption:
    """Human-readable description shown by transition listings."""

    def apply(tc: TransitionConfig) -> None:
        tc.description = description

    return apply

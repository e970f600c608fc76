"""Project type configuration: the compiled, read-only result of the builder.

A ``ProjectTypeConfig`` holds everything needed to run one project type:
phases, transitions with their guard and action templates, event
determiners, prompts and the initializer. It never changes after
``ProjectTypeConfigBuilder.build()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from sow.sdk import machine as fsm
from sow.sdk.errors import NoEventDeterminerError, StateValidationError
from sow.sdk.phases import (
    mark_phase_completed,
    mark_phase_failed,
    mark_phase_in_progress,
)
from sow.sdk.project import ArtifactState, PhaseState, Project, utcnow
from sow.sdk.types import (
    Action,
    Event,
    EventDeterminer,
    Guard,
    GuardTemplate,
    Initializer,
    PromptGenerator,
    State,
    Validator,
)

if TYPE_CHECKING:
    from sow.sdk.branch import BranchConfig

logger = logging.getLogger(__name__)


@dataclass
class PhaseConfig:
    """Static definition of one phase.

    Empty ``allowed_input_types`` / ``allowed_output_types`` allow any
    artifact type.
    """

    name: str
    start_state: State = State("")
    end_state: State = State("")
    allowed_input_types: tuple[str, ...] = ()
    allowed_output_types: tuple[str, ...] = ()
    supports_tasks: bool = False
    metadata_schema: Optional[dict[str, Any]] = None

    def contains_state(self, state: State) -> bool:
        """True if ``state`` is this phase's start or end state."""
        return bool(state) and state in (self.start_state, self.end_state)


@dataclass
class TransitionConfig:
    """A transition with its project-level guard and action templates."""

    from_state: State
    to_state: State
    event: Event
    guard_template: GuardTemplate = field(default_factory=GuardTemplate)
    on_entry: Optional[Action] = None
    on_exit: Optional[Action] = None
    failed_phase: str = ""
    description: str = ""


@dataclass(frozen=True)
class TransitionInfo:
    """Read-only summary of a transition for listings."""

    event: Event
    from_state: State
    to_state: State
    description: str = ""
    guard_description: str = ""


class _ProjectBinder:
    """Closes guard and action templates over one project instance."""

    def __init__(self, project: Project):
        self.project = project

    def guard(self, template: GuardTemplate, tc: TransitionConfig) -> Guard:
        project = self.project
        func = template.func

        def bound() -> bool:
            result = bool(func(project))
            logger.debug(
                f"Guard for {tc.event} from {tc.from_state}: "
                f"{template.description or 'unnamed'} -> {result}"
            )
            return result

        return bound

    def action(self, action: Action) -> fsm.MachineAction:
        project = self.project

        def bound() -> None:
            action(project)

        return bound


class ProjectTypeConfig:
    """Complete, immutable definition of a project type."""

    def __init__(
        self,
        name: str,
        initial_state: State,
        phases: Mapping[str, PhaseConfig],
        transitions: Sequence[TransitionConfig],
        on_advance: Mapping[State, EventDeterminer],
        prompts: Mapping[State, PromptGenerator],
        branches: Optional[Mapping[State, BranchConfig]] = None,
        orchestrator_prompt: Optional[PromptGenerator] = None,
        initializer: Optional[Initializer] = None,
        validator: Optional[Validator] = None,
    ):
        self._name = name
        self._initial_state = State(initial_state)
        self._phases = MappingProxyType(dict(phases))
        self._transitions = tuple(transitions)
        self._on_advance = MappingProxyType(dict(on_advance))
        self._prompts = MappingProxyType(dict(prompts))
        self._branches = MappingProxyType(dict(branches or {}))
        self._orchestrator_prompt = orchestrator_prompt
        self._initializer = initializer
        self._validator = validator

    def __repr__(self) -> str:
        return (
            f"ProjectTypeConfig(name={self._name!r}, "
            f"phases={list(self._phases)!r}, transitions={len(self._transitions)})"
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def initial_state(self) -> State:
        return self._initial_state

    @property
    def phases(self) -> Mapping[str, PhaseConfig]:
        """Phase configs in declaration order."""
        return self._phases

    @property
    def transitions(self) -> tuple[TransitionConfig, ...]:
        return self._transitions

    @property
    def branches(self) -> Mapping[State, BranchConfig]:
        return self._branches

    # Phase lookups

    def get_phase_for_state(self, state: State) -> Optional[str]:
        """Name of the phase whose start or end state is ``state``.

        Intermediate states of a phase do not match. When several phases
        share the state, the first declared one wins.
        """
        for name, phase in self._phases.items():
            if phase.contains_state(state):
                return name
        return None

    def is_phase_start_state(self, phase_name: str, state: State) -> bool:
        phase = self._phases.get(phase_name)
        return phase is not None and phase.start_state == state

    def is_phase_end_state(self, phase_name: str, state: State) -> bool:
        phase = self._phases.get(phase_name)
        return phase is not None and phase.end_state == state

    def task_supporting_phases(self) -> list[str]:
        return [name for name, phase in self._phases.items() if phase.supports_tasks]

    def phase_supports_tasks(self, phase_name: str) -> bool:
        phase = self._phases.get(phase_name)
        return phase is not None and phase.supports_tasks

    def default_task_phase(self, state: State) -> Optional[str]:
        """Phase new tasks go to when the project is in ``state``.

        Prefers the phase of the current state when it supports tasks, else
        the first task-supporting phase.
        """
        current = self.get_phase_for_state(state)
        if current is not None and self.phase_supports_tasks(current):
            return current
        supporting = self.task_supporting_phases()
        return supporting[0] if supporting else None

    # Transition lookups

    def get_transition(
        self, from_state: State, to_state: State, event: Event
    ) -> Optional[TransitionConfig]:
        for tc in self._transitions:
            if (
                tc.from_state == from_state
                and tc.to_state == to_state
                and tc.event == event
            ):
                return tc
        return None

    def _transition_for(self, from_state: State, event: Event) -> Optional[TransitionConfig]:
        for tc in self._transitions:
            if tc.from_state == from_state and tc.event == event:
                return tc
        return None

    def available_transitions(self, from_state: State) -> list[TransitionInfo]:
        """All configured transitions out of ``from_state``, sorted by event.

        Guards are not evaluated; use ``Machine.can_fire`` for that.
        """
        infos = [
            TransitionInfo(
                event=tc.event,
                from_state=tc.from_state,
                to_state=tc.to_state,
                description=tc.description,
                guard_description=tc.guard_template.description,
            )
            for tc in self._transitions
            if tc.from_state == from_state
        ]
        return sorted(infos, key=lambda info: info.event)

    def is_branching_state(self, state: State) -> bool:
        """True if ``state`` was declared with ``add_branch``."""
        return state in self._branches

    def event_determiner(self, state: State) -> Optional[EventDeterminer]:
        return self._on_advance.get(state)

    def determine_event(self, project: Project) -> Event:
        """Run the determiner for the project's current state.

        Raises:
            NoEventDeterminerError: No determiner for the current state
            EventDeterminationError: Raised by the determiner itself
        """
        state = project.current_state
        determiner = self.event_determiner(state)
        if determiner is None:
            raise NoEventDeterminerError(state)
        return determiner(project)

    # Prompts

    def get_state_prompt(self, state: State, project: Project) -> str:
        generator = self._prompts.get(state)
        if generator is None:
            return ""
        return generator(project)

    def orchestrator_prompt(self, project: Project) -> str:
        if self._orchestrator_prompt is None:
            return ""
        return self._orchestrator_prompt(project)

    # Machine

    def build_machine(self, project: Project, initial_state: State) -> fsm.Machine:
        """Build a machine whose guards and actions are bound to ``project``.

        Args:
            project: Project instance the templates close over
            initial_state: State the machine starts in (usually the persisted one)

        Returns:
            A ready-to-fire Machine
        """
        binder = _ProjectBinder(project)
        builder = fsm.MachineBuilder(
            initial_state,
            prompt_func=lambda state: self.get_state_prompt(state, project),
        )

        for tc in self._transitions:
            opts: list[fsm.TransitionOption] = []
            if tc.guard_template:
                opts.append(
                    fsm.with_guard_description(
                        tc.guard_template.description,
                        binder.guard(tc.guard_template, tc),
                    )
                )
            if tc.on_entry is not None:
                opts.append(fsm.with_on_entry(binder.action(tc.on_entry)))
            if tc.on_exit is not None:
                opts.append(fsm.with_on_exit(binder.action(tc.on_exit)))
            builder.add_transition(tc.from_state, tc.to_state, tc.event, *opts)

        return builder.build()

    def fire_with_phase_updates(
        self, machine: fsm.Machine, event: Event, project: Project
    ) -> None:
        """Fire ``event`` and keep phase statuses in step with the move.

        Phase statuses only change after the transition succeeded:

        - the transition's failed phase is marked failed
        - phases whose end state is left for a state outside the phase are
          marked completed, unless just marked failed
        - phases whose start state is entered are marked in_progress

        Phases missing from the project are skipped.

        Raises:
            TransitionError: Firing failed; neither state nor phases changed
        """
        from_state = machine.state
        transition = self._transition_for(from_state, event)

        machine.fire(event)
        to_state = machine.state

        failed = transition.failed_phase if transition is not None else ""
        if failed:
            if failed in project.phases:
                mark_phase_failed(project, failed)
            else:
                logger.debug(f"Failed phase {failed} not present in project")

        for name, phase in self._phases.items():
            if name not in project.phases:
                logger.debug(f"Skipping phase {name}: not present in project")
                continue
            if name == failed:
                continue
            if phase.end_state == from_state and not phase.contains_state(to_state):
                mark_phase_completed(project, name)

        for name, phase in self._phases.items():
            if phase.start_state == to_state and name in project.phases:
                mark_phase_in_progress(project, name)

        project.statechart.current_state = to_state
        project.statechart.updated_at = utcnow()

    # Lifecycle hooks

    def initialize(
        self,
        project: Project,
        initial_inputs: Optional[dict[str, list[ArtifactState]]] = None,
    ) -> None:
        """Set up the phases of a new project.

        Runs the configured initializer. Without one, every declared phase is
        created with its initial inputs.
        """
        inputs = initial_inputs or {}
        if self._initializer is not None:
            self._initializer(project, inputs)
            return

        now = utcnow()
        for name in self._phases:
            project.phases[name] = PhaseState(
                created_at=now, inputs=list(inputs.get(name, []))
            )

    def validate(self, project: Project) -> None:
        """Check project state against this configuration.

        Checks artifact types, task support and metadata schemas of every
        configured phase, then runs the custom validator.

        Raises:
            StateValidationError: Listing every issue found
        """
        issues: list[str] = []

        for name, phase_config in self._phases.items():
            phase = project.phases.get(name)
            if phase is None:
                continue
            issues.extend(
                _check_artifacts(name, "input", phase.inputs, phase_config.allowed_input_types)
            )
            issues.extend(
                _check_artifacts(
                    name, "output", phase.outputs, phase_config.allowed_output_types
                )
            )
            if phase.tasks and not phase_config.supports_tasks:
                issues.append(f"phase {name} does not support tasks")
            if phase_config.metadata_schema is not None:
                issues.extend(
                    _check_metadata(name, phase.metadata, phase_config.metadata_schema)
                )

        if issues:
            raise StateValidationError(
                f"project {project.name} is invalid for type {self._name}: "
                + "; ".join(issues)
            )

        if self._validator is not None:
            self._validator(project)


def _check_artifacts(
    phase_name: str,
    kind: str,
    artifacts: list[ArtifactState],
    allowed: tuple[str, ...],
) -> list[str]:
    if not allowed:
        return []
    return [
        f"phase {phase_name}: {kind} type {a.type!r} not allowed "
        f"(allowed: {', '.join(allowed)})"
        for a in artifacts
        if a.type not in allowed
    ]


def _check_metadata(
    phase_name: str, metadata: dict[str, Any], schema: dict[str, Any]
) -> list[str]:
    issues = []
    for key, value in metadata.items():
        expected = schema.get(key)
        if expected is None:
            issues.append(f"phase {phase_name}: unknown metadata key {key!r}")
        elif not isinstance(value, expected):
            issues.append(
                f"phase {phase_name}: metadata {key!r} has type "
                f"{type(value).__name__}, expected {_type_names(expected)}"
            )
    return issues


def _type_names(expected: Any) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__



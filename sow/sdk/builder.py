"""Fluent builder for ``ProjectTypeConfig``.

Project type packages describe their lifecycle with one chain:

    config = (
        ProjectTypeConfigBuilder("standard")
        .add_phase("planning", with_start_state(PLANNING_ACTIVE),
                   with_end_state(PLANNING_ACTIVE), with_outputs("task_list"))
        .set_initial_state(PLANNING_ACTIVE)
        .add_transition(PLANNING_ACTIVE, IMPLEMENTATION_PLANNING,
                        EVENT_COMPLETE_PLANNING, with_guard("task list approved", ...))
        .on_advance(PLANNING_ACTIVE, lambda p: EVENT_COMPLETE_PLANNING)
        .build()
    )
"""

from __future__ import annotations

import logging
from typing import Optional

from sow.sdk.branch import BranchConfig, BranchOption
from sow.sdk.config import PhaseConfig, ProjectTypeConfig, TransitionConfig
from sow.sdk.errors import (
    BranchNotFoundError,
    ConfigurationError,
    ConfigValidationError,
)
from sow.sdk.options import PhaseOpt, TransitionOption
from sow.sdk.types import (
    NO_PROJECT,
    Event,
    EventDeterminer,
    Initializer,
    PromptGenerator,
    State,
    Validator,
)

logger = logging.getLogger(__name__)


class ProjectTypeConfigBuilder:
    """Accumulates phases, transitions, determiners and hooks.

    Every method returns the builder so calls can be chained. ``build()``
    produces an immutable ``ProjectTypeConfig``; the builder itself can keep
    being used afterwards without affecting configs already built.
    """

    def __init__(self, name: str):
        self.name = name
        self._initial_state: State = State("")
        self._phases: dict[str, PhaseConfig] = {}
        self._transitions: list[TransitionConfig] = []
        self._on_advance: dict[State, EventDeterminer] = {}
        self._prompts: dict[State, PromptGenerator] = {}
        self._branches: dict[State, BranchConfig] = {}
        self._orchestrator_prompt: Optional[PromptGenerator] = None
        self._initializer: Optional[Initializer] = None
        self._validator: Optional[Validator] = None

    def add_phase(self, name: str, *opts: PhaseOpt) -> ProjectTypeConfigBuilder:
        """Declare a phase. Declaring a name twice replaces the first."""
        phase = PhaseConfig(name=name)
        for opt in opts:
            opt(phase)
        self._phases[name] = phase
        return self

    def set_initial_state(self, state: State) -> ProjectTypeConfigBuilder:
        self._initial_state = State(state)
        return self

    def add_transition(
        self,
        from_state: State,
        to_state: State,
        event: Event,
        *opts: TransitionOption,
    ) -> ProjectTypeConfigBuilder:
        """Add a transition with guard, actions and phase options."""
        self._transitions.append(
            _make_transition(from_state, to_state, event, opts)
        )
        return self

    def on_advance(
        self, state: State, determiner: EventDeterminer
    ) -> ProjectTypeConfigBuilder:
        """Register the event determiner used by ``advance()`` in ``state``.

        Replaces any determiner for the state, including one generated by
        ``add_branch``.
        """
        self._on_advance[State(state)] = determiner
        return self

    def add_branch(
        self, from_state: State, *opts: BranchOption
    ) -> ProjectTypeConfigBuilder:
        """Declare N-way branching out of ``from_state``.

        Generates one transition per ``when`` path (ordered by value) and a
        determiner that maps the discriminator's value to the path's event.
        A later ``on_advance`` for the same state overrides the generated
        determiner.

        Raises:
            ConfigurationError: No ``branch_on``, no ``when`` paths, an empty
                string path value, or the state already has a determiner
        """
        from_state = State(from_state)
        branch = BranchConfig(from_state=from_state)
        for opt in opts:
            opt(branch)

        if branch.discriminator is None:
            raise ConfigurationError(
                f"add_branch from state {from_state}: branch_on() is required"
            )
        if not branch.paths:
            raise ConfigurationError(
                f"add_branch from state {from_state}: at least one when() is required"
            )
        if "" in branch.paths:
            raise ConfigurationError(
                f"add_branch from state {from_state}: empty string is not a valid "
                f"branch value"
            )
        if from_state in self._on_advance:
            raise ConfigurationError(
                f"add_branch from state {from_state}: state already has an "
                f"event determiner"
            )

        for value in sorted(branch.paths):
            path = branch.paths[value]
            self._transitions.append(
                TransitionConfig(
                    from_state=from_state,
                    to_state=path.to_state,
                    event=path.event,
                    guard_template=path.guard_template,
                    on_entry=path.on_entry,
                    on_exit=path.on_exit,
                    failed_phase=path.failed_phase,
                    description=path.description,
                )
            )

        self._on_advance[from_state] = _branch_determiner(branch)
        self._branches[from_state] = branch
        return self

    def set_prompt(
        self, state: State, generator: PromptGenerator
    ) -> ProjectTypeConfigBuilder:
        self._prompts[State(state)] = generator
        return self

    def set_orchestrator_prompt(
        self, generator: PromptGenerator
    ) -> ProjectTypeConfigBuilder:
        self._orchestrator_prompt = generator
        return self

    def set_initializer(self, initializer: Initializer) -> ProjectTypeConfigBuilder:
        self._initializer = initializer
        return self

    def set_validator(self, validator: Validator) -> ProjectTypeConfigBuilder:
        self._validator = validator
        return self

    def build(self) -> ProjectTypeConfig:
        """Produce the immutable configuration without checking it."""
        return ProjectTypeConfig(
            name=self.name,
            initial_state=self._initial_state,
            phases=self._phases,
            transitions=self._transitions,
            on_advance=self._on_advance,
            prompts=self._prompts,
            branches=self._branches,
            orchestrator_prompt=self._orchestrator_prompt,
            initializer=self._initializer,
            validator=self._validator,
        )

    def build_with_validation(self) -> ProjectTypeConfig:
        """Build after checking the configuration for consistency.

        Raises:
            ConfigValidationError: Listing every issue found
        """
        issues = self.validation_issues()
        if issues:
            raise ConfigValidationError(issues)
        return self.build()

    def validation_issues(self) -> list[str]:
        """Return every consistency problem in the current configuration."""
        issues: list[str] = []

        if not self._initial_state:
            issues.append("initial state is not set")

        known_states: set[State] = set()
        for name, phase in self._phases.items():
            if bool(phase.start_state) != bool(phase.end_state):
                issues.append(
                    f"phase {name} must set both start and end state or neither"
                )
            known_states.update(s for s in (phase.start_state, phase.end_state) if s)

        if self._phases:
            if self._initial_state and self._initial_state not in known_states:
                issues.append(
                    f"initial state {self._initial_state} is not part of any phase"
                )

            # Intermediate states must be entered and left again
            sources = {tc.from_state for tc in self._transitions}
            targets = {tc.to_state for tc in self._transitions}
            for state in sorted((sources | targets) - known_states - {NO_PROJECT}):
                if state not in sources or state not in targets:
                    issues.append(
                        f"state {state} is not part of any phase and is "
                        f"{'never left' if state not in sources else 'never entered'}"
                    )

        seen: dict[tuple[State, Event], State] = {}
        for tc in self._transitions:
            key = (tc.from_state, tc.event)
            if key in seen:
                issues.append(
                    f"ambiguous transition: event {tc.event} from state "
                    f"{tc.from_state} leads to both {seen[key]} and {tc.to_state}"
                )
            else:
                seen[key] = tc.to_state

        return issues


def _make_transition(
    from_state: State,
    to_state: State,
    event: Event,
    opts: tuple[TransitionOption, ...],
) -> TransitionConfig:
    tc = TransitionConfig(
        from_state=State(from_state), to_state=State(to_state), event=Event(event)
    )
    for opt in opts:
        opt(tc)
    return tc


def _branch_determiner(branch: BranchConfig) -> EventDeterminer:
    discriminator = branch.discriminator
    events = {value: path.event for value, path in branch.paths.items()}

    def determine(project) -> Event:
        value = discriminator(project)
        logger.debug(f"Branch discriminator for {branch.from_state} returned {value!r}")
        event = events.get(value)
        if event is None:
            raise BranchNotFoundError(branch.from_state, value, list(events))
        return event

    return determine

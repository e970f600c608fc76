"""Generic finite state machine and its fluent builder.

The machine knows nothing about projects. Guards take no arguments and
actions take no arguments; ``ProjectTypeConfig.build_machine`` produces both
by binding project-level templates to one project instance.

A transition fires in this order:

1. guard check (``GuardFailedError`` if not met)
2. exit action of the transition
3. state change
4. entry action of the transition

If either action raises, the machine is left in the source state and
``TransitionActionError`` is raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sow.sdk.errors import (
    ConfigurationError,
    GuardFailedError,
    InvalidTriggerError,
    TransitionActionError,
)
from sow.sdk.types import Event, Guard, PromptFunc, State

logger = logging.getLogger(__name__)

MachineAction = Callable[[], None]


@dataclass
class MachineTransition:
    """One compiled transition of a machine."""

    from_state: State
    to_state: State
    event: Event
    guard: Optional[Guard] = None
    guard_description: str = ""
    on_entry: Optional[MachineAction] = None
    on_exit: Optional[MachineAction] = None


TransitionOption = Callable[[MachineTransition], None]


def with_guard(guard: Guard) -> TransitionOption:
    """Gate the transition on ``guard``."""

    def apply(t: MachineTransition) -> None:
        t.guard = guard

    return apply


def with_guard_description(description: str, guard: Guard) -> TransitionOption:
    """Gate the transition on ``guard``; ``description`` appears in errors."""

    def apply(t: MachineTransition) -> None:
        t.guard = guard
        t.guard_description = description

    return apply


def with_on_entry(action: MachineAction) -> TransitionOption:
    """Run ``action`` after the machine enters the target state."""

    def apply(t: MachineTransition) -> None:
        t.on_entry = action

    return apply


def with_on_exit(action: MachineAction) -> TransitionOption:
    """Run ``action`` before the machine leaves the source state."""

    def apply(t: MachineTransition) -> None:
        t.on_exit = action

    return apply


class Machine:
    """A state machine instance: current state plus a transition graph.

    Build instances with ``MachineBuilder``.
    """

    def __init__(
        self,
        initial_state: State,
        transitions: dict[State, dict[Event, MachineTransition]],
        prompt_func: Optional[PromptFunc] = None,
    ):
        self._state = State(initial_state)
        self._transitions = transitions
        self._prompt_func = prompt_func

    @property
    def state(self) -> State:
        """Current state."""
        return self._state

    def _lookup(self, event: Event) -> Optional[MachineTransition]:
        return self._transitions.get(self._state, {}).get(event)

    def can_fire(self, event: Event) -> bool:
        """Check whether ``event`` is valid now and its guard passes.

        Never mutates the machine.
        """
        transition = self._lookup(event)
        if transition is None:
            return False
        if transition.guard is None:
            return True
        return bool(transition.guard())

    def fire(self, event: Event) -> None:
        """Fire ``event``, running exit and entry actions around the change.

        Raises:
            InvalidTriggerError: No transition for ``event`` from this state
            GuardFailedError: The transition's guard is not met
            TransitionActionError: An action raised; the state is unchanged
        """
        source = self._state
        transition = self._lookup(event)
        if transition is None:
            raise InvalidTriggerError(source, event)

        if transition.guard is not None and not transition.guard():
            raise GuardFailedError(source, event, transition.guard_description)

        if transition.on_exit is not None:
            try:
                transition.on_exit()
            except Exception as e:
                raise TransitionActionError(source, event, "exit", e) from e

        self._state = transition.to_state

        if transition.on_entry is not None:
            try:
                transition.on_entry()
            except Exception as e:
                self._state = source
                raise TransitionActionError(source, event, "entry", e) from e

        logger.info(f"Transition {source} -> {self._state} on {event}")

    def permitted_triggers(self) -> list[Event]:
        """Events that can fire from the current state, in declaration order."""
        return [
            event
            for event in self._transitions.get(self._state, {})
            if self.can_fire(event)
        ]

    def guard_description(self, event: Event) -> str:
        """Description of the guard on ``event`` from the current state."""
        transition = self._lookup(event)
        if transition is None:
            return ""
        return transition.guard_description

    def prompt(self) -> str:
        """Guidance text for the current state, or an empty string."""
        if self._prompt_func is None:
            return ""
        return self._prompt_func(self._state) or ""


class MachineBuilder:
    """Fluent builder accumulating ``(from, to, event, options)`` triples."""

    def __init__(self, initial_state: State, prompt_func: Optional[PromptFunc] = None):
        self.initial_state = State(initial_state)
        self.prompt_func = prompt_func
        self._transitions: list[MachineTransition] = []

    def add_transition(
        self,
        from_state: State,
        to_state: State,
        event: Event,
        *opts: TransitionOption,
    ) -> MachineBuilder:
        """Add a transition; options attach a guard and entry/exit actions."""
        transition = MachineTransition(
            from_state=State(from_state), to_state=State(to_state), event=Event(event)
        )
        for opt in opts:
            opt(transition)
        self._transitions.append(transition)
        return self

    def build(self) -> Machine:
        """Compile the transitions into a machine.

        Raises:
            ConfigurationError: Two transitions leave one state on one event
        """
        graph: dict[State, dict[Event, MachineTransition]] = {}
        for t in self._transitions:
            by_event = graph.setdefault(t.from_state, {})
            if t.event in by_event:
                existing = by_event[t.event]
                raise ConfigurationError(
                    f"ambiguous transition: event '{t.event}' from state "
                    f"'{t.from_state}' leads to both '{existing.to_state}' "
                    f"and '{t.to_state}'"
                )
            by_event[t.event] = t
        return Machine(self.initial_state, graph, self.prompt_func)

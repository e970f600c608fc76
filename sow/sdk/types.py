"""Core vocabulary types for the project-type state machine SDK.

States and events are plain strings with a distinct type so that project type
packages can declare them as module constants:

    PLANNING_ACTIVE = State("PlanningActive")
    EVENT_COMPLETE_PLANNING = Event("complete_planning")

Guards, actions and determiners are ordinary callables. Templates take the
project they operate on; the machine-level variants take nothing and are
produced by binding a template to one project instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from sow.sdk.project import ArtifactState, Project


class State(str):
    """A node in a project type's state machine."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"State({str.__repr__(self)})"


class Event(str):
    """A named trigger selecting a transition out of the current state."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Event({str.__repr__(self)})"


# Shared by every project type: no active project exists.
NO_PROJECT = State("NoProject")


Guard = Callable[[], bool]
"""Side-effect free predicate evaluated by the machine."""

Action = Callable[["Project"], None]
"""Mutates the bound project during a transition; raises on failure."""

EventDeterminer = Callable[["Project"], Event]
"""Examines a project and returns the event to fire from its current state."""

PromptFunc = Callable[[State], str]
"""Machine-level prompt lookup for a state."""

PromptGenerator = Callable[["Project"], str]
"""Builds the guidance text for one state of one project."""

Initializer = Callable[["Project", "dict[str, list[ArtifactState]]"], None]
"""Sets up phases and metadata of a newly created project."""

Validator = Callable[["Project"], None]
"""Type-specific project validation; raises on invalid state."""


@dataclass(frozen=True)
class GuardTemplate:
    """Guard expressed over a project, bound to one instance later.

    The description explains what must hold for the transition and is used
    in error messages and transition listings.
    """

    description: str = ""
    func: Optional[Callable[["Project"], bool]] = None

    def __bool__(self) -> bool:
        return self.func is not None

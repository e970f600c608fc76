"""Declarative N-way branching.

A branch replaces a hand-written event determiner plus one transition per
outcome with a single declaration:

    builder.add_branch(
        REVIEW_ACTIVE,
        branch_on(get_review_assessment),
        when("pass", EVENT_REVIEW_PASS, FINALIZE_DOCUMENTATION),
        when("fail", EVENT_REVIEW_FAIL, IMPLEMENTATION_PLANNING,
             with_failed_phase("review")),
    )

The discriminator returns a string value; each ``when`` maps one value to an
event, a target state and the usual transition options.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from sow.sdk.config import TransitionConfig
from sow.sdk.options import TransitionOption
from sow.sdk.types import Action, Event, GuardTemplate, State

if TYPE_CHECKING:
    from sow.sdk.project import Project

logger = logging.getLogger(__name__)

Discriminator = Callable[["Project"], str]


@dataclass
class BranchPath:
    """One outcome of a branch: discriminator value to event and target."""

    value: str
    event: Event
    to_state: State
    guard_template: GuardTemplate = field(default_factory=GuardTemplate)
    on_entry: Optional[Action] = None
    on_exit: Optional[Action] = None
    failed_phase: str = ""
    description: str = ""


@dataclass
class BranchConfig:
    """A branching state under construction.

    Paths are keyed by discriminator value; declaring a value twice replaces
    the earlier path.
    """

    from_state: State
    discriminator: Optional[Discriminator] = None
    paths: dict[str, BranchPath] = field(default_factory=dict)


BranchOption = Callable[[BranchConfig], None]


def branch_on(discriminator: Discriminator) -> BranchOption:
    """Set the function that decides which path to take.

    The discriminator examines the project and returns a value matching one of
    the ``when`` clauses. Returning an empty string means the decision cannot
    be made yet.
    """

    def apply(bc: BranchConfig) -> None:
        bc.discriminator = discriminator

    return apply


def when(
    value: str, event: Event, to_state: State, *opts: TransitionOption
) -> BranchOption:
    """Declare the path taken when the discriminator returns ``value``.

    Args:
        value: Discriminator value selecting this path
        event: Event fired for this path
        to_state: Target state of the generated transition
        *opts: Transition options (guard, actions, failed phase, description)
    """

    def apply(bc: BranchConfig) -> None:
        if value in bc.paths:
            logger.warning(
                f"Branch value {value!r} from state {bc.from_state} declared "
                f"twice; the later declaration wins"
            )
        scratch = TransitionConfig(
            from_state=bc.from_state, to_state=State(to_state), event=Event(event)
        )
        for opt in opts:
            opt(scratch)
        bc.paths[value] = BranchPath(
            value=value,
            event=scratch.event,
            to_state=scratch.to_state,
            guard_template=scratch.guard_template,
            on_entry=scratch.on_entry,
            on_exit=scratch.on_exit,
            failed_phase=scratch.failed_phase,
            description=scratch.description,
        )

    return apply

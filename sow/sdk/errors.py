"""Error hierarchy for the project SDK.

Callers of ``Project.advance()`` need to tell three situations apart:

- ``ConfigurationError``: the project type definition itself is wrong
  (e.g. no event determiner for the current state).
- ``EventDeterminationError``: the project data is not yet in a shape that
  allows deciding the next event (e.g. no approved review exists).
- ``TransitionError``: the event is known but the transition is blocked or
  failed (guard not satisfied, action raised).
"""

from __future__ import annotations

from typing import Optional, Sequence


class SowError(Exception):
    """Base class for all sow errors."""

    pass


# Configuration errors


class ConfigurationError(SowError):
    """Raised when a project type or machine is misconfigured."""

    pass


class NoEventDeterminerError(ConfigurationError):
    """Raised when advance() is called in a state without a determiner."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"no event determiner for state {state}")


class ConfigValidationError(ConfigurationError):
    """Raised by build_with_validation() with every issue found."""

    def __init__(self, issues: Sequence[str]):
        self.issues = list(issues)
        joined = "\n  - ".join(self.issues)
        super().__init__(f"invalid project type configuration:\n  - {joined}")


class DuplicateProjectTypeError(ConfigurationError):
    """Raised when a project type name is registered twice."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"project type {name!r} is already registered")


class UnknownProjectTypeError(ConfigurationError):
    """Raised when a project type name is not in the registry."""

    def __init__(self, name: str, available: Sequence[str] = ()):
        self.name = name
        self.available = list(available)
        message = f"unknown project type: {name}"
        if self.available:
            message += f" (registered: {', '.join(self.available)})"
        super().__init__(message)


# Event determination errors


class EventDeterminationError(SowError):
    """Raised when the next event cannot be decided from project data."""

    pass


class BranchNotFoundError(EventDeterminationError):
    """Raised when a branch discriminator returns an unconfigured value."""

    def __init__(self, state: str, value: str, available: Sequence[str]):
        self.state = state
        self.value = value
        self.available = sorted(available)
        values = ", ".join(repr(v) for v in self.available)
        super().__init__(
            f"no branch defined for discriminator value {value!r} "
            f"from state {state} (available values: {values})"
        )


# Transition errors


class TransitionError(SowError):
    """Base class for blocked or failed transitions."""

    def __init__(self, message: str, state: str, event: str):
        self.state = state
        self.event = event
        super().__init__(message)


class InvalidTriggerError(TransitionError):
    """Raised when no transition leaves the current state on an event."""

    def __init__(self, state: str, event: str):
        super().__init__(
            f"trigger '{event}' is not valid from state '{state}'", state, event
        )


class GuardFailedError(TransitionError):
    """Raised by Machine.fire() when the transition's guard is not met."""

    def __init__(self, state: str, event: str, description: str = ""):
        self.description = description
        if description:
            message = (
                f"guard '{description}' failed for event '{event}' "
                f"from state '{state}'"
            )
        else:
            message = f"guard conditions not met for event '{event}' from state '{state}'"
        super().__init__(message, state, event)


class GuardBlockedError(TransitionError):
    """Raised by advance() when the determined event cannot fire.

    This represents unmet preconditions, not a bug. ``description`` carries
    the guard description so callers can tell the user what to do.
    """

    def __init__(self, state: str, event: str, description: str = ""):
        self.description = description
        message = f"cannot fire event {event} from state {state}"
        if description:
            message += f": requires {description}"
        super().__init__(message, state, event)


class TransitionActionError(TransitionError):
    """Raised when an entry or exit action fails; the state is unchanged."""

    def __init__(self, state: str, event: str, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(
            f"{stage} action failed for event '{event}' from state '{state}': {cause}",
            state,
            event,
        )


# State / persistence errors


class StateError(SowError):
    """Base class for project state and persistence errors."""

    pass


class ProjectNotFoundError(StateError):
    """Raised when no project state exists at the expected location."""

    pass


class PhaseNotFoundError(StateError):
    """Raised when a phase helper targets a phase the project lacks."""

    def __init__(self, phase: str, detail: Optional[str] = None):
        self.phase = phase
        super().__init__(detail or f"phase {phase} not found")


class StateValidationError(StateError):
    """Raised when project state violates its project type configuration."""

    pass

"""Advance command implementation.

Four modes:

- ``sow advance``: let the project type decide the next event
- ``sow advance EVENT``: fire a specific event
- ``sow advance --list``: show every transition out of the current state
- ``sow advance EVENT --dry-run``: check whether EVENT could fire now
"""

from typing import Optional

import typer
from rich.console import Console

from sow.core.context import ProjectContext
from sow.projects import build_registry
from sow.sdk.errors import (
    ConfigurationError,
    EventDeterminationError,
    ProjectNotFoundError,
    SowError,
    StateError,
    TransitionError,
)
from sow.sdk.project import Project
from sow.sdk.types import Event

console = Console()


class AdvanceError(Exception):
    """Exception raised when an advance mode cannot complete."""

    def __init__(
        self, message: str, hint: str = "See 'sow advance --help' for usage"
    ):
        self.hint = hint
        super().__init__(message)


def validate_flags(event: Optional[str], list_flag: bool, dry_run: bool) -> None:
    """Check flag and argument combinations.

    Raises:
        AdvanceError: If the combination is not allowed
    """
    if list_flag and dry_run:
        raise AdvanceError("cannot use --list and --dry-run together")
    if list_flag and event:
        raise AdvanceError("cannot specify event argument with --list flag")
    if dry_run and not event:
        raise AdvanceError("--dry-run requires an event argument")


def list_available_transitions(project: Project) -> None:
    """Print every configured transition out of the current state."""
    state = project.current_state
    transitions = project.config.available_transitions(state)

    console.print(f"Current state: {state}\n")

    if not transitions:
        console.print("No transitions available from current state.")
        console.print("This may be a terminal state.")
        return

    console.print("Available transitions:\n")
    blocked_count = 0
    for info in transitions:
        blocked = not project.machine.can_fire(info.event)
        if blocked:
            blocked_count += 1
        suffix = "  [BLOCKED]" if blocked else ""
        console.print(f"  sow advance {info.event}{suffix}", markup=False)
        console.print(f"    → {info.to_state}", markup=False)
        if info.description:
            console.print(f"    {info.description}", markup=False)
        if info.guard_description:
            console.print(f"    Requires: {info.guard_description}", markup=False)
        console.print()

    if blocked_count == len(transitions):
        console.print(
            "(All configured transitions are currently blocked by guard conditions)"
        )


def validate_transition(project: Project, event: Event) -> None:
    """Report whether ``event`` can fire now, without changing anything.

    Raises:
        AdvanceError: If the event is not configured or its guard blocks it
    """
    state = project.current_state
    console.print(f"Validating transition: {state} -> {event}\n")

    transition = _find_transition(project, event)
    if transition is None:
        console.print(f"✗ Event '{event}' is not configured for state {state}")
        console.print("Use 'sow advance --list' to see available transitions.")
        raise AdvanceError(
            f"event not configured: {event}",
            hint="Use 'sow advance --list' to see available transitions",
        )

    if not project.machine.can_fire(event):
        console.print("✗ Transition blocked by guard condition")
        if transition.guard_description:
            console.print(f"  Guard description: {transition.guard_description}")
        console.print("  Current status: Guard not satisfied")
        console.print("\nFix the guard condition, then try again.")
        raise AdvanceError(
            f"transition {event} blocked by guard",
            hint="Complete the step the guard describes (see 'sow status --prompt')",
        )

    console.print("✓ Transition is valid and can be executed\n")
    console.print(f"  Target state: {transition.to_state}")
    if transition.description:
        console.print(f"  Description: {transition.description}")
    console.print(f"\nTo execute: sow advance {event}")


def execute_explicit_transition(project: Project, event: Event) -> None:
    """Fire ``event`` with phase status updates.

    Raises:
        AdvanceError: If the event is not configured or blocked
        TransitionError: If firing failed
    """
    state = project.current_state
    console.print(f"Current state: {state}")

    transition = _find_transition(project, event)
    if transition is None:
        console.print(f"Event '{event}' is not configured for state {state}")
        raise AdvanceError(
            f"event not configured: {event}",
            hint="Use 'sow advance --list' to see available transitions",
        )

    if not project.machine.can_fire(event):
        requirement = transition.guard_description or "guard conditions"
        raise AdvanceError(
            f"cannot advance from {state} to {transition.to_state} via {event}: "
            f"requires {requirement}",
            hint=f"Run 'sow advance {event} --dry-run' to check prerequisites",
        )

    project.config.fire_with_phase_updates(project.machine, event, project)
    console.print(f"[green]✓[/green] Advanced to: {project.current_state}")


def execute_auto_transition(project: Project) -> Event:
    """Let the project type pick the next event and fire it."""
    state = project.current_state
    console.print(f"Current state: {state}")
    event = project.advance()
    console.print(f"[green]✓[/green] Advanced via {event} to: {project.current_state}")
    return event


def _find_transition(project: Project, event: Event):
    for info in project.config.available_transitions(project.current_state):
        if info.event == event:
            return info
    return None


def command(
    event: Optional[str] = typer.Argument(
        None, help="Event to fire (omit to let the project decide)"
    ),
    list_flag: bool = typer.Option(
        False, "--list", help="List transitions available from the current state"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Check whether EVENT can fire without firing it"
    ),
):
    """Advance the project to its next state.

    Without arguments the project type determines the event from the
    project's state. Guards are checked before anything changes, and the
    state file is only written after a successful transition.
    """
    try:
        validate_flags(event, list_flag, dry_run)

        context = ProjectContext()
        project = context.load_project(build_registry())

        if list_flag:
            list_available_transitions(project)
            return

        if dry_run:
            validate_transition(project, Event(event))
            return

        if event:
            execute_explicit_transition(project, Event(event))
        else:
            execute_auto_transition(project)

        context.save_project(project)

    except typer.Exit:
        raise
    except AdvanceError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        console.print(f"[yellow]Hint:[/yellow] {e.hint}")
        raise typer.Exit(code=1)
    except ProjectNotFoundError as e:
        console.print(f"[red]ERROR:[/red] No active project: {e}")
        console.print(
            "[yellow]Hint:[/yellow] Create one with: sow new <branch> <description>"
        )
        raise typer.Exit(code=1)
    except ConfigurationError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        console.print(
            "[yellow]Hint:[/yellow] Use 'sow advance --list' and fire an event explicitly"
        )
        raise typer.Exit(code=1)
    except EventDeterminationError as e:
        console.print(f"[red]ERROR:[/red] Cannot determine next event: {e}")
        console.print(
            "[yellow]Hint:[/yellow] Complete the current step (see 'sow status --prompt')"
        )
        raise typer.Exit(code=1)
    except TransitionError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        console.print(
            "[yellow]Hint:[/yellow] Ensure all prerequisites are met before advancing"
        )
        raise typer.Exit(code=1)
    except StateError as e:
        console.print(f"[red]ERROR:[/red] Invalid project state: {e}")
        console.print("[yellow]Hint:[/yellow] Check the project state file")
        raise typer.Exit(code=1)
    except SowError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        console.print("[yellow]Hint:[/yellow] Run with --verbose for details")
        raise typer.Exit(code=1)

"""Status command implementation."""

import typer
from rich.console import Console
from rich.table import Table

from sow.core.context import ProjectContext
from sow.projects import build_registry
from sow.sdk.errors import ProjectNotFoundError, SowError
from sow.sdk.project import PhaseStatus, Project

console = Console()

STATUS_STYLES = {
    PhaseStatus.NOT_STARTED: "dim",
    PhaseStatus.IN_PROGRESS: "cyan",
    PhaseStatus.COMPLETED: "green",
    PhaseStatus.FAILED: "red",
    PhaseStatus.ABANDONED: "yellow",
}


def build_phase_table(project: Project) -> Table:
    """Render phase statuses in declaration order."""
    table = Table(title="Phases")
    table.add_column("Phase", style="bold")
    table.add_column("Status")
    table.add_column("Iteration", justify="right")
    table.add_column("Inputs", justify="right")
    table.add_column("Outputs", justify="right")
    table.add_column("Tasks", justify="right")

    names = list(project.config.phases) if project.config else list(project.phases)
    for name in names:
        phase = project.phases.get(name)
        if phase is None:
            continue
        style = STATUS_STYLES.get(phase.status, "")
        table.add_row(
            name,
            f"[{style}]{phase.status.value}[/{style}]" if style else phase.status.value,
            str(phase.iteration),
            str(len(phase.inputs)),
            str(len(phase.outputs)),
            str(len(phase.tasks)),
        )
    return table


def command(
    show_prompt: bool = typer.Option(
        False, "--prompt", "-p", help="Show guidance for the current state"
    ),
):
    """Show the current project's state and phases."""
    try:
        context = ProjectContext()
        project = context.load_project(build_registry())

        console.print(f"\n[bold]Project:[/bold] {project.name} ({project.type})")
        console.print(f"[dim]Branch: {project.branch}[/dim]")
        if project.description:
            console.print(f"[dim]{project.description}[/dim]")
        console.print(f"\n[bold]Current state:[/bold] {project.current_state}")

        phase = project.config.get_phase_for_state(project.current_state)
        if phase:
            console.print(f"[bold]Phase:[/bold] {phase}")

        console.print()
        console.print(build_phase_table(project))

        if show_prompt:
            prompt = project.machine.prompt()
            console.print()
            if prompt:
                console.print(prompt, markup=False)
            else:
                console.print("[dim]No guidance for this state[/dim]")

    except ProjectNotFoundError as e:
        console.print(f"[red]ERROR:[/red] No active project: {e}")
        console.print(
            "[yellow]Hint:[/yellow] Create one with: sow new <branch> <description>"
        )
        raise typer.Exit(code=1)
    except SowError as e:
        console.print(f"[red]ERROR:[/red] Failed to load project: {e}")
        console.print("[yellow]Hint:[/yellow] Check the project state file")
        raise typer.Exit(code=1)

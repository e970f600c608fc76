"""New command implementation."""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from sow.core.context import ProjectContext
from sow.projects import build_registry
from sow.sdk.errors import SowError, UnknownProjectTypeError
from sow.state import loader

console = Console()


def command(
    branch: str = typer.Argument(..., help="Git branch the project lives on"),
    description: str = typer.Argument(..., help="What the project is about"),
    project_type: Optional[str] = typer.Option(
        None,
        "--type",
        "-t",
        help="Project type (default: detected from the branch prefix)",
    ),
):
    """Create a new project in the current repository.

    The project type is taken from --type, then from the config file's
    project.default_type, then from the branch prefix (explore/, design/,
    breakdown/). A prefix whose type is not registered, or any other
    branch, gives a standard project.
    """
    try:
        context = ProjectContext()

        if context.has_project():
            console.print(
                f"[red]ERROR:[/red] A project already exists: {context.state_file}"
            )
            console.print(
                "[yellow]Hint:[/yellow] Finish or delete the current project first"
            )
            raise typer.Exit(code=1)

        registry = build_registry()
        type_name = project_type or context.config.get("project.default_type")

        project = loader.create(
            context.backend(),
            registry,
            branch,
            description,
            project_type=type_name,
        )

        console.print(
            Panel(
                f"[green]✓[/green] Project created: [bold]{project.name}[/bold]\n\n"
                f"Type:   {project.type}\n"
                f"Branch: {project.branch}\n"
                f"State:  {project.current_state}\n"
                f"File:   {context.state_file}",
                title="✅ Project Created",
                border_style="green",
            )
        )

        prompt = project.machine.prompt()
        if prompt:
            console.print()
            console.print(prompt, markup=False)

    except typer.Exit:
        raise
    except UnknownProjectTypeError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        console.print(
            "[yellow]Hint:[/yellow] Pass --type with one of the registered types"
        )
        raise typer.Exit(code=1)
    except SowError as e:
        console.print(f"[red]ERROR:[/red] Failed to create project: {e}")
        console.print("[yellow]Hint:[/yellow] Check the branch name and description")
        raise typer.Exit(code=1)

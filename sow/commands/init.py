"""Init command implementation."""

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from sow.core.config import Config
from sow.core.context import ProjectContext

console = Console()


def build_paths_table(config: Config) -> Table:
    """Show where sow keeps project state for the current repository."""
    context = ProjectContext(config=config)

    table = Table(title="Resolved paths")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("paths.sow_dir", str(config.get("paths.sow_dir")))
    table.add_row("paths.state_file", str(config.get("paths.state_file")))
    table.add_row("repository root", str(context.repo_root))
    table.add_row("state file", str(context.state_file))
    table.add_row(
        "project",
        "[green]present[/green]" if context.has_project() else "[dim]none[/dim]",
    )
    return table


def command(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite existing configuration"
    ),
    show_config: bool = typer.Option(
        False, "--show", help="Show default configuration without creating"
    ),
):
    """Initialize sow configuration (XDG-compliant).

    Creates ~/.config/sow/config.toml with default settings and reports
    where the current repository's project state lives under them.
    """
    config = Config()

    # Show config and exit
    if show_config:
        console.print("\n[bold]Default configuration:[/bold]\n")
        syntax = Syntax(
            Config.get_default_config(), "toml", theme="monokai", line_numbers=True
        )
        console.print(syntax)
        console.print(f"\n[dim]Would be created at: {config.config_file}[/dim]\n")
        console.print(build_paths_table(config))
        return

    if config.exists() and not force:
        console.print(
            Panel(
                f"[yellow]Configuration already exists:[/yellow]\n"
                f"{config.config_file}\n\n"
                f"Use [bold]--force[/bold] to overwrite or [bold]--show[/bold] to view default config",
                title="⚠️  Config Exists",
                border_style="yellow",
            )
        )
        console.print(build_paths_table(config))
        raise typer.Exit(code=1)

    try:
        if force and config.exists():
            config.config_file.unlink()
            console.print("[yellow]Removed existing config[/yellow]")

        config_path = config.create_default()
        # Re-read so the table reflects the file just written
        config = Config(config.config_dir)

        console.print(
            Panel(
                f"[green]✓[/green] Configuration created: [bold]{config_path}[/bold]\n\n"
                f"[dim]Edit the config file to change paths and log level.[/dim]",
                title="✅ Sow Initialized",
                border_style="green",
            )
        )
        console.print(build_paths_table(config))

    except FileExistsError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        console.print("[yellow]Hint:[/yellow] Use --force to overwrite")
        raise typer.Exit(code=1)
    except OSError as e:
        console.print(f"[red]ERROR:[/red] Failed to create configuration: {e}")
        console.print("[yellow]Hint:[/yellow] Check permissions of the config directory")
        raise typer.Exit(code=1)

"""Main Typer application instance."""

import logging

import typer

from sow.commands import advance, init, new, status
from sow.core.config import Config

app = typer.Typer(
    name="sow",
    help="Drive multi-phase projects through their project type's state machine",
    add_completion=False,
)

# Register commands
app.command(name="init")(init.command)
app.command(name="new")(new.command)
app.command(name="advance")(advance.command)
app.command(name="status")(status.command)


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging for every command."""
    if verbose:
        level = logging.DEBUG
    else:
        level_name = str(Config().get("logging.level", "WARNING")).upper()
        level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(
        level=level, format="%(levelname)s %(name)s: %(message)s", force=True
    )


def main():
    """Entry point for pip-installed command."""
    app()


if __name__ == "__main__":
    main()

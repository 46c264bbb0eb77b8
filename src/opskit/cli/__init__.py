"""CLI interface using Typer."""

import typer

from .common import configure_logging, console, state

app = typer.Typer(name="opskit", help="Sysadmin helpers for git branches and ClearCase inventory")


@app.callback()
def main(
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Debug tracing of every external command"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Print mutating commands instead of running them"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Answer yes to all questions"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colorized output"),
):
    """Global options shared by every command."""
    state.verbose = verbose
    state.dry_run = dry_run
    state.assume_yes = yes
    state.no_color = no_color
    console.no_color = no_color
    configure_logging(verbose)


# Import subcommand modules to register them
from . import gitup_cmds  # noqa: F401, E402
from . import vob_cmds  # noqa: F401, E402
from . import view_cmds  # noqa: F401, E402
from . import config_cmds  # noqa: F401, E402

"""Shared console, global flags and the error boundary used by every command module."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar, cast

import typer
from rich.console import Console
from rich.markup import escape

from ..core.errors import OpskitError

F = TypeVar("F", bound=Callable[..., Any])

console = Console()


@dataclass
class AppState:
    """Global CLI flags, set by the root callback."""

    verbose: int = 0
    dry_run: bool = False
    assume_yes: bool = False
    no_color: bool = False


state = AppState()


def configure_logging(verbose: int) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, stream=sys.stderr, format="DEBUG: %(message)s" if verbose else "%(levelname)s: %(message)s", force=True)


def make_runner(audit_log: str | Path | None = None, assume_yes: bool | None = None):
    """Build a CommandRunner honouring --dry-run and --yes."""
    from ..core.commands import CommandRunner

    return CommandRunner(
        dry_run=state.dry_run,
        assume_yes=state.assume_yes if assume_yes is None else assume_yes,
        audit_log=audit_log,
        console=console,
    )


def handle_errors(func: F) -> F:
    """Turn OpskitError into a red message and exit status 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except OpskitError as e:
            console.print(f"[red]ERROR:[/red] {escape(str(e))}", highlight=False, soft_wrap=True)
            raise typer.Exit(1)
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled.[/dim]")
            raise typer.Exit(130)

    return cast(F, wrapper)


def clearcase_settings():
    """The ``[clearcase]`` settings, with per-repo overrides when run inside a working copy."""
    from ..clearcase.cleartool import ClearCaseSettings
    from ..core.config import load_config
    from ..core.git_utils import find_git_root

    return ClearCaseSettings.from_config(load_config(find_git_root())["clearcase"])


def clearcase_runner(settings, assume_yes: bool | None = None):
    """A runner that asks before every ClearCase change (unless --yes) and audits to the save dir."""
    return make_runner(audit_log=settings.cache().log_file, assume_yes=assume_yes)


def split_fields(fields: str) -> list[str]:
    return [f.strip() for f in fields.split(",") if f.strip()]

"""Configuration command."""

from __future__ import annotations

import typer

from . import app
from .common import console


@app.command()
def config(
    key: str | None = typer.Argument(None, help="Config key (dotted notation, e.g. gitup.remote)"),
    value: str | None = typer.Argument(None, help="Value to set"),
    global_scope: bool = typer.Option(False, "--global", "-g", help="Write to the global config even inside a repository"),
):
    """Get or set configuration."""
    from ..core.config import get_config_value, load_config, save_config
    from ..core.git_utils import find_git_root

    repo_path = find_git_root()

    if key is None:
        cfg = load_config(repo_path)
        console.print_json(data=cfg)
        return

    if value is None:
        cfg = load_config(repo_path)
        val = get_config_value(cfg, key)
        if val is None:
            console.print(f"[yellow]Key not found:[/yellow] {key}")
        else:
            console.print(f"{key} = {val}", markup=False, highlight=False)
        return

    path = save_config(None if global_scope else repo_path, key, value)
    console.print(f"[green]Set[/green] {key} = {value} [dim]({path})[/dim]")

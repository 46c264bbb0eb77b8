"""gitup: branch status report and guarded update against a remote."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.text import Text

from . import app
from .common import console, handle_errors, make_runner

_STYLES = {
    "up to date": "green",
    "behind": "yellow",
    "ahead": "cyan",
    "diverged": "magenta",
    "no remote": "dim",
}


def _render_line(line) -> Text:
    text = Text()
    text.append("* " if line.is_current else "  ", style="bold green" if line.is_current else "")
    text.append(line.status.branch, style="bold" if line.is_current else "")
    style = "red" if line.is_current and line.safety.unsafe else _STYLES.get(line.status.state.value, "")
    text.append(" ( ")
    text.append(line.phrase, style=style)
    text.append(" )")
    return text


@app.command("gitup")
@handle_errors
def gitup(
    remote: Optional[str] = typer.Option(None, "--remote", "-r", help="Remote to compare against (required with several remotes)"),
    update: bool = typer.Option(False, "--update", "-u", help="Pull every branch that is behind its remote branch"),
    force_all: bool = typer.Option(False, "--force-all", "-f", help="Also pull branches that are ahead of or diverged from their remote (implies --update)"),
    rebase: Optional[bool] = typer.Option(None, "--rebase/--merge", help="Pull with rebase instead of merge (implies --update)"),
    prune: Optional[bool] = typer.Option(None, "--prune/--no-prune", help="Prune stale remote-tracking branches when fetching"),
    ask: bool = typer.Option(False, "--ask", help="Confirm each git command before running it"),
    repo: Optional[Path] = typer.Option(None, "--repo", help="Working copy to operate on (default: current directory)"),
):
    """Show how each local branch relates to its remote branch, optionally updating them."""
    from ..core.branch_sync import SyncContext, resolve_remote, status_report, update_branches
    from ..core.config import load_config
    from ..core.errors import NotAGitRepoError
    from ..core.git_utils import find_git_root

    start = str(repo) if repo else "."
    repo_path = find_git_root(start)
    if not repo_path:
        raise NotAGitRepoError(str(Path(start).resolve()))

    cfg = load_config(repo_path)["gitup"]
    rebase_style = rebase if rebase is not None else bool(cfg.get("rebase"))
    if prune is None:
        prune = bool(cfg.get("prune"))

    ctx = SyncContext(
        repo_path=repo_path,
        remote=resolve_remote(repo_path, remote or cfg.get("remote") or None),
        update=update or force_all or bool(rebase),
        force_all=force_all,
        rebase=rebase_style,
        prune=prune,
    )
    runner = make_runner(assume_yes=not (ask or cfg.get("confirm")))

    if not ctx.update:
        report = status_report(ctx, runner)
        for line in report.lines:
            console.print(_render_line(line), soft_wrap=True)
        return

    result = update_branches(ctx, runner)
    for line in result.report.lines:
        console.print(_render_line(line), soft_wrap=True)
    if result.updated:
        console.print(f"[green]Updated:[/green] {', '.join(result.updated)}", highlight=False)
    if result.failed:
        console.print(f"[yellow]Failed:[/yellow] {', '.join(result.failed)} (run with -v for details)", highlight=False)
    if result.checked_out and result.checked_out != result.report.current_branch:
        console.print(
            f"[yellow]Warning:[/yellow] could not return to {result.report.current_branch}, {result.checked_out} is still checked out",
            highlight=False,
            soft_wrap=True,
        )

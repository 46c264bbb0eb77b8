"""ClearCase vob inventory commands."""

from __future__ import annotations

from typing import Optional

import typer
from rich.table import Table

from . import app
from .common import clearcase_runner, clearcase_settings, console, handle_errors, split_fields

vob_app = typer.Typer(help="ClearCase vob inventory and registration")
app.add_typer(vob_app, name="vob")

_SUMMARY_COLUMNS = ["tag", "host", "flevel", "age", "lastage", "lastby", "gpath"]


@vob_app.command("init")
@handle_errors
def vob_init(
    deep: bool = typer.Option(False, "--deep", help="Also scan each vob's history (slow)"),
    region: str = typer.Option("", "--region", help="Cache the listing of another region"),
):
    """Refresh the cached vob listing and descriptions."""
    from ..clearcase.vobs import init_vobs

    settings = clearcase_settings()
    summary = init_vobs(settings, clearcase_runner(settings, assume_yes=True), deep=deep, region=region)
    if summary["vobs"]:
        console.print(f"[green]Described {len(summary['vobs'])} vobs[/green] in {settings.cache().root}")
    if summary["failed"]:
        console.print(f"[yellow]Failed:[/yellow] {', '.join(summary['failed'])}", highlight=False)


@vob_app.command("list")
@handle_errors
def vob_list(
    fields: Optional[str] = typer.Option(None, "--fields", "-f", help="Comma separated fields to print"),
    delimiter: Optional[str] = typer.Option(None, "--delimiter", "-d", help="Field delimiter"),
    host: Optional[str] = typer.Option(None, "--host", help="Only vobs served by this host"),
    old: int = typer.Option(0, "--old", help="Read the N-th older cached listing"),
    region: str = typer.Option("", "--region", help="List the cached listing of another region"),
):
    """List cached vobs, one line per vob."""
    from ..clearcase.vobs import list_vobs, load_vobs

    settings = clearcase_settings()
    vobs = load_vobs(settings, region=region, old=old)
    lines = list_vobs(
        vobs,
        split_fields(fields or settings.vob_fields),
        settings.delimiter if delimiter is None else delimiter,
        host=host,
    )
    for line in lines:
        console.print(line, markup=False, highlight=False, soft_wrap=True)


@vob_app.command("show")
@handle_errors
def vob_show(
    tag: Optional[str] = typer.Argument(None, help="Vob tag (default: all vobs)"),
    old: int = typer.Option(0, "--old", help="Read the N-th older cached listing"),
):
    """Show cached details of one vob, or a summary table of all."""
    from ..clearcase.vobs import load_vobs

    settings = clearcase_settings()
    vobs = load_vobs(settings, old=old)

    if tag is None:
        table = Table(title=f"Vobs ({len(vobs)})")
        for column in _SUMMARY_COLUMNS:
            table.add_column(column, style="cyan" if column == "tag" else None)
        for name in sorted(vobs):
            table.add_row(*(str(vobs[name].get(c, "")) for c in _SUMMARY_COLUMNS))
        console.print(table)
        return

    from ..clearcase.parser import tag_basename
    from ..core.errors import ClearCaseError

    record = vobs.get(tag_basename(tag))
    if record is None:
        raise ClearCaseError(f"vob not found: {tag}")
    table = Table(title=record.get("vob", tag), show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key in sorted(record):
        if key == "views":
            continue
        table.add_row(key, str(record[key]))
    table.add_row("views", str(len(record.get("views", []))))
    console.print(table)


@vob_app.command("save")
@handle_errors
def vob_save(
    tag: str = typer.Argument(..., help="Vob tag"),
    force: bool = typer.Option(False, "--force", help="Keep the description even if cleartool fails"),
):
    """Save the full description of a vob for a later restore."""
    from ..clearcase.vobs import load_vobs, save_vob

    settings = clearcase_settings()
    path = save_vob(settings, clearcase_runner(settings), load_vobs(settings), tag, force=force)
    console.print(f"[green]Saved[/green] {path}")


@vob_app.command("find-view")
@handle_errors
def vob_find_view(
    uuid: str = typer.Argument(..., help="View uuid"),
    old: int = typer.Option(0, "--old", help="Read the N-th older cached listing"),
):
    """List the vobs that still hold a reference to a view."""
    from ..clearcase.vobs import find_view, load_vobs

    settings = clearcase_settings()
    found = find_view(load_vobs(settings, old=old), uuid)
    if not found:
        console.print(f"[dim]No vob references view {uuid}.[/dim]")
        return
    d = settings.delimiter
    for vob, ref in found:
        console.print(f"{vob}: {ref['uuid']}{d}{ref['path']}{d}@{ref['host']}", markup=False, highlight=False, soft_wrap=True)


@vob_app.command("unregister")
@handle_errors
def vob_unregister(
    tag: Optional[str] = typer.Argument(None, help="Vob tag (default: every vob, after confirmation)"),
):
    """Save, lock, unmount and unregister vobs."""
    from ..clearcase.vobs import RESTART_REMINDER, load_vobs, unregister_vobs

    settings = clearcase_settings()
    done = unregister_vobs(settings, clearcase_runner(settings), load_vobs(settings), tag)
    if done:
        console.print(f"[green]Unregistered:[/green] {', '.join(done)}", highlight=False)
        console.print(f"[yellow]{RESTART_REMINDER}[/yellow]")


@vob_app.command("restore")
@handle_errors
def vob_restore(
    tag: str = typer.Argument(..., help="Vob tag"),
    replace: bool = typer.Option(False, "--replace", help="Replace an existing registration and tag"),
):
    """Register, tag, unlock and mount a vob from its saved description."""
    from ..clearcase.vobs import load_vobs, restore_vob

    settings = clearcase_settings()
    vob = restore_vob(settings, clearcase_runner(settings), load_vobs(settings), tag, replace=replace)
    console.print(f"[green]Restored[/green] {vob}")


@vob_app.command("chflevel")
@handle_errors
def vob_chflevel(
    tag: str = typer.Argument(..., help="Vob tag"),
    level: int = typer.Argument(..., help="New feature level"),
):
    """Raise the feature level of a vob's replica and family."""
    from ..clearcase.vobs import load_vobs, raise_feature_level

    settings = clearcase_settings()
    replica = raise_feature_level(settings, clearcase_runner(settings), load_vobs(settings), tag, level)
    console.print(f"[green]Feature level {level}[/green] set on replica {replica}", highlight=False)


@vob_app.command("new")
@handle_errors
def vob_new(tag: str = typer.Argument(..., help="Tag of the vob to create")):
    """Create and mount a new public vob in the configured storage location."""
    from ..clearcase.vobs import load_vobs, new_vob

    settings = clearcase_settings()
    vob = new_vob(settings, clearcase_runner(settings), load_vobs(settings), tag)
    console.print(f"[green]Created[/green] {vob}")

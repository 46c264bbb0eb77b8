"""ClearCase view inventory commands."""

from __future__ import annotations

from typing import Optional

import typer

from . import app
from .common import clearcase_runner, clearcase_settings, console, handle_errors, split_fields

view_app = typer.Typer(help="ClearCase view inventory and clean-up")
app.add_typer(view_app, name="view")


@view_app.command("init")
@handle_errors
def view_init(region: str = typer.Option("", "--region", help="Cache the listing of another region")):
    """Refresh the cached view listing."""
    from ..clearcase.views import init_views

    settings = clearcase_settings()
    path = init_views(settings, clearcase_runner(settings, assume_yes=True), region=region)
    console.print(f"[green]View listing[/green] {path}")


@view_app.command("list")
@handle_errors
def view_list(
    fields: Optional[str] = typer.Option(None, "--fields", "-f", help="Comma separated fields to print"),
    delimiter: Optional[str] = typer.Option(None, "--delimiter", "-d", help="Field delimiter"),
    host: str = typer.Option("*", "--host", help="Only views served by this host (* for any)"),
    age: Optional[int] = typer.Option(None, "--age", help="Only views not accessed for at least N days (-1 includes unknown)"),
    old: int = typer.Option(0, "--old", help="Read the N-th older cached listing"),
    region: str = typer.Option("", "--region", help="List the cached listing of another region"),
):
    """List cached views, one line per view."""
    from ..clearcase.views import list_views, load_views

    settings = clearcase_settings()
    if age is None:
        # foreign region listings carry no access dates
        age = -1 if region else 0
    views = load_views(settings, region=region, old=old)
    lines = list_views(
        views,
        split_fields(fields or settings.view_fields),
        settings.delimiter if delimiter is None else delimiter,
        host=host,
        min_age=age,
    )
    for line in lines:
        console.print(line, markup=False, highlight=False, soft_wrap=True)


@view_app.command("show")
@handle_errors
def view_show(tag: str = typer.Argument(..., help="View tag")):
    """Print the saved description of a view."""
    from ..clearcase.views import show_view

    console.print(show_view(clearcase_settings(), tag), markup=False, highlight=False, end="")


@view_app.command("save")
@handle_errors
def view_save(
    tag: str = typer.Argument(..., help="View tag"),
    force: bool = typer.Option(False, "--force", help="Keep the description even if cleartool fails"),
):
    """Save the description of a view for a later restore."""
    from ..clearcase.views import load_views, save_view

    settings = clearcase_settings()
    path = save_view(settings, clearcase_runner(settings), load_views(settings), tag, force=force)
    console.print(f"[green]Saved[/green] {path}")


@view_app.command("unregister")
@handle_errors
def view_unregister(
    tag: str = typer.Argument(..., help="View tag"),
    save: bool = typer.Option(True, "--save/--no-save", help="Save the view description first"),
):
    """Stop, unregister and untag a view, keeping its storage."""
    from ..clearcase.views import load_views, unregister_view

    settings = clearcase_settings()
    unregister_view(settings, clearcase_runner(settings), load_views(settings), tag, save=save)
    console.print(f"[green]Unregistered[/green] {tag}")


@view_app.command("remove")
@handle_errors
def view_remove(
    tag: str = typer.Argument(..., help="View tag"),
    copy: bool = typer.Option(False, "--copy", help="Archive the view storage to the save dir first"),
    save: bool = typer.Option(True, "--save/--no-save", help="Save the view description first"),
):
    """Remove a view and its storage."""
    from ..clearcase.views import load_views, remove_view

    settings = clearcase_settings()
    archive = remove_view(settings, clearcase_runner(settings), load_views(settings), tag, copy=copy, save=save)
    console.print(f"[green]Removed[/green] {tag}")
    if archive:
        console.print(f"[dim]Archive: {archive}[/dim]")


@view_app.command("restore")
@handle_errors
def view_restore(tag: str = typer.Argument(..., help="View tag")):
    """Register and tag a view again from its saved description."""
    from ..clearcase.views import restore_view

    settings = clearcase_settings()
    restore_view(settings, clearcase_runner(settings), tag)
    console.print(f"[green]Restored[/green] {tag}")


@view_app.command("remind")
@handle_errors
def view_remind(
    age: int = typer.Option(..., "--age", help="Remind owners of views not accessed for N days"),
    host: str = typer.Option("*", "--host", help="Only views served by this host (* for any)"),
    mail_to: Optional[str] = typer.Option(None, "--mail-to", help="Only mail this user"),
    subject: Optional[str] = typer.Option(None, "--subject", help="Mail subject (overrides the template)"),
):
    """Mail the owners of old views a reminder listing them."""
    from ..clearcase.mail import (
        MailSettings,
        build_reminders,
        load_addresses,
        load_template,
        resolve_path,
        send_reminders,
    )
    from ..clearcase.views import load_views
    from ..core.config import load_config
    from ..core.git_utils import find_git_root

    settings = clearcase_settings()
    mail = MailSettings.from_config(load_config(find_git_root())["mail"])
    root = settings.cache().root

    template = load_template(resolve_path(mail.msg_file, root), subject or mail.subject)
    reminders = build_reminders(
        load_views(settings),
        load_addresses(resolve_path(mail.addr_file, root)),
        template,
        min_age=age,
        host=host,
        only_user=mail_to,
    )
    if not reminders:
        console.print(f"[dim]No views older than {age} days with a known owner address.[/dim]")
        return
    sent = send_reminders(clearcase_runner(settings), reminders, mail)
    console.print(f"[green]Mailed {len(sent)} of {len(reminders)} owners[/green]")

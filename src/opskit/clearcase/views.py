"""View inventory: cache refresh, listing by age, and removal with an optional archive."""

from __future__ import annotations

import logging
import os
import tarfile
from datetime import date
from pathlib import Path

from ..core.commands import Command, CommandRunner, Outcome
from ..core.errors import ClearCaseError, CommandFailedError
from . import parser
from .cleartool import ClearCaseSettings

logger = logging.getLogger(__name__)


def init_views(settings: ClearCaseSettings, runner: CommandRunner, region: str = "") -> Path:
    """Refresh the cached view listing; a foreign region gets a file of its own."""
    cache = settings.cache()
    cache.ensure()
    name = cache.views_name(region)
    args = ["lsview", "-long", "-region", region] if region else ["lsview", "-long", "-properties"]
    cmd = settings.tool().to_file(args, cache.path(name), before=lambda: cache.rotate(name))
    if runner.execute(cmd, check=False) == Outcome.FAILED:
        logger.warning("cleartool lsview returned an error, the listing may be incomplete")
    return cache.path(name)


def load_views(settings: ClearCaseSettings, region: str = "", old: int = 0, today: date | None = None) -> dict[str, parser.Record]:
    cache = settings.cache()
    return parser.parse_lsview(cache.read(cache.views_name(region), old), today)


def select_views(views: dict[str, parser.Record], host: str = "*", min_age: int = 0) -> list[parser.Record]:
    """Views on ``host`` (``*`` for any) last accessed at least ``min_age`` days ago."""
    selected = []
    for tag in sorted(views):
        record = views[tag]
        if host != "*" and record.get("host", "").lower() != host.lower():
            continue
        if record["age_days"] < min_age:
            continue
        selected.append(record)
    return selected


def list_views(views: dict[str, parser.Record], fields: list[str], delimiter: str = " ", host: str = "*", min_age: int = 0) -> list[str]:
    lines = []
    for record in select_views(views, host, min_age):
        line, missing = parser.format_record(record, fields, delimiter)
        if missing:
            logger.debug("%s: no value for %s", record["tag"], ", ".join(missing))
        lines.append(line)
    return sorted(lines)


def _require(views: dict[str, parser.Record], tag: str) -> parser.Record:
    record = views.get(tag)
    if record is None:
        raise ClearCaseError(f"view not found: {tag}")
    return record


def save_view(settings: ClearCaseSettings, runner: CommandRunner, views: dict[str, parser.Record], tag: str, force: bool = False) -> Path:
    """Store ``lsview -long -properties`` of one view so it can be restored later."""
    _require(views, tag)
    cache = settings.cache()
    cache.ensure()
    name = cache.lsview_name(tag)
    target = cache.path(name)
    cmd = settings.tool().to_file(["lsview", "-long", "-properties", tag], target, before=lambda: cache.rotate(name))
    try:
        runner.execute(cmd)
    except CommandFailedError:
        if not force:
            target.unlink(missing_ok=True)
            raise
    return target


def show_view(settings: ClearCaseSettings, tag: str) -> str:
    """The saved description of a view, as written by :func:`save_view`."""
    cache = settings.cache()
    return cache.read(cache.lsview_name(tag))


def load_saved_view(settings: ClearCaseSettings, tag: str) -> parser.Record:
    record = parser.parse_lsview(show_view(settings, tag)).get(tag)
    if record is None:
        raise ClearCaseError(f"saved description of view {tag} is empty")
    return record


def unregister_view(settings: ClearCaseSettings, runner: CommandRunner, views: dict[str, parser.Record], tag: str, save: bool = True) -> None:
    record = _require(views, tag)
    uuid = record.get("uuid")
    if not uuid:
        raise ClearCaseError(f"view {tag} has no uuid in the cached listing")
    if save:
        save_view(settings, runner, views, tag)
    tool = settings.tool()
    runner.execute(tool.command("endview", tag), check=False)
    runner.execute(tool.command("unregister", "-view", "-uuid", uuid))
    runner.execute(tool.command("rmtag", "-view", tag))
    runner.audit(f"unregistered view {tag} {record.get('gpath', '')} uuid {uuid}")


def _check_owner(storage: Path) -> None:
    """Only the owner of the storage directory (or root) may remove a view."""
    if os.name != "posix" or not storage.exists():
        return
    uid = os.getuid()
    if uid != 0 and storage.stat().st_uid != uid:
        raise ClearCaseError(f"{storage} is not owned by you, run as its owner or root")


def archive_command(storage: Path, archive: Path) -> Command:
    """A Command that packs a view storage directory into a gzipped tar.

    A failed pack removes the partial archive so a later retry packs again.
    """

    def action() -> int:
        archive.parent.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(archive, "w:gz") as tar:
                tar.add(storage, arcname=str(storage).lstrip("/"))
        except (OSError, tarfile.TarError) as exc:
            logger.error("archiving %s failed: %s", storage, exc)
            archive.unlink(missing_ok=True)
            return 1
        return 0

    return Command(f"tar czf {archive} {storage}", action)


def extract_command(archive: Path, root: Path = Path("/")) -> Command:
    def action() -> int:
        try:
            with tarfile.open(archive, "r:gz") as tar:
                tar.extractall(path=root, filter="tar")
        except (OSError, tarfile.TarError) as exc:
            logger.error("extracting %s failed: %s", archive, exc)
            return 1
        return 0

    return Command(f"tar xzpf {archive} -C {root}", action)


def remove_view(settings: ClearCaseSettings, runner: CommandRunner, views: dict[str, parser.Record], tag: str, copy: bool = False, save: bool = True) -> Path | None:
    """Remove a view's storage, optionally archiving it first; returns the archive path."""
    record = _require(views, tag)
    gpath = record.get("gpath")
    if not gpath:
        raise ClearCaseError(f"view {tag} has no global path in the cached listing")
    storage = Path(record.get("hpath") or gpath)
    _check_owner(storage)

    if save:
        save_view(settings, runner, views, tag)
    tool = settings.tool()
    runner.execute(tool.command("endview", tag), check=False)

    archive = None
    if copy:
        archive = settings.cache().view_archive(tag)
        if archive.exists():
            logger.warning("%s already exists, not overwriting it", archive)
        else:
            runner.execute(archive_command(storage, archive))

    runner.execute(tool.command("rmview", "-force", gpath))
    runner.audit(f"removed view {tag} uuid {record.get('uuid', '')}")
    return archive


def restore_view(settings: ClearCaseSettings, runner: CommandRunner, tag: str, root: Path = Path("/")) -> parser.Record:
    """Re-register and re-tag a view from its saved description, unpacking its archive if needed."""
    record = load_saved_view(settings, tag)
    hpath = record.get("hpath")
    gpath = record.get("gpath") or hpath
    if not hpath:
        raise ClearCaseError(f"saved description of view {tag} has no storage path")

    if not Path(hpath).is_dir():
        archive = settings.cache().view_archive(tag)
        if not archive.exists():
            raise ClearCaseError(f"Can't restore view {tag}: {hpath} is missing and there is no {archive}")
        runner.execute(extract_command(archive, root))

    host = record.get("host") or settings.host
    tool = settings.tool()
    runner.execute(tool.command("register", "-view", "-host", host, "-hpath", hpath, gpath))
    runner.execute(tool.command("mktag", "-view", "-tag", tag, "-host", host, "-gpath", gpath, hpath))
    runner.audit(f"restored view {tag} uuid {record.get('uuid', '')}")
    return record

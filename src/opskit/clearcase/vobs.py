"""VOB inventory: cache refresh, listing, and the register/unregister life cycle."""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path

from ..core.commands import CommandRunner, Outcome
from ..core.errors import ClearCaseError, CommandFailedError
from . import parser
from .cleartool import ClearCaseSettings

logger = logging.getLogger(__name__)

HISTORY_LINES = 100

RESTART_REMINDER = "Restart the ClearCase server (or kill vob_server) to release the unregistered vobs."


def _history_filter(output: str) -> str:
    lines = sorted(line for line in output.splitlines() if line.strip() and "lock" not in line)
    kept = lines[-HISTORY_LINES:]
    return "".join(f"{line}\n" for line in kept)


def init_vobs(settings: ClearCaseSettings, runner: CommandRunner, deep: bool = False, region: str = "") -> dict:
    """Refresh the vob listing (and, for the home region, every vob description).

    Returns a summary dict: ``vobs`` (tags described) and ``failed`` (tags whose
    describe or history scan failed).
    """
    cache = settings.cache()
    cache.ensure()
    tool = settings.tool()
    vobs_name = cache.vobs_name(region)

    args = ["lsvob", "-long"] + (["-region", region] if region else [])
    outcome = runner.execute(
        tool.to_file(args, cache.path(vobs_name), before=lambda: cache.rotate(vobs_name)),
        check=False,
    )
    if outcome == Outcome.FAILED:
        logger.warning("cleartool lsvob returned an error, the listing may be incomplete")

    summary: dict = {"vobs": [], "failed": []}
    if region or not cache.path(vobs_name).exists():
        return summary

    vobs = parser.parse_lsvob(cache.read(vobs_name))
    if not runner.dry_run:
        cache.rotate(cache.vobsdesc_name)
        cache.path(cache.vobsdesc_name).touch()

    for tag in sorted(vobs):
        vob = vobs[tag]["vob"]
        cmd = tool.to_file(["describe", "-long", f"vob:{vob}"], cache.path(cache.vobsdesc_name), append=True)
        if runner.execute(cmd, check=False) == Outcome.FAILED:
            logger.warning("describe of %s failed", vob)
            summary["failed"].append(tag)
            continue
        summary["vobs"].append(tag)

        if deep:
            exec_line = f'{settings.cleartool} lshist -all -fmt "%d %u %e %n\\n" {vob}'
            hist_name = cache.lshist_name(tag)
            cmd = tool.to_file(
                ["setview", "-exec", exec_line, settings.admin_view],
                cache.path(hist_name),
                before=lambda name=hist_name: cache.rotate(name),
                transform=_history_filter,
            )
            if runner.execute(cmd, check=False) == Outcome.FAILED:
                logger.warning("history scan of %s failed", vob)
                summary["failed"].append(tag)
    return summary


def load_vobs(settings: ClearCaseSettings, region: str = "", old: int = 0, today: date | None = None) -> dict[str, parser.Record]:
    """Read the cached listing, merged with descriptions and history scans for the home region."""
    cache = settings.cache()
    vobs = parser.parse_lsvob(cache.read(cache.vobs_name(region), old))
    if region:
        return vobs

    descriptions = parser.parse_vob_descriptions(cache.read(cache.vobsdesc_name, old), today)
    for tag, fields in descriptions.items():
        if tag in vobs:
            vobs[tag].update(fields)
    for tag, record in vobs.items():
        hist = cache.path(cache.lshist_name(tag), old)
        if hist.exists():
            record.update(parser.parse_lshist(hist.read_text(encoding="utf-8", errors="replace"), settings.admin_user, today))
    return vobs


def list_vobs(vobs: dict[str, parser.Record], fields: list[str], delimiter: str = " ", host: str | None = None) -> list[str]:
    lines = []
    for tag, record in vobs.items():
        if host and record.get("host", "").lower() != host.lower():
            continue
        line, missing = parser.format_record(record, fields, delimiter)
        if missing:
            logger.debug("%s: no value for %s", tag, ", ".join(missing))
        lines.append(line)
    return sorted(lines)


def find_view(vobs: dict[str, parser.Record], uuid: str) -> list[tuple[str, dict]]:
    """Every (vob, view reference) pair whose reference matches ``uuid``."""
    found = []
    for tag in sorted(vobs):
        for ref in vobs[tag].get("views", []):
            if ref["uuid"] == uuid:
                found.append((vobs[tag].get("vob", tag), ref))
    return found


def _require(vobs: dict[str, parser.Record], tag: str) -> parser.Record:
    record = vobs.get(parser.tag_basename(tag))
    if record is None:
        raise ClearCaseError(f"vob not found: {tag}")
    return record


def save_vob(settings: ClearCaseSettings, runner: CommandRunner, vobs: dict[str, parser.Record], tag: str, force: bool = False) -> Path:
    """Store ``describe -long`` of one vob so it can be restored after unregistering."""
    record = _require(vobs, tag)
    cache = settings.cache()
    cache.ensure()
    name = cache.descvob_name(record["tag"])
    target = cache.path(name)
    cmd = settings.tool().to_file(["describe", "-long", f"vob:{record['vob']}"], target, before=lambda: cache.rotate(name))
    try:
        runner.execute(cmd)
    except CommandFailedError:
        if not force:
            target.unlink(missing_ok=True)
            raise
    return target


def unregister_vobs(settings: ClearCaseSettings, runner: CommandRunner, vobs: dict[str, parser.Record], tag: str | None = None) -> list[str]:
    """Save, lock, unmount and unregister one vob, or every vob when no tag is given."""
    if tag is None:
        if not runner.ask("No vobtag given, do you want to unregister all vobs?"):
            return []
        targets = [vobs[t] for t in sorted(vobs)]
    else:
        targets = [_require(vobs, tag)]

    tool = settings.tool()
    password = settings.password_args(runner.assume_yes)
    done = []
    for record in targets:
        vob = record["vob"]
        save_vob(settings, runner, vobs, record["tag"])
        runner.execute(tool.command("lock", f"vob:{vob}"))
        if runner.execute(tool.command("umount", vob), check=False) == Outcome.FAILED:
            logger.warning("umount %s failed, continuing", vob)
        runner.execute(tool.command("rmtag", "-vob", "-all", *password, vob))
        if runner.execute(tool.command("unregister", "-vob", record.get("gpath", ""))) == Outcome.EXECUTED:
            done.append(vob)
    return done


def load_saved_description(settings: ClearCaseSettings, tag: str) -> parser.Record:
    cache = settings.cache()
    return parser.parse_saved_vob_description(cache.read(cache.descvob_name(parser.tag_basename(tag))))


def _windows_tag_command(settings: ClearCaseSettings, runner: CommandRunner, btag: str, gpath: str, apath: str):
    share = settings.samba_share.rstrip("\\")
    return settings.tool().command(
        "mktag", "-vob", "-tag", f"\\{btag}", "-region", settings.windows_region, "-public",
        *settings.password_args(runner.assume_yes),
        "-host", settings.host, "-gpath", f"{share}\\{Path(gpath).name}", apath,
    )


def restore_vob(settings: ClearCaseSettings, runner: CommandRunner, vobs: dict[str, parser.Record], tag: str, replace: bool = False) -> str:
    """Register and tag a previously unregistered vob from its saved description."""
    btag = parser.tag_basename(tag)
    vob = vobs[btag]["vob"] if btag in vobs else f"{settings.vob_prefix}{btag}"
    desc = load_saved_description(settings, btag)
    apath = desc.get("apath")
    gpath = desc.get("gpath")
    if not apath or not gpath:
        raise ClearCaseError(f"saved description of {btag} has no storage path")

    tool = settings.tool()
    replace_args = ["-replace"] if replace else []
    runner.execute(tool.command("register", "-vob", *replace_args, "-host", settings.host, "-hpath", apath, apath))
    runner.execute(tool.command(
        "mktag", "-vob", *replace_args, "-tag", vob, "-public",
        *settings.password_args(runner.assume_yes),
        "-host", settings.host, "-gpath", gpath, apath,
    ))
    if settings.samba_share:
        runner.execute(_windows_tag_command(settings, runner, btag, gpath, apath))
    runner.execute(tool.command("unlock", f"vob:{vob}"))
    runner.execute(tool.command("mount", vob))
    return vob


def raise_feature_level(settings: ClearCaseSettings, runner: CommandRunner, vobs: dict[str, parser.Record], tag: str, level: int) -> str:
    """Raise the replica and family feature level of a vob; returns the replica name."""
    record = _require(vobs, tag)
    current = record.get("flevel")
    if current is None:
        raise ClearCaseError(f"Unknown feature level for {record['vob']}, run 'vob init' first")
    if level <= int(current):
        raise ClearCaseError(f"Current feature level is {current}, no need to raise.")

    save_vob(settings, runner, vobs, record["tag"])
    tool = settings.tool()
    replicas = [line.strip() for line in tool.query("lsreplica", "-short", "-invob", record["vob"]).splitlines() if line.strip()]
    if not replicas:
        raise ClearCaseError(f"No replica found in {record['vob']}")
    replica = replicas[0]
    runner.execute(tool.command("chflevel", "-replica", str(level), f"replica:{replica}@{record['vob']}"))
    runner.execute(tool.command("chflevel", "-family", str(level), f"vob:{record['vob']}"))
    return replica


def _storage_gpath(listing: str, stgloc: str) -> str | None:
    """Global path of a storage location in ``lsstgloc -vob`` output (name first, path second)."""
    for line in listing.splitlines():
        fields = line.split()
        if len(fields) >= 2 and fields[0].lstrip("*") == stgloc:
            return fields[1]
    return None


def new_vob(settings: ClearCaseSettings, runner: CommandRunner, vobs: dict[str, parser.Record], tag: str) -> str:
    """Create a public vob in the configured storage location and mount it."""
    btag = parser.tag_basename(tag)
    if btag in vobs:
        raise ClearCaseError(f"vob {btag} already exists")
    tool = settings.tool()
    registered = {parser.tag_basename(line.strip()) for line in tool.query("lsvob", "-short").splitlines() if line.strip()}
    if btag in registered:
        raise ClearCaseError(f"vob {btag} already exists")
    if not settings.stgloc:
        raise ClearCaseError("No storage location configured, set clearcase.stgloc")
    if not re.fullmatch(r"[\w\-.]+", btag):
        raise ClearCaseError(f"invalid vob tag: {tag}")

    vob = f"{settings.vob_prefix}{btag}"
    runner.execute(tool.command("mkvob", "-tag", vob, "-public", *settings.password_args(runner.assume_yes), "-stgloc", settings.stgloc))
    runner.execute(tool.command("mount", vob))

    if settings.samba_share:
        gpath = _storage_gpath(tool.query("lsstgloc", "-vob"), settings.stgloc)
        if gpath is None:
            raise ClearCaseError(f"storage location {settings.stgloc} not found, windows tag not created")
        storage = f"{gpath.rstrip('/')}/{btag}.vbs"
        runner.execute(_windows_tag_command(settings, runner, btag, storage, storage))
    return vob


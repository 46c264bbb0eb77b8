"""Parsers for cleartool's plain-text output.

Every assumption about the layout of ``lsvob -l``, ``describe -long vob:``,
``lshistory`` and ``lsview -long -properties`` output is kept here. Records
are plain dicts keyed by field name so that any field can be selected for
listing.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any

Record = dict[str, Any]

_TAG_CHARS = r"[\\\w\-.$/]+"

_VOB_TAG_RE = re.compile(rf"^Tag:\s+({_TAG_CHARS})")
_VIEW_TAG_RE = re.compile(r"^Tag:\s+([\\\w\-.$]+)")
_VOB_DESC_RE = re.compile(rf'^versioned object base\s+"({_TAG_CHARS})"')

_LSVOB_FIELDS = [
    (re.compile(r"\s+Global path:\s(.+)"), ("gpath",)),
    (re.compile(r"\s+Region:\s(.+)"), ("region",)),
    (re.compile(r"\s+Server host:\s(.+)"), ("host",)),
    (re.compile(r"\s+Vob tag replica uuid:\s(.+)"), ("uuid",)),
    (re.compile(r"\s+Active:\s(.+)"), ("active",)),
    (re.compile(r"^Vob server access path:\s(.+)"), ("apath", "hpath")),
    (re.compile(r"\s+Access:\s(.+)"), ("access",)),
]

_DESC_FIELDS = [
    (re.compile(r"\s*schema version:\s*(\d+)"), "schema"),
    (re.compile(r"\s*VOB family feature level:\s*(\d+)"), "family"),
    (re.compile(r"\s*FeatureLevel\s*=\s*(\d+)"), "flevel"),
    (re.compile(r"\s+owner\s(\w+)"), "owner"),
    (re.compile(r"\s+group\s(\w+)"), "group"),
]

_CREATED_RE = re.compile(r"\s+created\s+(\d+)-(\d+)-(\d+)T.* by (.*)")
_VIEW_REF_RE = re.compile(r"\s+([\w\-]+):(.*) \[uuid ([\w.:]+)\]")
_STORAGE_GPATH_RE = re.compile(r'VOB storage global pathname "(.+)"')
_STORAGE_HPATH_RE = re.compile(r'VOB storage host.pathname "(.+)"')
_HOST_PREFIX_RE = re.compile(r"[\w\-.]+:(.+)")

_LSHIST_RE = re.compile(r"^(\d+)-(\d+)-(\d+)T\S*\s+(\w+)")

_LSVIEW_FIELDS = [
    (re.compile(r"\s+Global path:\s(.+)"), "gpath"),
    (re.compile(r"\s+Region:\s(.+)"), "region"),
    (re.compile(r"\s+Server host:\s(.+)"), "host"),
    (re.compile(r"^View uuid:\s(.+)"), "uuid"),
    (re.compile(r"\s+Active:\s(.+)"), "active"),
    (re.compile(r"^View server access path:\s(.+)"), "hpath"),
    (re.compile(r"^View attributes:\s(.+)"), "type"),
]
_VIEW_OWNER_RE = re.compile(r"^View owner:\s(.+)")
_VIEW_CREATED_RE = re.compile(r"Created\s(\d+)-(\d+)-(\d+).* by .*@(.*)")
_VIEW_MODIFIED_RE = re.compile(r"Last modified\s(\d+)-(\d+)-(\d+)")
_VIEW_ACCESSED_RE = re.compile(r"Last\saccessed\s(\d+)-(\d+)-(\d+)")


def _clean_lines(text: str) -> list[str]:
    return [line.replace("\r", "") for line in text.splitlines()]


def tag_basename(tag: str) -> str:
    """Last path component of a vob tag, for both ``/vobs/x`` and ``\\x`` styles."""
    parts = [p for p in re.split(r"[\\/]", tag) if p]
    return parts[-1] if parts else tag


def days_between(year: str, month: str, day: str, today: date) -> int:
    return (today - date(int(year), int(month), int(day))).days


def format_age(days: int) -> str:
    """Zero-padded so that ages sort correctly as text."""
    return f"{days:05d}" if days >= 0 else str(days)


def parse_lsvob(text: str) -> dict[str, Record]:
    """Parse ``cleartool lsvob -long`` output into records keyed by tag basename."""
    vobs: dict[str, Record] = {}
    current: Record | None = None
    for line in _clean_lines(text):
        m = _VOB_TAG_RE.match(line)
        if m:
            tag = m.group(1)
            btag = tag_basename(tag)
            current = vobs.setdefault(btag, {})
            current["tag"] = btag
            current["vob"] = tag
            continue
        if current is None:
            continue
        for regex, names in _LSVOB_FIELDS:
            fm = regex.search(line)
            if fm:
                for name in names:
                    current[name] = fm.group(1).strip()
    return vobs


def parse_vob_descriptions(text: str, today: date | None = None) -> dict[str, Record]:
    """Parse concatenated ``cleartool describe -long vob:<tag>`` output."""
    today = today or date.today()
    vobs: dict[str, Record] = {}
    current: Record | None = None
    for line in _clean_lines(text):
        m = _VOB_DESC_RE.match(line)
        if m:
            current = vobs.setdefault(tag_basename(m.group(1)), {})
            continue
        if current is None:
            continue
        for regex, name in _DESC_FIELDS:
            fm = regex.search(line)
            if fm:
                current[name] = fm.group(1)
        cm = _CREATED_RE.search(line)
        if cm:
            year, month, day, by = cm.groups()
            current["created"] = f"{year}-{month}-{day}"
            current["age"] = format_age(days_between(year, month, day, today))
            current["createdby"] = by.replace("(", "").replace(")", "").strip()
        vm = _VIEW_REF_RE.search(line)
        if vm:
            current.setdefault("views", []).append(
                {"host": vm.group(1), "path": vm.group(2), "uuid": vm.group(3)}
            )
    return vobs


def parse_saved_vob_description(text: str) -> Record:
    """Parse a single saved ``describe -long`` of one vob, including its storage paths."""
    record: Record = {}
    for line in _clean_lines(text):
        for regex, name in _DESC_FIELDS:
            fm = regex.search(line)
            if fm:
                record[name] = fm.group(1)
        gm = _STORAGE_GPATH_RE.search(line)
        if gm:
            record["gpath"] = gm.group(1)
        hm = _STORAGE_HPATH_RE.search(line)
        if hm:
            record["hpath"] = hm.group(1)
            am = _HOST_PREFIX_RE.match(record["hpath"])
            if am:
                record["apath"] = am.group(1)
    return record


def parse_lshist(text: str, admin_user: str = "vobadm", today: date | None = None) -> Record:
    """Most recent change in a history scan, preferring users other than the admin.

    Returns ``last``/``lastby``/``lastage`` or an empty dict when no line matches.
    """
    today = today or date.today()
    newest_any: tuple[int, str, str] | None = None
    newest_user: tuple[int, str, str] | None = None
    for line in _clean_lines(text):
        m = _LSHIST_RE.match(line)
        if not m:
            continue
        year, month, day, user = m.groups()
        entry = (days_between(year, month, day, today), f"{year}-{month}-{day}", user)
        if newest_any is None or entry[0] <= newest_any[0]:
            newest_any = entry
        if user != admin_user and (newest_user is None or entry[0] <= newest_user[0]):
            newest_user = entry
    chosen = newest_user or newest_any
    if chosen is None:
        return {}
    return {"last": chosen[1], "lastby": chosen[2], "lastage": format_age(chosen[0])}


def parse_lsview(text: str, today: date | None = None) -> dict[str, Record]:
    """Parse ``cleartool lsview -long -properties`` output into records keyed by tag."""
    today = today or date.today()
    views: dict[str, Record] = {}
    current: Record | None = None
    for line in _clean_lines(text):
        m = _VIEW_TAG_RE.match(line)
        if m:
            current = views.setdefault(m.group(1), {})
            current["tag"] = m.group(1)
            continue
        if current is None:
            continue
        for regex, name in _LSVIEW_FIELDS:
            fm = regex.search(line)
            if fm:
                current[name] = fm.group(1).strip()
        om = _VIEW_OWNER_RE.search(line)
        if om:
            owner = om.group(1).strip()
            current["owner"] = owner
            current["user"] = owner.split("\\", 1)[1] if "\\" in owner else owner
        cm = _VIEW_CREATED_RE.search(line)
        if cm:
            year, month, day, host = cm.groups()
            current["created"] = f"{year}-{month}-{day}"
            current["createdby"] = host.strip()
        mm = _VIEW_MODIFIED_RE.search(line)
        if mm:
            current["modified"] = "-".join(mm.groups())
        am = _VIEW_ACCESSED_RE.search(line)
        if am:
            days = days_between(*am.groups(), today)
            current["last"] = "-".join(am.groups())
            current["age"] = format_age(days)
            current["age_days"] = days

    for record in views.values():
        record.setdefault("type", "dynamic")
        record.setdefault("age", "-1")
        record.setdefault("age_days", -1)
    return views


def format_record(record: Record, fields: list[str], delimiter: str = " ") -> tuple[str, list[str]]:
    """Join the selected fields; returns the line and the names of fields that were missing."""
    values: list[str] = []
    missing: list[str] = []
    for name in fields:
        value = record.get(name)
        if value is None or isinstance(value, (list, dict)):
            missing.append(name)
            values.append("")
        else:
            values.append(str(value))
    return delimiter.join(values), missing

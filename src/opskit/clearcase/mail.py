"""Mail reminders to owners of views that have not been accessed for a while."""

from __future__ import annotations

import csv
import logging
import re
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from pathlib import Path
from typing import Any

from ..core.commands import Command, CommandRunner, Outcome
from ..core.errors import ClearCaseError
from . import parser
from .views import select_views

logger = logging.getLogger(__name__)

_SUBJECT_RE = re.compile(r"Subject:\s*(.+)")


@dataclass
class MailSettings:
    smtp_server: str = "localhost"
    mail_from: str = ""
    charset: str = "latin-1"
    addr_file: str = "mailaddrs.csv"
    msg_file: str = "mailmsg.txt"
    subject: str = ""

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> MailSettings:
        return cls(**{k: v for k, v in cfg.items() if k in cls.__dataclass_fields__})


@dataclass
class Template:
    subject: str
    body: list[str] = field(default_factory=list)


@dataclass
class Reminder:
    user: str
    mail: str
    views: list[str]
    subject: str
    body: str


def resolve_path(name: str, save_dir: Path) -> Path:
    """Relative file names are looked up in the ClearCase save directory."""
    path = Path(name).expanduser()
    return path if path.is_absolute() else save_dir / path


def load_addresses(path: Path) -> dict[str, str]:
    """Read ``"user","mail"`` rows; rows without an address are skipped."""
    if not path.exists():
        raise ClearCaseError(f"can't open {path}, expected a CSV file of user,mail rows")
    addresses: dict[str, str] = {}
    with open(path, newline="", encoding="utf-8", errors="replace") as f:
        for row in csv.reader(f):
            if len(row) < 2:
                continue
            user, mail = row[0].strip(), row[1].strip()
            if user and mail:
                addresses[user] = mail
    logger.debug("loaded %d addresses from %s", len(addresses), path)
    return addresses


def load_template(path: Path, subject: str = "") -> Template:
    """Read the message body; a ``Subject:`` line is taken out of the body.

    A non-empty ``subject`` argument wins over the one in the file.
    """
    if not path.exists():
        raise ClearCaseError(f"can't open {path}, expected a text file with the mail body")
    found = ""
    body = [""]
    for line in path.read_text(encoding="utf-8", errors="replace").replace("\r", "").splitlines():
        m = _SUBJECT_RE.search(line)
        if m:
            found = m.group(1).strip()
        else:
            body.append(line)
    return Template(subject=subject or found, body=body)


def display_name(mail: str) -> str:
    """``john.doe@example.com`` -> ``John Doe``."""
    local = mail.split("@", 1)[0].replace(".", " ")
    return re.sub(r"\b(\w)", lambda m: m.group(1).upper(), local)


def render(text: str, user: str, mail: str, views: list[str], show_age: int) -> str:
    listing = "".join(f"  {tag}\n" for tag in views)
    return (
        text.replace("{{user}}", user)
        .replace("{{mail}}", mail)
        .replace("{{name}}", display_name(mail))
        .replace("{{show_age}}", str(show_age))
        .replace("{{views}}", listing)
    )


def build_reminders(
    views: dict[str, parser.Record],
    addresses: dict[str, str],
    template: Template,
    min_age: int,
    host: str = "*",
    only_user: str | None = None,
) -> list[Reminder]:
    """One reminder per owner with a known address and at least one old view."""
    if not template.subject:
        raise ClearCaseError("mail subject is empty, add a Subject: line or pass --subject")

    owned: dict[str, list[str]] = {}
    for record in select_views(views, host, min_age):
        user = record.get("user", "")
        if user in addresses:
            owned.setdefault(user, []).append(record["tag"])
        else:
            logger.debug("%s: no mail address for %s", record["tag"], user or "(unknown owner)")

    reminders = []
    for user in sorted(owned):
        if only_user and user != only_user:
            continue
        mail = addresses[user]
        tags = owned[user]
        reminders.append(Reminder(
            user=user,
            mail=mail,
            views=tags,
            subject=render(template.subject, user, mail, tags, min_age),
            body="\n".join(render(line, user, mail, tags, min_age) for line in template.body) + "\n",
        ))
    return reminders


def compose(reminder: Reminder, mail_from: str, charset: str = "latin-1") -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = mail_from
    msg["To"] = reminder.mail
    msg["Subject"] = reminder.subject
    msg.set_content(reminder.body, charset=charset)
    return msg


def send_command(reminder: Reminder, settings: MailSettings) -> Command:
    """A Command that delivers one reminder over SMTP."""

    def action() -> int:
        msg = compose(reminder, settings.mail_from, settings.charset)
        try:
            with smtplib.SMTP(settings.smtp_server, timeout=30) as smtp:
                smtp.send_message(msg)
        except (OSError, smtplib.SMTPException) as e:
            raise ClearCaseError(f"Can't send mail via {settings.smtp_server}: {e}") from e
        return 0

    return Command(f"send mail to {reminder.mail}", action)


def send_reminders(runner: CommandRunner, reminders: list[Reminder], settings: MailSettings) -> list[str]:
    """Send each reminder through the runner; returns the addresses actually mailed."""
    if not settings.mail_from:
        raise ClearCaseError("no sender address configured, set mail.mail_from")
    sent = []
    for reminder in reminders:
        if runner.execute(send_command(reminder, settings)) == Outcome.EXECUTED:
            sent.append(reminder.mail)
    return sent

"""Confirm / dry-run / execute driver for mutating external commands.

Every mutating call in opskit is wrapped in a :class:`Command` (a printable
description plus a no-argument action) and handed to a :class:`CommandRunner`.
The runner decides, in one place, whether the command is only printed
(dry-run), whether the operator is asked first, and how a failure is treated.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

from rich.console import Console
from rich.prompt import Confirm

from .errors import CommandFailedError

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    EXECUTED = "executed"
    FAILED = "failed"
    DECLINED = "declined"
    DRY_RUN = "dry-run"


@dataclass
class Command:
    """A printable description and the action that carries it out.

    ``action`` returns an exit status; zero means success.
    """

    description: str
    action: Callable[[], int]


@dataclass
class CommandRecord:
    description: str
    outcome: Outcome
    returncode: int | None = None


def run_process(argv: Sequence[str], cwd: str | Path | None = None) -> int:
    """Run argv attached to the terminal and return its exit status."""
    logger.debug("$ %s", shlex.join(argv))
    try:
        result = subprocess.run(list(argv), cwd=str(cwd) if cwd else None, check=False)
    except FileNotFoundError:
        logger.debug("%s: command not found", argv[0])
        return 127
    logger.debug("exit status = %d", result.returncode)
    return result.returncode


def shell_command(argv: Sequence[str], cwd: str | Path | None = None) -> Command:
    """Wrap an argv list in a Command whose description is the quoted command line."""
    argv = list(argv)
    return Command(shlex.join(argv), lambda: run_process(argv, cwd))


class CommandRunner:
    """Single place where confirm/dry-run/execute policy is applied."""

    def __init__(
        self,
        dry_run: bool = False,
        assume_yes: bool = False,
        audit_log: str | Path | None = None,
        console: Console | None = None,
        confirm: Callable[[str], bool] | None = None,
    ):
        self.dry_run = dry_run
        self.assume_yes = assume_yes
        self.audit_log = Path(audit_log) if audit_log else None
        self.console = console or Console()
        self._confirm = confirm
        self.history: list[CommandRecord] = []

    def ask(self, question: str) -> bool:
        """Ask a yes/no question, answering yes automatically when assume_yes is set."""
        if self.assume_yes:
            self.console.print(f"{question} [Y]", markup=False, highlight=False, soft_wrap=True)
            return True
        if self._confirm is not None:
            return self._confirm(question)
        return Confirm.ask(question, default=True, console=self.console)

    def execute(self, command: Command, check: bool = True) -> Outcome:
        """Ask, run and record a command.

        With ``check`` a non-zero exit status raises CommandFailedError; without it
        the failure is logged and FAILED is returned so the caller can carry on.
        """
        if self.dry_run:
            self.console.print(f"would run: {command.description}", markup=False, highlight=False, soft_wrap=True)
            self.history.append(CommandRecord(command.description, Outcome.DRY_RUN))
            return Outcome.DRY_RUN

        if self.assume_yes:
            self.console.print(f"$ {command.description}", markup=False, highlight=False, soft_wrap=True)
        elif not self.ask(command.description):
            logger.debug("declined: %s", command.description)
            self.history.append(CommandRecord(command.description, Outcome.DECLINED))
            return Outcome.DECLINED

        returncode = command.action()
        self.audit(command.description)
        if returncode != 0:
            self.history.append(CommandRecord(command.description, Outcome.FAILED, returncode))
            if check:
                raise CommandFailedError(command.description, returncode)
            logger.debug("Failed cmd (continuing): %s -> %d", command.description, returncode)
            return Outcome.FAILED

        self.history.append(CommandRecord(command.description, Outcome.EXECUTED, returncode))
        return Outcome.EXECUTED

    def executed(self) -> list[str]:
        """Descriptions of commands that actually ran (successfully or not)."""
        return [r.description for r in self.history if r.outcome in (Outcome.EXECUTED, Outcome.FAILED)]

    def audit(self, message: str) -> None:
        """Append a timestamped line to the audit log, when one is configured."""
        if self.audit_log is None or self.dry_run:
            return
        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self.audit_log.parent.mkdir(parents=True, exist_ok=True)
        with open(self.audit_log, "a", encoding="utf-8") as f:
            f.write(f"{now} {message}\n")
        logger.debug("logmsg: %s %s", now, message)

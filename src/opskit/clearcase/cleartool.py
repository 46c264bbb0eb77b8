"""cleartool invocation: read-only queries, mutating Commands, and capture-to-file Commands."""

from __future__ import annotations

import logging
import shlex
import socket
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

from ..core.commands import Command, run_process
from ..core.errors import ClearCaseError
from .cache import SaveDir

logger = logging.getLogger(__name__)


def _masked(argv: list[str]) -> list[str]:
    """Hide the value following -password in printed and logged command lines."""
    return [
        "********" if i > 0 and argv[i - 1] == "-password" else arg
        for i, arg in enumerate(argv)
    ]


@dataclass
class ClearCaseSettings:
    """The ``[clearcase]`` config section, resolved for one invocation."""

    cleartool: str = "cleartool"
    save_dir: str = "~/.opskit/clearcase"
    keep: int = 20
    host: str = ""
    admin_user: str = "vobadm"
    admin_view: str = "vobadm"
    vob_prefix: str = "/vobs/"
    stgloc: str = ""
    rgypass: str = ""
    samba_share: str = ""
    windows_region: str = "windows_region"
    vob_fields: str = "tag,gpath"
    view_fields: str = "age,tag,gpath"
    delimiter: str = " "

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> ClearCaseSettings:
        known = {k: v for k, v in cfg.items() if k in cls.__dataclass_fields__}
        settings = cls(**known)
        settings.keep = int(settings.keep)
        if not settings.host:
            settings.host = socket.gethostname()
        return settings

    def cache(self) -> SaveDir:
        return SaveDir(self.save_dir, self.keep)

    def tool(self) -> Cleartool:
        return Cleartool(self.cleartool)

    def password_args(self, assume_yes: bool) -> list[str]:
        """Registry password arguments, only passed when nobody is around to be prompted."""
        if assume_yes and self.rgypass:
            return ["-password", self.rgypass]
        return []


class Cleartool:
    def __init__(self, executable: str = "cleartool"):
        self.executable = executable

    def argv(self, *args: str) -> list[str]:
        return [self.executable, *args]

    def query(self, *args: str, timeout: int = 300) -> str:
        """Run a read-only cleartool command and return its stdout."""
        argv = self.argv(*args)
        logger.debug("$ %s", shlex.join(argv))
        try:
            result = subprocess.run(argv, capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as e:
            raise ClearCaseError(f"{self.executable}: command not found") from e
        except subprocess.TimeoutExpired as e:
            raise ClearCaseError(f"{shlex.join(argv)} timed out after {timeout}s") from e
        if result.returncode != 0:
            raise ClearCaseError(f"{shlex.join(argv)} failed: {result.stderr.strip() or result.returncode}")
        return result.stdout

    def command(self, *args: str) -> Command:
        argv = self.argv(*args)
        return Command(shlex.join(_masked(argv)), lambda: run_process(argv))

    def to_file(
        self,
        args: Sequence[str],
        target: Path,
        append: bool = False,
        before: Callable[[], None] | None = None,
        transform: Callable[[str], str] | None = None,
    ) -> Command:
        """A Command that writes cleartool's stdout into ``target``.

        ``before`` runs first (used for rotation) so a dry run leaves the cache untouched.
        The output is written even when cleartool fails, so partial listings are kept.
        """
        argv = self.argv(*args)
        description = f"{shlex.join(argv)} {'>>' if append else '>'} {target}"

        def action() -> int:
            if before is not None:
                before()
            logger.debug("$ %s", description)
            try:
                result = subprocess.run(argv, capture_output=True, text=True)
            except FileNotFoundError:
                logger.debug("%s: command not found", self.executable)
                return 127
            output = transform(result.stdout) if transform else result.stdout
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "a" if append else "w", encoding="utf-8") as f:
                f.write(output)
            if result.returncode != 0:
                logger.debug("stderr: %s", result.stderr.strip())
            return result.returncode

        return Command(description, action)

"""On-disk cache of cleartool listings, with numbered rotation of older copies."""

from __future__ import annotations

import logging
from pathlib import Path

from ..core.errors import CacheMissingError

logger = logging.getLogger(__name__)


def rotate_file(path: Path, keep: int = 20) -> None:
    """Shift ``f`` to ``f.1``, ``f.1`` to ``f.2`` and so on, dropping anything past ``keep``."""
    if keep < 1:
        path.unlink(missing_ok=True)
        return
    oldest = path.with_name(f"{path.name}.{keep}")
    oldest.unlink(missing_ok=True)
    for n in range(keep - 1, 0, -1):
        src = path.with_name(f"{path.name}.{n}")
        if src.exists():
            src.replace(path.with_name(f"{path.name}.{n + 1}"))
    if path.exists():
        path.replace(path.with_name(f"{path.name}.1"))
        logger.debug("rotated %s", path)


class SaveDir:
    """The directory holding cached listings, per-object descriptions and the audit log."""

    def __init__(self, root: str | Path, keep: int = 20):
        self.root = Path(root).expanduser()
        self.keep = keep

    def ensure(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def path(self, name: str, old: int = 0) -> Path:
        """Path of a cache file, or of its ``old``-th rotated copy."""
        return self.root / (f"{name}.{old}" if old else name)

    def read(self, name: str, old: int = 0) -> str:
        path = self.path(name, old)
        if not path.exists():
            raise CacheMissingError(str(path))
        logger.debug("reading %s", path)
        return path.read_text(encoding="utf-8", errors="replace")

    def rotate(self, name: str) -> None:
        rotate_file(self.path(name), self.keep)

    @property
    def log_file(self) -> Path:
        return self.root / "log.txt"

    @staticmethod
    def vobs_name(region: str = "") -> str:
        return f"{region}.vobs.txt" if region else "vobs.txt"

    @staticmethod
    def views_name(region: str = "") -> str:
        return f"{region}.views.txt" if region else "views.txt"

    vobsdesc_name = "vobsdesc.txt"

    @staticmethod
    def lshist_name(tag: str) -> str:
        return f"lshist.{tag}.txt"

    @staticmethod
    def descvob_name(tag: str) -> str:
        return f"descvob.{tag}.txt"

    @staticmethod
    def lsview_name(tag: str) -> str:
        return f"lsview.{tag}.txt"

    def view_archive(self, tag: str) -> Path:
        return self.root / f"{tag}.vws.tar.gz"

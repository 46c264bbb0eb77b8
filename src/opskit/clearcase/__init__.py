"""ClearCase vob and view inventory helpers built on cleartool."""

from .cache import SaveDir, rotate_file
from .cleartool import ClearCaseSettings, Cleartool

__all__ = ["ClearCaseSettings", "Cleartool", "SaveDir", "rotate_file"]

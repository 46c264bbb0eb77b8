"""Configuration management: TOML files, global merged with per-repo."""

from __future__ import annotations

import copy
import tomllib
from pathlib import Path
from typing import Any

_GLOBAL_CONFIG_PATH = Path.home() / ".opskit" / "config.toml"

DEFAULT_CONFIG: dict[str, Any] = {
    "gitup": {
        "remote": "",
        "rebase": False,
        "prune": False,
        "confirm": False,
    },
    "clearcase": {
        "cleartool": "cleartool",
        "save_dir": "~/.opskit/clearcase",
        "keep": 20,
        "host": "",
        "admin_user": "vobadm",
        "admin_view": "vobadm",
        "vob_prefix": "/vobs/",
        "stgloc": "",
        "rgypass": "",
        "samba_share": "",
        "windows_region": "windows_region",
        "vob_fields": "tag,gpath",
        "view_fields": "age,tag,gpath",
        "delimiter": " ",
    },
    "mail": {
        "smtp_server": "localhost",
        "mail_from": "",
        "charset": "latin-1",
        "addr_file": "mailaddrs.csv",
        "msg_file": "mailmsg.txt",
        "subject": "",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def local_config_path(repo_path: str | Path) -> Path:
    return Path(repo_path) / ".opskit" / "config.toml"


def load_config(repo_path: str | Path | None = None) -> dict[str, Any]:
    """Load merged config: defaults <- global <- per-repo."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if _GLOBAL_CONFIG_PATH.exists():
        with open(_GLOBAL_CONFIG_PATH, "rb") as f:
            global_conf = tomllib.load(f)
        config = _deep_merge(config, global_conf)

    if repo_path:
        local_path = local_config_path(repo_path)
        if local_path.exists():
            with open(local_path, "rb") as f:
                local_conf = tomllib.load(f)
            config = _deep_merge(config, local_conf)

    return config


def save_config(repo_path: str | Path | None, key: str, value: str) -> Path:
    """Save a config value. Uses per-repo config if repo_path given, else global.

    Returns the path of the file written.
    """
    if repo_path:
        config_path = local_config_path(repo_path)
    else:
        config_path = _GLOBAL_CONFIG_PATH

    config_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            existing = tomllib.load(f)

    parts = key.split(".")
    target = existing
    for part in parts[:-1]:
        if part not in target:
            target[part] = {}
        target = target[part]

    target[parts[-1]] = _parse_value(value)

    _write_toml(config_path, existing)
    return config_path


def get_config_value(config: dict, key: str) -> Any:
    """Get a nested config value by dotted key."""
    parts = key.split(".")
    current = config
    for part in parts:
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return None
    return current


def _parse_value(value: str) -> Any:
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _write_toml(path: Path, data: dict) -> None:
    """Write dict as TOML (simple serializer for flat/nested dicts)."""
    lines: list[str] = []
    _write_toml_section(lines, data, [])
    path.write_text("\n".join(lines).lstrip("\n") + "\n", encoding="utf-8")


def _write_toml_section(lines: list[str], data: dict, prefix: list[str]) -> None:
    # Scalars first so they stay attached to the current table header.
    scalars = {k: v for k, v in data.items() if not isinstance(v, dict)}
    tables = {k: v for k, v in data.items() if isinstance(v, dict)}
    for key, value in scalars.items():
        if isinstance(value, list):
            lines.append(f"{key} = [")
            for item in value:
                lines.append(f"    {_toml_value(item)},")
            lines.append("]")
        else:
            lines.append(f"{key} = {_toml_value(value)}")
    for key, value in tables.items():
        section = ".".join(prefix + [key])
        lines.append(f"\n[{section}]")
        _write_toml_section(lines, value, prefix + [key])


def _toml_value(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, str):
        escaped = v.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return str(v)

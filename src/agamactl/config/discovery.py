"""Config file discovery.

Lookup order:

1. ``AGAMACTL_CONFIG`` (an unset or missing file means no config)
2. ``agamactl.toml`` in the start directory or any parent
3. ``$XDG_CONFIG_HOME/agamactl/agamactl.toml`` (``~/.config`` by default)
4. ``/etc/agamactl.toml``, the installer image's system-wide file
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "agamactl.toml"
CONFIG_ENV_VAR = "AGAMACTL_CONFIG"
SYSTEM_CONFIG = Path("/etc") / CONFIG_FILENAME


def user_config() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / "agamactl" / CONFIG_FILENAME


def _walk_up(start: Path) -> Path | None:
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file to load, or None to run on defaults."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path)
        return path if path.is_file() else None

    found = _walk_up((start or Path.cwd()).resolve())
    if found is not None:
        return found
    for fallback in (user_config(), SYSTEM_CONFIG):
        if fallback.is_file():
            return fallback
    return None

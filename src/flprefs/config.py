"""PrefsConfig: optional project-local configuration for flprefs.

Looked up by walking upward from the working directory:

    flprefs.toml          # settings (optional)
    .env                  # optional: FLPREFS_USER_DIR, FLPREFS_SYSTEM_DIR, FLPREFS_LOG_LEVEL

flprefs.toml example:

    [flprefs]
    user_dir = "~/.config"          # default: platformdirs.user_config_dir()
    system_dir = "/etc/xdg"         # default: platformdirs.site_config_dir()
    file_access = ["ALL"]           # FileAccess flag names
    index_threshold = 16            # entries per group before a name index is built
    log_level = "WARNING"

Precedence: process environment, then .env, then flprefs.toml, then defaults.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from flprefs.models import FileAccess
from flprefs.node import DEFAULT_INDEX_THRESHOLD

_CONFIG_FILENAME = "flprefs.toml"
_ENV_USER_DIR = "FLPREFS_USER_DIR"
_ENV_SYSTEM_DIR = "FLPREFS_SYSTEM_DIR"
_ENV_LOG_LEVEL = "FLPREFS_LOG_LEVEL"
_DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class PrefsConfig:
    """Resolved configuration."""

    root: Path                          # directory that contains flprefs.toml (or cwd)
    user_dir: Path | None = None        # None: platformdirs decides
    system_dir: Path | None = None
    file_access: FileAccess = FileAccess.ALL
    index_threshold: int = DEFAULT_INDEX_THRESHOLD
    log_level: str = _DEFAULT_LOG_LEVEL

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME


def _load_env(root: Path) -> dict[str, str]:
    """Parse a simple KEY=VALUE .env file (no external dependency)."""
    env_file = root / ".env"
    if not env_file.exists():
        return {}
    env: dict[str, str] = {}
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            env[k.strip()] = v.strip().strip('"').strip("'")
    return env


def _dir_setting(root: Path, value: str | None) -> Path | None:
    if not value:
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def load_config(root: Path | str | None = None) -> PrefsConfig:
    """Load flprefs.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)
    section = raw.get("flprefs", {})

    env = _load_env(root_path)

    def _setting(env_key: str, toml_key: str) -> str | None:
        return os.environ.get(env_key) or env.get(env_key) or section.get(toml_key)

    log_level = str(_setting(_ENV_LOG_LEVEL, "log_level") or _DEFAULT_LOG_LEVEL).upper()
    file_access = FileAccess.from_names(section.get("file_access", ["ALL"]))

    threshold = int(section.get("index_threshold", DEFAULT_INDEX_THRESHOLD))
    if threshold < 0:
        msg = f"index_threshold must be >= 0, got {threshold} in {config_path}"
        raise ValueError(msg)

    return PrefsConfig(
        root=root_path,
        user_dir=_dir_setting(root_path, _setting(_ENV_USER_DIR, "user_dir")),
        system_dir=_dir_setting(root_path, _setting(_ENV_SYSTEM_DIR, "system_dir")),
        file_access=file_access,
        index_threshold=threshold,
        log_level=log_level,
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for flprefs.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path) -> Path:
    """Write a default flprefs.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"flprefs.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = """\
[flprefs]
# user_dir = "~/.config"      # default: platform user config directory
# system_dir = "/etc/xdg"     # default: platform site config directory
# file_access = ["ALL"]       # e.g. ["USER_OK"] to never touch system files
# index_threshold = 16        # entries per group before a name index is built
# log_level = "WARNING"
"""
    config_path.write_text(content)
    return config_path

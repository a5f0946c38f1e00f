"""Where preference files live.

    <user config dir>/<vendor>/<application>.prefs      # Root.USER
    <site config dir>/<vendor>/<application>.prefs      # Root.SYSTEM
    <user config dir>/<vendor>/<application>/           # userdata directory

The config directories come from platformdirs unless the context overrides
them (tests, portable installs).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import platformdirs

from flprefs.models import Root

if TYPE_CHECKING:
    from flprefs.context import PrefsContext

logger = logging.getLogger("flprefs.paths")

PREFS_SUFFIX = ".prefs"


def base_dir(root: Root, context: PrefsContext) -> Path | None:
    """Config directory for a scope; None for memory-only preferences."""
    scope = root.scope
    if scope == Root.MEMORY:
        return None
    if scope == Root.USER:
        return context.user_dir or Path(platformdirs.user_config_dir())
    return context.system_dir or Path(platformdirs.site_config_dir())


def prefs_file(root: Root, vendor: str, application: str, context: PrefsContext) -> Path | None:
    base = base_dir(root, context)
    if base is None:
        return None
    return base / vendor / f"{application}{PREFS_SUFFIX}"


def prefs_file_in(directory: Path | str, application: str) -> Path:
    """File for preferences kept in an explicit directory."""
    return Path(directory) / f"{application}{PREFS_SUFFIX}"


def userdata_dir(prefs_path: Path) -> Path | None:
    """Create (if needed) and return the data directory next to a prefs file."""
    name = prefs_path.name
    if name.endswith(PREFS_SUFFIX):
        name = name[: -len(PREFS_SUFFIX)]
    directory = prefs_path.with_name(name)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("cannot create userdata directory %s: %s", directory, exc)
        return None
    return directory

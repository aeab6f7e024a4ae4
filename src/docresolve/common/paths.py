"""OS-appropriate cache and data directories."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from ..constants import Constants


def _env_dir(name: str) -> Optional[Path]:
    value = os.environ.get(name)
    if value and os.path.isabs(value):
        return Path(value)
    return None


def cache_dir() -> Path:
    """Return the per-user cache directory for this platform."""
    if sys.platform == "win32":
        return _env_dir("LOCALAPPDATA") or Path.home() / "AppData" / "Local"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"
    return _env_dir("XDG_CACHE_HOME") or Path.home() / ".cache"


def data_dir() -> Path:
    """Return the per-user data directory for this platform."""
    if sys.platform == "win32":
        return _env_dir("APPDATA") or Path.home() / "AppData" / "Roaming"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    return _env_dir("XDG_DATA_HOME") or Path.home() / ".local" / "share"


def default_package_cache_dir() -> Path:
    """Where downloaded packages are extracted: <cache>/typst/packages."""
    return cache_dir() / Constants.DEFAULT_PACKAGES_SUBDIR


def default_local_package_dir() -> Path:
    """Where manually installed packages live: <data>/typst/packages."""
    return data_dir() / Constants.DEFAULT_PACKAGES_SUBDIR

#!/usr/bin/env python3
"""Artifact cache checks and on-disk state helpers for helixbuild.

Build outputs that already exist on disk double as the cache: a step is
skipped when its artifact is present and redone when it is not.
"""

import os
import shutil
import stat
from pathlib import Path

from .errors import FilesystemError


def get_user_data_root() -> Path:
    """Get the per-user application data root (%APPDATA% or ~/.local/share)."""
    if os.name == "nt":
        appdata = os.environ.get("APPDATA")
        return Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
    xdg = os.environ.get("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def is_ready(artifact: Path) -> bool:
    """True when the artifact a step produces is already on disk.

    Only the final artifact is checked; a build interrupted after producing it
    is indistinguishable from a complete one.
    """
    return Path(artifact).exists()


def _handle_remove_readonly(func, path, exc_info):
    # Extracted archives and git checkouts on Windows contain read-only files
    if isinstance(exc_info[1], PermissionError):
        os.chmod(path, stat.S_IWRITE)
        func(path)
    else:
        raise exc_info[1]


def remove_path(path: Path) -> bool:
    """Remove a file or directory tree. Returns False if nothing was there."""
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return False
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path, onerror=_handle_remove_readonly)
        else:
            path.unlink()
    except OSError as e:
        raise FilesystemError(f"Could not remove {path}: {e}") from e
    return True

"""Runtime asset staging."""

import shutil
from dataclasses import dataclass
from pathlib import Path

from .cache import remove_path
from .errors import FilesystemError


@dataclass(frozen=True)
class AssetBundle:
    source: Path
    destination: Path


def stage(bundle: AssetBundle) -> Path:
    """Replace the destination with a fresh copy of the asset tree.

    The destination is deleted first, so files removed from the source never
    survive a re-stage.
    """
    if not bundle.source.is_dir():
        raise FilesystemError(f"Assets directory not found: {bundle.source}")

    remove_path(bundle.destination)
    try:
        bundle.destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(bundle.source, bundle.destination)
    except (OSError, shutil.Error) as e:
        raise FilesystemError(f"Could not stage assets into {bundle.destination}: {e}") from e

    print(f"[ASSETS] Staged {bundle.source} -> {bundle.destination}")
    return bundle.destination

"""Clean, install, uninstall and run operations."""

import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from .cache import remove_path
from .config import ProjectLayout
from .dependencies import VendoredLibrary
from .errors import FilesystemError, PreconditionError, RunError
from .platforms import PlatformAdapter
from .process import ExecEnvironment, Runner, run


def require_executable(layout: ProjectLayout, action: str) -> Path:
    if not layout.executable.is_file():
        raise PreconditionError(f"Cannot {action}: {layout.executable} does not exist, compile first")
    return layout.executable


def managed_paths(layout: ProjectLayout, libraries: Sequence[VendoredLibrary]) -> List[Path]:
    """Paths clean removes: build output, staged assets and the extracted library trees"""
    return [layout.build_dir, layout.assets_destination] + [lib.source_dir for lib in libraries]


def clean(layout: ProjectLayout, libraries: Sequence[VendoredLibrary]) -> List[Path]:
    """Remove the managed paths and return the ones that existed"""
    removed = [path for path in managed_paths(layout, libraries) if remove_path(path)]
    for path in removed:
        print(f"[CLEAN] Removed {path}")
    print("[CLEAN] Cleaned." if removed else "[CLEAN] Nothing to clean.")
    return removed


def install(layout: ProjectLayout, adapter: PlatformAdapter, env: Optional[ExecEnvironment] = None,
            runner: Runner = run) -> Path:
    """Copy the built executable to the install location and register a launcher"""
    executable = require_executable(layout, "install")
    env = env or ExecEnvironment()
    destination = layout.installed_executable

    try:
        adapter.install_executable(executable, destination, env, runner)
        if layout.launcher is not None:
            adapter.create_launcher(destination, layout.launcher, env, runner)
            print(f"[INSTALL] Launcher created: {layout.launcher}")
    except (subprocess.SubprocessError, OSError, shutil.Error) as e:
        raise FilesystemError(f"Installation to {destination} failed: {e}") from e

    print(f"[INSTALL] Installed {destination}")
    return destination


def uninstall(layout: ProjectLayout, adapter: PlatformAdapter, env: Optional[ExecEnvironment] = None,
              runner: Runner = run) -> bool:
    """Remove the installed copy and launcher. Returns False if nothing was installed."""
    env = env or ExecEnvironment()
    try:
        removed = adapter.remove_installed(layout.install_dir, layout.installed_executable, env, runner)
    except (subprocess.SubprocessError, OSError) as e:
        raise FilesystemError(f"Could not remove {layout.installed_executable}: {e}") from e

    if layout.launcher is not None and remove_path(layout.launcher):
        removed = True

    print("[INSTALL] Uninstalled." if removed else "[INSTALL] Not installed, nothing to remove.")
    return removed


def run_executable(layout: ProjectLayout, env: Optional[ExecEnvironment] = None, runner: Runner = run) -> int:
    """Run the built executable; it is never built implicitly"""
    executable = require_executable(layout, "run")
    print(f"[RUN] {executable}")
    try:
        result = runner([str(executable)], cwd=layout.root, env=env, check=False)
    except OSError as e:
        raise RunError(f"Could not start {executable}: {e}") from e
    if result.returncode != 0:
        raise RunError(f"{executable.name} exited with status {result.returncode}")
    return result.returncode

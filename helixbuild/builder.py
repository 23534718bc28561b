#!/usr/bin/env python3
"""
Final compilation of the helix executable

Discovers the application sources, stages the runtime assets and links the
sources against the vendored static libraries in a single compiler call.
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .assets import AssetBundle, stage
from .cache import remove_path
from .config import ProjectLayout
from .dependencies import VendoredLibrary
from .errors import CompileError, FilesystemError, NoSourcesError
from .platforms import PlatformAdapter
from .process import ExecEnvironment, Runner, run

STANDARD_FLAGS = ("-std=c++17", "-O2", "-pipe")
WARNING_FLAGS = ("-W", "-Wall", "-Wpedantic", "-Wformat=2")


@dataclass(frozen=True)
class BuildPlan:
    """Everything the single compiler invocation needs"""
    sources: Tuple[Path, ...]
    include_dirs: Tuple[Path, ...]
    lib_dirs: Tuple[Path, ...]
    libraries: Tuple[str, ...]
    defines: Tuple[Tuple[str, str], ...]
    output: Path

    def command(self, compiler: str) -> List[str]:
        cmd = [compiler]
        cmd.extend(STANDARD_FLAGS)
        cmd.extend(WARNING_FLAGS)
        cmd.extend(f"-I{path}" for path in self.include_dirs)
        cmd.extend(f"-D{name}={value}" for name, value in self.defines)
        cmd.extend(str(source) for source in self.sources)
        cmd.extend(["-o", str(self.output)])
        # Static libraries must follow the objects that reference them
        cmd.extend(f"-L{path}" for path in self.lib_dirs)
        cmd.extend(f"-l{lib}" for lib in self.libraries)
        return cmd


def _unique(items: Sequence) -> tuple:
    seen = set()
    return tuple(item for item in items if not (item in seen or seen.add(item)))


def discover_sources(root: Path, pattern: str) -> List[Path]:
    """Return the files matching pattern under root in a stable order"""
    sources = sorted((p for p in root.glob(pattern) if p.is_file()), key=lambda p: p.as_posix())
    if not sources:
        raise NoSourcesError(f"No source files match {pattern} in {root}")
    return sources


def make_build_plan(layout: ProjectLayout, sources: Sequence[Path], libraries: Sequence[VendoredLibrary],
                    adapter: PlatformAdapter, staged_assets: Path,
                    arithmetic_prefix: Optional[Path] = None) -> BuildPlan:
    include_dirs = list(layout.include_dirs)
    lib_dirs = []
    for lib in libraries:
        include_dirs.extend(lib.include_dirs)
        lib_dirs.append(lib.lib_dir)
    if arithmetic_prefix is not None:
        include_dirs.append(arithmetic_prefix / "include")
        lib_dirs.append(arithmetic_prefix / "lib")

    link_names = [lib.link_name for lib in libraries] + list(adapter.system_libraries)

    return BuildPlan(
        sources=tuple(sources),
        include_dirs=_unique(include_dirs),
        lib_dirs=_unique(lib_dirs),
        libraries=_unique(link_names),
        defines=(("ASSETS", f'"{staged_assets.as_posix()}"'),),
        output=layout.executable,
    )


def build(layout: ProjectLayout, libraries: Sequence[VendoredLibrary], adapter: PlatformAdapter,
          env: Optional[ExecEnvironment] = None, runner: Runner = run, compiler: Optional[str] = None,
          arithmetic_prefix: Optional[Path] = None, timeout: Optional[int] = None) -> Path:
    """Compile the executable and return its path"""
    sources = discover_sources(layout.root, layout.source_pattern)
    print(f"[BUILD] {len(sources)} source file(s)")

    staged = stage(AssetBundle(layout.assets_source, layout.assets_destination))
    plan = make_build_plan(layout, sources, libraries, adapter, staged, arithmetic_prefix)

    try:
        layout.build_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Could not create build directory {layout.build_dir}: {e}") from e

    try:
        runner(plan.command(compiler or adapter.compiler), cwd=layout.root, env=env, timeout=timeout)
    except (subprocess.SubprocessError, OSError) as e:
        # A partially written binary is never kept
        remove_path(plan.output)
        raise CompileError(f"Compilation of {plan.output.name} failed: {e}") from e

    if not plan.output.exists():
        raise CompileError(f"Compiler exited successfully but {plan.output} was not created")

    print(f"[BUILD] {plan.output.name} compiled successfully: {plan.output}")
    return plan.output

#!/usr/bin/env python3
"""
Dependency management for helixbuild

This module handles the two vendored native libraries the demo links
against: raylib (graphics) and SymEngine (symbolic math). Both ship as local
archives under the dependencies directory and are built from source with
CMake into static libraries.
"""

import subprocess
import tarfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .cache import is_ready, remove_path
from .errors import BuildError, FilesystemError
from .platforms import PlatformAdapter
from .process import ExecEnvironment, Runner, run

RAYLIB_VERSION = "5.5"
SYMENGINE_VERSION = "0.14.0"

ARCHIVE_SUFFIXES = (".zip", ".tar.gz", ".tgz", ".tar.xz")


@dataclass(frozen=True)
class VendoredLibrary:
    """A library built from a local source archive"""
    identifier: str
    archive: Path
    source_dir: Path
    build_dir: Path
    artifact: Path
    link_name: str
    include_dirs: Tuple[Path, ...] = ()
    configure_options: Dict[str, str] = field(default_factory=dict)

    @property
    def lib_dir(self) -> Path:
        return self.artifact.parent


def _locate_archive(dependencies_dir: Path, stem: str) -> Path:
    for suffix in ARCHIVE_SUFFIXES:
        candidate = dependencies_dir / f"{stem}{suffix}"
        if candidate.exists():
            return candidate
    return dependencies_dir / f"{stem}.zip"


def vendored_libraries(dependencies_dir: Path, arithmetic_prefix: Optional[Path] = None) -> List[VendoredLibrary]:
    """The fixed set of vendored libraries, in build order"""
    raylib_stem = f"raylib-{RAYLIB_VERSION}"
    raylib_src = dependencies_dir / raylib_stem
    raylib_build = raylib_src / "build"
    raylib = VendoredLibrary(
        identifier="raylib",
        archive=_locate_archive(dependencies_dir, raylib_stem),
        source_dir=raylib_src,
        build_dir=raylib_build,
        artifact=raylib_build / "raylib" / "libraylib.a",
        link_name="raylib",
        include_dirs=(raylib_src / "src",),
        configure_options={
            "BUILD_EXAMPLES": "OFF",
            "BUILD_SHARED_LIBS": "OFF",
            "PLATFORM": "Desktop",
        },
    )

    symengine_stem = f"symengine-{SYMENGINE_VERSION}"
    symengine_src = dependencies_dir / symengine_stem
    symengine_build = symengine_src / "build"
    symengine_options = {
        "BUILD_TESTS": "OFF",
        "BUILD_BENCHMARKS": "OFF",
        "BUILD_SHARED_LIBS": "OFF",
        "INTEGER_CLASS": "gmp",
    }
    if arithmetic_prefix is not None:
        symengine_options["CMAKE_PREFIX_PATH"] = arithmetic_prefix.as_posix()
    symengine = VendoredLibrary(
        identifier="symengine",
        archive=_locate_archive(dependencies_dir, symengine_stem),
        source_dir=symengine_src,
        build_dir=symengine_build,
        artifact=symengine_build / "symengine" / "libsymengine.a",
        link_name="symengine",
        # symengine_config.h is generated into the build tree
        include_dirs=(symengine_src, symengine_build),
        configure_options=symengine_options,
    )

    return [raylib, symengine]


def extract_archive(archive: Path, destination: Path):
    """Extract a zip or tar archive into destination"""
    destination.mkdir(parents=True, exist_ok=True)
    if archive.name.endswith(".zip"):
        with zipfile.ZipFile(archive, "r") as z:
            z.extractall(destination)
    else:
        with tarfile.open(archive, "r:*") as t:
            if hasattr(tarfile, "data_filter"):
                t.extractall(destination, filter="data")
            else:
                t.extractall(destination)


class DependencyMaterializer:
    """Ensures each vendored library's static artifact exists on disk"""

    def __init__(self, adapter: PlatformAdapter, env: Optional[ExecEnvironment] = None,
                 runner: Runner = run, parallel_jobs: Optional[int] = None, timeout: Optional[int] = None):
        self.adapter = adapter
        self.env = env or ExecEnvironment()
        self.runner = runner
        self.parallel_jobs = parallel_jobs
        self.timeout = timeout

    def materialize(self, lib: VendoredLibrary) -> Path:
        """Return the library artifact, extracting and building it only if it is missing"""
        if is_ready(lib.artifact):
            print(f"[DEPS] {lib.identifier}: using cached build {lib.artifact}")
            return lib.artifact

        if not lib.source_dir.exists():
            self._extract(lib)
        else:
            print(f"[DEPS] {lib.identifier}: sources already extracted at {lib.source_dir}")

        self._configure_and_build(lib)

        if not is_ready(lib.artifact):
            raise BuildError(lib.identifier, "build", f"expected artifact not produced: {lib.artifact}")

        print(f"[DEPS] {lib.identifier} compiled successfully.")
        return lib.artifact

    def materialize_all(self, libraries: List[VendoredLibrary]) -> List[Path]:
        return [self.materialize(lib) for lib in libraries]

    def _extract(self, lib: VendoredLibrary):
        if not lib.archive.exists():
            raise BuildError(lib.identifier, "extract", f"archive not found: {lib.archive}")

        print(f"[DEPS] {lib.identifier}: extracting {lib.archive.name}")
        try:
            extract_archive(lib.archive, lib.source_dir.parent)
        except (zipfile.BadZipFile, tarfile.TarError, OSError) as e:
            raise BuildError(lib.identifier, "extract", str(e)) from e

        if not lib.source_dir.is_dir():
            raise BuildError(lib.identifier, "extract",
                             f"{lib.archive.name} did not contain {lib.source_dir.name}/")

    def _configure_and_build(self, lib: VendoredLibrary):
        try:
            remove_path(lib.build_dir)
            lib.build_dir.mkdir(parents=True)
        except (FilesystemError, OSError) as e:
            raise BuildError(lib.identifier, "configure", f"could not prepare {lib.build_dir}: {e}") from e

        steps = [
            ("configure", self.adapter.configure_command(lib.source_dir, lib.build_dir, lib.configure_options)),
            ("build", self.adapter.build_command(lib.build_dir, self.parallel_jobs)),
        ]
        for stage, cmd in steps:
            print(f"[DEPS] {lib.identifier}: {stage}")
            try:
                self.runner(cmd, cwd=lib.build_dir, env=self.env, timeout=self.timeout)
            except (subprocess.SubprocessError, OSError) as e:
                raise BuildError(lib.identifier, stage, str(e)) from e

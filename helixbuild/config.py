#!/usr/bin/env python3
"""
Configuration management for helix.toml files

This module handles parsing and validation of the optional helix.toml file
that adjusts project paths, the compiler and install locations. A project
without helix.toml builds with the defaults below.
"""

try:
    import tomllib
except ImportError:
    # For Python < 3.11
    import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field

from .cache import get_user_data_root
from .errors import ConfigError

CONFIG_FILE_NAME = "helix.toml"


@dataclass
class ProjectConfig:
    """Project section"""
    name: str = "helix"
    sources: str = "source/*.cpp"
    include_dirs: List[str] = field(default_factory=lambda: ["include", "source"])
    assets: str = "assets"
    build_dir: str = "build"
    dependencies_dir: str = "dependencies"


@dataclass
class BuildConfig:
    """Build section"""
    compiler: Optional[str] = None
    parallel_jobs: Optional[int] = None
    timeout: Optional[int] = None  # seconds per external command


@dataclass
class PathsConfig:
    """Overrides for locations outside the project tree"""
    install_dir: Optional[str] = None
    data_dir: Optional[str] = None


@dataclass
class HelixConfig:
    """Complete helixbuild configuration"""
    root: Path = field(default_factory=Path.cwd)
    project: ProjectConfig = field(default_factory=ProjectConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)


@dataclass(frozen=True)
class ProjectLayout:
    """Absolute paths every operation works with, resolved once per invocation"""
    root: Path
    source_pattern: str
    include_dirs: Tuple[Path, ...]
    build_dir: Path
    executable: Path
    dependencies_dir: Path
    assets_source: Path
    assets_destination: Path
    install_dir: Path
    installed_executable: Path
    launcher: Optional[Path] = None


def find_project_root(start_path: Optional[Path] = None) -> Path:
    """Find the project root directory containing helix.toml"""
    if start_path is None:
        start_path = Path.cwd()

    current = start_path if start_path.is_dir() else start_path.parent
    for path in [current] + list(current.parents):
        if (path / CONFIG_FILE_NAME).exists():
            return path

    # No helix.toml anywhere: the working directory is the project
    return Path.cwd()


def _expect(value: Any, kind: type, key: str) -> Any:
    if value is not None and not isinstance(value, kind):
        raise ConfigError(f"{key} must be of type {kind.__name__}, got {type(value).__name__}")
    return value


def _parse(data: Dict[str, Any], root: Path) -> HelixConfig:
    project_data = _expect(data.get("project", {}), dict, "[project]")
    build_data = _expect(data.get("build", {}), dict, "[build]")
    paths_data = _expect(data.get("paths", {}), dict, "[paths]")

    defaults = ProjectConfig()
    include_dirs = _expect(project_data.get("include_dirs", defaults.include_dirs), list, "project.include_dirs")
    project = ProjectConfig(
        name=_expect(project_data.get("name", defaults.name), str, "project.name"),
        sources=_expect(project_data.get("sources", defaults.sources), str, "project.sources"),
        include_dirs=[str(d) for d in include_dirs],
        assets=_expect(project_data.get("assets", defaults.assets), str, "project.assets"),
        build_dir=_expect(project_data.get("build_dir", defaults.build_dir), str, "project.build_dir"),
        dependencies_dir=_expect(project_data.get("dependencies_dir", defaults.dependencies_dir), str,
                                 "project.dependencies_dir"),
    )

    build = BuildConfig(
        compiler=_expect(build_data.get("compiler"), str, "build.compiler"),
        parallel_jobs=_expect(build_data.get("parallel_jobs"), int, "build.parallel_jobs"),
        timeout=_expect(build_data.get("timeout"), int, "build.timeout"),
    )

    paths = PathsConfig(
        install_dir=_expect(paths_data.get("install_dir"), str, "paths.install_dir"),
        data_dir=_expect(paths_data.get("data_dir"), str, "paths.data_dir"),
    )

    return HelixConfig(root=root, project=project, build=build, paths=paths)


def load_config(config_path: Optional[Union[str, Path]] = None) -> HelixConfig:
    """Load helixbuild configuration.

    Without an explicit path, helix.toml is searched from the working directory
    upwards; if none exists the defaults apply with the working directory as root.
    """
    if config_path is None:
        root = find_project_root()
        config_path = root / CONFIG_FILE_NAME
        if not config_path.exists():
            return HelixConfig(root=root)

    config_path = Path(config_path).resolve()
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{config_path}: {e}") from e

    return _parse(data, config_path.parent)


def _resolve(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def resolve_layout(config: HelixConfig, adapter) -> ProjectLayout:
    """Derive every managed path from the configuration and the platform adapter"""
    root = config.root.resolve()
    project = config.project
    exe_name = project.name + adapter.exe_suffix

    if config.paths.data_dir:
        data_dir = _resolve(root, config.paths.data_dir)
    else:
        data_dir = get_user_data_root() / project.name

    if config.paths.install_dir:
        install_dir = _resolve(root, config.paths.install_dir)
    else:
        install_dir = adapter.default_install_dir(project.name)

    build_dir = _resolve(root, project.build_dir)
    return ProjectLayout(
        root=root,
        source_pattern=project.sources,
        include_dirs=tuple(_resolve(root, d) for d in project.include_dirs),
        build_dir=build_dir,
        executable=build_dir / exe_name,
        dependencies_dir=_resolve(root, project.dependencies_dir),
        assets_source=_resolve(root, project.assets),
        assets_destination=data_dir / "assets",
        install_dir=install_dir,
        installed_executable=install_dir / exe_name,
        launcher=adapter.launcher_path(project.name),
    )


def validate_config(config: HelixConfig) -> List[str]:
    """Validate a helixbuild configuration and return list of warnings"""
    warnings = []

    if not config.project.name:
        warnings.append("Project name cannot be empty")

    if not config.project.sources:
        warnings.append("Source pattern cannot be empty")

    if config.build.parallel_jobs is not None and config.build.parallel_jobs < 1:
        warnings.append("parallel_jobs must be >= 1")

    if config.build.timeout is not None and config.build.timeout < 1:
        warnings.append("timeout must be >= 1 second")

    for inc_dir in config.project.include_dirs:
        if not _resolve(config.root, inc_dir).is_dir():
            warnings.append(f"Include directory does not exist: {inc_dir}")

    return warnings

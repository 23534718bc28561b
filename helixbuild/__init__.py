"""
helixbuild - Cross-platform build orchestrator for the helix demo

This package installs the host toolchain, builds the vendored raylib and
SymEngine libraries from their archives, compiles the demo and manages its
installation on Linux and Windows.
"""

__version__ = "0.1.0"

from .cli import main
from .config import load_config, HelixConfig
from .dependencies import DependencyMaterializer, VendoredLibrary, vendored_libraries
from .errors import (
    HelixBuildError, ToolchainError, BuildError, NoSourcesError,
    CompileError, PreconditionError, FilesystemError, RunError, ConfigError,
)

__all__ = [
    "main",
    "load_config",
    "HelixConfig",
    "DependencyMaterializer",
    "VendoredLibrary",
    "vendored_libraries",
    "HelixBuildError",
    "ToolchainError",
    "BuildError",
    "NoSourcesError",
    "CompileError",
    "PreconditionError",
    "FilesystemError",
    "RunError",
    "ConfigError",
]

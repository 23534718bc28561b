"""Exceptions raised by helixbuild operations.

Every error is fatal to the current invocation: the dispatcher catches the
first one, prints it and exits with status 1.
"""

from typing import Optional


class HelixBuildError(RuntimeError):
    """Base class for all orchestration failures"""


class ConfigError(HelixBuildError):
    """helix.toml could not be read or contains invalid values"""


class ToolchainError(HelixBuildError):
    """A package manager bootstrap or tool installation failed"""


class BuildError(HelixBuildError):
    """A vendored library failed to extract, configure or build"""

    def __init__(self, library: str, stage: str, detail: Optional[str] = None):
        self.library = library
        self.stage = stage
        self.detail = detail
        message = f"{library}: {stage} step failed"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class NoSourcesError(HelixBuildError):
    """Source discovery matched no files"""


class CompileError(HelixBuildError):
    """The final compiler invocation failed"""


class PreconditionError(HelixBuildError):
    """An operation needs an artifact that does not exist yet"""


class FilesystemError(HelixBuildError):
    """A copy, delete or mkdir operation failed"""


class RunError(HelixBuildError):
    """The built executable exited with a nonzero status"""

"""External process execution for helixbuild.

Tools installed during a run (scoop shims, a freshly bootstrapped vcpkg) are
made visible through an ``ExecEnvironment`` value that is passed explicitly to
every command instead of being written into ``os.environ``.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class ExecEnvironment:
    """Search-path entries and variables layered on top of the process environment"""
    path_prepend: Tuple[str, ...] = ()
    variables: Tuple[Tuple[str, str], ...] = ()

    def with_path(self, directory: Union[str, Path]) -> "ExecEnvironment":
        entry = str(directory)
        if entry in self.path_prepend:
            return self
        return replace(self, path_prepend=(entry,) + self.path_prepend)

    def with_variable(self, name: str, value: str) -> "ExecEnvironment":
        kept = tuple((k, v) for k, v in self.variables if k != name)
        return replace(self, variables=kept + ((name, value),))

    def search_path(self) -> str:
        entries = list(self.path_prepend)
        base = os.environ.get("PATH", "")
        if base:
            entries.append(base)
        return os.pathsep.join(entries)

    def which(self, name: str) -> Optional[str]:
        """Resolve an executable against the augmented search path"""
        return shutil.which(name, path=self.search_path())

    def to_environ(self) -> Dict[str, str]:
        env = os.environ.copy()
        env.update(dict(self.variables))
        env["PATH"] = self.search_path()
        return env


Runner = Callable[..., subprocess.CompletedProcess]


def format_command(cmd: Sequence[Union[str, Path]]) -> str:
    return " ".join(str(part) for part in cmd)


def run(cmd: Sequence[Union[str, Path]], cwd: Optional[Path] = None,
        env: Optional[ExecEnvironment] = None, timeout: Optional[int] = None,
        check: bool = True) -> subprocess.CompletedProcess:
    """Execute a command, echoing it first, and wait for it to finish.

    Args:
        cmd: Command and arguments
        cwd: Working directory
        env: Augmented environment; the program itself is resolved against it
        timeout: Timeout in seconds, None to wait indefinitely
        check: Raise CalledProcessError on a nonzero exit

    Raises:
        subprocess.CalledProcessError: nonzero exit with check=True
        subprocess.TimeoutExpired: the command ran longer than timeout
        FileNotFoundError: the program could not be found
    """
    args: List[str] = [str(part) for part in cmd]
    print("$", format_command(args))

    environ = None
    if env is not None:
        resolved = env.which(args[0])
        if resolved:
            args[0] = resolved
        environ = env.to_environ()

    return subprocess.run(args, cwd=cwd, env=environ, timeout=timeout, check=check)

"""Host toolchain probing and installation."""

import subprocess
from typing import List, Optional, Tuple

from .errors import ToolchainError
from .platforms import PlatformAdapter, ToolRequirement
from .process import ExecEnvironment, Runner, format_command, run


def probe_toolchain(adapter: PlatformAdapter, env: ExecEnvironment) -> List[Tuple[ToolRequirement, bool]]:
    """Report each requirement of the platform together with whether it is satisfied"""
    return [(requirement, requirement.is_satisfied(env)) for requirement in adapter.requirements()]


def ensure_toolchain(adapter: PlatformAdapter, env: Optional[ExecEnvironment] = None,
                     runner: Runner = run) -> ExecEnvironment:
    """Install every missing tool and return the environment in which they are visible.

    The package manager is only looked up (and bootstrapped) when at least one
    requirement is missing.
    """
    env = env or ExecEnvironment()
    status = probe_toolchain(adapter, env)
    missing = [requirement for requirement, ok in status if not ok]

    for requirement, ok in status:
        print(f"[TOOLCHAIN] {requirement.name}: {'found' if ok else 'missing'}")

    if not missing:
        return env

    env = adapter.ensure_package_manager(env, runner)

    for requirement in missing:
        # An earlier package may have provided it (mingw ships g++ and make)
        if requirement.is_satisfied(env):
            continue
        cmd = adapter.install_command(requirement)
        print(f"[TOOLCHAIN] Installing {requirement.name}")
        try:
            runner(cmd, env=env)
        except (subprocess.SubprocessError, OSError) as e:
            raise ToolchainError(f"Installing {requirement.name} failed: {format_command(cmd)}: {e}") from e

        if not requirement.is_satisfied(env):
            raise ToolchainError(f"{requirement.name} is still missing after installation")

    return env

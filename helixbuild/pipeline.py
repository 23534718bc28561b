"""Ordered operation pipeline driven by the command dispatcher."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .builder import build
from .config import HelixConfig, ProjectLayout, resolve_layout
from .dependencies import DependencyMaterializer, VendoredLibrary, vendored_libraries
from .errors import HelixBuildError
from .lifecycle import clean, install, run_executable, uninstall
from .platforms import PlatformAdapter, detect_platform
from .process import ExecEnvironment, Runner, run
from .toolchain import ensure_toolchain

# Fixed evaluation order, whatever order the flags were given in
OPERATIONS = ("clean", "compile", "run", "install", "uninstall")


@dataclass
class BuildContext:
    """State shared by the stages of one invocation"""
    config: HelixConfig
    adapter: PlatformAdapter
    layout: ProjectLayout
    runner: Runner = run
    env: ExecEnvironment = field(default_factory=ExecEnvironment)

    @classmethod
    def create(cls, config: HelixConfig, adapter: Optional[PlatformAdapter] = None,
               runner: Runner = run) -> "BuildContext":
        adapter = adapter or detect_platform()
        return cls(config=config, adapter=adapter, layout=resolve_layout(config, adapter), runner=runner)

    def libraries(self, arithmetic_prefix: Optional[Path] = None) -> List[VendoredLibrary]:
        return vendored_libraries(self.layout.dependencies_dir, arithmetic_prefix)


@dataclass(frozen=True)
class Stage:
    name: str
    action: Callable[[], object]


def compile_project(ctx: BuildContext) -> Path:
    """Toolchain, then both libraries, then the executable"""
    ctx.env = ensure_toolchain(ctx.adapter, ctx.env, ctx.runner)
    prefix = ctx.adapter.ensure_arithmetic_prefix(ctx.layout.dependencies_dir, ctx.env, ctx.runner)

    libraries = ctx.libraries(prefix)
    materializer = DependencyMaterializer(ctx.adapter, ctx.env, ctx.runner,
                                          parallel_jobs=ctx.config.build.parallel_jobs,
                                          timeout=ctx.config.build.timeout)
    materializer.materialize_all(libraries)

    return build(ctx.layout, libraries, ctx.adapter, env=ctx.env, runner=ctx.runner,
                 compiler=ctx.config.build.compiler, arithmetic_prefix=prefix,
                 timeout=ctx.config.build.timeout)


def build_pipeline(requested: Iterable[str], ctx: BuildContext) -> List[Stage]:
    """Stages for the requested operations, in OPERATIONS order"""
    actions = {
        "clean": lambda: clean(ctx.layout, ctx.libraries()),
        "compile": lambda: compile_project(ctx),
        "run": lambda: run_executable(ctx.layout, ctx.env, ctx.runner),
        "install": lambda: install(ctx.layout, ctx.adapter, ctx.env, ctx.runner),
        "uninstall": lambda: uninstall(ctx.layout, ctx.adapter, ctx.env, ctx.runner),
    }
    wanted = set(requested)
    unknown = wanted.difference(OPERATIONS)
    if unknown:
        raise ValueError(f"Unknown operations: {', '.join(sorted(unknown))}")
    return [Stage(name, actions[name]) for name in OPERATIONS if name in wanted]


def run_pipeline(stages: Iterable[Stage]) -> int:
    """Run stages in order, stopping at the first failure. Returns the exit code."""
    for stage in stages:
        try:
            stage.action()
        except HelixBuildError as e:
            print(f"[ERROR] {stage.name}: {e}")
            return 1
    return 0

"""Shared fixtures: a throwaway helix project, a fake platform and a recording runner."""

import subprocess
import zipfile
from pathlib import Path
from types import SimpleNamespace

import pytest

from helixbuild.config import HelixConfig, PathsConfig, resolve_layout
from helixbuild.pipeline import BuildContext
from helixbuild.platforms import PlatformAdapter
from helixbuild.process import ExecEnvironment


class RecordingRunner:
    """Stands in for process.run: records every command and fakes its effects.

    ``cmake --build <dir>`` leaves ``<dir>/<name>/lib<name>.a`` behind, where
    name is the library directory prefix; a command with ``-o <file>`` writes
    the output file.
    """

    def __init__(self):
        self.calls = []
        self.fail_when = None
        self.skip_artifacts = False
        self.run_returncode = 0
        self.hooks = []

    def __call__(self, cmd, cwd=None, env=None, timeout=None, check=True):
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)

        if self.fail_when is not None and self.fail_when(cmd):
            if check:
                raise subprocess.CalledProcessError(2, cmd)
            return subprocess.CompletedProcess(cmd, 2)

        for hook in self.hooks:
            hook(cmd, cwd)

        if cmd[:2] == ["cmake", "--build"] and not self.skip_artifacts:
            build_dir = Path(cmd[2])
            name = build_dir.parent.name.split("-")[0]
            artifact = build_dir / name / f"lib{name}.a"
            artifact.parent.mkdir(parents=True, exist_ok=True)
            artifact.write_bytes(b"!<arch>\n")
        elif "-o" in cmd and not self.skip_artifacts:
            output = Path(cmd[cmd.index("-o") + 1])
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_bytes(b"\x7fELF")
            return subprocess.CompletedProcess(cmd, 0)

        returncode = self.run_returncode if len(cmd) == 1 else 0
        return subprocess.CompletedProcess(cmd, returncode)

    @property
    def configure_calls(self):
        return [c for c in self.calls if c[0] == "cmake" and "-S" in c]

    @property
    def build_calls(self):
        return [c for c in self.calls if c[:2] == ["cmake", "--build"]]

    @property
    def compile_calls(self):
        return [c for c in self.calls if "-o" in c]


class FakeAdapter(PlatformAdapter):
    name = "fake"
    compiler = "c++"
    system_libraries = ("m", "gmp")

    def __init__(self, install_root: Path):
        self.install_root = install_root
        self.tool_requirements = []
        self.package_manager_calls = 0

    def requirements(self):
        return list(self.tool_requirements)

    def ensure_package_manager(self, env, runner=None):
        self.package_manager_calls += 1
        return env.with_path(self.install_root / "pm-bin")

    def install_command(self, requirement):
        return ["fakepm", "install"] + list(requirement.packages)

    def default_install_dir(self, app_name):
        return self.install_root / app_name

    def remove_installed(self, install_dir, installed_executable, env, runner=None):
        if not installed_executable.exists():
            return False
        installed_executable.unlink()
        return True


class LauncherAdapter(FakeAdapter):
    """A fake platform that registers a start-menu style shortcut"""

    def launcher_path(self, app_name):
        return self.install_root / "Start Menu" / f"{app_name.title()}.lnk"

    def create_launcher(self, target, launcher, env, runner=None):
        launcher.parent.mkdir(parents=True, exist_ok=True)
        launcher.write_text(str(target))


def make_source_archive(path: Path, top: str, extra_files=()):
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as z:
        z.writestr(f"{top}/CMakeLists.txt", "cmake_minimum_required(VERSION 3.16)\n")
        for name in extra_files:
            z.writestr(f"{top}/{name}", "")


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def project(tmp_path, runner):
    root = tmp_path / "helix"
    (root / "source").mkdir(parents=True)
    (root / "source" / "main.cpp").write_text("int main() { return 0; }\n")
    (root / "source" / "draw.cpp").write_text("void draw() {}\n")
    (root / "include").mkdir()
    (root / "assets").mkdir()
    (root / "assets" / "font.ttf").write_text("font")
    make_source_archive(root / "dependencies" / "raylib-5.5.zip", "raylib-5.5", ["src/raylib.h"])
    make_source_archive(root / "dependencies" / "symengine-0.14.0.zip", "symengine-0.14.0",
                        ["symengine/basic.h"])

    config = HelixConfig(
        root=root,
        paths=PathsConfig(install_dir=str(tmp_path / "install"), data_dir=str(tmp_path / "data")),
    )
    adapter = FakeAdapter(tmp_path / "system")
    layout = resolve_layout(config, adapter)
    ctx = BuildContext(config=config, adapter=adapter, layout=layout, runner=runner, env=ExecEnvironment())
    return SimpleNamespace(root=root, config=config, adapter=adapter, layout=layout, runner=runner, ctx=ctx)


@pytest.fixture
def make_archive():
    return make_source_archive


@pytest.fixture
def launcher_adapter(tmp_path):
    return LauncherAdapter(tmp_path / "system")

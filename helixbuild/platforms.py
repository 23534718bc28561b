#!/usr/bin/env python3
"""
Platform adapters for helixbuild

Each supported host supplies one adapter describing the tools it needs, how
its package manager installs them, how CMake is invoked, which system
libraries the final link needs and where the application is installed.
Everything else in helixbuild is platform independent.
"""

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .cache import is_ready
from .errors import FilesystemError, ToolchainError
from .process import ExecEnvironment, Runner, run


@dataclass(frozen=True)
class ToolRequirement:
    """A tool or development package the build needs on the host"""
    name: str
    command: Optional[str] = None
    paths: Tuple[str, ...] = ()
    packages: Tuple[str, ...] = ()

    def is_satisfied(self, env: ExecEnvironment) -> bool:
        if self.command and not env.which(self.command):
            return False
        if self.paths and not any(Path(p).exists() for p in self.paths):
            return False
        return True


class PlatformAdapter:
    """Interface the orchestrator core uses for everything host specific"""
    name = "generic"
    exe_suffix = ""
    compiler = "c++"
    system_libraries: Tuple[str, ...] = ()

    def requirements(self) -> List[ToolRequirement]:
        raise NotImplementedError

    def ensure_package_manager(self, env: ExecEnvironment, runner: Runner = run) -> ExecEnvironment:
        """Make the package manager available, returning the environment that can see it"""
        raise NotImplementedError

    def install_command(self, requirement: ToolRequirement) -> List[str]:
        raise NotImplementedError

    def ensure_arithmetic_prefix(self, dependencies_dir: Path, env: ExecEnvironment,
                                 runner: Runner = run) -> Optional[Path]:
        """Install prefix of GMP when it does not come from the system packages"""
        return None

    def cmake_generator(self) -> List[str]:
        return []

    def configure_command(self, source_dir: Path, build_dir: Path, options: Dict[str, str]) -> List[str]:
        cmd = ["cmake", "-S", str(source_dir), "-B", str(build_dir)] + self.cmake_generator()
        cmd.append("-DCMAKE_BUILD_TYPE=Release")
        for key, value in options.items():
            cmd.append(f"-D{key}={value}")
        return cmd

    def build_command(self, build_dir: Path, parallel_jobs: Optional[int] = None) -> List[str]:
        cmd = ["cmake", "--build", str(build_dir), "--config", "Release"]
        if parallel_jobs:
            cmd.extend(["--parallel", str(parallel_jobs)])
        return cmd

    def default_install_dir(self, app_name: str) -> Path:
        raise NotImplementedError

    def launcher_path(self, app_name: str) -> Optional[Path]:
        return None

    def install_executable(self, executable: Path, destination: Path,
                           env: ExecEnvironment, runner: Runner = run):
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(executable, destination)

    def create_launcher(self, target: Path, launcher: Path, env: ExecEnvironment, runner: Runner = run):
        pass

    def remove_installed(self, install_dir: Path, installed_executable: Path,
                         env: ExecEnvironment, runner: Runner = run) -> bool:
        raise NotImplementedError


# Package names per Linux package manager
LINUX_PACKAGE_MANAGERS: Dict[str, List[str]] = {
    "apt": ["apt-get", "install", "-y"],
    "dnf": ["dnf", "install", "-y"],
    "pacman": ["pacman", "-S", "--needed", "--noconfirm"],
}

GMP_HEADERS = (
    "/usr/include/gmp.h",
    "/usr/include/x86_64-linux-gnu/gmp.h",
    "/usr/include/aarch64-linux-gnu/gmp.h",
)

_LINUX_REQUIREMENTS = [
    ("c++ compiler", "c++", (), {"apt": ("g++",), "dnf": ("gcc-c++", "libatomic"), "pacman": ("gcc",)}),
    ("cmake", "cmake", (), {"apt": ("cmake",), "dnf": ("cmake",), "pacman": ("cmake",)}),
    ("make", "make", (), {"apt": ("make",), "dnf": ("make",), "pacman": ("make",)}),
    ("X11 headers", None, ("/usr/include/X11/Xlib.h",), {
        "apt": ("libx11-dev", "libxrandr-dev", "libxi-dev", "libxcursor-dev", "libxinerama-dev",
                "libwayland-dev", "libxkbcommon-dev"),
        "dnf": ("libX11-devel", "libXrandr-devel", "libXi-devel", "libXcursor-devel", "libXinerama-devel"),
        "pacman": ("libx11", "libxrandr", "libxi", "libxcursor", "libxinerama"),
    }),
    ("OpenGL headers", None, ("/usr/include/GL/gl.h",), {
        "apt": ("libgl1-mesa-dev", "libglu1-mesa-dev"),
        "dnf": ("mesa-libGL-devel",),
        "pacman": ("mesa",),
    }),
    ("ALSA headers", None, ("/usr/include/alsa/asoundlib.h",), {
        "apt": ("libasound2-dev",),
        "dnf": ("alsa-lib-devel",),
        "pacman": ("alsa-lib",),
    }),
    ("GMP", None, GMP_HEADERS, {"apt": ("libgmp-dev",), "dnf": ("gmp-devel",), "pacman": ("gmp",)}),
]


def parse_os_release(text: str) -> Dict[str, str]:
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def detect_linux_package_manager(os_release: str) -> str:
    """Map /etc/os-release contents to one of LINUX_PACKAGE_MANAGERS"""
    info = parse_os_release(os_release)
    ids = [info.get("ID", "").lower()] + info.get("ID_LIKE", "").lower().split()

    for distro in ids:
        if distro in ("ubuntu", "linuxmint", "mint", "debian"):
            print("[TOOLCHAIN] Distribution detected: Ubuntu, Mint or Debian")
            return "apt"
        if distro == "fedora":
            print("[TOOLCHAIN] Distribution detected: Fedora")
            return "dnf"
        if distro == "arch":
            print("[TOOLCHAIN] Distribution detected: Arch")
            return "pacman"
        if distro == "gentoo":
            raise ToolchainError("Gentoo detected: install the raylib and GMP dependencies yourself")

    name = info.get("PRETTY_NAME") or info.get("ID") or "unknown"
    raise ToolchainError(f"Unsupported Linux distribution: {name}")


def _read_os_release() -> str:
    for candidate in ("/etc/os-release", "/usr/lib/os-release"):
        try:
            return Path(candidate).read_text(encoding="utf-8")
        except OSError:
            continue
    raise ToolchainError("Could not read /etc/os-release to detect the distribution")


def _is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


class LinuxAdapter(PlatformAdapter):
    name = "linux"
    compiler = "c++"
    system_libraries = ("m", "gmp")

    def __init__(self, os_release: Optional[str] = None):
        self._os_release = os_release
        self._package_manager: Optional[str] = None

    @property
    def package_manager(self) -> str:
        # Detected on first use so clean/uninstall work on any distribution
        if self._package_manager is None:
            text = self._os_release if self._os_release is not None else _read_os_release()
            self._package_manager = detect_linux_package_manager(text)
        return self._package_manager

    def _privileged(self, cmd: List[str]) -> List[str]:
        return cmd if _is_root() else ["sudo"] + cmd

    def requirements(self) -> List[ToolRequirement]:
        manager = self.package_manager
        return [
            ToolRequirement(name=name, command=command, paths=paths, packages=packages[manager])
            for name, command, paths, packages in _LINUX_REQUIREMENTS
        ]

    def ensure_package_manager(self, env: ExecEnvironment, runner: Runner = run) -> ExecEnvironment:
        program = LINUX_PACKAGE_MANAGERS[self.package_manager][0]
        if not env.which(program):
            raise ToolchainError(f"Package manager '{program}' not found on PATH")
        return env

    def install_command(self, requirement: ToolRequirement) -> List[str]:
        return self._privileged(LINUX_PACKAGE_MANAGERS[self.package_manager] + list(requirement.packages))

    def default_install_dir(self, app_name: str) -> Path:
        return Path("/usr/local/bin")

    def install_executable(self, executable: Path, destination: Path,
                           env: ExecEnvironment, runner: Runner = run):
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(executable, destination)
            destination.chmod(0o755)
        except PermissionError:
            print(f"[INSTALL] {destination.parent} is not writable, retrying with sudo")
            runner(self._privileged(["install", "-D", "-m", "755", str(executable), str(destination)]), env=env)

    def remove_installed(self, install_dir: Path, installed_executable: Path,
                         env: ExecEnvironment, runner: Runner = run) -> bool:
        # The install directory is shared (/usr/local/bin): only our file goes
        if not installed_executable.exists():
            return False
        if os.access(installed_executable.parent, os.W_OK):
            installed_executable.unlink()
        else:
            runner(self._privileged(["rm", "-f", str(installed_executable)]), env=env)
        return True


SCOOP_INSTALLER = (
    "Set-ExecutionPolicy -ExecutionPolicy RemoteSigned -Scope CurrentUser -Force; "
    "Invoke-RestMethod -Uri https://get.scoop.sh | Invoke-Expression"
)
VCPKG_GIT = "https://github.com/microsoft/vcpkg.git"
VCPKG_TRIPLET = "x64-mingw-static"


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class WindowsAdapter(PlatformAdapter):
    name = "windows"
    exe_suffix = ".exe"
    compiler = "g++"
    system_libraries = ("gmp", "opengl32", "gdi32", "winmm")

    def __init__(self, scoop_root: Optional[Path] = None):
        self.scoop_root = scoop_root or Path(os.environ.get("SCOOP", str(Path.home() / "scoop")))

    def requirements(self) -> List[ToolRequirement]:
        return [
            ToolRequirement(name="git", command="git", packages=("git",)),
            ToolRequirement(name="cmake", command="cmake", packages=("cmake",)),
            ToolRequirement(name="g++", command="g++", packages=("mingw",)),
            ToolRequirement(name="mingw32-make", command="mingw32-make", packages=("mingw",)),
        ]

    def ensure_package_manager(self, env: ExecEnvironment, runner: Runner = run) -> ExecEnvironment:
        env = env.with_path(self.scoop_root / "shims")
        if env.which("scoop"):
            return env

        # Installs into the user profile, no elevation required
        print(f"[TOOLCHAIN] scoop not found, bootstrapping into {self.scoop_root}")
        try:
            runner(["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", SCOOP_INSTALLER],
                   env=env)
        except (subprocess.SubprocessError, OSError) as e:
            raise ToolchainError(f"scoop bootstrap failed: {e}") from e

        if not env.which("scoop"):
            raise ToolchainError(f"scoop bootstrap finished but scoop is not in {self.scoop_root / 'shims'}")
        return env

    def install_command(self, requirement: ToolRequirement) -> List[str]:
        return ["scoop", "install"] + list(requirement.packages)

    def ensure_arithmetic_prefix(self, dependencies_dir: Path, env: ExecEnvironment,
                                 runner: Runner = run) -> Optional[Path]:
        vcpkg_root = dependencies_dir / "vcpkg"
        vcpkg_exe = vcpkg_root / "vcpkg.exe"
        prefix = vcpkg_root / "installed" / VCPKG_TRIPLET
        artifact = prefix / "lib" / "libgmp.a"

        if is_ready(artifact):
            print(f"[DEPS] GMP already available: {artifact}")
            return prefix

        env = env.with_variable("VCPKG_DEFAULT_HOST_TRIPLET", VCPKG_TRIPLET)
        try:
            if not is_ready(vcpkg_exe):
                if not vcpkg_root.exists():
                    runner(["git", "clone", VCPKG_GIT, str(vcpkg_root)], env=env)
                runner([str(vcpkg_root / "bootstrap-vcpkg.bat"), "-disableMetrics"], cwd=vcpkg_root, env=env)
                if not is_ready(vcpkg_exe):
                    raise ToolchainError(f"vcpkg bootstrap did not produce {vcpkg_exe}")

            runner([str(vcpkg_exe), "install", f"gmp:{VCPKG_TRIPLET}"], cwd=vcpkg_root, env=env)
        except (subprocess.SubprocessError, OSError) as e:
            raise ToolchainError(f"GMP installation through vcpkg failed: {e}") from e

        if not is_ready(artifact):
            raise ToolchainError(f"vcpkg finished but {artifact} is missing")
        return prefix

    def cmake_generator(self) -> List[str]:
        return ["-G", "MinGW Makefiles"]

    def default_install_dir(self, app_name: str) -> Path:
        return Path(os.environ.get("ProgramFiles", r"C:\Program Files")) / app_name.title()

    def launcher_path(self, app_name: str) -> Optional[Path]:
        appdata = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return (Path(appdata) / "Microsoft" / "Windows" / "Start Menu" / "Programs"
                / f"{app_name.title()}.lnk")

    def create_launcher(self, target: Path, launcher: Path, env: ExecEnvironment, runner: Runner = run):
        launcher.parent.mkdir(parents=True, exist_ok=True)
        script = (
            f"$s = (New-Object -ComObject WScript.Shell).CreateShortcut({_ps_quote(str(launcher))}); "
            f"$s.TargetPath = {_ps_quote(str(target))}; "
            f"$s.WorkingDirectory = {_ps_quote(str(target.parent))}; "
            "$s.Save()"
        )
        runner(["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", script], env=env)

    def remove_installed(self, install_dir: Path, installed_executable: Path,
                         env: ExecEnvironment, runner: Runner = run) -> bool:
        # Only the default per-app folder is ours to delete; a configured one may be shared
        owned = install_dir == self.default_install_dir(installed_executable.stem)
        try:
            if owned and install_dir.exists():
                shutil.rmtree(install_dir)
            elif installed_executable.exists():
                installed_executable.unlink()
            else:
                return False
        except OSError as e:
            raise FilesystemError(f"Could not remove {installed_executable}: {e}") from e
        return True


def detect_platform() -> PlatformAdapter:
    """Return the adapter for the running host"""
    if os.name == "nt":
        return WindowsAdapter()
    if sys.platform.startswith("linux"):
        return LinuxAdapter()
    raise ToolchainError(f"Unsupported platform: {sys.platform}")

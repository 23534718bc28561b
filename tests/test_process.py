"""Tests for the command runner and the augmented execution environment."""

import os
import subprocess
import sys

import pytest

from helixbuild.process import ExecEnvironment, run


def test_environment_is_immutable(tmp_path):
    base = ExecEnvironment()
    extended = base.with_path(tmp_path / "bin")

    assert base.path_prepend == ()
    assert extended.path_prepend == (str(tmp_path / "bin"),)
    assert extended.with_path(tmp_path / "bin") is extended


def test_prepended_entries_come_first(tmp_path, monkeypatch):
    monkeypatch.setenv("PATH", "/usr/bin")
    env = ExecEnvironment().with_path(tmp_path / "a").with_path(tmp_path / "b")

    assert env.search_path().split(os.pathsep) == [str(tmp_path / "b"), str(tmp_path / "a"), "/usr/bin"]
    assert os.environ["PATH"] == "/usr/bin"


def test_variables_override(tmp_path):
    env = ExecEnvironment().with_variable("TRIPLET", "x64-linux").with_variable("TRIPLET", "x64-mingw-static")
    environ = env.to_environ()
    assert environ["TRIPLET"] == "x64-mingw-static"
    assert "TRIPLET" not in os.environ


def test_run_passes_environment(tmp_path, capsys):
    env = ExecEnvironment().with_variable("HELIX_MARKER", "42")
    out = tmp_path / "out.txt"
    script = f"import os; open({str(out)!r}, 'w').write(os.environ['HELIX_MARKER'])"

    result = run([sys.executable, "-c", script], env=env)

    assert result.returncode == 0
    assert out.read_text() == "42"
    assert capsys.readouterr().out.startswith("$ ")


def test_run_raises_on_failure():
    with pytest.raises(subprocess.CalledProcessError):
        run([sys.executable, "-c", "raise SystemExit(3)"])


def test_run_without_check():
    assert run([sys.executable, "-c", "raise SystemExit(3)"], check=False).returncode == 3


def test_missing_program():
    with pytest.raises(FileNotFoundError):
        run(["helixbuild-definitely-not-a-program"])

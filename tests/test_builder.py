"""Tests for source discovery, build plans and the final compile."""

import pytest

from helixbuild.builder import STANDARD_FLAGS, WARNING_FLAGS, build, discover_sources, make_build_plan
from helixbuild.dependencies import vendored_libraries
from helixbuild.errors import CompileError, FilesystemError, NoSourcesError


def test_discover_sources_is_sorted(project):
    (project.root / "source" / "a_first.cpp").write_text("")
    (project.root / "source" / "notes.txt").write_text("")

    sources = discover_sources(project.root, "source/*.cpp")

    assert [p.name for p in sources] == ["a_first.cpp", "draw.cpp", "main.cpp"]


def test_discover_sources_empty(tmp_path):
    (tmp_path / "source").mkdir()
    with pytest.raises(NoSourcesError):
        discover_sources(tmp_path, "source/*.cpp")


def test_build_plan_flags(project, tmp_path):
    libs = vendored_libraries(project.layout.dependencies_dir)
    sources = discover_sources(project.root, "source/*.cpp")
    staged = tmp_path / "data" / "assets"

    cmd = make_build_plan(project.layout, sources, libs, project.adapter, staged).command("c++")

    assert cmd[0] == "c++"
    for flag in STANDARD_FLAGS + WARNING_FLAGS:
        assert flag in cmd
    assert f"-I{project.root / 'include'}" in cmd
    assert f"-I{project.root / 'source'}" in cmd
    assert f"-I{libs[0].source_dir / 'src'}" in cmd
    assert f"-I{libs[1].build_dir}" in cmd
    assert f"-L{libs[0].lib_dir}" in cmd
    assert f"-L{libs[1].lib_dir}" in cmd
    assert f'-DASSETS="{staged.as_posix()}"' in cmd
    assert cmd[cmd.index("-o") + 1] == str(project.layout.executable)

    link = [arg for arg in cmd if arg.startswith("-l")]
    assert link == ["-lraylib", "-lsymengine", "-lm", "-lgmp"]
    # libraries come after every source file
    last_source = max(cmd.index(str(s)) for s in sources)
    assert all(cmd.index(arg) > last_source for arg in link)


def test_build_plan_is_deterministic(project, tmp_path):
    libs = vendored_libraries(project.layout.dependencies_dir)
    staged = tmp_path / "data" / "assets"

    first = make_build_plan(project.layout, discover_sources(project.root, "source/*.cpp"),
                            libs, project.adapter, staged)
    second = make_build_plan(project.layout, discover_sources(project.root, "source/*.cpp"),
                             vendored_libraries(project.layout.dependencies_dir), project.adapter, staged)

    assert first == second
    assert first.command("c++") == second.command("c++")


def test_build_plan_with_arithmetic_prefix(project, tmp_path):
    libs = vendored_libraries(project.layout.dependencies_dir)
    prefix = tmp_path / "gmp"
    plan = make_build_plan(project.layout, [project.root / "source" / "main.cpp"], libs,
                           project.adapter, tmp_path / "assets", prefix)

    assert prefix / "include" in plan.include_dirs
    assert prefix / "lib" in plan.lib_dirs
    # gmp appears once even though the platform lists it too
    assert plan.libraries.count("gmp") == 1


def test_build_success(project):
    libs = vendored_libraries(project.layout.dependencies_dir)

    output = build(project.layout, libs, project.adapter, runner=project.runner)

    assert output == project.layout.executable
    assert output.exists()
    assert len(project.runner.compile_calls) == 1
    assert (project.layout.assets_destination / "font.ttf").exists()


def test_build_uses_configured_compiler(project):
    libs = vendored_libraries(project.layout.dependencies_dir)
    build(project.layout, libs, project.adapter, runner=project.runner, compiler="clang++")
    assert project.runner.compile_calls[0][0] == "clang++"


def test_compile_failure_discards_partial_binary(project):
    libs = vendored_libraries(project.layout.dependencies_dir)
    project.layout.build_dir.mkdir(parents=True)
    project.layout.executable.write_bytes(b"partial")
    project.runner.fail_when = lambda cmd: "-o" in cmd

    with pytest.raises(CompileError):
        build(project.layout, libs, project.adapter, runner=project.runner)

    assert not project.layout.executable.exists()


def test_compiler_exit_zero_without_output(project):
    libs = vendored_libraries(project.layout.dependencies_dir)
    project.runner.skip_artifacts = True

    with pytest.raises(CompileError):
        build(project.layout, libs, project.adapter, runner=project.runner)


def test_no_sources_stops_before_compiling(project):
    for source in (project.root / "source").glob("*.cpp"):
        source.unlink()
    libs = vendored_libraries(project.layout.dependencies_dir)

    with pytest.raises(NoSourcesError):
        build(project.layout, libs, project.adapter, runner=project.runner)
    assert project.runner.calls == []


def test_missing_assets_stops_before_compiling(project):
    (project.root / "assets" / "font.ttf").unlink()
    (project.root / "assets").rmdir()
    libs = vendored_libraries(project.layout.dependencies_dir)

    with pytest.raises(FilesystemError):
        build(project.layout, libs, project.adapter, runner=project.runner)
    assert project.runner.compile_calls == []


def test_build_dir_blocked_by_a_file(project):
    project.layout.build_dir.write_text("not a directory")
    libs = vendored_libraries(project.layout.dependencies_dir)

    with pytest.raises(FilesystemError, match="build directory"):
        build(project.layout, libs, project.adapter, runner=project.runner)
    assert project.runner.compile_calls == []

"""Tests for asset staging."""

import pytest

from helixbuild.assets import AssetBundle, stage
from helixbuild.errors import FilesystemError


def _write(directory, names):
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_text(name)


def test_restage_drops_stale_files(tmp_path):
    destination = tmp_path / "data" / "assets"
    first = tmp_path / "first"
    second = tmp_path / "second"
    _write(first, ["a", "b"])
    _write(second, ["c"])

    stage(AssetBundle(first, destination))
    assert sorted(p.name for p in destination.iterdir()) == ["a", "b"]

    stage(AssetBundle(second, destination))
    assert sorted(p.name for p in destination.iterdir()) == ["c"]


def test_nested_tree_is_copied(tmp_path):
    source = tmp_path / "assets"
    _write(source / "textures", ["wall.png"])
    destination = tmp_path / "out" / "assets"

    assert stage(AssetBundle(source, destination)) == destination
    assert (destination / "textures" / "wall.png").read_text() == "wall.png"


def test_missing_source(tmp_path):
    destination = tmp_path / "out"
    _write(destination, ["old"])

    with pytest.raises(FilesystemError):
        stage(AssetBundle(tmp_path / "nope", destination))
    # nothing is deleted when there is nothing to copy
    assert (destination / "old").exists()

"""Tests for the pure path predicates."""

from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from texture_shrink.path_filter import is_temp_artifact, must_exclude, should_skip_by_name


@pytest.mark.parametrize(
    "path",
    [
        "/mods/.git/objects/a.png",
        "/mods/textures/__pycache__/b.png",
        "/mods/build/c.tga",
        "/mods/Build/c.tga",
        "/mods/node_modules/pkg/icon.png",
        "/mods/a/b/.venv/lib/x.png",
    ],
)
def test_must_exclude_marker_segments(path: str) -> None:
    """Exclude files below any marker directory, at any depth."""
    assert must_exclude(PurePosixPath(path)) is True


@pytest.mark.parametrize(
    "path",
    [
        "/mods/buildings/wall.png",
        "/mods/textures/rebuild_ui.png",
        "/mods/textures/build.png",
        "/mods/my.git.textures/a.png",
    ],
)
def test_must_exclude_requires_whole_directory_segment(path: str) -> None:
    """Partial names and the file name itself never trigger exclusion."""
    assert must_exclude(PurePosixPath(path)) is False


def test_should_skip_by_name_is_case_insensitive() -> None:
    """Match the marker anywhere in the base name regardless of case."""
    assert should_skip_by_name(PurePosixPath("/t/rock_NoShrink.png"), "noshrink")
    assert should_skip_by_name(PurePosixPath("/t/rock.png"), "noshrink") is False


def test_should_skip_by_name_ignores_directories_and_empty_marker() -> None:
    """Only the base name counts, and an empty marker matches nothing."""
    assert should_skip_by_name(PurePosixPath("/noshrink/rock.png"), "noshrink") is False
    assert should_skip_by_name(PurePosixPath("/t/rock.png"), "") is False


def test_is_temp_artifact() -> None:
    """Recognise leftover temporary outputs by their name infix."""
    assert is_temp_artifact(PurePosixPath("/t/.rock.shrinktmp-1a2b3c4d.png"))
    assert is_temp_artifact(PurePosixPath("/t/rock.png")) is False


def test_must_exclude_only_checks_below_root() -> None:
    """Markers above the root do not count, markers below it do."""
    root = PurePosixPath("/work/build/mod")
    assert must_exclude(PurePosixPath("/work/build/mod/tex/a.png"), root) is False
    assert must_exclude(PurePosixPath("/work/build/mod/dist/a.png"), root) is True
    assert must_exclude(PurePosixPath("/work/build/mod/tex/a.png")) is True

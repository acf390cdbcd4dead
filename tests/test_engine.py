"""Tests for the transcode invoker and ImageMagick engine wrapper."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from conftest import FakeEngine, write_image
from texture_shrink import engine as engine_module
from texture_shrink.engine import (
    EngineResult,
    MagickEngine,
    TranscodeOptions,
    build_magick_args,
    compute_shrink_size,
    transcode,
)
from texture_shrink.errors import EngineNotFoundError, TranscodeError


@pytest.mark.parametrize(
    ("size", "max_edge", "expected"),
    [
        ((400, 300), 1024, (400, 300)),
        ((1024, 1024), 1024, (1024, 1024)),
        ((2000, 1000), 1024, (1024, 512)),
        ((1000, 2000), 1024, (512, 1024)),
        ((3000, 1), 1024, (1024, 1)),
        ((4096, 4096), 1000, (1000, 1000)),
        ((1920, 1080), 1000, (1000, 562)),
    ],
)
def test_compute_shrink_size(
    size: tuple[int, int], max_edge: int, expected: tuple[int, int]
) -> None:
    """Shrink the longer edge to max_edge and never upscale."""
    assert compute_shrink_size(*size, max_edge) == expected


def test_compute_shrink_size_rejects_bad_edge() -> None:
    with pytest.raises(ValueError):
        compute_shrink_size(10, 10, 0)


def test_build_magick_args_minimal() -> None:
    """Only the shrink-only resize is applied by default."""
    args = build_magick_args(
        ["magick"], Path("/t/a.tga"), Path("/t/.a.tmp.tga"), TranscodeOptions(max_edge=512)
    )
    assert args == ["magick", "/t/a.tga", "-resize", "512x512>", "/t/.a.tmp.tga"]


def test_build_magick_args_all_flags_for_png_output() -> None:
    """Strip, point filter and PNG compression appear in order."""
    options = TranscodeOptions(
        max_edge=256, strip_metadata=True, pixel_art=True, max_png_compression=True
    )
    args = build_magick_args(["convert"], Path("a.tif"), Path("a.png"), options)
    assert args == [
        "convert",
        "a.tif",
        "-strip",
        "-filter",
        "point",
        "-resize",
        "256x256>",
        "-define",
        "png:compression-level=9",
        "-quality",
        "95",
        "a.png",
    ]


def test_png_compression_follows_output_not_source() -> None:
    """A PNG source converted to TGA gets no PNG options."""
    options = TranscodeOptions(max_edge=256, max_png_compression=True)
    args = build_magick_args(["magick"], Path("a.png"), Path("a.tga"), options)
    assert "png:compression-level=9" not in args


def test_transcode_success(tmp_path: Path) -> None:
    """A zero exit plus a non-empty output is success."""
    source = write_image(tmp_path / "a.png", 2000, 1000)
    temp = tmp_path / ".a.tmp.png"

    result = transcode(FakeEngine(), source, temp, TranscodeOptions(max_edge=1024))

    assert result.ok
    assert temp.read_text().startswith("1024x512")


def test_transcode_nonzero_exit_raises(tmp_path: Path) -> None:
    """A failing engine raises with the exit status and last stderr line."""
    source = write_image(tmp_path / "a.png", 10, 10)
    fake = FakeEngine(fail_names={"a.png"})

    with pytest.raises(TranscodeError, match="improper image header") as excinfo:
        transcode(fake, source, tmp_path / "t.png", TranscodeOptions(max_edge=8))
    assert excinfo.value.returncode == 1
    assert excinfo.value.source == source


def test_transcode_missing_output_is_failure(tmp_path: Path) -> None:
    """Exit status 0 without an output file is still a failure."""
    source = write_image(tmp_path / "a.png", 10, 10)
    fake = FakeEngine(silent_names={"a.png"})

    with pytest.raises(TranscodeError, match="no output"):
        transcode(fake, source, tmp_path / "t.png", TranscodeOptions(max_edge=8))


def test_transcode_empty_output_is_failure(tmp_path: Path) -> None:
    """A zero-byte output counts as missing."""
    source = write_image(tmp_path / "a.png", 10, 10)
    temp = tmp_path / "t.png"

    class EmptyEngine:
        def convert(self, input_path, output_path, options):
            output_path.write_bytes(b"")
            return EngineResult(0)

    with pytest.raises(TranscodeError):
        transcode(EmptyEngine(), source, temp, TranscodeOptions(max_edge=8))


def test_detect_prefers_magick(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(engine_module.MAGICK_ENV_VAR, raising=False)
    monkeypatch.setattr(
        engine_module.shutil, "which", lambda name: f"/usr/bin/{name}"
    )
    assert MagickEngine.detect().command == ("/usr/bin/magick",)


def test_detect_falls_back_to_convert(monkeypatch: pytest.MonkeyPatch) -> None:
    """ImageMagick 6 installs only ``convert``."""
    monkeypatch.delenv(engine_module.MAGICK_ENV_VAR, raising=False)
    monkeypatch.setattr(
        engine_module.shutil,
        "which",
        lambda name: "/usr/bin/convert" if name == "convert" else None,
    )
    assert MagickEngine.detect().command == ("/usr/bin/convert",)


def test_detect_honours_environment_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(engine_module.MAGICK_ENV_VAR, "/opt/im/bin/magick")
    monkeypatch.setattr(engine_module.shutil, "which", lambda name: name)
    assert MagickEngine.detect().command == ("/opt/im/bin/magick",)


def test_detect_raises_when_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(engine_module.MAGICK_ENV_VAR, raising=False)
    monkeypatch.setattr(engine_module.shutil, "which", lambda name: None)
    with pytest.raises(EngineNotFoundError):
        MagickEngine.detect()


def test_convert_runs_built_arguments(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """The subprocess receives the built argument vector; no timeout is set."""
    seen: dict[str, object] = {}

    def fake_run(args, **kwargs):
        seen["args"] = args
        seen["kwargs"] = kwargs
        return subprocess.CompletedProcess(args, 3, "", "boom")

    monkeypatch.setattr(engine_module.subprocess, "run", fake_run)
    result = MagickEngine(("magick",)).convert(
        tmp_path / "a.png", tmp_path / "b.png", TranscodeOptions(max_edge=64)
    )

    assert result == EngineResult(3, "boom")
    assert seen["args"][-3:] == ["-resize", "64x64>", str(tmp_path / "b.png")]
    assert "timeout" not in seen["kwargs"]


def test_list_formats_failure_returns_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    """A failing capability query degrades to an empty listing."""

    def fake_run(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(engine_module.subprocess, "run", fake_run)
    assert MagickEngine(("magick",)).list_formats() == ""


def test_list_formats_returns_stdout(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(args, **kwargs):
        assert args == ["magick", "-list", "format"]
        return subprocess.CompletedProcess(args, 0, "table", "")

    monkeypatch.setattr(engine_module.subprocess, "run", fake_run)
    assert MagickEngine(("magick",)).list_formats() == "table"

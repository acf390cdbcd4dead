"""Shared fixtures: a deterministic fake conversion engine and text "images"."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from texture_shrink.config import RunConfig
from texture_shrink.engine import EngineResult, TranscodeOptions, compute_shrink_size
from texture_shrink.formats import CapabilityTable

CONTINUATION = " " * 27

SAMPLE_LISTING = f"""\
   Format  Module    Mode  Description
-------------------------------------------------------------------------------
      3FR  DNG       r--   Hasselblad CFV/H3D39II Raw Format (0.21.2-Release)
      BMP* BMP       rw-   Microsoft Windows bitmap image
      DDS* DDS       rw+   Microsoft DirectDraw Surface
     JPEG* JPEG      rw-   Joint Photographic Experts Group JFIF format (libjpeg-turbo 3.0.0)
      PNG* PNG       rw+   Portable Network Graphics (libpng 1.6.43)
{CONTINUATION}See http://www.libpng.org/ for details about the PNG format.
      TGA* TGA       rw-   Truevision Targa image
     TIFF* TIFF      rw+   Tagged Image File Format (LIBTIFF, version 4.6.0)
     WEBP* WEBP      rw+   WebP Image Format (libwebp 1.4.0 [020F])

* native blob support
r read support
w write support
+ support for multiple images
"""


def write_image(path: Path, width: int, height: int, payload: str = "") -> Path:
    """Write a fixture "image": its dimensions as text plus optional payload."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{width}x{height}\n{payload}", encoding="utf-8")
    return path


def read_dims(path: Path) -> tuple[int, int]:
    first = path.read_text(encoding="utf-8").splitlines()[0]
    width, height = first.split("x")
    return int(width), int(height)


@dataclass
class FakeEngine:
    """Engine that "resizes" text fixtures without any image codec.

    Output carries the shrink-only dimensions and a line recording the
    applied flags, so tests can see what the real engine would have been
    asked to do.
    """

    listing: str = SAMPLE_LISTING
    fail_names: set[str] = field(default_factory=set)
    silent_names: set[str] = field(default_factory=set)
    calls: list[tuple[Path, Path, TranscodeOptions]] = field(default_factory=list)

    def convert(
        self, input_path: Path, output_path: Path, options: TranscodeOptions
    ) -> EngineResult:
        self.calls.append((input_path, output_path, options))
        if input_path.name in self.fail_names:
            return EngineResult(1, "convert: improper image header\n")
        if input_path.name in self.silent_names:
            return EngineResult(0, "")

        width, height = read_dims(input_path)
        new_w, new_h = compute_shrink_size(width, height, options.max_edge)
        flags = []
        if options.strip_metadata:
            flags.append("strip")
        if options.pixel_art:
            flags.append("point")
        if options.max_png_compression and output_path.suffix.lower() == ".png":
            flags.append("png9")
        output_path.write_text(
            f"{new_w}x{new_h}\nformat={output_path.suffix.lstrip('.')}\n"
            f"flags={','.join(flags)}\n",
            encoding="utf-8",
        )
        return EngineResult(0, "")

    def list_formats(self) -> str:
        return self.listing


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def capabilities() -> CapabilityTable:
    return CapabilityTable.from_listing(SAMPLE_LISTING)


@pytest.fixture
def make_config(tmp_path: Path):
    """Build a RunConfig rooted at ``tmp_path`` with test-friendly defaults."""

    def _make(**overrides: object) -> RunConfig:
        values: dict[str, object] = {
            "root": tmp_path,
            "max_edge": 1024,
            "extensions": ("png",),
            "write_log": False,
        }
        values.update(overrides)
        return RunConfig(**values)  # type: ignore[arg-type]

    return _make

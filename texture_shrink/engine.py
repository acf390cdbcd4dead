# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Conversion engine boundary.

All pixel work is delegated to ImageMagick running as a subprocess. The
pipeline only depends on the :class:`ConversionEngine` protocol, so tests
can substitute an engine that never touches a real codec.

Invocation (ImageMagick 7; ImageMagick 6 uses ``convert`` instead)::

    magick SRC [-strip] [-filter point] -resize 1024x1024> \\
        [-define png:compression-level=9 -quality 95] DEST
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Protocol, Self

from .errors import EngineNotFoundError, TranscodeError

__all__: Final[list[str]] = [
    "ConversionEngine",
    "EngineResult",
    "FormatLister",
    "MagickEngine",
    "TranscodeOptions",
    "build_magick_args",
    "compute_shrink_size",
    "transcode",
]

logger = logging.getLogger(__name__)

# Environment override for the engine binary
MAGICK_ENV_VAR: Final[str] = "TEXTURE_SHRINK_MAGICK"

# Strongest zlib level; -quality 95 selects level 9 with adaptive filtering
PNG_MAX_COMPRESSION_ARGS: Final[tuple[str, ...]] = (
    "-define",
    "png:compression-level=9",
    "-quality",
    "95",
)


@dataclass(frozen=True, slots=True, kw_only=True)
class TranscodeOptions:
    """Per-run knobs passed to every engine invocation."""

    max_edge: int
    strip_metadata: bool = False
    pixel_art: bool = False
    max_png_compression: bool = False

    def __post_init__(self) -> None:
        if self.max_edge < 1:
            msg = f"max_edge must be >= 1, got {self.max_edge}"
            raise ValueError(msg)

    @property
    def resize_geometry(self) -> str:
        """ImageMagick geometry that only ever shrinks."""
        return f"{self.max_edge}x{self.max_edge}>"


@dataclass(frozen=True, slots=True)
class EngineResult:
    """Exit status and diagnostics of one engine invocation."""

    returncode: int
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ConversionEngine(Protocol):
    """Anything that can turn ``input_path`` into ``output_path``."""

    def convert(
        self, input_path: Path, output_path: Path, options: TranscodeOptions
    ) -> EngineResult: ...


class FormatLister(Protocol):
    """Anything that can describe the formats it supports."""

    def list_formats(self) -> str: ...


def compute_shrink_size(width: int, height: int, max_edge: int) -> tuple[int, int]:
    """Compute output dimensions under the shrink-only rule.

    Images already within ``max_edge`` on both edges are returned unchanged.
    Larger images are scaled so the longer edge equals ``max_edge`` and the
    shorter edge keeps the aspect ratio (rounded, at least one pixel).
    """
    if max_edge < 1:
        msg = f"max_edge must be >= 1, got {max_edge}"
        raise ValueError(msg)
    if width <= max_edge and height <= max_edge:
        return width, height

    if width >= height:
        return max_edge, max(1, round(height * max_edge / width))
    return max(1, round(width * max_edge / height)), max_edge


def build_magick_args(
    command: Sequence[str],
    source: Path,
    dest: Path,
    options: TranscodeOptions,
) -> list[str]:
    """Build the argument vector for one ImageMagick invocation.

    PNG compression settings follow the suffix of ``dest``, since a format
    conversion changes which codec options apply.
    """
    args = [*command, str(source)]
    if options.strip_metadata:
        args.append("-strip")
    if options.pixel_art:
        args += ["-filter", "point"]
    args += ["-resize", options.resize_geometry]
    if options.max_png_compression and dest.suffix.lower() == ".png":
        args += PNG_MAX_COMPRESSION_ARGS
    args.append(str(dest))
    return args


@dataclass(frozen=True, slots=True)
class MagickEngine:
    """ImageMagick command-line engine."""

    command: tuple[str, ...]

    @classmethod
    def detect(cls, binary: str | None = None) -> Self:
        """Locate ImageMagick.

        Lookup order: explicit ``binary``, the ``TEXTURE_SHRINK_MAGICK``
        environment variable, ``magick`` (v7), then ``convert`` (v6).

        Raises:
            EngineNotFoundError: If no usable binary is found.
        """
        override = binary or os.environ.get(MAGICK_ENV_VAR, "").strip()
        if override:
            resolved = shutil.which(override)
            if resolved is None:
                raise EngineNotFoundError(f"ImageMagick binary not found: {override}")
            return cls((resolved,))

        magick = shutil.which("magick")
        if magick:
            return cls((magick,))

        convert = shutil.which("convert")
        if convert:
            logger.debug("Using legacy ImageMagick 6 'convert' at %s", convert)
            return cls((convert,))

        raise EngineNotFoundError(
            "ImageMagick not found in PATH (need `magick` or `convert`). "
            f"Install it or set {MAGICK_ENV_VAR}."
        )

    def convert(
        self, input_path: Path, output_path: Path, options: TranscodeOptions
    ) -> EngineResult:
        args = build_magick_args(self.command, input_path, output_path, options)
        logger.debug("Running: %s", args)
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            check=False,
        )
        return EngineResult(result.returncode, result.stderr)

    def list_formats(self) -> str:
        """Return the raw ``-list format`` table, or "" if the query fails."""
        try:
            result = subprocess.run(
                [*self.command, "-list", "format"],
                capture_output=True,
                text=True,
                check=True,
            )
        except (FileNotFoundError, subprocess.CalledProcessError, OSError) as exc:
            logger.warning("Could not query ImageMagick formats: %s", exc)
            return ""
        return result.stdout


def _failure_reason(result: EngineResult) -> str:
    lines = [line for line in result.stderr.strip().splitlines() if line.strip()]
    if lines:
        return f"exit status {result.returncode}: {lines[-1].strip()}"
    return f"exit status {result.returncode}"


def transcode(
    engine: ConversionEngine,
    source: Path,
    temp: Path,
    options: TranscodeOptions,
) -> EngineResult:
    """Run the engine for one file and verify its output.

    Raises:
        TranscodeError: If the engine exits non-zero or leaves no non-empty
            file at ``temp``. Both are the same failure.
    """
    result = engine.convert(source, temp, options)
    if not result.ok:
        raise TranscodeError(
            _failure_reason(result), source=source, returncode=result.returncode
        )

    try:
        size = temp.stat().st_size
    except FileNotFoundError:
        size = 0
    if size == 0:
        raise TranscodeError(
            "engine produced no output file", source=source, returncode=result.returncode
        )
    return result

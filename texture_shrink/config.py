# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Run configuration, immutable for the lifetime of a run."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Self

from .engine import TranscodeOptions
from .errors import ValidationError
from .resolver import normalize_extensions

__all__: Final[list[str]] = [
    "DEFAULT_LOG_NAME",
    "DEFAULT_MAX_EDGE",
    "DEFAULT_SKIP_MARKER",
    "RunConfig",
]

DEFAULT_MAX_EDGE: Final[int] = 2048
DEFAULT_LOG_NAME: Final[str] = "texture_shrink.log"
DEFAULT_SKIP_MARKER: Final[str] = "noshrink"


def _get_env_int(var_name: str, /) -> int | None:
    """Get a positive int from environment variable, or None if invalid."""
    value = os.environ.get(var_name, "").strip()
    if not value:
        return None
    try:
        result = int(value)
        return result if result > 0 else None
    except ValueError:
        return None


def _get_env_str(var_name: str, /) -> str | None:
    value = os.environ.get(var_name, "").strip()
    return value or None


@dataclass(frozen=True, slots=True, kw_only=True)
class RunConfig:
    """Everything a run needs, threaded explicitly through the pipeline."""

    root: Path
    max_edge: int
    extensions: tuple[str, ...]
    output_format: str = ""
    strip_metadata: bool = False
    max_png_compression: bool = False
    skip_marked: bool = False
    skip_marker: str = DEFAULT_SKIP_MARKER
    pixel_art: bool = False
    dry_run: bool = False
    create_backup: bool = False
    write_log: bool = True
    log_name: str = DEFAULT_LOG_NAME

    def __post_init__(self) -> None:
        """Normalize and validate configuration."""
        object.__setattr__(self, "root", Path(os.path.abspath(self.root)))
        object.__setattr__(self, "extensions", normalize_extensions(self.extensions))
        object.__setattr__(
            self, "output_format", self.output_format.strip().lower().lstrip(".")
        )

        if not self.extensions:
            raise ValidationError("no input extensions selected")
        if self.max_edge < 1:
            raise ValidationError(f"max edge must be >= 1, got {self.max_edge}")
        if self.write_log and not self.log_name.strip():
            raise ValidationError("log file name must not be empty when logging is on")
        if self.skip_marked and not self.skip_marker:
            raise ValidationError("skip marker must not be empty when skipping is on")

    @property
    def transcode_options(self) -> TranscodeOptions:
        return TranscodeOptions(
            max_edge=self.max_edge,
            strip_metadata=self.strip_metadata,
            pixel_art=self.pixel_art,
            max_png_compression=self.max_png_compression,
        )

    @property
    def log_path(self) -> Path | None:
        """Where the run log goes, or None when logging is off."""
        if not self.write_log:
            return None
        return self.root / self.log_name

    def describe(self) -> list[tuple[str, str]]:
        """Ordered key/value pairs for echoing the configuration."""

        def flag(value: bool) -> str:
            return "yes" if value else "no"

        return [
            ("root", str(self.root)),
            ("max edge", f"{self.max_edge}px"),
            ("extensions", ", ".join(self.extensions)),
            ("output format", self.output_format or "keep original"),
            ("strip metadata", flag(self.strip_metadata)),
            ("max PNG compression", flag(self.max_png_compression)),
            (
                "skip marked names",
                f"yes ({self.skip_marker!r})" if self.skip_marked else "no",
            ),
            ("pixel art filter", flag(self.pixel_art)),
            ("dry run", flag(self.dry_run)),
            ("backup", flag(self.create_backup)),
            ("log file", self.log_name if self.write_log else "off"),
        ]

    @classmethod
    def create(
        cls,
        *,
        root: Path,
        extensions: Iterable[str],
        max_edge: int | None = None,
        output_format: str = "",
        strip_metadata: bool = False,
        max_png_compression: bool = False,
        skip_marked: bool = False,
        skip_marker: str | None = None,
        pixel_art: bool = False,
        dry_run: bool = False,
        create_backup: bool = False,
        write_log: bool = True,
        log_name: str | None = None,
    ) -> Self:
        """Create config from arguments with environment variable fallbacks."""
        return cls(
            root=root,
            max_edge=(
                max_edge
                if max_edge is not None
                else _get_env_int("TEXTURE_SHRINK_MAX_EDGE") or DEFAULT_MAX_EDGE
            ),
            extensions=tuple(extensions),
            output_format=output_format,
            strip_metadata=strip_metadata,
            max_png_compression=max_png_compression,
            skip_marked=skip_marked,
            skip_marker=(
                skip_marker
                or _get_env_str("TEXTURE_SHRINK_SKIP_MARKER")
                or DEFAULT_SKIP_MARKER
            ),
            pixel_art=pixel_art,
            dry_run=dry_run,
            create_backup=create_backup,
            write_log=write_log,
            log_name=(
                log_name
                or _get_env_str("TEXTURE_SHRINK_LOG_NAME")
                or DEFAULT_LOG_NAME
            ),
        )

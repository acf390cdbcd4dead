# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Image dimension probing through exiftool (dry-run planning only)."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from types import TracebackType
from typing import Final, Self

import exiftool
from exiftool.exceptions import ExifToolException

__all__: Final[list[str]] = [
    "ExifProbe",
    "exiftool_available",
    "parse_dimensions",
]

logger = logging.getLogger(__name__)

DIMENSION_TAGS: Final[list[str]] = ["ImageWidth", "ImageHeight"]


def exiftool_available() -> bool:
    return shutil.which("exiftool") is not None


def _as_int(value: object) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def parse_dimensions(tags: dict[str, object]) -> tuple[int, int] | None:
    """Pick width/height out of exiftool tags, whatever group they are in.

    Returns:
        ``(width, height)``, or None if either is missing or zero.
    """
    width = height = 0
    for key, value in tags.items():
        name = key.rsplit(":", 1)[-1]
        if name == "ImageWidth" and not width:
            width = _as_int(value)
        elif name == "ImageHeight" and not height:
            height = _as_int(value)
    if width > 0 and height > 0:
        return width, height
    return None


class ExifProbe:
    """Long-lived exiftool process answering dimension queries."""

    def __init__(self) -> None:
        self._helper = exiftool.ExifToolHelper()

    def __enter__(self) -> Self:
        self._helper.run()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._helper.terminate()

    def __call__(self, path: Path) -> tuple[int, int] | None:
        return self.dimensions(path)

    def dimensions(self, path: Path) -> tuple[int, int] | None:
        """Read the pixel dimensions of ``path``; None if unknown."""
        try:
            results = self._helper.get_tags([str(path)], DIMENSION_TAGS)
        except ExifToolException as exc:
            logger.debug("exiftool could not read %s: %s", path, exc)
            return None
        if not results:
            return None
        return parse_dimensions(results[0])

# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Exception hierarchy for the texture shrinking pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Final

__all__: Final[list[str]] = [
    "CommitError",
    "EngineNotFoundError",
    "FormatRowError",
    "NoFilesError",
    "SetupError",
    "ShrinkError",
    "TranscodeError",
    "ValidationError",
]


class ShrinkError(Exception):
    """Base exception for texture shrink errors."""


# ═══════════════════════════════════════════════════════════════════
#                        RUN-LEVEL (FATAL)
# ═══════════════════════════════════════════════════════════════════


class SetupError(ShrinkError):
    """Raised before any file is touched when a run cannot start."""


class ValidationError(SetupError):
    """Raised when a run configuration violates its invariants."""


class EngineNotFoundError(SetupError):
    """Raised when no ImageMagick binary can be located."""


class NoFilesError(SetupError):
    """Raised when the resolver matched no files under the root."""


# ═══════════════════════════════════════════════════════════════════
#                        PER-ROW / PER-FILE
# ═══════════════════════════════════════════════════════════════════


class FormatRowError(ShrinkError):
    """Raised when a line of the engine format listing is not a capability row."""

    __slots__ = ("line",)

    def __init__(self, message: str, *, line: str) -> None:
        super().__init__(message)
        self.line = line


class TranscodeError(ShrinkError):
    """Raised when the engine fails to produce an output file."""

    __slots__ = ("source", "returncode")

    def __init__(
        self,
        message: str,
        *,
        source: Path,
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.returncode = returncode


class CommitError(ShrinkError):
    """Raised when moving a transcoded file into place fails."""

    __slots__ = ("source",)

    def __init__(self, message: str, *, source: Path) -> None:
        super().__init__(message)
        self.source = source

# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Persisted plain-text run log.

Written into the target root when logging is enabled. Each run appends::

    === texture-shrink run started 2026-01-02T10:00:00 ===
    root: /textures
    ...
    OK: /textures/a.tif -> /textures/a.png
    FAIL: /textures/c.tga: exit status 1: improper image header
    DRYRUN: /textures/d.png (4096x4096 -> 2048x2048)
    Summary: OK=1 skipped=1 failed=1
    === texture-shrink run finished 2026-01-02T10:00:04 ===
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import Final, Self

from .errors import SetupError

__all__: Final[list[str]] = ["RUN_LOGGER_NAME", "RunLog"]

logger = logging.getLogger(__name__)

# One non-propagating logger shared by every run; each run attaches its own
# file handler for its lifetime
RUN_LOGGER_NAME: Final[str] = "texture-shrink-run"


def _timestamp() -> str:
    return datetime.now().isoformat(timespec="seconds")


class RunLog:
    """Line-oriented run log; a log with no path swallows every line."""

    def __init__(self, path: Path | None) -> None:
        self.path = path
        self._logger: logging.Logger | None = None
        self._handler: logging.FileHandler | None = None

    def __enter__(self) -> Self:
        if self.path is None:
            return self

        run_logger = logging.getLogger(RUN_LOGGER_NAME)
        run_logger.setLevel(logging.INFO)
        run_logger.propagate = False

        try:
            handler = logging.FileHandler(self.path, mode="a", encoding="utf-8")
        except OSError as exc:
            raise SetupError(f"Cannot open run log {self.path}: {exc}") from exc
        handler.setFormatter(logging.Formatter("%(message)s"))
        run_logger.addHandler(handler)

        self._logger = run_logger
        self._handler = handler
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._logger is not None and self._handler is not None:
            self._logger.removeHandler(self._handler)
            self._handler.close()
        self._logger = None
        self._handler = None

    def write(self, line: str) -> None:
        logger.debug("%s", line)
        if self._logger is not None:
            self._logger.info(line)

    # ═══════════════════════════════════════════════════════════════
    #                        RECORD KINDS
    # ═══════════════════════════════════════════════════════════════

    def start(self, settings: Sequence[tuple[str, str]]) -> None:
        self.write(f"=== texture-shrink run started {_timestamp()} ===")
        for key, value in settings:
            self.write(f"{key}: {value}")

    def ok(self, source: Path, destination: Path | None = None) -> None:
        if destination is not None and destination != source:
            self.write(f"OK: {source} -> {destination}")
        else:
            self.write(f"OK: {source}")

    def dry_run(
        self,
        source: Path,
        destination: Path | None = None,
        plan: tuple[tuple[int, int], tuple[int, int]] | None = None,
    ) -> None:
        line = f"DRYRUN: {source}"
        if destination is not None and destination != source:
            line += f" -> {destination}"
        if plan is not None:
            (w, h), (nw, nh) = plan
            line += f" ({w}x{h} -> {nw}x{nh})"
        self.write(line)

    def skipped(self, source: Path, reason: str) -> None:
        self.write(f"SKIP: {source} ({reason})")

    def failed(self, source: Path, reason: str) -> None:
        self.write(f"FAIL: {source}: {reason}")

    def finish(
        self,
        *,
        succeeded: int,
        skipped: int,
        failed: int,
        failed_paths: Sequence[Path] = (),
        excluded: int = 0,
        stale_removed: int = 0,
        cancelled: bool = False,
    ) -> None:
        if failed_paths:
            self.write("Failed files:")
            for path in failed_paths:
                self.write(f"  {path}")
        if excluded:
            self.write(f"Excluded by location: {excluded}")
        if stale_removed:
            self.write(f"Stale temporary files removed: {stale_removed}")
        if cancelled:
            self.write("Run cancelled before all files were processed")
        self.write(f"Summary: OK={succeeded} skipped={skipped} failed={failed}")
        self.write(f"=== texture-shrink run finished {_timestamp()} ===")

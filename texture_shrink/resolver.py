# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Recursive discovery of candidate texture files."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .path_filter import is_temp_artifact, must_exclude

__all__: Final[list[str]] = [
    "CandidateFile",
    "ResolvedFiles",
    "normalize_extensions",
    "resolve",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CandidateFile:
    """A file under the root whose suffix matched a requested extension."""

    path: Path

    @property
    def extension(self) -> str:
        return self.path.suffix.lower().lstrip(".")


@dataclass(frozen=True, slots=True)
class ResolvedFiles:
    """Candidates in processing order, files excluded by location, and
    temp artifacts left behind by an interrupted earlier run."""

    candidates: tuple[CandidateFile, ...] = ()
    excluded: tuple[Path, ...] = ()
    stale_temps: tuple[Path, ...] = ()

    def __iter__(self) -> Iterator[CandidateFile]:
        return iter(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)

    def __bool__(self) -> bool:
        return bool(self.candidates)


def normalize_extensions(values: Iterable[str]) -> tuple[str, ...]:
    """Lower-case, strip leading dots, split comma lists, dedupe and sort."""
    result: set[str] = set()
    for value in values:
        for part in value.split(","):
            ext = part.strip().lower().lstrip(".")
            if ext:
                result.add(ext)
    return tuple(sorted(result))


def _log_walk_error(exc: OSError) -> None:
    logger.warning("Skipping unreadable directory %s: %s", exc.filename, exc.strerror)


def resolve(root: Path, extensions: Iterable[str]) -> ResolvedFiles:
    """Collect files under ``root`` whose suffix is one of ``extensions``.

    Directories are walked in sorted order so repeated calls on an unchanged
    tree return the same sequence. A path matched more than once is kept
    once. Unreadable subtrees are logged and skipped. Marker directories
    are only looked for below ``root``. Temp artifacts of this tool are
    collected whatever their suffix and never become candidates.
    """
    wanted = frozenset(normalize_extensions(extensions))
    root = Path(os.path.abspath(root))

    seen: dict[Path, CandidateFile] = {}
    excluded: list[Path] = []
    stale: list[Path] = []

    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath, name)
            if is_temp_artifact(path):
                if not must_exclude(path, root):
                    stale.append(path)
                continue
            if path.suffix.lower().lstrip(".") not in wanted:
                continue
            if path in seen:
                continue
            if must_exclude(path, root):
                excluded.append(path)
                continue
            if not path.is_file():
                continue
            seen[path] = CandidateFile(path)

    logger.debug(
        "Resolved %d candidate(s), excluded %d, stale temp(s) %d under %s",
        len(seen),
        len(excluded),
        len(stale),
        root,
    )
    return ResolvedFiles(
        candidates=tuple(seen.values()),
        excluded=tuple(excluded),
        stale_temps=tuple(stale),
    )

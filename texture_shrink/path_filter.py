# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Pure path predicates used while collecting candidate files."""

from __future__ import annotations

from pathlib import PurePath
from typing import Final

__all__: Final[list[str]] = [
    "EXCLUDED_DIR_MARKERS",
    "TEMP_MARKER",
    "is_temp_artifact",
    "must_exclude",
    "should_skip_by_name",
]

# Directory names that never contain textures worth touching
EXCLUDED_DIR_MARKERS: Final[frozenset[str]] = frozenset(
    {
        ".git",
        ".svn",
        ".hg",
        "__pycache__",
        "node_modules",
        ".venv",
        "venv",
        "build",
        "dist",
        ".cache",
        ".idea",
        ".vscode",
        ".mypy_cache",
        ".pytest_cache",
        ".tox",
    }
)

# Infix carried by every temporary output written next to a source file
TEMP_MARKER: Final[str] = ".shrinktmp-"


def must_exclude(path: PurePath, root: PurePath | None = None) -> bool:
    """Check whether any parent directory of ``path`` is an excluded marker.

    Markers are matched as whole, separator-delimited segments, so
    ``/art/build/x.png`` is excluded but ``/art/buildings/x.png`` is not.
    The file name itself is never compared. With ``root``, only the part of
    the path below it is checked, so a root that itself lives under
    ``build/`` still yields its files.
    """
    path = PurePath(path)
    if root is not None and path.is_relative_to(root):
        path = path.relative_to(root)
    parent = "/" + path.parent.as_posix().lower().strip("/") + "/"
    return any(f"/{marker}/" in parent for marker in EXCLUDED_DIR_MARKERS)


def should_skip_by_name(path: PurePath, marker: str) -> bool:
    """Case-insensitive substring test of ``marker`` against the base name."""
    if not marker:
        return False
    return marker.lower() in PurePath(path).name.lower()


def is_temp_artifact(path: PurePath) -> bool:
    """Check whether ``path`` is a leftover temporary output of this tool."""
    return TEMP_MARKER in PurePath(path).name

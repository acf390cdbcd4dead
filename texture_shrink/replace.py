# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Crash-safe replacement of source files.

Engine output is always written to a temporary sibling first. It becomes
authoritative only in :func:`commit`:

- In place (same format): the temp file atomically replaces the source.
- Conversion: any existing destination is removed, the temp file is moved
  to the destination, and only then is the source deleted. An interruption
  between the last two steps leaves both files on disk, never neither.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import Final

from .errors import CommitError
from .formats import FORMAT_ALIASES
from .path_filter import TEMP_MARKER

__all__: Final[list[str]] = [
    "BACKUP_SUFFIX",
    "backup_path_for",
    "commit",
    "discard_temp",
    "ensure_backup",
    "planned_destination",
    "temp_path_for",
]

logger = logging.getLogger(__name__)

BACKUP_SUFFIX: Final[str] = ".bak"


def _canonical(token: str) -> str:
    token = token.lower()
    return FORMAT_ALIASES.get(token, token)


def planned_destination(source: Path, output_format: str) -> Path:
    """Final path for ``source`` once processed.

    An empty ``output_format``, or one naming the same format as the source
    suffix (``jpeg`` for ``.jpg`` included), keeps the file where it is.
    """
    if not output_format:
        return source
    if _canonical(source.suffix.lstrip(".")) == _canonical(output_format):
        return source
    return source.with_suffix(f".{output_format.lower()}")


def temp_path_for(destination: Path) -> Path:
    """Hidden, unique sibling of ``destination`` sharing its suffix.

    The suffix must match the target format because the engine picks the
    encoder from it.
    """
    token = uuid.uuid4().hex[:8]
    return destination.with_name(
        f".{destination.stem}{TEMP_MARKER}{token}{destination.suffix}"
    )


def backup_path_for(source: Path) -> Path:
    return source.with_name(source.name + BACKUP_SUFFIX)


def ensure_backup(source: Path) -> Path | None:
    """Copy ``source`` next to itself unless a backup already exists.

    An existing backup is never overwritten, so it keeps holding the bytes
    from before the first run. The copy goes through a temp sibling, so an
    interrupted copy never leaves a partial ``.bak`` behind.

    Returns:
        The backup path if one was written, ``None`` if it already existed.

    Raises:
        OSError: If the copy fails; no backup exists afterwards.
    """
    backup = backup_path_for(source)
    if backup.exists():
        logger.debug("Backup already present: %s", backup)
        return None
    temp = temp_path_for(backup)
    try:
        shutil.copy2(source, temp)
        temp.replace(backup)
    finally:
        discard_temp(temp)
    return backup


def commit(source: Path, temp: Path, destination: Path) -> None:
    """Make ``temp`` the authoritative version of ``source``.

    Raises:
        CommitError: If the temp file is unusable or any move/delete fails.
            Until the final delete succeeds the source is left in place.
    """
    try:
        if temp.stat().st_size == 0:
            raise CommitError(f"temporary output is empty: {temp}", source=source)
    except FileNotFoundError as exc:
        raise CommitError(f"temporary output missing: {temp}", source=source) from exc

    if destination == source:
        try:
            temp.replace(source)
        except OSError as exc:
            raise CommitError(f"could not replace {source}: {exc}", source=source) from exc
        return

    try:
        if destination.exists():
            logger.debug("Removing existing destination %s", destination)
            destination.unlink()
        temp.replace(destination)
    except OSError as exc:
        raise CommitError(
            f"could not move output to {destination}: {exc}", source=source
        ) from exc

    try:
        source.unlink()
    except OSError as exc:
        raise CommitError(
            f"converted to {destination} but could not remove original: {exc}",
            source=source,
        ) from exc


def discard_temp(temp: Path) -> None:
    """Remove a leftover temp artifact; a missing file is fine."""
    try:
        temp.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove temporary file %s: %s", temp, exc)

# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Format capability table.

Parses the tabular output of ``magick -list format``::

       Format  Module    Mode  Description
    -------------------------------------------------------------------
          PNG* PNG       rw+   Portable Network Graphics (libpng 1.6.43)
                               See http://www.libpng.org/ for details.
         TIFF  TIFF      rw+   Tagged Image File Format (LIBTIFF, 4.6.0)

A trailing ``*`` on the format name marks native blob support and is
stripped. The mode column is ``r`` (read), ``w`` (write) and ``+``
(multiple frames), with ``-`` in unsupported positions.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final, Self

from .errors import FormatRowError

if TYPE_CHECKING:
    from .engine import FormatLister

__all__: Final[list[str]] = [
    "FORMAT_ALIASES",
    "CapabilityTable",
    "FormatEntry",
    "FormatListing",
    "load_capabilities",
    "parse_format_listing",
    "parse_format_row",
]

logger = logging.getLogger(__name__)

# Canonical engine token -> common file extension
FORMAT_ALIASES: Final[Mapping[str, str]] = {
    "tiff": "tif",
    "jpeg": "jpg",
}

MODE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[r-][w-]?[+-]?$")

# Wrapped descriptions start well to the right of the format column
CONTINUATION_INDENT: Final[int] = 20

DEFAULT_MARKER: Final[str] = "*"


@dataclass(frozen=True, slots=True, kw_only=True)
class FormatEntry:
    """One row of the engine's format table."""

    token: str
    module: str
    readable: bool
    writable: bool
    multi_frame: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        if not self.token:
            raise ValueError("format token must not be empty")


@dataclass(frozen=True, slots=True)
class FormatListing:
    """Result of parsing a full format listing.

    Attributes:
        entries: Rows accepted as capability rows, in listing order.
        rejected: ``(line_number, line, reason)`` for every row that looked
            like data but failed validation.
    """

    entries: tuple[FormatEntry, ...] = ()
    rejected: tuple[tuple[int, str, str], ...] = ()


def _is_continuation(line: str) -> bool:
    indent = len(line) - len(line.lstrip())
    return indent >= CONTINUATION_INDENT


def parse_format_row(line: str) -> FormatEntry:
    """Parse one data row of the format table.

    Raises:
        FormatRowError: If the line is not a valid capability row.
    """
    fields = line.split(None, 3)
    if len(fields) < 3:
        raise FormatRowError(f"expected at least 3 fields, got {len(fields)}", line=line)

    token, module, mode = fields[0], fields[1], fields[2]
    description = fields[3].strip() if len(fields) > 3 else ""

    token = token.removesuffix(DEFAULT_MARKER).strip().lower()
    if not token:
        raise FormatRowError("empty format token", line=line)
    if not MODE_PATTERN.match(mode):
        raise FormatRowError(f"invalid mode field {mode!r}", line=line)

    return FormatEntry(
        token=token,
        module=module,
        readable=mode[0] == "r",
        writable=len(mode) > 1 and mode[1] == "w",
        multi_frame=len(mode) > 2 and mode[2] == "+",
        description=description,
    )


def parse_format_listing(text: str) -> FormatListing:
    """Parse the complete output of the engine's format listing.

    Blank lines, the header, separator rules and wrapped description lines
    are skipped. Remaining lines that fail :func:`parse_format_row` are
    recorded in :attr:`FormatListing.rejected` instead of aborting.
    """
    entries: list[FormatEntry] = []
    rejected: list[tuple[int, str, str]] = []

    for number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.split(None, 1)[0] == "Format":
            continue
        if set(stripped) <= {"-"}:
            continue
        if _is_continuation(line):
            continue

        try:
            entries.append(parse_format_row(line))
        except FormatRowError as exc:
            logger.debug("Rejected format row %d %r: %s", number, line, exc)
            rejected.append((number, line, str(exc)))

    return FormatListing(entries=tuple(entries), rejected=tuple(rejected))


def _with_aliases(tokens: Iterable[str]) -> frozenset[str]:
    result = set(tokens)
    for canonical, alias in FORMAT_ALIASES.items():
        if canonical in result:
            result.add(alias)
        if alias in result:
            result.add(canonical)
    return frozenset(result)


@dataclass(frozen=True, slots=True)
class CapabilityTable:
    """Immutable view of what the engine can read and write on this host."""

    entries: tuple[FormatEntry, ...] = ()
    _by_token: dict[str, FormatEntry] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Later duplicates lose; engines list each coder once
        by_token: dict[str, FormatEntry] = {}
        for entry in self.entries:
            by_token.setdefault(entry.token, entry)
        object.__setattr__(self, "_by_token", by_token)

    @classmethod
    def from_listing(cls, text: str) -> Self:
        return cls(parse_format_listing(text).entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def readable_extensions(self) -> frozenset[str]:
        """Readable tokens, including alias spellings."""
        return _with_aliases(e.token for e in self.entries if e.readable)

    @property
    def writable_extensions(self) -> frozenset[str]:
        """Writable tokens, including alias spellings."""
        return _with_aliases(e.token for e in self.entries if e.writable)

    def get(self, token: str) -> FormatEntry | None:
        token = token.lower().lstrip(".")
        entry = self._by_token.get(token)
        if entry is not None:
            return entry
        for canonical, alias in FORMAT_ALIASES.items():
            if token == alias:
                return self._by_token.get(canonical)
            if token == canonical:
                return self._by_token.get(alias)
        return None

    def __iter__(self) -> Iterator[FormatEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def load_capabilities(engine: FormatLister) -> CapabilityTable:
    """Query the engine once and build the capability table.

    An unavailable engine or empty listing gives an empty table, which
    callers treat as "no conversions available".
    """
    text = engine.list_formats()
    if not text.strip():
        logger.warning("Engine returned no format listing; format conversion disabled")
        return CapabilityTable()

    listing = parse_format_listing(text)
    if listing.rejected:
        logger.debug("Ignored %d malformed format row(s)", len(listing.rejected))
    if not listing.entries:
        logger.warning("Engine format listing had no usable rows; format conversion disabled")
    return CapabilityTable(listing.entries)

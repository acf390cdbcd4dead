# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Recursive, crash-safe texture downscaling driven by ImageMagick."""

from __future__ import annotations

from typing import Final

__version__: Final[str] = "1.0.0"

__all__: Final[list[str]] = ["__version__"]

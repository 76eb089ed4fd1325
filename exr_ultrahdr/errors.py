# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Exception hierarchy shared by the conversion pipeline."""

from __future__ import annotations

from typing import Final

__all__: Final[list[str]] = [
    "ExrUltraHdrError",
    "ConfigurationError",
    "DecodeError",
    "DegenerateChromaticitiesError",
    "EncodingError",
]


class ExrUltraHdrError(Exception):
    """Base exception for conversion errors."""


class ConfigurationError(ExrUltraHdrError):
    """Raised when the requested outputs or overrides are inconsistent."""


class DecodeError(ExrUltraHdrError):
    """Raised when the source EXR cannot be read."""


class DegenerateChromaticitiesError(ExrUltraHdrError):
    """Raised when primaries are collinear or duplicated.

    The RGB to XYZ matrix is undefined for such a color space, so space
    conversion, luminance weights and ICC generation all fail with this error.
    """


class EncodingError(ExrUltraHdrError):
    """Raised when an output raster or metadata segment cannot be built."""

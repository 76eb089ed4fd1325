# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Convert linear OpenEXR images to PNG and Ultra HDR JPEG."""

from __future__ import annotations

from typing import Final

from .color_spaces import ColorSpace, Illuminant
from .colorimetry import Chromaticities, XyCoord
from .config import ConversionSettings
from .converter import ConversionRequest, ConversionResult, convert
from .errors import (
    ConfigurationError,
    DecodeError,
    DegenerateChromaticitiesError,
    EncodingError,
    ExrUltraHdrError,
)

__version__: Final[str] = "1.0.0"

__all__: Final[list[str]] = [
    "__version__",
    "Chromaticities",
    "ColorSpace",
    "ConfigurationError",
    "ConversionRequest",
    "ConversionResult",
    "ConversionSettings",
    "DecodeError",
    "DegenerateChromaticitiesError",
    "EncodingError",
    "ExrUltraHdrError",
    "Illuminant",
    "XyCoord",
    "convert",
]

# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Conversion settings.

The numeric constants below are part of the Ultra HDR interchange contract:
renderers reconstruct HDR luminance from the gain map using exactly these
gamma and offset values, which are also written into the gain-map XMP.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final, Self

__all__: Final[list[str]] = [
    "DISPLAY_GAMMA",
    "MAP_GAMMA",
    "OFFSET_SDR",
    "OFFSET_HDR",
    "JPEG_QUALITY",
    "MAP_JPEG_QUALITY",
    "ConversionSettings",
]

DISPLAY_GAMMA: Final[float] = 2.4
# Gamma used for encoding the gain map samples
MAP_GAMMA: Final[float] = 1.0
# Gain map stabilization offsets, added to both luminances
OFFSET_SDR: Final[float] = 1.0 / 64.0
OFFSET_HDR: Final[float] = 1.0 / 64.0
JPEG_QUALITY: Final[int] = 100
MAP_JPEG_QUALITY: Final[int] = 100


def _get_env_quality(var_name: str, /) -> int | None:
    """Get a JPEG quality from environment variable, or None if invalid."""
    value = os.environ.get(var_name, "").strip()
    if not value:
        return None
    try:
        result = int(value)
    except ValueError:
        return None
    return result if 1 <= result <= 100 else None


@dataclass(frozen=True, slots=True, kw_only=True)
class ConversionSettings:
    """Encoding parameters passed explicitly through the pipeline."""

    display_gamma: float = DISPLAY_GAMMA
    map_gamma: float = MAP_GAMMA
    offset_sdr: float = OFFSET_SDR
    offset_hdr: float = OFFSET_HDR
    jpeg_quality: int = JPEG_QUALITY
    map_jpeg_quality: int = MAP_JPEG_QUALITY
    legacy_mpf: bool = False

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.display_gamma <= 0:
            msg = f"display_gamma must be > 0, got {self.display_gamma}"
            raise ValueError(msg)
        if self.map_gamma <= 0:
            msg = f"map_gamma must be > 0, got {self.map_gamma}"
            raise ValueError(msg)
        if self.offset_sdr <= 0 or self.offset_hdr <= 0:
            msg = (
                "gain map offsets must be > 0, got "
                f"sdr={self.offset_sdr}, hdr={self.offset_hdr}"
            )
            raise ValueError(msg)
        for name in ("jpeg_quality", "map_jpeg_quality"):
            quality = getattr(self, name)
            if not 1 <= quality <= 100:
                msg = f"{name} must be within 1-100, got {quality}"
                raise ValueError(msg)

    @classmethod
    def create(
        cls,
        *,
        jpeg_quality: int | None = None,
        map_jpeg_quality: int | None = None,
        legacy_mpf: bool = False,
    ) -> Self:
        """Create settings from arguments with environment variable fallbacks."""
        return cls(
            jpeg_quality=(
                jpeg_quality
                or _get_env_quality("EXR_ULTRAHDR_JPEG_QUALITY")
                or JPEG_QUALITY
            ),
            map_jpeg_quality=(
                map_jpeg_quality
                or _get_env_quality("EXR_ULTRAHDR_MAP_QUALITY")
                or MAP_JPEG_QUALITY
            ),
            legacy_mpf=legacy_mpf,
        )

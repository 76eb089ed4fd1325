# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Gain Map Module

Computes the Ultra HDR gain map: per pixel, how much brighter the
scene-referred value is than what got baked into the clamped SDR rendition.

The computation has two passes separated by a whole-image barrier:

- Pass 1, compute_gain_statistics(): per-pixel gain and the global
  log2 min/max over the image
- Pass 2, encode_recovery(): normalize log2 gains into [0, 1] using that
  range, apply the map gamma and quantize to 8 bits

References:
    - https://developer.android.com/media/platform/hdr-image-format
    - Adobe Gain Map specification 1.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

import numpy as np
from numpy.typing import NDArray

from .colorimetry import LuminanceWeights
from .config import ConversionSettings

__all__: Final[list[str]] = [
    "GainStatistics",
    "GainMap",
    "compute_gain_statistics",
    "encode_recovery",
    "build_gain_map",
]

logger = logging.getLogger(__name__)

# Stand-in luminance for +inf samples, keeps the log2 range finite
_MAX_LUMINANCE: Final[float] = float(np.finfo(np.float32).max)


@dataclass(frozen=True, slots=True)
class GainStatistics:
    """Result of pass 1.

    Attributes:
        gains: Linear content boost per pixel (H, W), float64
        min_log2: log2 of the smallest gain in the image
        max_log2: log2 of the largest gain in the image
    """

    gains: NDArray[np.float64]
    min_log2: float
    max_log2: float

    @property
    def is_flat(self) -> bool:
        return self.max_log2 == self.min_log2


@dataclass(frozen=True, slots=True)
class GainMap:
    """Encoded 8-bit recovery samples (H, W) plus the range to decode them."""

    recovery: NDArray[np.uint8]
    min_log2: float
    max_log2: float


def compute_gain_statistics(
    pixels: NDArray[np.float32],
    factor: float,
    weights: LuminanceWeights,
    *,
    offset_sdr: float,
    offset_hdr: float,
) -> GainStatistics:
    """Pass 1: per-pixel gain and its global log2 range.

    HDR luminance comes from the unclamped scene-referred pixel, SDR luminance
    from the exposed pixel clamped to [0, 1] the way the display pipeline
    clamps it. Both are floored at zero so wide-gamut weights with a negative
    component cannot make the ratio negative; the offsets keep it finite near
    black. A NaN luminance counts as black and +inf as the largest float32, so
    a few bad samples cannot poison the whole-image range.

    Args:
        pixels: Linear RGB (H, W, 3), already in the output color space
        factor: Exposure multiplier applied to the SDR rendition
        weights: Luminance weights of the output color space
        offset_sdr: Offset added to SDR luminance
        offset_hdr: Offset added to HDR luminance

    Raises:
        ValueError: If the image has no pixels.
    """
    if pixels.size == 0:
        raise ValueError("Cannot compute a gain map for an empty image")

    coeffs = weights.as_array().astype(np.float64)
    with np.errstate(invalid="ignore", over="ignore"):
        hdr_luminance = pixels.astype(np.float64) @ coeffs
        sdr_pixels = np.clip(pixels * np.float32(factor), 0.0, 1.0)
        sdr_luminance = sdr_pixels.astype(np.float64) @ coeffs

    finite = np.isfinite(hdr_luminance) & np.isfinite(sdr_luminance)
    non_finite = int(np.count_nonzero(~finite))
    if non_finite:
        logger.warning(
            "%d pixel(s) have NaN or infinite luminance, treating NaN as black "
            "and infinity as the largest float32 value.",
            non_finite,
        )
        hdr_luminance = np.nan_to_num(
            hdr_luminance, nan=0.0, posinf=_MAX_LUMINANCE, neginf=0.0
        )
        sdr_luminance = np.nan_to_num(sdr_luminance, nan=0.0, posinf=1.0, neginf=0.0)

    hdr_luminance = np.maximum(hdr_luminance, 0.0)
    sdr_luminance = np.maximum(sdr_luminance, 0.0)

    gains = (hdr_luminance + offset_hdr) / (sdr_luminance + offset_sdr)

    return GainStatistics(
        gains=gains,
        min_log2=float(np.log2(np.min(gains))),
        max_log2=float(np.log2(np.max(gains))),
    )


def encode_recovery(stats: GainStatistics, map_gamma: float) -> NDArray[np.uint8]:
    """Pass 2: normalize log2 gains to [0, 1] and quantize to 8 bits.

    A flat image (min == max) has nothing to normalize; every sample then
    gets the encoded midpoint, which decodes to the single gain anyway.
    """
    if stats.is_flat:
        midpoint = int(np.floor(0.5**map_gamma * 255.0 + 0.5))
        return np.full(stats.gains.shape, midpoint, dtype=np.uint8)

    log_recovery = (np.log2(stats.gains) - stats.min_log2) / (
        stats.max_log2 - stats.min_log2
    )
    recovery = np.power(np.clip(log_recovery, 0.0, 1.0), map_gamma)
    return np.floor(recovery * 255.0 + 0.5).astype(np.uint8)


def build_gain_map(
    pixels: NDArray[np.float32],
    factor: float,
    weights: LuminanceWeights,
    settings: ConversionSettings,
) -> GainMap:
    """Run both passes and return the encoded gain map."""
    stats = compute_gain_statistics(
        pixels,
        factor,
        weights,
        offset_sdr=settings.offset_sdr,
        offset_hdr=settings.offset_hdr,
    )
    return GainMap(
        recovery=encode_recovery(stats, settings.map_gamma),
        min_log2=stats.min_log2,
        max_log2=stats.max_log2,
    )

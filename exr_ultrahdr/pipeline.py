# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Pixel pipeline: scene-referred linear light to display-referred 8-bit RGB.

Steps, in order:
1. Resolve input/output chromaticities (presets, file metadata, overrides)
2. Compute the exposure multiplier ``2 ** ev``
3. Convert the linear pixels to the output space (if it differs)
4. Expose, clamp to [0, 1], gamma encode, quantize to 8 bits
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Final

import numpy as np
from numpy.typing import NDArray

from .color_spaces import REC_709
from .colorimetry import Chromaticities, XyCoord
from .config import ConversionSettings
from .errors import ConfigurationError
from .transfer import gamma_encode

__all__: Final[list[str]] = [
    "ResolvedChromaticities",
    "MAX_EXPOSURE_STOPS",
    "DisplayImage",
    "resolve_chromaticities",
    "exposure_factor",
    "convert_color_space",
    "encode_display",
    "render_display",
]

logger = logging.getLogger(__name__)

# Beyond this the float32 pixel buffer over- or underflows
MAX_EXPOSURE_STOPS: Final[float] = 64.0


@dataclass(frozen=True, slots=True)
class ResolvedChromaticities:
    """Effective color spaces for one conversion run.

    Attributes:
        input: What the linear-light RGB channels refer to
        output: Target space, or None to keep the input space
    """

    input: Chromaticities
    output: Chromaticities | None

    @property
    def write(self) -> Chromaticities:
        """Chromaticities the output files are tagged with."""
        return self.output if self.output is not None else self.input

    @property
    def needs_conversion(self) -> bool:
        return self.output is not None and self.output != self.input


@dataclass(frozen=True, slots=True)
class DisplayImage:
    """Display-referred 8-bit RGB buffer (H, W, 3) and its chromaticities."""

    rgb: NDArray[np.uint8]
    chromaticities: Chromaticities

    @property
    def width(self) -> int:
        return int(self.rgb.shape[1])

    @property
    def height(self) -> int:
        return int(self.rgb.shape[0])


def resolve_chromaticities(
    *,
    input_space: Chromaticities | None = None,
    source: Chromaticities | None = None,
    input_white: XyCoord | None = None,
    output_space: Chromaticities | None = None,
    output_white: XyCoord | None = None,
) -> ResolvedChromaticities:
    """Resolve effective input and output chromaticities.

    Args:
        input_space: Explicitly selected input color space
        source: Chromaticities embedded in the source file
        input_white: Override for the input white point
        output_space: Selected output color space
        output_white: Override for the output white point. Without an output
            space this forks the input with only the white changed, which
            still leads to a conversion.
    """
    if input_space is not None:
        resolved_input = input_space
    elif source is not None:
        resolved_input = source
    else:
        logger.warning("Assuming Rec. 709 (sRGB) color space for input EXR.")
        resolved_input = REC_709

    if input_white is not None:
        resolved_input = resolved_input.with_white(input_white)

    resolved_output = output_space
    if output_white is not None:
        base = resolved_output if resolved_output is not None else resolved_input
        resolved_output = base.with_white(output_white)

    return ResolvedChromaticities(input=resolved_input, output=resolved_output)


def exposure_factor(ev: float | None) -> float:
    """Linear multiplier for an exposure change in stops.

    Raises:
        ConfigurationError: If ``ev`` is not finite or exceeds
            MAX_EXPOSURE_STOPS in either direction.
    """
    if ev is None:
        return 1.0
    if not math.isfinite(ev) or abs(ev) > MAX_EXPOSURE_STOPS:
        raise ConfigurationError(
            f"Exposure must be within ±{MAX_EXPOSURE_STOPS:g} stops, got {ev}"
        )
    return float(2.0**ev)


def convert_color_space(
    pixels: NDArray[np.float32],
    source: Chromaticities,
    destination: Chromaticities,
) -> NDArray[np.float32]:
    """Convert linear pixels (H, W, 3) from ``source`` to ``destination`` in place.

    Warns once when ``destination`` does not fully contain ``source``, since
    out-of-gamut colors then come out with negative components and clip.

    Raises:
        DegenerateChromaticitiesError: If either space has singular primaries.
    """
    if not destination.contains_space(source):
        logger.warning(
            "Output color space is smaller than input, check output for any artifacts."
        )

    matrix = source.rgb_space_conversion_matrix(destination).astype(np.float32)
    logger.debug("Conversion matrix:\n%s", matrix)

    # Row vectors: pixel @ M.T == (M @ pixel.T).T
    pixels[...] = pixels @ matrix.T
    return pixels


def encode_display(
    pixels: NDArray[np.float32],
    factor: float,
    gamma: float,
) -> NDArray[np.uint8]:
    """Expose, clamp, gamma encode and quantize linear pixels to 8 bits."""
    # clip maps ±inf into range but lets NaN through
    exposed = np.nan_to_num(np.clip(pixels * np.float32(factor), 0.0, 1.0), nan=0.0)
    encoded = gamma_encode(exposed, gamma) * 255.0
    # Round half away from zero (all values are non-negative here)
    return np.floor(encoded + 0.5).astype(np.uint8)


def render_display(
    pixels: NDArray[np.float32],
    chromaticities: ResolvedChromaticities,
    settings: ConversionSettings,
    *,
    exposure: float | None = None,
) -> DisplayImage:
    """Run the full pipeline; ``pixels`` is converted in place when needed."""
    if chromaticities.needs_conversion:
        assert chromaticities.output is not None
        convert_color_space(pixels, chromaticities.input, chromaticities.output)

    factor = exposure_factor(exposure)
    rgb = encode_display(pixels, factor, settings.display_gamma)
    return DisplayImage(rgb=rgb, chromaticities=chromaticities.write)

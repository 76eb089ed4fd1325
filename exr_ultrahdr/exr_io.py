# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""OpenEXR decoding into linear float32 RGB."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import Imath
import numpy as np
import OpenEXR
from numpy.typing import NDArray

from .colorimetry import Chromaticities, XyCoord
from .errors import DecodeError

__all__: Final[list[str]] = [
    "RGB_CHANNELS",
    "DecodedImage",
    "read_exr",
]

logger = logging.getLogger(__name__)

RGB_CHANNELS: Final[tuple[str, str, str]] = ("R", "G", "B")

_FLOAT: Final = Imath.PixelType(Imath.PixelType.FLOAT)


@dataclass(frozen=True, slots=True)
class DecodedImage:
    """Linear RGB pixels (H, W, 3) and the chromaticities stored in the file."""

    pixels: NDArray[np.float32]
    chromaticities: Chromaticities | None

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


def _chromaticities_from_header(header: dict[str, Any]) -> Chromaticities | None:
    value = header.get("chromaticities")
    if value is None:
        return None
    return Chromaticities(
        red=XyCoord(float(value.red.x), float(value.red.y)),
        green=XyCoord(float(value.green.x), float(value.green.y)),
        blue=XyCoord(float(value.blue.x), float(value.blue.y)),
        white=XyCoord(float(value.white.x), float(value.white.y)),
    )


def read_exr(path: Path) -> DecodedImage:
    """Read the R, G and B channels of an EXR file as float32.

    Channels are read over the data window, converted to 32-bit float
    whatever their stored type. A missing channel reads as zero, but at
    least one of R, G, B must exist.

    Args:
        path: EXR file

    Returns:
        DecodedImage with a contiguous (H, W, 3) float32 buffer

    Raises:
        DecodeError: If the file cannot be read, has no R/G/B channel,
            or has an empty data window.
    """
    if not path.is_file():
        raise DecodeError(f"EXR file not found: {path}")

    # Older bindings raise OSError, pybind11-based ones RuntimeError
    try:
        exr = OpenEXR.InputFile(str(path))
    except (OSError, RuntimeError, ValueError) as e:
        raise DecodeError(f"Cannot open EXR file {path}: {e}") from e

    try:
        header = exr.header()
        data_window = header["dataWindow"]
        width = data_window.max.x - data_window.min.x + 1
        height = data_window.max.y - data_window.min.y + 1
        if width <= 0 or height <= 0:
            raise DecodeError(f"EXR file {path} has an empty data window")

        available = set(header["channels"])
        present = [name for name in RGB_CHANNELS if name in available]
        if not present:
            raise DecodeError(
                f"EXR file {path} has no R, G or B channel "
                f"(channels: {', '.join(sorted(available)) or 'none'})"
            )
        missing = [name for name in RGB_CHANNELS if name not in available]
        if missing:
            logger.warning("Channels %s missing from %s, reading as 0", ", ".join(missing), path)

        pixels = np.zeros((height, width, 3), dtype=np.float32)
        for index, name in enumerate(RGB_CHANNELS):
            if name in available:
                raw = exr.channel(name, _FLOAT)
                pixels[..., index] = np.frombuffer(raw, dtype=np.float32).reshape(height, width)

        non_finite = int(np.count_nonzero(~np.isfinite(pixels)))
        if non_finite:
            logger.warning(
                "%d NaN or infinite samples in %s, replacing NaN with 0 and "
                "infinity with the largest float32 value",
                non_finite,
                path,
            )
            np.nan_to_num(pixels, copy=False, nan=0.0)

        chromaticities = _chromaticities_from_header(header)
    except (OSError, RuntimeError, ValueError, KeyError) as e:
        raise DecodeError(f"Cannot decode EXR file {path}: {e}") from e
    finally:
        exr.close()

    logger.debug(
        "Decoded %s: %dx%d, chromaticities %s",
        path.name,
        width,
        height,
        "from file" if chromaticities is not None else "absent",
    )
    return DecodedImage(pixels=pixels, chromaticities=chromaticities)

# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
EXR to PNG / Ultra HDR JPEG conversion run.

Phases:
1. Validate the requested outputs (before any decoding)
2. Decode the EXR
3. Resolve chromaticities, convert and render the SDR rendition
4. Compute the gain map (Ultra HDR JPEG only)
5. Encode every output in memory
6. Write all outputs: temp files next to the destinations, then os.replace

Nothing is written unless every output encoded successfully.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Final

from .color_spaces import ColorSpace
from .colorimetry import Chromaticities, XyCoord
from .config import ConversionSettings
from .encoders import encode_png, encode_sdr_jpeg, encode_ultrahdr_jpeg
from .errors import ConfigurationError, EncodingError
from .exr_io import read_exr
from .gainmap import GainMap, build_gain_map
from .pipeline import exposure_factor, render_display, resolve_chromaticities

__all__: Final[list[str]] = [
    "OutputKind",
    "ConversionRequest",
    "WrittenFile",
    "ConversionResult",
    "convert",
]

logger = logging.getLogger(__name__)


class OutputKind(StrEnum):
    PNG = "PNG"
    ULTRA_HDR_JPEG = "Ultra HDR JPEG"
    SDR_JPEG = "SDR JPEG"


@dataclass(frozen=True, slots=True, kw_only=True)
class ConversionRequest:
    """What to convert and where to write it.

    Attributes:
        exr_path: Source EXR file
        input_space: Explicit input color space (overrides file metadata)
        input_white: Override for the input white point
        output_space: Target color space, None to keep the input space
        output_white: Override for the output white point
        exposure: Exposure change in stops
        png_path: PNG destination, if wanted
        jpeg_path: JPEG destination, if wanted
        sdr_only: Write a plain JPEG without gain map
    """

    exr_path: Path
    input_space: ColorSpace | None = None
    input_white: XyCoord | None = None
    output_space: ColorSpace | None = None
    output_white: XyCoord | None = None
    exposure: float | None = None
    png_path: Path | None = None
    jpeg_path: Path | None = None
    sdr_only: bool = False

    def validate(self) -> None:
        """Check the requested outputs.

        Raises:
            ConfigurationError: If no output is requested, both outputs point
                at the same file, a destination directory does not exist or
                the exposure is out of range.
        """
        outputs = [p for p in (self.png_path, self.jpeg_path) if p is not None]
        if not outputs:
            raise ConfigurationError("No output requested, specify a PNG and/or JPEG path")

        if len(outputs) == 2 and outputs[0].resolve() == outputs[1].resolve():
            raise ConfigurationError(f"PNG and JPEG outputs both point at {outputs[0]}")

        for path in outputs:
            parent = path.resolve().parent
            if not parent.is_dir():
                raise ConfigurationError(f"Output directory does not exist: {parent}")

        exposure_factor(self.exposure)


@dataclass(frozen=True, slots=True)
class WrittenFile:
    path: Path
    kind: OutputKind
    size: int


@dataclass(frozen=True, slots=True, kw_only=True)
class ConversionResult:
    """Summary of a finished conversion."""

    width: int
    height: int
    input_chromaticities: Chromaticities
    output_chromaticities: Chromaticities
    converted: bool
    gain_map: GainMap | None = None
    files: list[WrittenFile] = field(default_factory=list)


def _write_all(outputs: list[tuple[Path, bytes]]) -> None:
    """Write each output all-or-nothing.

    Every payload first goes to a hidden temp file in its destination
    directory, so the final os.replace stays on one filesystem. A destination
    is either left untouched or fully replaced, but if a later replace fails
    the earlier outputs stay written.
    """
    temp_files: list[tuple[Path, Path]] = []
    try:
        for path, data in outputs:
            temp_path = path.with_name(f".{path.name}.tmp")
            temp_files.append((temp_path, path))
            temp_path.write_bytes(data)

        for temp_path, path in temp_files:
            os.replace(temp_path, path)
            logger.debug("Wrote %s", path)
    except OSError as e:
        raise EncodingError(f"Cannot write output: {e}") from e
    finally:
        for temp_path, _ in temp_files:
            temp_path.unlink(missing_ok=True)


def convert(
    request: ConversionRequest,
    settings: ConversionSettings | None = None,
) -> ConversionResult:
    """Run one conversion.

    Args:
        request: Source, color and output selection
        settings: Encoding parameters (defaults to ConversionSettings())

    Returns:
        ConversionResult describing the written files

    Raises:
        ConfigurationError: Invalid output selection (nothing decoded yet)
        DecodeError: EXR unreadable or without RGB data
        DegenerateChromaticitiesError: Singular input or output primaries
        EncodingError: Encoder failure or write failure
    """
    settings = settings or ConversionSettings()
    request.validate()

    decoded = read_exr(request.exr_path)
    logger.info("Read %s (%dx%d)", request.exr_path.name, decoded.width, decoded.height)

    resolved = resolve_chromaticities(
        input_space=request.input_space.chromaticities() if request.input_space else None,
        source=decoded.chromaticities,
        input_white=request.input_white,
        output_space=request.output_space.chromaticities() if request.output_space else None,
        output_white=request.output_white,
    )

    # Converts decoded.pixels in place; the gain map then uses output-space pixels
    pixels = decoded.pixels
    display = render_display(pixels, resolved, settings, exposure=request.exposure)

    outputs: list[tuple[Path, bytes]] = []
    kinds: list[OutputKind] = []
    gain_map: GainMap | None = None

    if request.png_path is not None:
        outputs.append((request.png_path, encode_png(display, settings.display_gamma)))
        kinds.append(OutputKind.PNG)

    if request.jpeg_path is not None:
        if request.sdr_only:
            outputs.append((request.jpeg_path, encode_sdr_jpeg(display, settings)))
            kinds.append(OutputKind.SDR_JPEG)
        else:
            weights = resolved.write.luminance_values()
            gain_map = build_gain_map(pixels, exposure_factor(request.exposure), weights, settings)
            logger.info(
                "Gain map range: log2 %.3f to %.3f", gain_map.min_log2, gain_map.max_log2
            )
            outputs.append(
                (request.jpeg_path, encode_ultrahdr_jpeg(display, gain_map, settings))
            )
            kinds.append(OutputKind.ULTRA_HDR_JPEG)

    _write_all(outputs)

    return ConversionResult(
        width=display.width,
        height=display.height,
        input_chromaticities=resolved.input,
        output_chromaticities=resolved.write,
        converted=resolved.needs_conversion,
        gain_map=gain_map,
        files=[
            WrittenFile(path=path, kind=kind, size=len(data))
            for (path, data), kind in zip(outputs, kinds, strict=True)
        ],
    )

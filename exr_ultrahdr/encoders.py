# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Raster Encoders and Ultra HDR Assembly

PNG goes through pypng (8-bit RGB with gAMA and cHRM chunks), JPEG through
Pillow. Metadata segments are spliced into Pillow's output afterwards so the
encoder never has to know about XMP or MPF.

Ultra HDR JPEG layout:
    Primary JPEG
      SOI
      APP0 JFIF, APP2 ICC_PROFILE  (written by Pillow)
      APP1 XMP container directory (gain map byte length)
      APP2 MPF index               (primary size, gain map offset)
      ... frame, scan, EOI
    Gain map JPEG (grayscale)
      SOI
      APP0 JFIF
      APP1 XMP hdrgm descriptor
      ... frame, scan, EOI

All functions return bytes; nothing touches the filesystem here.
"""

from __future__ import annotations

import io
import logging
import struct
from typing import Final

import numpy as np
import png
from numpy.typing import NDArray
from PIL import Image

from .colorimetry import Chromaticities
from .config import ConversionSettings
from .errors import EncodingError
from .gainmap import GainMap
from .icc import build_rgb_profile
from .jpeg_container import APP1, APP2, JpegSegment, find_segment, insert_app_segments
from .mpf import MPF_IDENTIFIER, TIFF_HEADER_OFFSET, MpfHeader
from .pipeline import DisplayImage
from .xmp import GainMapMetadata, make_xmp, render_container_xmp, render_gain_map_xmp

__all__: Final[list[str]] = [
    "encode_png",
    "encode_jpeg",
    "encode_gain_map_jpeg",
    "encode_sdr_jpeg",
    "encode_ultrahdr_jpeg",
    "chrm_chunk",
]

logger = logging.getLogger(__name__)

# PNG stores chromaticities and gamma as unsigned 32-bit integers scaled by 1e5
_PNG_SCALE: Final[float] = 100_000.0


# ═══════════════════════════════════════════════════════════════════
#                        PNG
# ═══════════════════════════════════════════════════════════════════


def chrm_chunk(chromaticities: Chromaticities) -> bytes:
    """cHRM chunk payload: white, red, green, blue (x, y) as uint32 * 1e5.

    PNG cannot represent negative chromaticities, so such values are clamped
    to 0 with a warning; the image is then tagged with a different space than
    its pixels are in.
    """
    if chromaticities.has_negatives():
        logger.warning(
            "Some output chromaticities have negative values, PNG clamps these to 0. "
            "Color WILL be affected."
        )

    values = []
    for coord in (
        chromaticities.white,
        chromaticities.red,
        chromaticities.green,
        chromaticities.blue,
    ):
        values.extend((coord.x, coord.y))
    return struct.pack(">8I", *(max(0, round(v * _PNG_SCALE)) for v in values))


def encode_png(display: DisplayImage, gamma: float) -> bytes:
    """Encode display RGB as an 8-bit PNG with gAMA and cHRM chunks.

    Args:
        display: 8-bit RGB buffer and the chromaticities it is tagged with
        gamma: Display gamma; the gAMA chunk stores its reciprocal

    Returns:
        Complete PNG file bytes

    Raises:
        EncodingError: If pypng rejects the image.
    """
    height, width = display.height, display.width
    writer = png.Writer(
        width=width,
        height=height,
        bitdepth=8,
        greyscale=False,
        gamma=1.0 / gamma,
    )
    # pypng expects rows as (H, W*3) - flatten RGB channels per row
    rows = display.rgb.reshape(height, width * 3)

    buffer = io.BytesIO()
    try:
        writer.write(buffer, rows)
        chunks = list(png.Reader(bytes=buffer.getvalue()).chunks())
    except png.Error as e:
        raise EncodingError(f"PNG encoding failed: {e}") from e

    # cHRM must precede PLTE and IDAT; IHDR is always first
    chunks.insert(1, (b"cHRM", chrm_chunk(display.chromaticities)))

    output = io.BytesIO()
    png.write_chunks(output, chunks)
    return output.getvalue()


# ═══════════════════════════════════════════════════════════════════
#                        JPEG
# ═══════════════════════════════════════════════════════════════════


def encode_jpeg(
    pixels: NDArray[np.uint8],
    quality: int,
    *,
    icc_profile: bytes | None = None,
) -> bytes:
    """Encode an 8-bit RGB (H, W, 3) or grayscale (H, W) buffer with Pillow."""
    save_kwargs: dict[str, object] = {"quality": quality}
    if icc_profile is not None:
        save_kwargs["icc_profile"] = icc_profile

    buffer = io.BytesIO()
    try:
        # uint8 (H, W) maps to mode "L", (H, W, 3) to "RGB"
        Image.fromarray(np.ascontiguousarray(pixels)).save(buffer, "JPEG", **save_kwargs)
    except (OSError, ValueError) as e:
        raise EncodingError(f"JPEG encoding failed: {e}") from e
    return buffer.getvalue()


def _insert_segments(jpeg: bytes, segments: list[JpegSegment]) -> bytes:
    try:
        return insert_app_segments(jpeg, segments)
    except ValueError as e:
        raise EncodingError(f"Cannot insert metadata segments: {e}") from e


def encode_gain_map_jpeg(gain_map: GainMap, settings: ConversionSettings) -> bytes:
    """Grayscale gain map JPEG carrying the hdrgm XMP descriptor."""
    metadata = GainMapMetadata.from_gain_map(gain_map, settings)
    jpeg = encode_jpeg(gain_map.recovery, settings.map_jpeg_quality)
    xmp = make_xmp(render_gain_map_xmp(metadata))
    return _insert_segments(jpeg, [JpegSegment(marker=APP1, data=xmp)])


def encode_sdr_jpeg(display: DisplayImage, settings: ConversionSettings) -> bytes:
    """Plain JPEG of the SDR rendition, tagged with its ICC profile."""
    profile = build_rgb_profile(display.chromaticities, settings.display_gamma)
    return encode_jpeg(display.rgb, settings.jpeg_quality, icc_profile=profile)


def encode_ultrahdr_jpeg(
    display: DisplayImage,
    gain_map: GainMap,
    settings: ConversionSettings,
) -> bytes:
    """Assemble an Ultra HDR JPEG: primary SDR JPEG followed by the gain map.

    The MPF segment has a fixed size, so it is inserted first with placeholder
    values and then overwritten in place once the primary's final length and
    the MPF segment's own position are known.

    Raises:
        EncodingError: If an encoder fails or a segment does not fit.
        DegenerateChromaticitiesError: If the output primaries are singular.
    """
    gain_map_jpeg = encode_gain_map_jpeg(gain_map, settings)
    logger.debug("Gain map JPEG: %d bytes", len(gain_map_jpeg))

    container_xmp = make_xmp(render_container_xmp(len(gain_map_jpeg)))
    placeholder = MpfHeader.placeholder().to_bytes()

    primary = _insert_segments(
        encode_sdr_jpeg(display, settings),
        [
            JpegSegment(marker=APP1, data=container_xmp),
            JpegSegment(marker=APP2, data=placeholder),
        ],
    )

    if not settings.legacy_mpf:
        mpf_segment = find_segment(primary, APP2, MPF_IDENTIFIER)
        if mpf_segment is None:
            raise EncodingError("MPF segment missing from primary image")

        tiff_header = mpf_segment.payload_offset + TIFF_HEADER_OFFSET
        header = MpfHeader.for_pair(
            primary_size=len(primary),
            secondary_size=len(gain_map_jpeg),
            secondary_offset=len(primary) - tiff_header,
        ).to_bytes()
        start = mpf_segment.payload_offset
        primary = primary[:start] + header + primary[start + len(header) :]

    logger.debug("Primary JPEG: %d bytes", len(primary))
    return primary + gain_map_jpeg

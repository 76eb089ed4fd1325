# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
JPEG Marker Segment Module.

Handles the marker-segment structure of a JPEG stream for reading and
inserting application (APPn) segments such as XMP and MPF after encoding.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Final

__all__: Final[list[str]] = [
    "JpegSegment",
    "SOI",
    "SOS",
    "APP1",
    "APP2",
    "MAX_SEGMENT_PAYLOAD",
    "split_jpeg",
    "insert_app_segments",
    "find_segment",
]

SOI: Final[int] = 0xD8
EOI: Final[int] = 0xD9
SOS: Final[int] = 0xDA
APP0: Final[int] = 0xE0
APP1: Final[int] = 0xE1
APP2: Final[int] = 0xE2
APP15: Final[int] = 0xEF

# Length field counts itself (2 bytes) and is 16 bits wide
MAX_SEGMENT_PAYLOAD: Final[int] = 0xFFFF - 2

# Markers without a length field
_STANDALONE_MARKERS: Final[frozenset[int]] = frozenset({0x01, *range(0xD0, 0xD8)})


@dataclass(frozen=True, slots=True)
class JpegSegment:
    """A marker segment in a JPEG stream.

    Attributes:
        marker: Marker code (second byte, e.g. 0xE1 for APP1)
        data: Segment payload (excludes marker and length field)
        offset: Position of the 0xFF marker byte in the stream, -1 if unplaced
    """

    marker: int
    data: bytes
    offset: int = -1

    def __repr__(self) -> str:
        return f"JpegSegment(marker=0x{self.marker:02X}, size={len(self.data)})"

    @property
    def is_app(self) -> bool:
        return APP0 <= self.marker <= APP15

    @property
    def payload_offset(self) -> int:
        """Position of the first payload byte in the stream."""
        return self.offset + 4

    def to_bytes(self) -> bytes:
        """Serialize as marker + length + payload.

        Raises:
            ValueError: If the payload does not fit a single segment.
        """
        if len(self.data) > MAX_SEGMENT_PAYLOAD:
            raise ValueError(
                f"Segment payload too large for marker 0x{self.marker:02X}: "
                f"{len(self.data)} > {MAX_SEGMENT_PAYLOAD} bytes"
            )
        return struct.pack(">BBH", 0xFF, self.marker, len(self.data) + 2) + self.data


def split_jpeg(data: bytes) -> tuple[list[JpegSegment], bytes]:
    """Split a JPEG stream into its header segments and the scan data.

    Segment structure:
    - 0xFF, marker (1 byte)
    - length (2 bytes, big-endian): payload length + 2
    - payload

    Parsing stops at the first SOS marker; everything from that marker to the
    end of the stream (entropy-coded data, further scans, EOI) is returned
    untouched.

    Args:
        data: Complete JPEG stream

    Returns:
        Tuple of (header segments, scan data starting at SOS)

    Raises:
        ValueError: If the stream is not a well-formed JPEG
    """
    if data[:2] != b"\xff\xd8":
        raise ValueError("Not a JPEG stream (missing SOI marker)")

    segments: list[JpegSegment] = []
    pos = 2

    while pos < len(data):
        if data[pos] != 0xFF:
            raise ValueError(f"Expected marker at offset {pos}, found 0x{data[pos]:02X}")

        # Fill bytes: any number of 0xFF may precede a marker
        marker_start = pos
        while pos < len(data) and data[pos] == 0xFF:
            pos += 1
        if pos >= len(data):
            break
        marker = data[pos]
        pos += 1

        if marker == SOS:
            return segments, data[pos - 2 :]
        if marker == EOI:
            raise ValueError("Reached EOI before any scan")
        if marker in _STANDALONE_MARKERS:
            segments.append(JpegSegment(marker=marker, data=b"", offset=marker_start))
            continue

        if pos + 2 > len(data):
            raise ValueError(f"Truncated segment length at offset {pos}")
        length = struct.unpack(">H", data[pos : pos + 2])[0]
        if length < 2 or pos + length > len(data):
            raise ValueError(f"Invalid segment length {length} at offset {pos}")

        segments.append(
            JpegSegment(marker=marker, data=data[pos + 2 : pos + length], offset=marker_start)
        )
        pos += length

    raise ValueError("No scan (SOS marker) found in JPEG stream")


def insert_app_segments(data: bytes, new_segments: list[JpegSegment]) -> bytes:
    """Insert APPn segments after the leading run of APPn segments.

    Encoders put JFIF (APP0) and ICC (APP2) segments right after SOI; the new
    segments follow those, ahead of the quantization and frame headers.

    Args:
        data: Complete JPEG stream
        new_segments: Segments to insert, in order

    Returns:
        New JPEG stream
    """
    segments, scan = split_jpeg(data)

    insert_at = 0
    for i, segment in enumerate(segments):
        if not segment.is_app:
            break
        insert_at = i + 1

    result = segments[:insert_at] + new_segments + segments[insert_at:]

    output = bytearray(b"\xff\xd8")
    for segment in result:
        if segment.marker in _STANDALONE_MARKERS:
            output.extend(bytes([0xFF, segment.marker]))
        else:
            output.extend(segment.to_bytes())
    output.extend(scan)
    return bytes(output)


def find_segment(data: bytes, marker: int, identifier: bytes = b"") -> JpegSegment | None:
    """First header segment with this marker whose payload starts with ``identifier``."""
    segments, _ = split_jpeg(data)
    for segment in segments:
        if segment.marker == marker and segment.data.startswith(identifier):
            return segment
    return None

# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Multi-Picture Format (CIPA DC-007) index for the APP2 segment.

Payload layout (little-endian TIFF structure):
- "MPF\\0" identifier: 4 bytes
- TIFF header: "II", 0x002A, offset to first IFD (8)
- MP Index IFD: count (3) + three 12-byte entries
  - 0xB000 MP Format Version, UNDEFINED[4] = "0100"
  - 0xB001 Number of Images, LONG
  - 0xB002 MP Entry, UNDEFINED[16 * n], offset to the entry table
- Next IFD offset: 4 bytes (0)
- MP Entry table: 16 bytes per image
  - attribute: uint32
  - size: uint32 (bytes between SOI and EOI)
  - offset: uint32 (relative to the TIFF header, 0 for the first image)
  - dependent image 1 / 2 entry numbers: uint16 each

All offsets inside the structure are relative to the TIFF header, which
starts ``TIFF_HEADER_OFFSET`` bytes into the payload.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Final, Self

__all__: Final[list[str]] = [
    "MPF_IDENTIFIER",
    "TIFF_HEADER_OFFSET",
    "PRIMARY_IMAGE_ATTRIBUTE",
    "UNDEFINED_IMAGE_ATTRIBUTE",
    "MpEntry",
    "MpfHeader",
]

MPF_IDENTIFIER: Final[bytes] = b"MPF\x00"
TIFF_HEADER_OFFSET: Final[int] = len(MPF_IDENTIFIER)

# Baseline MP primary image, JPEG data format
PRIMARY_IMAGE_ATTRIBUTE: Final[int] = 0x030000
UNDEFINED_IMAGE_ATTRIBUTE: Final[int] = 0x000000

_TAG_VERSION: Final[int] = 0xB000
_TAG_NUMBER_OF_IMAGES: Final[int] = 0xB001
_TAG_MP_ENTRY: Final[int] = 0xB002
_TYPE_LONG: Final[int] = 4
_TYPE_UNDEFINED: Final[int] = 7

_ENTRY_SIZE: Final[int] = 16
_IFD_OFFSET: Final[int] = 8
_IFD_ENTRY_COUNT: Final[int] = 3
# TIFF header + IFD count + IFD entries + next IFD offset
_ENTRY_TABLE_OFFSET: Final[int] = _IFD_OFFSET + 2 + 12 * _IFD_ENTRY_COUNT + 4


@dataclass(frozen=True, slots=True)
class MpEntry:
    """One image in the MP Entry table."""

    attribute: int
    size: int
    offset: int
    dependent_image_1: int = 0
    dependent_image_2: int = 0


@dataclass(frozen=True, slots=True)
class MpfHeader:
    """MP Index IFD describing the images in a multi-picture container."""

    entries: tuple[MpEntry, ...]

    @classmethod
    def placeholder(cls) -> Self:
        """Historical two-image header with unpopulated sizes and offsets.

        Renderers that locate the secondary image by scanning accept it, but
        strict MPF readers cannot find the gain map from it.
        """
        return cls(
            entries=(
                MpEntry(attribute=PRIMARY_IMAGE_ATTRIBUTE, size=0, offset=0),
                MpEntry(attribute=UNDEFINED_IMAGE_ATTRIBUTE, size=0, offset=0),
            )
        )

    @classmethod
    def for_pair(
        cls,
        primary_size: int,
        secondary_size: int,
        secondary_offset: int,
    ) -> Self:
        """Header for a primary image followed by one secondary image.

        Args:
            primary_size: Byte length of the primary JPEG
            secondary_size: Byte length of the secondary JPEG
            secondary_offset: Start of the secondary JPEG, relative to the
                TIFF header inside this segment
        """
        return cls(
            entries=(
                MpEntry(attribute=PRIMARY_IMAGE_ATTRIBUTE, size=primary_size, offset=0),
                MpEntry(
                    attribute=UNDEFINED_IMAGE_ATTRIBUTE,
                    size=secondary_size,
                    offset=secondary_offset,
                ),
            )
        )

    @property
    def size(self) -> int:
        """Serialized payload length in bytes."""
        return TIFF_HEADER_OFFSET + _ENTRY_TABLE_OFFSET + _ENTRY_SIZE * len(self.entries)

    def to_bytes(self) -> bytes:
        """Serialize as an APP2 payload (identifier included)."""
        count = len(self.entries)
        parts: list[bytes] = [
            MPF_IDENTIFIER,
            b"II",
            struct.pack("<HI", 0x2A, _IFD_OFFSET),
            struct.pack("<H", _IFD_ENTRY_COUNT),
            struct.pack("<HHI", _TAG_VERSION, _TYPE_UNDEFINED, 4) + b"0100",
            struct.pack("<HHII", _TAG_NUMBER_OF_IMAGES, _TYPE_LONG, 1, count),
            struct.pack(
                "<HHII",
                _TAG_MP_ENTRY,
                _TYPE_UNDEFINED,
                _ENTRY_SIZE * count,
                _ENTRY_TABLE_OFFSET,
            ),
            struct.pack("<I", 0),  # Next IFD
        ]
        for entry in self.entries:
            parts.append(
                struct.pack(
                    "<IIIHH",
                    entry.attribute,
                    entry.size,
                    entry.offset,
                    entry.dependent_image_1,
                    entry.dependent_image_2,
                )
            )
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, payload: bytes) -> Self:
        """Parse an APP2 MPF payload (either byte order).

        Raises:
            ValueError: If the payload is not a well-formed MP Index.
        """
        if not payload.startswith(MPF_IDENTIFIER):
            raise ValueError("Not an MPF payload (missing identifier)")

        tiff = payload[TIFF_HEADER_OFFSET:]
        if tiff[:2] == b"II":
            fmt = "<"
        elif tiff[:2] == b"MM":
            fmt = ">"
        else:
            raise ValueError(f"Invalid TIFF byte order marker: {tiff[:2]!r}")

        try:
            magic, ifd_offset = struct.unpack_from(f"{fmt}HI", tiff, 2)
            if magic != 0x2A:
                raise ValueError(f"Invalid TIFF magic: {magic:#x}")

            num_entries = struct.unpack_from(f"{fmt}H", tiff, ifd_offset)[0]
            table_offset: int | None = None
            table_length = 0
            for i in range(num_entries):
                tag, _type, count, value = struct.unpack_from(
                    f"{fmt}HHII", tiff, ifd_offset + 2 + 12 * i
                )
                if tag == _TAG_MP_ENTRY:
                    table_offset, table_length = value, count

            if table_offset is None:
                raise ValueError("MP Index has no MP Entry tag")

            entries = tuple(
                MpEntry(*struct.unpack_from(f"{fmt}IIIHH", tiff, table_offset + _ENTRY_SIZE * i))
                for i in range(table_length // _ENTRY_SIZE)
            )
        except struct.error as e:
            raise ValueError(f"Truncated MPF payload: {e}") from e

        return cls(entries=entries)

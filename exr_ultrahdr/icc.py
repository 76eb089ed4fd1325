# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
ICC Profile Builder

Serializes a matrix/TRC RGB display profile (ICC.1:2022, version 4.3) from a
set of chromaticities and a pure power-law gamma.

Binary layout (all multi-byte values big-endian):
- Header: 128 bytes
- Tag count: uint32
- Tag table: 12 bytes per tag (signature, offset, size)
- Tag data: each element starts on a 4-byte boundary

Tags written:
- desc, cprt: multiLocalizedUnicodeType ("mluc"), en-US
- wtpt: PCS illuminant (D50), as required for v4 display profiles
- chad: Bradford adaptation from the source white to D50 ("sf32")
- rXYZ, gXYZ, bXYZ: D50-adapted columns of the RGB to XYZ matrix
- rTRC, gTRC, bTRC: parametricCurveType function 0 (Y = X^gamma), shared
"""

from __future__ import annotations

import hashlib
import struct
from datetime import UTC, datetime
from typing import Final

import numpy as np

from .colorimetry import Chromaticities, XyzCoord, bradford_adaptation_matrix

__all__: Final[list[str]] = [
    "PCS_D50",
    "build_rgb_profile",
    "s15fixed16",
]

# ICC PCS illuminant, as defined in ICC.1 (s15Fixed16 rounded)
PCS_D50: Final[XyzCoord] = XyzCoord(0.9642, 1.0, 0.8249)

_HEADER_SIZE: Final[int] = 128
_PROFILE_VERSION: Final[bytes] = bytes([0x04, 0x30, 0x00, 0x00])
_PROFILE_ID_SLICE: Final[slice] = slice(84, 100)

DEFAULT_COPYRIGHT: Final[str] = "No copyright, use freely"


def s15fixed16(value: float) -> bytes:
    """Encode a number as ICC s15Fixed16Number."""
    encoded = int(round(float(value) * 65536.0))
    if not -(2**31) <= encoded < 2**31:
        raise ValueError(f"Value {value} out of s15Fixed16 range")
    return struct.pack(">i", encoded)


def _xyz_type(xyz: XyzCoord) -> bytes:
    return b"XYZ " + bytes(4) + s15fixed16(xyz.x) + s15fixed16(xyz.y) + s15fixed16(xyz.z)


def _sf32_type(matrix: np.ndarray) -> bytes:
    return b"sf32" + bytes(4) + b"".join(s15fixed16(v) for v in matrix.reshape(-1))


def _para_gamma_type(gamma: float) -> bytes:
    # Function type 0: Y = X ^ gamma
    return b"para" + bytes(4) + struct.pack(">HH", 0, 0) + s15fixed16(gamma)


def _mluc_type(text: str) -> bytes:
    encoded = text.encode("utf-16-be")
    record_offset = 16 + 12  # type header + record count/size + one record
    return (
        b"mluc"
        + bytes(4)
        + struct.pack(">II", 1, 12)
        + b"enUS"
        + struct.pack(">II", len(encoded), record_offset)
        + encoded
    )


def _header(size: int, created: datetime) -> bytearray:
    """Build the 128-byte profile header (profile ID left zeroed)."""
    header = bytearray(_HEADER_SIZE)
    struct.pack_into(">I", header, 0, size)
    header[8:12] = _PROFILE_VERSION
    header[12:16] = b"mntr"
    header[16:20] = b"RGB "
    header[20:24] = b"XYZ "
    struct.pack_into(
        ">6H",
        header,
        24,
        created.year,
        created.month,
        created.day,
        created.hour,
        created.minute,
        created.second,
    )
    header[36:40] = b"acsp"
    # Rendering intent 0 (perceptual) at 64, PCS illuminant at 68
    header[68:80] = s15fixed16(PCS_D50.x) + s15fixed16(PCS_D50.y) + s15fixed16(PCS_D50.z)
    return header


def build_rgb_profile(
    chromaticities: Chromaticities,
    gamma: float,
    *,
    description: str | None = None,
    copyright_text: str = DEFAULT_COPYRIGHT,
    created: datetime | None = None,
) -> bytes:
    """Serialize an RGB display profile for these chromaticities.

    Args:
        chromaticities: Primaries and white point, each lifted to unit luma
        gamma: Pure power-law decoding gamma of the RGB values
        description: Profile description (defaults to a summary of the gamma)
        copyright_text: Copyright tag content
        created: Creation timestamp (defaults to now, UTC)

    Returns:
        Complete profile bytes, ready for an APP2/iCCP embedding

    Raises:
        DegenerateChromaticitiesError: If the primaries are singular.
    """
    rgb_to_xyz = chromaticities.rgb_to_xyz_matrix()
    source_white = chromaticities.white.with_luma(1.0).to_xyz()
    chad = bradford_adaptation_matrix(source_white, PCS_D50)
    adapted = chad @ rgb_to_xyz

    trc = _para_gamma_type(gamma)
    elements: list[tuple[bytes, bytes]] = [
        (b"desc", _mluc_type(description or f"exr-ultrahdr RGB gamma {gamma:g}")),
        (b"cprt", _mluc_type(copyright_text)),
        (b"wtpt", _xyz_type(PCS_D50)),
        (b"chad", _sf32_type(chad)),
        (b"rXYZ", _xyz_type(XyzCoord.from_array(adapted[:, 0]))),
        (b"gXYZ", _xyz_type(XyzCoord.from_array(adapted[:, 1]))),
        (b"bXYZ", _xyz_type(XyzCoord.from_array(adapted[:, 2]))),
        (b"rTRC", trc),
        (b"gTRC", trc),
        (b"bTRC", trc),
    ]

    table_size = 4 + 12 * len(elements)
    offset = _HEADER_SIZE + table_size
    table = bytearray(struct.pack(">I", len(elements)))
    data = bytearray()
    # Identical elements (the three TRCs) share one copy of their data
    written: dict[bytes, int] = {}

    for signature, element in elements:
        if element not in written:
            written[element] = offset + len(data)
            data.extend(element)
            data.extend(bytes(-len(data) % 4))
        table.extend(signature + struct.pack(">II", written[element], len(element)))

    size = _HEADER_SIZE + table_size + len(data)
    profile = _header(size, created or datetime.now(UTC)) + table + data

    # Profile ID: MD5 over the profile with flags, intent and ID zeroed,
    # which they already are
    profile[_PROFILE_ID_SLICE] = hashlib.md5(bytes(profile)).digest()
    return bytes(profile)

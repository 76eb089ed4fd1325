# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Tests for JPEG marker segment parsing and insertion."""

from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from exr_ultrahdr.jpeg_container import (
    APP1,
    APP2,
    MAX_SEGMENT_PAYLOAD,
    SOS,
    JpegSegment,
    find_segment,
    insert_app_segments,
    split_jpeg,
)


@pytest.fixture
def jpeg() -> bytes:
    buffer = io.BytesIO()
    pixels = np.arange(16 * 16 * 3, dtype=np.uint8).reshape(16, 16, 3)
    Image.fromarray(pixels).save(buffer, "JPEG", quality=90, icc_profile=b"\x00" * 32)
    return buffer.getvalue()


def test_split_jpeg(jpeg: bytes) -> None:
    segments, scan = split_jpeg(jpeg)
    assert segments[0].marker == 0xE0  # JFIF
    assert scan[:2] == bytes([0xFF, SOS])
    assert scan.endswith(b"\xff\xd9")
    for segment in segments:
        assert jpeg[segment.offset] == 0xFF
        assert jpeg[segment.offset + 1] == segment.marker


def test_insert_after_leading_app_segments(jpeg: bytes) -> None:
    xmp = JpegSegment(marker=APP1, data=b"http://ns.adobe.com/xap/1.0/\x00<x/>")
    extra = JpegSegment(marker=APP2, data=b"MPF\x00test")
    result = insert_app_segments(jpeg, [xmp, extra])

    plain, plain_scan = split_jpeg(jpeg)
    segments, scan = split_jpeg(result)
    assert scan == plain_scan
    assert len(segments) == len(plain) + 2

    markers = [s.marker for s in segments]
    first_non_app = next(i for i, s in enumerate(segments) if not s.is_app)
    assert markers[first_non_app - 2 : first_non_app] == [APP1, APP2]
    # JFIF and the ICC profile stay in front
    assert markers[:2] == [0xE0, 0xE2]
    assert segments[1].data.startswith(b"ICC_PROFILE\x00")

    with Image.open(io.BytesIO(result)) as image:
        image.load()
        assert image.size == (16, 16)


def test_find_segment_reports_payload_offset(jpeg: bytes) -> None:
    payload = b"MPF\x00" + bytes(10)
    result = insert_app_segments(jpeg, [JpegSegment(marker=APP2, data=payload)])
    segment = find_segment(result, APP2, b"MPF\x00")
    assert segment is not None
    assert result[segment.payload_offset : segment.payload_offset + len(payload)] == payload
    assert find_segment(result, APP1, b"nothing") is None


def test_oversized_payload_rejected(jpeg: bytes) -> None:
    segment = JpegSegment(marker=APP1, data=bytes(MAX_SEGMENT_PAYLOAD + 1))
    with pytest.raises(ValueError, match="too large"):
        insert_app_segments(jpeg, [segment])


def test_largest_payload_fits() -> None:
    encoded = JpegSegment(marker=APP1, data=bytes(MAX_SEGMENT_PAYLOAD)).to_bytes()
    assert encoded[2:4] == b"\xff\xff"


@pytest.mark.parametrize(
    "data",
    [
        pytest.param(b"\x89PNG\r\n", id="not-jpeg"),
        pytest.param(b"\xff\xd8\xff\xe0\x00\x10JFIF", id="truncated"),
        pytest.param(b"\xff\xd8\xff\xd9", id="no-scan"),
    ],
)
def test_malformed_streams_rejected(data: bytes) -> None:
    with pytest.raises(ValueError):
        split_jpeg(data)

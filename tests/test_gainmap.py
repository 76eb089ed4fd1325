# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Tests for the two-pass gain map computation.

Known values (offsets 1/64, weights summing to 1):
    - gray g <= 1 renders unclipped, gain = 1
    - gray 4.0 clips to 1.0, gain = (4 + 1/64) / (1 + 1/64)
"""

from __future__ import annotations

import logging
import math

import numpy as np
import pytest

from exr_ultrahdr.color_spaces import ACES_AP0, REC_709
from exr_ultrahdr.colorimetry import LuminanceWeights
from exr_ultrahdr.config import OFFSET_HDR, OFFSET_SDR, ConversionSettings
from exr_ultrahdr.gainmap import (
    GainStatistics,
    build_gain_map,
    compute_gain_statistics,
    encode_recovery,
)

GRAY_WEIGHTS = LuminanceWeights(red=0.25, green=0.5, blue=0.25)


def _gray(values: list[list[float]]) -> np.ndarray:
    array = np.array(values, dtype=np.float32)
    return np.ascontiguousarray(np.repeat(array[..., np.newaxis], 3, axis=2))


def test_two_by_two_image() -> None:
    pixels = _gray([[0.0, 1.0], [4.0, 0.5]])
    stats = compute_gain_statistics(
        pixels, 1.0, GRAY_WEIGHTS, offset_sdr=OFFSET_SDR, offset_hdr=OFFSET_HDR
    )

    expected_max = math.log2((4.0 + 1 / 64) / (1.0 + 1 / 64))
    assert stats.min_log2 == pytest.approx(0.0, abs=1e-6)
    assert stats.max_log2 == pytest.approx(expected_max, rel=1e-5)
    assert stats.gains.shape == (2, 2)

    recovery = encode_recovery(stats, 1.0)
    assert recovery.dtype == np.uint8
    assert recovery.tolist() == [[0, 0], [255, 0]]


def test_exposure_changes_sdr_luminance_only() -> None:
    pixels = _gray([[1.0, 0.0]])
    stats = compute_gain_statistics(
        pixels, 0.5, GRAY_WEIGHTS, offset_sdr=OFFSET_SDR, offset_hdr=OFFSET_HDR
    )
    expected = (1.0 + 1 / 64) / (0.5 + 1 / 64)
    assert float(stats.gains[0, 0]) == pytest.approx(expected, rel=1e-5)
    assert float(stats.gains[0, 1]) == pytest.approx(1.0)


def test_flat_image_encodes_midpoint() -> None:
    pixels = np.full((3, 5, 3), 0.25, dtype=np.float32)
    stats = compute_gain_statistics(
        pixels, 1.0, GRAY_WEIGHTS, offset_sdr=OFFSET_SDR, offset_hdr=OFFSET_HDR
    )
    assert stats.is_flat

    recovery = encode_recovery(stats, 1.0)
    assert recovery.shape == (3, 5)
    assert np.all(recovery == 128)


def test_flat_midpoint_follows_map_gamma() -> None:
    stats = GainStatistics(gains=np.ones((1, 2), dtype=np.float32), min_log2=0.0, max_log2=0.0)
    assert encode_recovery(stats, 2.0).tolist() == [[64, 64]]


def test_map_gamma_applied_after_normalization() -> None:
    gains = np.array([[1.0, 2.0, 4.0]], dtype=np.float32)
    stats = GainStatistics(gains=gains, min_log2=0.0, max_log2=2.0)
    # Normalized 0, 0.5, 1 -> squared 0, 0.25, 1
    assert encode_recovery(stats, 2.0).tolist() == [[0, 64, 255]]


def test_empty_image_raises() -> None:
    with pytest.raises(ValueError, match="empty"):
        compute_gain_statistics(
            np.zeros((0, 0, 3), dtype=np.float32),
            1.0,
            GRAY_WEIGHTS,
            offset_sdr=OFFSET_SDR,
            offset_hdr=OFFSET_HDR,
        )


def test_negative_luminance_keeps_gains_finite() -> None:
    # AP0 has a negative blue weight; a pure blue pixel has negative luminance
    weights = ACES_AP0.luminance_values()
    assert weights.blue < 0
    pixels = np.array([[[0.0, 0.0, 2.0], [-1.0, 0.2, 0.1]]], dtype=np.float32)
    stats = compute_gain_statistics(
        pixels, 1.0, weights, offset_sdr=OFFSET_SDR, offset_hdr=OFFSET_HDR
    )
    assert np.all(np.isfinite(stats.gains))
    assert np.all(stats.gains > 0)


def test_build_gain_map(hdr_pixels: np.ndarray) -> None:
    gain_map = build_gain_map(hdr_pixels, 1.0, REC_709.luminance_values(), ConversionSettings())
    assert gain_map.recovery.shape == (4, 8)
    assert gain_map.min_log2 < gain_map.max_log2
    # Unclipped pixels need no boost, the brightest needs the most
    assert gain_map.recovery[0, 0] == 0
    assert gain_map.recovery[0, -1] == 255
    assert np.all(np.diff(gain_map.recovery[0].astype(int)) >= 0)


def test_non_finite_samples_keep_range_finite(caplog: pytest.LogCaptureFixture) -> None:
    pixels = _gray([[0.0, np.inf], [np.nan, 0.5]])
    with caplog.at_level(logging.WARNING, logger="exr_ultrahdr"):
        stats = compute_gain_statistics(
            pixels, 1.0, GRAY_WEIGHTS, offset_sdr=OFFSET_SDR, offset_hdr=OFFSET_HDR
        )
    assert math.isfinite(stats.min_log2)
    assert math.isfinite(stats.max_log2)
    assert stats.min_log2 < stats.max_log2
    assert np.all(np.isfinite(stats.gains))
    assert any("NaN or infinite luminance" in m for m in caplog.messages)

    # Infinity is the brightest sample, NaN encodes like black
    assert encode_recovery(stats, 1.0).tolist() == [[0, 255], [0, 0]]

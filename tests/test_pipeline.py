# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Tests for chromaticity resolution and the display pipeline.

Known values (gamma 2.4):
    - 0.0 -> 0, 1.0 -> 255, anything above 1.0 clamps to 255
    - 0.5 -> 0.5 ** (1 / 2.4) * 255 = 191.03 -> 191
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

from exr_ultrahdr.color_spaces import ACES_AP0, D50_ILLUMINANT, DISPLAY_P3, REC_709, REC_2020
from exr_ultrahdr.config import ConversionSettings
from exr_ultrahdr.errors import ConfigurationError
from exr_ultrahdr.pipeline import (
    MAX_EXPOSURE_STOPS,
    ResolvedChromaticities,
    convert_color_space,
    encode_display,
    exposure_factor,
    render_display,
    resolve_chromaticities,
)
from exr_ultrahdr.transfer import gamma_encode

GAMUT_WARNING = "Output color space is smaller than input, check output for any artifacts."


# =============================================================================
# Resolution
# =============================================================================


def test_missing_chromaticities_fall_back_to_rec709(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="exr_ultrahdr"):
        resolved = resolve_chromaticities()
    assert resolved.input == REC_709
    assert resolved.output is None
    assert resolved.write == REC_709
    assert "Assuming Rec. 709 (sRGB) color space for input EXR." in caplog.messages


def test_file_chromaticities_used_without_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="exr_ultrahdr"):
        resolved = resolve_chromaticities(source=REC_2020)
    assert resolved.input == REC_2020
    assert not caplog.records


def test_explicit_input_overrides_file() -> None:
    resolved = resolve_chromaticities(input_space=ACES_AP0, source=REC_2020)
    assert resolved.input == ACES_AP0


def test_input_white_override() -> None:
    resolved = resolve_chromaticities(source=REC_709, input_white=D50_ILLUMINANT)
    assert resolved.input == REC_709.with_white(D50_ILLUMINANT)
    assert not resolved.needs_conversion


def test_output_white_without_output_space_forks_input() -> None:
    resolved = resolve_chromaticities(source=REC_709, output_white=D50_ILLUMINANT)
    assert resolved.output == REC_709.with_white(D50_ILLUMINANT)
    assert resolved.needs_conversion


def test_output_equal_to_input_needs_no_conversion() -> None:
    resolved = resolve_chromaticities(source=REC_709, output_space=REC_709)
    assert not resolved.needs_conversion
    assert resolved.write == REC_709


# =============================================================================
# Exposure and encoding
# =============================================================================


@pytest.mark.parametrize(("ev", "factor"), [(None, 1.0), (0.0, 1.0), (1.0, 2.0), (-2.0, 0.25)])
def test_exposure_factor(ev: float | None, factor: float) -> None:
    assert exposure_factor(ev) == factor


@pytest.mark.parametrize("ev", [1100.0, -1100.0, float("inf"), float("nan")])
def test_exposure_factor_rejects_out_of_range(ev: float) -> None:
    with pytest.raises(ConfigurationError, match="Exposure must be within"):
        exposure_factor(ev)


def test_exposure_factor_accepts_limit() -> None:
    assert exposure_factor(MAX_EXPOSURE_STOPS) == 2.0**64


def test_gamma_encode_scalar_and_array() -> None:
    assert gamma_encode(0.25, 2.0) == pytest.approx(0.5)
    np.testing.assert_allclose(gamma_encode(np.array([0.0, 1.0]), 2.4), [0.0, 1.0])


def test_encode_display_known_values() -> None:
    pixels = np.array([[[0.0, 1.0, 0.5], [2.0, -1.0, 0.25]]], dtype=np.float32)
    rgb = encode_display(pixels, 1.0, 2.4)
    assert rgb.dtype == np.uint8
    assert rgb.tolist() == [[[0, 255, 191], [255, 0, int(np.floor(0.25 ** (1 / 2.4) * 255 + 0.5))]]]


def test_encode_display_applies_exposure_before_clamp() -> None:
    pixels = np.array([[[0.25, 0.5, 4.0]]], dtype=np.float32)
    rgb = encode_display(pixels, 4.0, 2.4)
    assert rgb.tolist() == [[[255, 255, 255]]]
    rgb = encode_display(pixels, 0.25, 2.4)
    assert rgb[0, 0, 2] == 255
    assert rgb[0, 0, 0] < 128


def test_encode_display_is_monotonic(hdr_pixels: np.ndarray) -> None:
    rgb = encode_display(hdr_pixels, 1.0, 2.4)
    row = rgb[0, :, 0].astype(int)
    assert np.all(np.diff(row) >= 0)


# =============================================================================
# Color space conversion
# =============================================================================


def test_gamut_warning_logged_once(caplog: pytest.LogCaptureFixture) -> None:
    pixels = np.full((16, 16, 3), 0.5, dtype=np.float32)
    with caplog.at_level(logging.WARNING, logger="exr_ultrahdr"):
        convert_color_space(pixels, REC_2020, REC_709)
    assert caplog.messages.count(GAMUT_WARNING) == 1


def test_no_warning_into_larger_space(caplog: pytest.LogCaptureFixture) -> None:
    pixels = np.full((2, 2, 3), 0.5, dtype=np.float32)
    with caplog.at_level(logging.WARNING, logger="exr_ultrahdr"):
        convert_color_space(pixels, REC_709, REC_2020)
    assert GAMUT_WARNING not in caplog.messages


def test_conversion_is_in_place_and_preserves_white() -> None:
    pixels = np.ones((2, 3, 3), dtype=np.float32)
    result = convert_color_space(pixels, REC_709, DISPLAY_P3)
    assert result is pixels
    assert pixels.dtype == np.float32
    # Same white point: RGB white stays RGB white
    np.testing.assert_allclose(pixels, 1.0, atol=1e-5)


def test_conversion_pure_red_into_rec2020() -> None:
    pixels = np.array([[[1.0, 0.0, 0.0]]], dtype=np.float32)
    convert_color_space(pixels, REC_709, REC_2020)
    np.testing.assert_allclose(pixels[0, 0], [0.6274, 0.0691, 0.0164], atol=1e-3)


# =============================================================================
# Full pipeline
# =============================================================================


def test_render_display_without_conversion(hdr_pixels: np.ndarray) -> None:
    before = hdr_pixels.copy()
    resolved = ResolvedChromaticities(input=REC_709, output=None)
    display = render_display(hdr_pixels, resolved, ConversionSettings())
    assert display.chromaticities == REC_709
    assert (display.height, display.width) == (4, 8)
    np.testing.assert_array_equal(hdr_pixels, before)
    assert display.rgb[0, 0].tolist() == [0, 0, 0]
    assert display.rgb[0, -1].tolist() == [255, 255, 255]


def test_render_display_with_conversion_tags_output(hdr_pixels: np.ndarray) -> None:
    resolved = ResolvedChromaticities(input=REC_709, output=REC_2020)
    display = render_display(hdr_pixels, resolved, ConversionSettings(), exposure=-1.0)
    assert display.chromaticities == REC_2020
    # Exposure halves 4.0 to 2.0, still clipped
    assert display.rgb[0, -1].tolist() == [255, 255, 255]


def test_unit_white_pixel_encodes_to_full_white() -> None:
    pixels = np.ones((1, 1, 3), dtype=np.float32)
    resolved = ResolvedChromaticities(input=REC_709, output=REC_709)
    display = render_display(pixels, resolved, ConversionSettings())
    assert display.rgb.tolist() == [[[255, 255, 255]]]


def test_unit_white_pixel_one_stop_down() -> None:
    pixels = np.ones((1, 1, 3), dtype=np.float32)
    resolved = ResolvedChromaticities(input=REC_709, output=REC_709)
    display = render_display(pixels, resolved, ConversionSettings(), exposure=-1.0)
    expected = int(np.floor(gamma_encode(0.5, 2.4) * 255 + 0.5))
    assert display.rgb.tolist() == [[[expected] * 3]]


def test_encode_display_non_finite_samples() -> None:
    pixels = np.array([[[np.nan, np.inf, -np.inf]]], dtype=np.float32)
    assert encode_display(pixels, 1.0, 2.4).tolist() == [[[0, 255, 0]]]

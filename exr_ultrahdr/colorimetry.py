# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Colorimetry Module

Value types for CIE xy, xyY and XYZ coordinates and the ``Chromaticities``
description of an RGB color space, with the matrix algebra that relates RGB
primaries to CIE XYZ.

Every conversion is an explicit, named method since each one has its own
handling of black (zero luma) that must stay visible at the call site:

- ``XyCoord.with_luma()``: xy -> xyY
- ``XyYCoord.to_xyz()``: xyY -> XYZ, exact zero below epsilon luma
- ``XyzCoord.to_xyy()``: XYZ -> xyY, illuminant chromaticity for black

References:
    - http://www.brucelindbloom.com/index.html?Eqn_XYZ_to_xyY.html
    - http://www.brucelindbloom.com/index.html?Eqn_RGB_XYZ_Matrix.html
    - https://en.wikipedia.org/wiki/Standard_illuminant
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Self

import numpy as np
from numpy.typing import NDArray

from .errors import DegenerateChromaticitiesError

__all__: Final[list[str]] = [
    "EPSILON",
    "XyCoord",
    "XyYCoord",
    "XyzCoord",
    "Chromaticities",
    "LuminanceWeights",
    "bradford_adaptation_matrix",
]

type Matrix3 = NDArray[np.float64]

# Pixel data is single precision, so black detection uses the float32 epsilon
EPSILON: Final[float] = float(np.finfo(np.float32).eps)

# Primaries matrices with a smaller determinant are treated as singular
_SINGULAR_DETERMINANT: Final[float] = EPSILON

_M_BRADFORD: Final[Matrix3] = np.array(
    [
        [0.8951, 0.2664, -0.1614],
        [-0.7502, 1.7135, 0.0367],
        [0.0389, -0.0685, 1.0296],
    ],
    dtype=np.float64,
)


# =============================================================================
# Coordinates
# =============================================================================


@dataclass(frozen=True, slots=True)
class XyCoord:
    """CIE 1931 xy chromaticity coordinates."""

    x: float
    y: float

    def with_luma(self, luma: float) -> XyYCoord:
        """Add luma, turning these coordinates into xyY."""
        return XyYCoord(coords=self, luma=luma)

    @classmethod
    def from_black_body(cls, temperature: float) -> Self:
        """Chromaticity of a daylight illuminant at a correlated color temperature.

        Uses the CIE cubic approximations in reciprocal temperature, split at
        7000 K. Nominally valid between 4000 K and 25000 K; values outside that
        range are computed anyway, just less accurately.
        """
        t = float(temperature)
        if t <= 7000.0:
            x = 0.244063 + 0.09911e3 / t + 2.9678e6 / t**2 - 4.6070e9 / t**3
        else:
            x = 0.237040 + 0.24748e3 / t + 1.9018e6 / t**2 - 2.0064e9 / t**3
        y = -3.000 * x**2 + 2.870 * x - 0.275
        return cls(x=x, y=y)

    def has_negatives(self) -> bool:
        """True if either coordinate is negative."""
        return self.x < 0.0 or self.y < 0.0


@dataclass(frozen=True, slots=True)
class XyYCoord:
    """CIE xyY coordinates: x and y are the color, luma is Y."""

    coords: XyCoord
    luma: float

    def to_xyz(self) -> XyzCoord:
        """Convert to XYZ. Luma below epsilon is exact black."""
        if self.luma < EPSILON:
            return XyzCoord(0.0, 0.0, 0.0)

        x, y = self.coords.x, self.coords.y
        return XyzCoord(
            x=(x * self.luma) / y,
            y=self.luma,
            z=((1.0 - x - y) * self.luma) / y,
        )


@dataclass(frozen=True, slots=True)
class XyzCoord:
    """CIE XYZ tristimulus values; y is luminance."""

    x: float
    y: float
    z: float

    def to_xyy(self, illuminant: XyCoord) -> XyYCoord:
        """Convert to xyY.

        Pure black has no chromaticity of its own: the illuminant's
        chromaticity is returned with zero luma instead of dividing by zero.
        """
        if self.x < EPSILON and self.y < EPSILON and self.z < EPSILON:
            return illuminant.with_luma(0.0)

        total = self.x + self.y + self.z
        return XyYCoord(
            coords=XyCoord(x=self.x / total, y=self.y / total),
            luma=self.y,
        )

    def as_array(self) -> NDArray[np.float64]:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_array(cls, values: NDArray[np.floating]) -> Self:
        return cls(float(values[0]), float(values[1]), float(values[2]))


# =============================================================================
# Color spaces
# =============================================================================


@dataclass(frozen=True, slots=True)
class LuminanceWeights:
    """Per-channel contribution of linear RGB to luminance (Y)."""

    red: float
    green: float
    blue: float

    def as_array(self) -> NDArray[np.float32]:
        return np.array([self.red, self.green, self.blue], dtype=np.float32)


@dataclass(frozen=True, slots=True)
class Chromaticities:
    """An RGB color space: three primaries and a white point."""

    red: XyCoord
    green: XyCoord
    blue: XyCoord
    white: XyCoord

    def with_white(self, white: XyCoord) -> Chromaticities:
        """Copy of this color space with another white point."""
        return Chromaticities(red=self.red, green=self.green, blue=self.blue, white=white)

    def rgb_to_xyz_matrix(self) -> Matrix3:
        """Matrix taking linear RGB in this space to CIE XYZ.

        The primaries' XYZ (at unit luma) form the columns of a matrix whose
        inverse, applied to the white point's XYZ, gives one scale coefficient
        per primary. Scaling each column by its coefficient makes RGB (1, 1, 1)
        map onto the white point.

        Raises:
            DegenerateChromaticitiesError: If the primaries are collinear or
                duplicated, so the primaries matrix cannot be inverted.
        """
        if any(c.y == 0.0 for c in (self.red, self.green, self.blue, self.white)):
            raise DegenerateChromaticitiesError(
                f"Chromaticity with y = 0 has no XYZ representation in {self}"
            )

        primaries = np.column_stack([
            self.red.with_luma(1.0).to_xyz().as_array(),
            self.green.with_luma(1.0).to_xyz().as_array(),
            self.blue.with_luma(1.0).to_xyz().as_array(),
        ])
        white = self.white.with_luma(1.0).to_xyz().as_array()

        inverse = _try_inverse(primaries)
        if inverse is None:
            raise DegenerateChromaticitiesError(
                f"Primaries matrix is singular for {self}"
            )

        s_coefficients = inverse @ white
        return primaries * s_coefficients[np.newaxis, :]

    def xyz_to_rgb_matrix(self) -> Matrix3:
        """Matrix taking CIE XYZ to linear RGB in this space."""
        inverse = _try_inverse(self.rgb_to_xyz_matrix())
        if inverse is None:
            raise DegenerateChromaticitiesError(
                f"RGB to XYZ matrix is singular for {self}"
            )
        return inverse

    def rgb_space_conversion_matrix(self, destination: Chromaticities) -> Matrix3:
        """Matrix taking linear RGB in this space to linear RGB in ``destination``.

        If ``destination`` does not contain this space, converted pixels can
        have negative components; callers should warn about it.
        """
        return destination.xyz_to_rgb_matrix() @ self.rgb_to_xyz_matrix()

    def contains_color(self, color: XyCoord) -> bool:
        """Does this color space contain this chromaticity?

        Points on an edge or a vertex of the primaries triangle count as
        contained.
        """
        d1 = _edge_sign(color, self.red, self.green)
        d2 = _edge_sign(color, self.green, self.blue)
        d3 = _edge_sign(color, self.blue, self.red)

        has_neg = d1 < 0.0 or d2 < 0.0 or d3 < 0.0
        has_pos = d1 > 0.0 or d2 > 0.0 or d3 > 0.0
        return not (has_neg and has_pos)

    def contains_space(self, other: Chromaticities) -> bool:
        """Does this color space cover ``other`` completely? White is ignored."""
        return (
            self.contains_color(other.red)
            and self.contains_color(other.green)
            and self.contains_color(other.blue)
        )

    def luminance_values(self) -> LuminanceWeights:
        """Luminance weights: the Y row of the RGB to XYZ matrix."""
        matrix = self.rgb_to_xyz_matrix()
        return LuminanceWeights(
            red=float(matrix[1, 0]),
            green=float(matrix[1, 1]),
            blue=float(matrix[1, 2]),
        )

    def has_negatives(self) -> bool:
        """True if any coordinate of the primaries or white is negative."""
        return (
            self.red.has_negatives()
            or self.green.has_negatives()
            or self.blue.has_negatives()
            or self.white.has_negatives()
        )


def bradford_adaptation_matrix(
    source_white: XyzCoord,
    destination_white: XyzCoord,
) -> Matrix3:
    """Bradford chromatic adaptation matrix (column-vector convention)."""
    source_lms = _M_BRADFORD @ source_white.as_array()
    destination_lms = _M_BRADFORD @ destination_white.as_array()
    scale = np.diag(destination_lms / source_lms)
    return np.linalg.inv(_M_BRADFORD) @ scale @ _M_BRADFORD


# =============================================================================
# Helpers
# =============================================================================


def _edge_sign(p1: XyCoord, p2: XyCoord, p3: XyCoord) -> float:
    # https://stackoverflow.com/a/2049593
    return (p1.x - p3.x) * (p2.y - p3.y) - (p2.x - p3.x) * (p1.y - p3.y)


def _try_inverse(matrix: Matrix3) -> Matrix3 | None:
    """Invert a 3x3 matrix, or None if it is singular or non-finite."""
    if not np.all(np.isfinite(matrix)):
        return None
    if abs(np.linalg.det(matrix)) < _SINGULAR_DETERMINANT:
        return None
    try:
        return np.linalg.inv(matrix)
    except np.linalg.LinAlgError:
        return None

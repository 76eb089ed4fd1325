# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Standard illuminants and RGB color space presets."""

from __future__ import annotations

from enum import StrEnum
from typing import Final

from .colorimetry import Chromaticities, XyCoord

__all__: Final[list[str]] = [
    "D50_ILLUMINANT",
    "D65_ILLUMINANT",
    "ACES_ILLUMINANT",
    "DCI_ILLUMINANT",
    "REC_709",
    "REC_2020",
    "REC_2100",
    "ACES_AP0",
    "ACES_AP1",
    "DISPLAY_P3",
    "DCI_P3",
    "ColorSpace",
    "Illuminant",
]

# ═══════════════════════════════════════════════════════════════════
#                        ILLUMINANTS
# ═══════════════════════════════════════════════════════════════════

D50_ILLUMINANT: Final[XyCoord] = XyCoord(x=0.34567, y=0.35850)

# Official ITU values used in Rec. 709 and Rec. 2020, slightly rounded
# compared to the CIE definition
D65_ILLUMINANT: Final[XyCoord] = XyCoord(x=0.3127, y=0.3290)

ACES_ILLUMINANT: Final[XyCoord] = XyCoord(x=0.32168, y=0.33767)

# SMPTE RP 431-2 projector white
DCI_ILLUMINANT: Final[XyCoord] = XyCoord(x=0.314, y=0.351)

# ═══════════════════════════════════════════════════════════════════
#                        COLOR SPACES
# ═══════════════════════════════════════════════════════════════════

# https://www.itu.int/rec/R-REC-BT.709
REC_709: Final[Chromaticities] = Chromaticities(
    red=XyCoord(0.640, 0.330),
    green=XyCoord(0.300, 0.600),
    blue=XyCoord(0.150, 0.060),
    white=D65_ILLUMINANT,
)

# https://www.itu.int/rec/R-REC-BT.2020
REC_2020: Final[Chromaticities] = Chromaticities(
    red=XyCoord(0.708, 0.292),
    green=XyCoord(0.170, 0.797),
    blue=XyCoord(0.131, 0.046),
    white=D65_ILLUMINANT,
)

# https://www.itu.int/rec/R-REC-BT.2100 (same primaries as Rec. 2020)
REC_2100: Final[Chromaticities] = REC_2020

# https://en.wikipedia.org/wiki/Academy_Color_Encoding_System
ACES_AP0: Final[Chromaticities] = Chromaticities(
    red=XyCoord(0.7347, 0.2653),
    green=XyCoord(0.0, 1.0),
    blue=XyCoord(0.0001, -0.0770),
    white=ACES_ILLUMINANT,
)

ACES_AP1: Final[Chromaticities] = Chromaticities(
    red=XyCoord(0.713, 0.293),
    green=XyCoord(0.165, 0.830),
    blue=XyCoord(0.128, 0.044),
    white=ACES_ILLUMINANT,
)

# https://en.wikipedia.org/wiki/DCI-P3
DISPLAY_P3: Final[Chromaticities] = Chromaticities(
    red=XyCoord(0.680, 0.320),
    green=XyCoord(0.265, 0.690),
    blue=XyCoord(0.150, 0.060),
    white=D65_ILLUMINANT,
)

DCI_P3: Final[Chromaticities] = DISPLAY_P3.with_white(DCI_ILLUMINANT)


# ═══════════════════════════════════════════════════════════════════
#                        SELECTORS
# ═══════════════════════════════════════════════════════════════════


class ColorSpace(StrEnum):
    """Color space presets selectable on the command line."""

    REC709 = "rec709"
    REC2020 = "rec2020"
    REC2100 = "rec2100"
    ACES_AP0 = "aces-ap0"
    ACES_AP1 = "aces-ap1"
    DISPLAY_P3 = "display-p3"
    DCI_P3 = "dci-p3"

    def chromaticities(self) -> Chromaticities:
        return _COLOR_SPACES[self]


class Illuminant(StrEnum):
    """White points selectable on the command line."""

    D50 = "d50"
    D55 = "d55"
    D65 = "d65"
    D75 = "d75"
    ACES = "aces"
    DCI = "dci"

    def white(self) -> XyCoord:
        match self:
            case Illuminant.D50:
                return D50_ILLUMINANT
            case Illuminant.D55:
                # Nominal 5500 K scaled by the 1968 revision of c2
                return XyCoord.from_black_body(5503.0)
            case Illuminant.D65:
                return D65_ILLUMINANT
            case Illuminant.D75:
                return XyCoord.from_black_body(7504.0)
            case Illuminant.ACES:
                return ACES_ILLUMINANT
            case Illuminant.DCI:
                return DCI_ILLUMINANT


_COLOR_SPACES: Final[dict[ColorSpace, Chromaticities]] = {
    ColorSpace.REC709: REC_709,
    ColorSpace.REC2020: REC_2020,
    ColorSpace.REC2100: REC_2100,
    ColorSpace.ACES_AP0: ACES_AP0,
    ColorSpace.ACES_AP1: ACES_AP1,
    ColorSpace.DISPLAY_P3: DISPLAY_P3,
    ColorSpace.DCI_P3: DCI_P3,
}

# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
XMP packets for Ultra HDR JPEG.

Two packets are produced:
- Gain map descriptor (hdrgm namespace), embedded in the gain-map JPEG
- Container directory (GContainer namespace), embedded in the primary JPEG,
  giving the byte length of the gain-map JPEG appended after the primary
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Self

from .config import ConversionSettings
from .gainmap import GainMap

__all__: Final[list[str]] = [
    "XMP_NAMESPACE",
    "GainMapMetadata",
    "render_gain_map_xmp",
    "render_container_xmp",
    "make_xmp",
]

# APP1 identifier for XMP, including its null terminator
XMP_NAMESPACE: Final[bytes] = b"http://ns.adobe.com/xap/1.0/\x00"

_GAIN_MAP_TEMPLATE: Final[str] = """<x:xmpmeta xmlns:x="adobe:ns:meta/" x:xmptk="exr-ultrahdr">
  <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
    <rdf:Description rdf:about=""
      xmlns:hdrgm="http://ns.adobe.com/hdr-gain-map/1.0/"
      hdrgm:Version="1.0"
      hdrgm:GainMapMin="{gain_map_min:.6f}"
      hdrgm:GainMapMax="{gain_map_max:.6f}"
      hdrgm:Gamma="{gamma:.6f}"
      hdrgm:OffsetSDR="{offset_sdr:.6f}"
      hdrgm:OffsetHDR="{offset_hdr:.6f}"
      hdrgm:HDRCapacityMin="{hdr_capacity_min:.6f}"
      hdrgm:HDRCapacityMax="{hdr_capacity_max:.6f}"
      hdrgm:BaseRenditionIsHDR="False"/>
  </rdf:RDF>
</x:xmpmeta>"""

_CONTAINER_TEMPLATE: Final[str] = """<x:xmpmeta xmlns:x="adobe:ns:meta/" x:xmptk="exr-ultrahdr">
  <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
    <rdf:Description rdf:about=""
      xmlns:Container="http://ns.google.com/photos/1.0/container/"
      xmlns:Item="http://ns.google.com/photos/1.0/container/item/"
      xmlns:hdrgm="http://ns.adobe.com/hdr-gain-map/1.0/"
      hdrgm:Version="1.0">
      <Container:Directory>
        <rdf:Seq>
          <rdf:li rdf:parseType="Resource">
            <Container:Item
              Item:Semantic="Primary"
              Item:Mime="image/jpeg"/>
          </rdf:li>
          <rdf:li rdf:parseType="Resource">
            <Container:Item
              Item:Semantic="GainMap"
              Item:Mime="image/jpeg"
              Item:Length="{gain_map_image_len}"/>
          </rdf:li>
        </rdf:Seq>
      </Container:Directory>
    </rdf:Description>
  </rdf:RDF>
</x:xmpmeta>"""


@dataclass(frozen=True, slots=True, kw_only=True)
class GainMapMetadata:
    """Values a renderer needs to reconstruct HDR from SDR + gain map."""

    gain_map_min: float
    gain_map_max: float
    gamma: float
    offset_sdr: float
    offset_hdr: float
    hdr_capacity_min: float
    hdr_capacity_max: float

    @classmethod
    def from_gain_map(cls, gain_map: GainMap, settings: ConversionSettings) -> Self:
        """Metadata for a computed gain map; capacity mirrors the gain range."""
        return cls(
            gain_map_min=gain_map.min_log2,
            gain_map_max=gain_map.max_log2,
            gamma=settings.map_gamma,
            offset_sdr=settings.offset_sdr,
            offset_hdr=settings.offset_hdr,
            hdr_capacity_min=gain_map.min_log2,
            hdr_capacity_max=gain_map.max_log2,
        )


def render_gain_map_xmp(metadata: GainMapMetadata) -> str:
    return _GAIN_MAP_TEMPLATE.format(
        gain_map_min=metadata.gain_map_min,
        gain_map_max=metadata.gain_map_max,
        gamma=metadata.gamma,
        offset_sdr=metadata.offset_sdr,
        offset_hdr=metadata.offset_hdr,
        hdr_capacity_min=metadata.hdr_capacity_min,
        hdr_capacity_max=metadata.hdr_capacity_max,
    )


def render_container_xmp(gain_map_image_len: int) -> str:
    return _CONTAINER_TEMPLATE.format(gain_map_image_len=gain_map_image_len)


def make_xmp(xml: str) -> bytes:
    """APP1 payload: XMP namespace identifier followed by the packet."""
    return XMP_NAMESPACE + xml.encode("utf-8")

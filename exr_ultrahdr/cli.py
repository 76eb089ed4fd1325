# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
exr-ultrahdr command line.

Converts one scene-referred OpenEXR image into a PNG and/or an Ultra HDR
JPEG (SDR JPEG + gain map), optionally re-targeting primaries and white
point and re-exposing the shot.

Usage:
    exr-ultrahdr render.exr --jpg render.jpg
    exr-ultrahdr render.exr -i aces-ap0 -o display-p3 --png out.png --jpg out.jpg
    exr-ultrahdr render.exr -e -1.5 --output-white-cct 5000 --jpg warm.jpg

Environment variables:
    EXR_ULTRAHDR_JPEG_QUALITY  Primary JPEG quality (1-100)
    EXR_ULTRAHDR_MAP_QUALITY   Gain map JPEG quality (1-100)
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
from enum import StrEnum
from pathlib import Path
from typing import ClassVar, Final, override

from rich.console import Console
from rich.table import Table

from . import __version__
from .color_spaces import ColorSpace, Illuminant
from .colorimetry import Chromaticities, XyCoord
from .config import ConversionSettings
from .converter import ConversionRequest, ConversionResult, convert
from .errors import ConfigurationError, ExrUltraHdrError
from .pipeline import MAX_EXPOSURE_STOPS

__all__: Final[list[str]] = ["main", "parse_arguments"]

console = Console()

EXIT_ERROR: Final[int] = 1
EXIT_USAGE: Final[int] = 2
EXIT_INTERRUPTED: Final[int] = 130


# ═══════════════════════════════════════════════════════════════════
#                        LOGGING
# ═══════════════════════════════════════════════════════════════════


class _AnsiColor(StrEnum):
    """ANSI color codes for terminal output."""

    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    RED = "\033[0;31m"
    GRAY = "\033[0;37m"
    RESET = "\033[0m"


class _ColoredFormatter(logging.Formatter):
    """Logging formatter with colored output."""

    _LEVEL_COLORS: ClassVar[dict[int, str]] = {
        logging.DEBUG: _AnsiColor.GRAY,
        logging.INFO: _AnsiColor.GREEN,
        logging.WARNING: _AnsiColor.YELLOW,
        logging.ERROR: _AnsiColor.RED,
    }

    @override
    def format(self, record: logging.LogRecord) -> str:
        color = self._LEVEL_COLORS.get(record.levelno, _AnsiColor.RESET)
        return f"{color}[{record.levelname}]{_AnsiColor.RESET} {record.getMessage()}"


def _configure_logging(verbose: bool) -> logging.Logger:
    """Attach a colored stderr handler to the package logger."""
    logger = logging.getLogger("exr_ultrahdr")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_ColoredFormatter())
        logger.addHandler(handler)

    return logger


# ═══════════════════════════════════════════════════════════════════
#                        ARGUMENTS
# ═══════════════════════════════════════════════════════════════════


def _quality(value: str) -> int:
    quality = int(value)
    if not 1 <= quality <= 100:
        raise argparse.ArgumentTypeError(f"quality must be within 1-100, got {quality}")
    return quality


def _exposure(value: str) -> float:
    stops = float(value)
    if not math.isfinite(stops) or abs(stops) > MAX_EXPOSURE_STOPS:
        raise argparse.ArgumentTypeError(
            f"exposure must be within ±{MAX_EXPOSURE_STOPS:g} stops, got {value}"
        )
    return stops


def _temperature(value: str) -> float:
    temperature = float(value)
    if temperature <= 0:
        raise argparse.ArgumentTypeError(f"temperature must be > 0 K, got {value}")
    return temperature


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    spaces = ", ".join(ColorSpace)
    whites = ", ".join(Illuminant)
    parser = argparse.ArgumentParser(
        prog="exr-ultrahdr",
        description="Convert a linear OpenEXR image to PNG and/or Ultra HDR JPEG.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Color spaces: {spaces}
White points: {whites}

Output format:
  PNG: 8-bit RGB, gamma 2.4 (gAMA) with cHRM chunk
  JPEG: SDR primary (ICC profile) + grayscale gain map (Ultra HDR)

Examples:
  %(prog)s render.exr --jpg render.jpg
  %(prog)s render.exr -i aces-ap0 -o display-p3 --jpg out.jpg
  %(prog)s render.exr -e -1.5 --png dark.png       # One and a half stops down
  %(prog)s render.exr --output-white d50 --jpg print.jpg
""",
    )
    parser.add_argument("exr", type=Path, help="Input OpenEXR file")

    input_group = parser.add_argument_group("input")
    input_group.add_argument(
        "-i",
        "--input-chromaticities",
        type=ColorSpace,
        choices=list(ColorSpace),
        metavar="SPACE",
        help="Color space of the EXR (default: from file, else rec709)",
    )
    input_group.add_argument(
        "--input-white",
        type=Illuminant,
        choices=list(Illuminant),
        metavar="WHITE",
        help="Override the input white point",
    )
    input_group.add_argument(
        "--input-white-cct",
        type=_temperature,
        metavar="KELVIN",
        help="Override the input white point with a daylight temperature",
    )
    input_group.add_argument(
        "-e",
        "--exposure",
        type=_exposure,
        metavar="EV",
        help="Exposure change in stops, may be negative (default: 0)",
    )

    output_group = parser.add_argument_group("output")
    output_group.add_argument(
        "-o",
        "--output-chromaticities",
        type=ColorSpace,
        choices=list(ColorSpace),
        metavar="SPACE",
        help="Convert to this color space (default: keep input)",
    )
    output_group.add_argument(
        "--output-white",
        type=Illuminant,
        choices=list(Illuminant),
        metavar="WHITE",
        help="Override the output white point",
    )
    output_group.add_argument(
        "--output-white-cct",
        type=_temperature,
        metavar="KELVIN",
        help="Override the output white point with a daylight temperature",
    )
    output_group.add_argument("--png", type=Path, metavar="PATH", help="Write a PNG here")
    output_group.add_argument("--jpg", type=Path, metavar="PATH", help="Write a JPEG here")
    output_group.add_argument(
        "--sdr-only",
        action="store_true",
        help="Write a plain SDR JPEG without gain map",
    )
    output_group.add_argument(
        "--legacy-mpf",
        action="store_true",
        help="Write the MPF index with unpopulated sizes and offsets",
    )
    output_group.add_argument(
        "-q",
        "--quality",
        type=_quality,
        help="Primary JPEG quality 1-100 (default: 100)",
    )
    output_group.add_argument(
        "--map-quality",
        type=_quality,
        help="Gain map JPEG quality 1-100 (default: 100)",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def _resolve_white(
    illuminant: Illuminant | None,
    temperature: float | None,
    option: str,
) -> XyCoord | None:
    if illuminant is not None and temperature is not None:
        raise ConfigurationError(f"--{option} and --{option}-cct are mutually exclusive")
    if illuminant is not None:
        return illuminant.white()
    if temperature is not None:
        return XyCoord.from_black_body(temperature)
    return None


def build_request(args: argparse.Namespace) -> ConversionRequest:
    """Translate parsed arguments into a ConversionRequest.

    Raises:
        ConfigurationError: If a white point is given twice.
    """
    return ConversionRequest(
        exr_path=args.exr,
        input_space=args.input_chromaticities,
        input_white=_resolve_white(args.input_white, args.input_white_cct, "input-white"),
        output_space=args.output_chromaticities,
        output_white=_resolve_white(args.output_white, args.output_white_cct, "output-white"),
        exposure=args.exposure,
        png_path=args.png,
        jpeg_path=args.jpg,
        sdr_only=args.sdr_only,
    )


# ═══════════════════════════════════════════════════════════════════
#                        OUTPUT
# ═══════════════════════════════════════════════════════════════════


def _format_chromaticities(chromaticities: Chromaticities) -> str:
    for space in ColorSpace:
        if space.chromaticities() == chromaticities:
            return str(space)
    white = chromaticities.white
    return f"custom (white {white.x:.4f}, {white.y:.4f})"


def _print_summary(result: ConversionResult) -> None:
    table = Table(title="Conversion Results")
    table.add_column("Output", style="cyan")
    table.add_column("Format", style="green")
    table.add_column("Size", justify="right")

    for written in result.files:
        table.add_row(str(written.path), str(written.kind), f"{written.size / 1024:.1f} KiB")

    console.print(table)
    console.print(
        f"  Dimensions: {result.width}x{result.height}\n"
        f"  Input: {_format_chromaticities(result.input_chromaticities)}\n"
        f"  Output: {_format_chromaticities(result.output_chromaticities)}"
        + (" [dim](converted)[/]" if result.converted else "")
    )
    if result.gain_map is not None:
        console.print(
            f"  Gain map: log2 {result.gain_map.min_log2:.3f} .. {result.gain_map.max_log2:.3f}"
        )


# ═══════════════════════════════════════════════════════════════════
#                        MAIN
# ═══════════════════════════════════════════════════════════════════


def main(argv: list[str] | None = None) -> int:
    """Script entry point; returns the process exit status."""
    args = parse_arguments(argv)
    _configure_logging(args.verbose)

    try:
        request = build_request(args)
        settings = ConversionSettings.create(
            jpeg_quality=args.quality,
            map_jpeg_quality=args.map_quality,
            legacy_mpf=args.legacy_mpf,
        )
        with console.status(f"Converting {args.exr.name}..."):
            result = convert(request, settings)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/]")
        return EXIT_INTERRUPTED
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        return EXIT_USAGE
    except ExrUltraHdrError as e:
        console.print(f"[red]Error:[/] {e}")
        return EXIT_ERROR

    _print_summary(result)
    console.print("\n[bold green]Done![/]")
    return 0


if __name__ == "__main__":
    sys.exit(main())

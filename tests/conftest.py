# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Shared fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import numpy as np
import pytest
from numpy.typing import NDArray


@pytest.fixture(autouse=True)
def reset_package_logger() -> Iterator[None]:
    """Undo the CLI's handler setup so caplog sees package records."""
    yield
    logger = logging.getLogger("exr_ultrahdr")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def hdr_pixels() -> NDArray[np.float32]:
    """4x8 linear image: a ramp from black to 4.0 with a colored row."""
    ramp = np.linspace(0.0, 4.0, 8, dtype=np.float32)
    pixels = np.repeat(ramp[np.newaxis, :, np.newaxis], 4, axis=0).repeat(3, axis=2)
    pixels[3] = np.array([0.9, 0.1, 0.05], dtype=np.float32)
    return np.ascontiguousarray(pixels, dtype=np.float32)

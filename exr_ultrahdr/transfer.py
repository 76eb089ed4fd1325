# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025-2026 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Display transfer functions."""

from __future__ import annotations

from typing import Final, overload

import numpy as np
from numpy.typing import NDArray

__all__: Final[list[str]] = ["gamma_encode"]


@overload
def gamma_encode(linear_value: float, gamma: float) -> float: ...
@overload
def gamma_encode(linear_value: NDArray[np.float32], gamma: float) -> NDArray[np.float32]: ...


def gamma_encode(linear_value, gamma):
    """Pure power-law encode: ``linear_value ** (1 / gamma)``.

    No clamping happens here. Negative inputs produce NaN, so callers clamp
    to the encodable range first.
    """
    return np.power(linear_value, 1.0 / gamma)

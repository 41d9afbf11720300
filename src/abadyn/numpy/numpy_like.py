# Copyright (C) Istituto Italiano di Tecnologia (IIT). All rights reserved.

from dataclasses import dataclass
from typing import Optional

import array_api_compat.numpy as xp_numpy
import numpy as np

from abadyn.core.array_api_math import (
    ArrayAPIFactory,
    ArrayAPILike,
    ArrayAPISpatialMath,
    ArraySpec,
)


@dataclass
class NumpyLike(ArrayAPILike):
    """Class wrapping NumPy types"""

    array: np.ndarray


class NumpyLikeFactory(ArrayAPIFactory):

    def __init__(self, spec: Optional[ArraySpec] = None):
        if spec is None:
            super().__init__(NumpyLike, xp_numpy, dtype=np.float64, device=None)
        else:
            super().__init__(NumpyLike, spec.xp, dtype=spec.dtype, device=spec.device)


class SpatialMath(ArrayAPISpatialMath):
    def __init__(self, spec: Optional[ArraySpec] = None):
        super().__init__(NumpyLikeFactory(spec))

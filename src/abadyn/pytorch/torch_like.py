# Copyright (C) Istituto Italiano di Tecnologia (IIT). All rights reserved.

from dataclasses import dataclass
from typing import Optional

import array_api_compat.torch as xp_torch
import torch

from abadyn.core.array_api_math import (
    ArrayAPIFactory,
    ArrayAPILike,
    ArrayAPISpatialMath,
    ArraySpec,
)


@dataclass
class TorchLike(ArrayAPILike):
    """Class wrapping pyTorch types"""

    array: torch.Tensor


class TorchLikeFactory(ArrayAPIFactory):

    def __init__(self, spec: Optional[ArraySpec] = None):
        if spec is None:
            super().__init__(
                TorchLike, xp_torch, dtype=torch.float64, device=torch.device("cpu")
            )
        else:
            super().__init__(TorchLike, spec.xp, dtype=spec.dtype, device=spec.device)


class SpatialMath(ArrayAPISpatialMath):
    def __init__(self, spec: Optional[ArraySpec] = None):
        super().__init__(TorchLikeFactory(spec=spec))

    def inv(self, x: ArrayAPILike) -> ArrayAPILike:
        return self.factory.asarray(torch.linalg.inv(x.array))

    def min_eigenvalue(self, x: ArrayAPILike) -> float:
        a = x.array.detach()
        return float(torch.linalg.eigvalsh((a + a.mT) / 2).min())

from typing import Union

import numpy.typing as npt

from abadyn.core.spatial_math import SpatialMath
from abadyn.model.abc_factories import Body, Inertial


class StdBody(Body):
    """Standard Body class"""

    def __init__(self, name: str, inertial: Inertial, idx: Union[int, None] = None):
        self.name = name
        self.inertial = inertial
        self.idx = idx
        self.node_idx = None

    def spatial_inertia(self, math: SpatialMath, inertial: Inertial = None) -> npt.ArrayLike:
        """
        Args:
            math (SpatialMath): the backend math
            inertial (Inertial, optional): overrides the inertial of the body

        Returns:
            npt.ArrayLike: the 6x6 inertia matrix expressed at
                           the origin of the body (with rotation)
        """
        inertial = self.inertial if inertial is None else inertial
        inertia_matrix = math.asarray(inertial.unit_inertia.matrix)
        mass = math.asarray(inertial.mass)
        c = math.asarray(inertial.origin.xyz)
        R = math.asarray(inertial.origin.R)
        return math.spatial_inertia(inertia_matrix * mass, mass, c, R)

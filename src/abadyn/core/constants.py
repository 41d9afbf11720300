# Copyright (C) Istituto Italiano di Tecnologia (IIT). All rights reserved.

import dataclasses
from enum import Enum, IntEnum

import numpy as np

_EPS = float(np.finfo(float).eps)


class Representations(IntEnum):
    """Frame velocity representations used to report body velocities and accelerations"""

    BODY_FIXED_REPRESENTATION = 1
    MIXED_REPRESENTATION = 2


class JointType(str, Enum):
    """Supported joint kinds, with the number of positions and velocities they add"""

    WELD = "weld"
    REVOLUTE = "revolute"
    PRISMATIC = "prismatic"
    FLOATING = "floating"

    @property
    def num_positions(self) -> int:
        return {"weld": 0, "revolute": 1, "prismatic": 1, "floating": 7}[self.value]

    @property
    def num_velocities(self) -> int:
        return {"weld": 0, "revolute": 1, "prismatic": 1, "floating": 6}[self.value]


@dataclasses.dataclass(frozen=True)
class Tolerances:
    """Numerical tolerances of the validity guards and of the singular hinge detection.

    Args:
        unit_vector (float): allowed | |v| - 1 | for unit vectors (axes)
        orthonormality (float): allowed max |R R^T - I| for rotation matrices
        quaternion (float): allowed | |q| - 1 | for floating joint quaternions
        hinge_inertia (float): multiple of the machine epsilon, relative to the largest
            inertia magnitude in the subtree, below which a hinge inertia is singular
    """

    unit_vector: float = 4 * _EPS
    orthonormality: float = 128 * _EPS
    quaternion: float = 1e-6
    hinge_inertia: float = 16.0


DEFAULT_TOLERANCES = Tolerances()

DEFAULT_GRAVITY = (0.0, 0.0, -9.80665)

WORLD_BODY_NAME = "world"

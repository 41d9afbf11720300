from typing import Union

import numpy as np
import numpy.typing as npt

from abadyn.core.constants import JointType
from abadyn.core.spatial_math import SpatialMath
from abadyn.model.abc_factories import Joint, Pose


class StdJoint(Joint):
    """Standard Joint class"""

    def __init__(
        self,
        name: str,
        parent: str,
        child: str,
        type: JointType,
        axis: Union[npt.ArrayLike, None] = None,
        origin: Union[Pose, None] = None,
        idx: Union[int, None] = None,
    ) -> None:
        self.name = name
        self.parent = parent
        self.child = child
        self.type = JointType(type)
        self.axis = self._set_axis(axis)
        self.origin = Pose.zero() if origin is None else origin
        self.idx = idx
        self.position_start = None
        self.velocity_start = None

    def _set_axis(self, axis: npt.ArrayLike) -> Union[np.ndarray, None]:
        """
        Args:
            axis (npt.ArrayLike): axis

        Returns:
            np.ndarray: the axis as a float array, None for joints without an axis
        """
        if self.type not in (JointType.REVOLUTE, JointType.PRISMATIC):
            return None
        return None if axis is None else np.asarray(axis, dtype=float).reshape(3)

    def homogeneous(self, q: npt.ArrayLike, math: SpatialMath) -> npt.ArrayLike:
        """
        Args:
            q (npt.ArrayLike): joint positions
            math (SpatialMath): the backend math

        Returns:
            npt.ArrayLike: the homogenous transform of a joint, given q
        """
        origin = math.asarray(self.origin.homogeneous())
        if self.type == JointType.WELD:
            return origin
        elif self.type == JointType.REVOLUTE:
            return math.H_revolute_joint(origin, math.asarray(self.axis), q[0])
        elif self.type == JointType.PRISMATIC:
            return math.H_prismatic_joint(origin, math.asarray(self.axis), q[0])
        elif self.type == JointType.FLOATING:
            quat = q[3:7]
            norm = math.sqrt(
                quat[0] * quat[0] + quat[1] * quat[1] + quat[2] * quat[2] + quat[3] * quat[3]
            )
            q = math.concatenate([q[0:3], quat / norm], axis=-1)
            return math.H_floating_joint(origin, q)

    def motion_subspace(self) -> np.ndarray:
        """
        Returns:
            np.ndarray: motion subspace of the joint
        """
        if self.type == JointType.WELD:
            return np.zeros((6, 0))
        elif self.type == JointType.REVOLUTE:
            return np.concatenate([np.zeros(3), self.axis]).reshape(6, 1)
        elif self.type == JointType.PRISMATIC:
            return np.concatenate([self.axis, np.zeros(3)]).reshape(6, 1)
        elif self.type == JointType.FLOATING:
            return np.eye(6)

    def default_positions(self) -> np.ndarray:
        """
        Returns:
            np.ndarray: zero joint values, identity orientation for floating joints
        """
        if self.type == JointType.FLOATING:
            return np.array([0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0])
        return np.zeros(self.num_positions)

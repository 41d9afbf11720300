import abc
import dataclasses
from typing import Union

import numpy as np
import numpy.typing as npt

from abadyn.core.constants import JointType
from abadyn.core.spatial_math import SpatialMath
from abadyn.core.validity import check_rotation_matrix


def _R_from_RPY(rpy: npt.ArrayLike) -> np.ndarray:
    r, p, y = np.asarray(rpy, dtype=float)
    cr, sr = np.cos(r), np.sin(r)
    cp, sp = np.cos(p), np.sin(p)
    cy, sy = np.cos(y), np.sin(y)
    Rx = np.array([[1.0, 0.0, 0.0], [0.0, cr, -sr], [0.0, sr, cr]])
    Ry = np.array([[cp, 0.0, sp], [0.0, 1.0, 0.0], [-sp, 0.0, cp]])
    Rz = np.array([[cy, -sy, 0.0], [sy, cy, 0.0], [0.0, 0.0, 1.0]])
    return Rz @ Ry @ Rx


@dataclasses.dataclass(frozen=True)
class Pose:
    """Pose class. The rotation is stored as a validated rotation matrix"""

    xyz: np.ndarray
    R: np.ndarray

    @staticmethod
    def build(xyz: npt.ArrayLike, rpy: npt.ArrayLike) -> "Pose":
        """
        Args:
            xyz (npt.ArrayLike): translation
            rpy (npt.ArrayLike): rotation as roll, pitch, yaw angles

        Returns:
            Pose: the pose
        """
        return Pose(np.asarray(xyz, dtype=float).reshape(3), _R_from_RPY(rpy))

    @staticmethod
    def from_rotation_matrix(xyz: npt.ArrayLike, R: npt.ArrayLike) -> "Pose":
        """
        Args:
            xyz (npt.ArrayLike): translation
            R (npt.ArrayLike): rotation matrix, checked to be a proper rotation

        Returns:
            Pose: the pose
        """
        R = check_rotation_matrix(R)
        return Pose(np.asarray(xyz, dtype=float).reshape(3), R)

    @staticmethod
    def zero() -> "Pose":
        return Pose(np.zeros(3), np.eye(3))

    def homogeneous(self) -> np.ndarray:
        H = np.eye(4)
        H[:3, :3] = self.R
        H[:3, 3] = self.xyz
        return H


@dataclasses.dataclass(frozen=True)
class UnitInertia:
    """Rotational inertia per unit mass about the center of mass.

    Scaling the mass of a body scales its rotational inertia accordingly.
    """

    matrix: np.ndarray

    @staticmethod
    def build(
        ixx: float, iyy: float, izz: float, ixy: float = 0.0, ixz: float = 0.0, iyz: float = 0.0
    ) -> "UnitInertia":
        matrix = np.array(
            [
                [ixx, ixy, ixz],
                [ixy, iyy, iyz],
                [ixz, iyz, izz],
            ],
            dtype=float,
        )
        return UnitInertia(matrix)

    @staticmethod
    def zero() -> "UnitInertia":
        return UnitInertia(np.zeros((3, 3)))

    @staticmethod
    def solid_box(lx: float, ly: float, lz: float) -> "UnitInertia":
        return UnitInertia.build(
            ixx=(ly**2 + lz**2) / 12, iyy=(lx**2 + lz**2) / 12, izz=(lx**2 + ly**2) / 12
        )

    @staticmethod
    def solid_cube(length: float) -> "UnitInertia":
        return UnitInertia.solid_box(length, length, length)

    @staticmethod
    def solid_sphere(radius: float) -> "UnitInertia":
        i = 2 * radius**2 / 5
        return UnitInertia.build(ixx=i, iyy=i, izz=i)

    @staticmethod
    def solid_cylinder(radius: float, length: float) -> "UnitInertia":
        """Solid cylinder with its axis along z"""
        i = (3 * radius**2 + length**2) / 12
        return UnitInertia.build(ixx=i, iyy=i, izz=radius**2 / 2)


@dataclasses.dataclass(frozen=True)
class Inertial:
    """Inertial description

    Args:
        mass (float): mass of the body
        unit_inertia (UnitInertia): rotational inertia per unit mass, about the center of mass
        origin (Pose): pose of the center of mass frame in the body frame
    """

    mass: float
    unit_inertia: UnitInertia = dataclasses.field(default_factory=UnitInertia.zero)
    origin: Pose = dataclasses.field(default_factory=Pose.zero)

    @staticmethod
    def zero() -> "Inertial":
        """Returns an Inertial object with zero mass and inertia"""
        return Inertial(mass=0.0)

    @property
    def rotational_inertia(self) -> np.ndarray:
        return self.mass * self.unit_inertia.matrix

    def with_mass(self, mass: float) -> "Inertial":
        return dataclasses.replace(self, mass=float(mass))


@dataclasses.dataclass
class Joint(abc.ABC):
    """Base Joint class. You need to fill at least these fields"""

    name: str
    parent: str
    child: str
    type: JointType
    axis: Union[np.ndarray, None]
    origin: Pose
    idx: Union[int, None] = None
    position_start: Union[int, None] = None
    velocity_start: Union[int, None] = None
    """
    Abstract base class for all joints.
    """

    @property
    def num_positions(self) -> int:
        return self.type.num_positions

    @property
    def num_velocities(self) -> int:
        return self.type.num_velocities

    @property
    def position_slice(self) -> slice:
        return slice(self.position_start, self.position_start + self.num_positions)

    @property
    def velocity_slice(self) -> slice:
        return slice(self.velocity_start, self.velocity_start + self.num_velocities)

    @abc.abstractmethod
    def homogeneous(self, q: npt.ArrayLike, math: SpatialMath) -> npt.ArrayLike:
        """
        Args:
            q (npt.ArrayLike): joint positions
            math (SpatialMath): the backend math

        Returns:
            npt.ArrayLike: homogeneous transform parent_H_child given q
        """
        pass

    @abc.abstractmethod
    def motion_subspace(self) -> np.ndarray:
        """
        Returns:
            np.ndarray: 6 x nv motion subspace of the joint, expressed in the child frame
        """
        pass

    @abc.abstractmethod
    def default_positions(self) -> np.ndarray:
        """
        Returns:
            np.ndarray: the zero configuration of the joint
        """
        pass


@dataclasses.dataclass
class Body(abc.ABC):
    """Base Body class. You need to fill at least these fields"""

    name: str
    inertial: Inertial
    idx: Union[int, None] = None
    node_idx: Union[int, None] = None

    @abc.abstractmethod
    def spatial_inertia(self, math: SpatialMath, inertial: Inertial = None) -> npt.ArrayLike:
        """
        Args:
            math (SpatialMath): the backend math
            inertial (Inertial, optional): overrides the inertial of the body

        Returns:
            npt.ArrayLike: the 6x6 inertia matrix expressed at
                           the origin of the body (with rotation)
        """
        pass


@dataclasses.dataclass(frozen=True)
class Frame:
    """A named frame rigidly attached to a body"""

    name: str
    body: str
    pose: Pose

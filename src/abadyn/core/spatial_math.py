import abc

import numpy.typing as npt


class ArrayLike(abc.ABC):
    """Abstract class for a generic Array wrapper. Every method should be implemented for every data type."""

    """This class has to implemented the following operators: """

    @abc.abstractmethod
    def __add__(self, other):
        pass

    @abc.abstractmethod
    def __radd__(self, other):
        pass

    @abc.abstractmethod
    def __sub__(self, other):
        pass

    @abc.abstractmethod
    def __rsub__(self, other):
        pass

    @abc.abstractmethod
    def __mul__(self, other):
        pass

    @abc.abstractmethod
    def __rmul__(self, other):
        pass

    @abc.abstractmethod
    def __matmul__(self, other):
        pass

    @abc.abstractmethod
    def __rmatmul__(self, other):
        pass

    @abc.abstractmethod
    def __neg__(self):
        pass

    @abc.abstractmethod
    def __getitem__(self, item):
        pass

    @abc.abstractmethod
    def __truediv__(self, other):
        pass

    @property
    @abc.abstractmethod
    def T(self):
        """
        Returns: Transpose of the array
        """
        pass

    def __len__(self):
        return len(self.array)

    def __repr__(self):
        return self.array.__repr__()


class ArrayLikeFactory(abc.ABC):
    """Abstract class for a generic Array wrapper. Every method should be implemented for every data type."""

    @abc.abstractmethod
    def zeros(self, *x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): matrix dimension

        Returns:
            npt.ArrayLike: zero matrix of dimension x
        """
        pass

    @abc.abstractmethod
    def eye(self, x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): matrix dimension

        Returns:
            npt.ArrayLike: identity matrix of dimension x
        """
        pass

    @abc.abstractmethod
    def asarray(self, x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): array

        Returns:
            npt.ArrayLike: array
        """
        pass

    @abc.abstractmethod
    def copy(self, x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): array

        Returns:
            npt.ArrayLike: an array that does not share memory with x
        """
        pass

    @abc.abstractmethod
    def ones_like(self, x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): array

        Returns:
            npt.ArrayLike: one array with the same shape as x
        """
        pass

    @abc.abstractmethod
    def zeros_like(self, x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): array

        Returns:
            npt.ArrayLike: zero array with the same shape as x
        """
        pass


class SpatialMath:
    """Class implementing the main geometric functions used for computing rigid-body algorithms.

    Spatial motion vectors are ordered as [linear; angular], spatial forces as [force; torque].

    Args:
        factory (ArrayLikeFactory): the factory of the wrapped arrays. It needs to be implemented for every data type

    """

    def __init__(self, factory: ArrayLikeFactory):
        self._factory = factory

    @property
    def factory(self) -> ArrayLikeFactory:
        return self._factory

    @abc.abstractmethod
    def concatenate(self, x: npt.ArrayLike, axis: int) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): elements
            axis (int): axis along which to concatenate

        Returns:
            npt.ArrayLike: concatenation of elements x along axis
        """
        pass

    @abc.abstractmethod
    def stack(self, x: npt.ArrayLike, axis: int) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): elements
            axis (int): axis along which to stack

        Returns:
            npt.ArrayLike: stacked elements x along axis
        """
        pass

    @abc.abstractmethod
    def swapaxes(self, x: npt.ArrayLike, axis1: int, axis2: int) -> npt.ArrayLike:
        pass

    @abc.abstractmethod
    def inv(self, x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): input array

        Returns:
            npt.ArrayLike: inverse of the array
        """
        pass

    @abc.abstractmethod
    def sin(self, x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): angle value

        Returns:
            npt.ArrayLike: sin value of x
        """
        pass

    @abc.abstractmethod
    def cos(self, x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): angle value

        Returns:
            npt.ArrayLike: cos value of angle x
        """
        pass

    @abc.abstractmethod
    def sqrt(self, x: npt.ArrayLike) -> npt.ArrayLike:
        pass

    @abc.abstractmethod
    def skew(self, x):
        pass

    @abc.abstractmethod
    def all_finite(self, x: npt.ArrayLike) -> bool:
        """
        Args:
            x (npt.ArrayLike): input array

        Returns:
            bool: True if every element of x is finite
        """
        pass

    @abc.abstractmethod
    def max_abs(self, x: npt.ArrayLike) -> float:
        """
        Args:
            x (npt.ArrayLike): input array

        Returns:
            float: the largest absolute value of the elements of x
        """
        pass

    @abc.abstractmethod
    def min_eigenvalue(self, x: npt.ArrayLike) -> float:
        """
        Args:
            x (npt.ArrayLike): symmetric matrix

        Returns:
            float: the smallest eigenvalue of x
        """
        pass

    @abc.abstractmethod
    def eps(self) -> float:
        """
        Returns:
            float: the machine epsilon of the floating point type in use
        """
        pass

    def R_from_axis_angle(self, axis: npt.ArrayLike, q: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            axis (npt.ArrayLike): unit axis vector
            q (npt.ArrayLike): rotation angle

        Returns:
            npt.ArrayLike: rotation matrix (Rodrigues formula)
        """
        c = self.cos(q)
        s = self.sin(q)
        K = self.skew(axis)
        return self.factory.eye(3) + K * s + (K @ K) * (1 - c)

    def R_from_quaternion(self, quat: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            quat (npt.ArrayLike): unit quaternion ordered as (w, x, y, z)

        Returns:
            npt.ArrayLike: Rotation matrix
        """
        w, x, y, z = quat[0], quat[1], quat[2], quat[3]
        row0 = self.stack(
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)], axis=-1
        )
        row1 = self.stack(
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)], axis=-1
        )
        row2 = self.stack(
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)], axis=-1
        )
        return self.stack([row0, row1, row2], axis=-2)

    def homogeneous(self, R: npt.ArrayLike, p: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            R (npt.ArrayLike): Rotation matrix
            p (npt.ArrayLike): translation vector

        Returns:
            npt.ArrayLike: Homogeneous transform
        """
        if p.ndim == R.ndim - 1:
            p = p[..., None]
        top = self.concatenate([R, p], axis=-1)  # (3,4)
        zeros_row = self.factory.zeros_like(R[..., :1, :])  # (1,3)
        ones_col = self.factory.ones_like(R[..., :1, :1])  # (1,1)
        bottom = self.concatenate([zeros_row, ones_col], axis=-1)  # (1,4)
        return self.concatenate([top, bottom], axis=-2)  # (4,4)

    def H_revolute_joint(
        self,
        origin: npt.ArrayLike,
        axis: npt.ArrayLike,
        q: npt.ArrayLike,
    ) -> npt.ArrayLike:
        """
        Args:
            origin (npt.ArrayLike): homogeneous transform of the joint frame in the parent frame
            axis (npt.ArrayLike): joint axis, expressed in the joint frame
            q (npt.ArrayLike): joint angle value

        Returns:
            npt.ArrayLike: Homogeneous transform from the parent to the child frame
        """
        R_axis = self.R_from_axis_angle(axis, q)
        return origin @ self.homogeneous(R_axis, self.factory.zeros(3))

    def H_prismatic_joint(
        self,
        origin: npt.ArrayLike,
        axis: npt.ArrayLike,
        q: npt.ArrayLike,
    ) -> npt.ArrayLike:
        """
        Args:
            origin (npt.ArrayLike): homogeneous transform of the joint frame in the parent frame
            axis (npt.ArrayLike): joint axis, expressed in the joint frame
            q (npt.ArrayLike): joint displacement value

        Returns:
            npt.ArrayLike: Homogeneous transform from the parent to the child frame
        """
        return origin @ self.homogeneous(self.factory.eye(3), axis * q)

    def H_floating_joint(
        self, origin: npt.ArrayLike, q: npt.ArrayLike
    ) -> npt.ArrayLike:
        """
        Args:
            origin (npt.ArrayLike): homogeneous transform of the joint frame in the parent frame
            q (npt.ArrayLike): position (x, y, z) and unit quaternion (w, x, y, z) of the child frame

        Returns:
            npt.ArrayLike: Homogeneous transform from the parent to the child frame
        """
        R = self.R_from_quaternion(q[3:7])
        return origin @ self.homogeneous(R, q[0:3])

    def X_from_H(self, H: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            H (npt.ArrayLike): Homogeneous transform parent_H_child

        Returns:
            npt.ArrayLike: spatial transform child_X_parent mapping motion vectors
                           from the parent to the child frame
        """
        R = self.swapaxes(H[..., :3, :3], -1, -2)
        p = -(R @ H[..., :3, 3:4])[..., :, 0]
        return self.spatial_transform(R, p)

    def spatial_transform(self, R: npt.ArrayLike, p: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            R (npt.ArrayLike): Rotation matrix
            p (npt.ArrayLike): translation vector

        Returns:
            npt.ArrayLike: spatial transform
        """
        Sp = self.skew(p)
        zeros = self.factory.zeros_like(R)
        top = self.concatenate([R, Sp @ R], axis=-1)  # (3,6)
        bottom = self.concatenate([zeros, R], axis=-1)  # (3,6)
        return self.concatenate([top, bottom], axis=-2)  # (6,6)

    def spatial_inertia(
        self,
        inertia_matrix: npt.ArrayLike,
        mass: npt.ArrayLike,
        c: npt.ArrayLike,
        R: npt.ArrayLike,
    ) -> npt.ArrayLike:
        """
        Args:
            inertia_matrix (npt.ArrayLike): rotational inertia about the center of mass
            mass (npt.ArrayLike): mass value
            c (npt.ArrayLike): center of mass position in the body frame
            R (npt.ArrayLike): orientation of the center of mass frame in the body frame

        Returns:
            npt.ArrayLike: the 6x6 inertia matrix expressed at the origin of the body (with rotation)
        """
        Sc = self.skew(c)
        mass_I3 = self.factory.eye(3) * mass
        mass_Sc = Sc * mass
        mass_Sc_T = self.swapaxes(mass_Sc, -1, -2)

        rotated_inertia = R @ inertia_matrix @ self.swapaxes(R, -1, -2)
        Sc_squared = Sc @ self.swapaxes(Sc, -1, -2)
        bottom_right = rotated_inertia + Sc_squared * mass

        top = self.concatenate([mass_I3, mass_Sc_T], axis=-1)  # (3,6)
        bottom = self.concatenate([mass_Sc, bottom_right], axis=-1)  # (3,6)
        return self.concatenate([top, bottom], axis=-2)  # (6,6)

    def shift_inertia(self, inertia: npt.ArrayLike, X: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            inertia (npt.ArrayLike): 6x6 inertia expressed in frame B
            X (npt.ArrayLike): spatial transform B_X_A

        Returns:
            npt.ArrayLike: the same inertia expressed in frame A (X^T I X)
        """
        return self.swapaxes(X, -1, -2) @ inertia @ X

    def spatial_skew(self, v: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            v (npt.ArrayLike): 6D vector

        Returns:
            npt.ArrayLike: spatial skew matrix (motion cross product)
        """
        omega = v[..., 3:]
        vel = v[..., :3]

        skew_omega = self.skew(omega)
        skew_vel = self.skew(vel)
        zeros = self.factory.zeros_like(skew_omega)

        top = self.concatenate([skew_omega, skew_vel], axis=-1)  # (3,6)
        bottom = self.concatenate([zeros, skew_omega], axis=-1)  # (3,6)
        return self.concatenate([top, bottom], axis=-2)  # (6,6)

    def spatial_skew_star(self, v: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            v (npt.ArrayLike): 6D vector

        Returns:
            npt.ArrayLike: negative spatial skew matrix traspose (force cross product)
        """
        return -self.swapaxes(self.spatial_skew(v), -1, -2)

    def adjoint_mixed(self, H: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            H (npt.ArrayLike): Homogeneous transform
        Returns:
            npt.ArrayLike: rotation-only adjoint matrix
        """
        R = H[..., :3, :3]
        Z = self.factory.zeros_like(R)
        return self.concatenate(
            [
                self.concatenate([R, Z], axis=-1),
                self.concatenate([Z, R], axis=-1),
            ],
            axis=-2,
        )

    def adjoint_mixed_inverse(self, H: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            H (npt.ArrayLike): Homogeneous transform
        Returns:
            npt.ArrayLike: rotation-only adjoint matrix of the inverse transform
        """
        RT = self.swapaxes(H[..., :3, :3], -1, -2)
        Z = self.factory.zeros_like(RT)
        return self.concatenate(
            [self.concatenate([RT, Z], axis=-1), self.concatenate([Z, RT], axis=-1)],
            axis=-2,
        )

    def homogeneous_inverse(self, H: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            H (npt.ArrayLike): Homogeneous transform
        Returns:
            npt.ArrayLike: inverse of the homogeneous transform
        """
        R_T = self.swapaxes(H[..., :3, :3], -1, -2)
        p = -(R_T @ H[..., :3, 3:4])[..., :, 0]
        return self.homogeneous(R_T, p)

    def mxv(self, m: npt.ArrayLike, v: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            m (npt.ArrayLike): Matrix
            v (npt.ArrayLike): Vector
        Returns:
            npt.ArrayLike: Result of matrix-vector multiplication
        """
        res = m @ v[..., None]
        return res[..., 0]

    def asarray(self, x: npt.ArrayLike) -> npt.ArrayLike:
        """
        Args:
            x (npt.ArrayLike): array
        Returns:
            npt.ArrayLike: array
        """
        return self.factory.asarray(x)

# Copyright (C) Istituto Italiano di Tecnologia (IIT). All rights reserved.

import logging
from typing import Dict, List, Optional

import numpy.typing as npt

from abadyn.core import cache
from abadyn.core.constants import (
    DEFAULT_GRAVITY,
    DEFAULT_TOLERANCES,
    JointType,
    Representations,
    Tolerances,
)
from abadyn.core.context import (
    AppliedForces,
    ArticulatedBodyInertiaCache,
    Context,
    PositionKinematicsCache,
    VelocityKinematicsCache,
)
from abadyn.core.errors import ModelError, SingularConfigurationError
from abadyn.core.spatial_math import ArrayLike, SpatialMath
from abadyn.core.validity import check_unit_vector
from abadyn.model import Joint, Model

logger = logging.getLogger(__name__)


class RBDAlgorithms:
    """This is a small class that implements Rigid body algorithms on a kinematic tree rooted at the world.

    Spatial quantities of a body are expressed in the body frame, with the [linear; angular]
    ordering for motion vectors and [force; torque] for force vectors.
    """

    def __init__(
        self,
        model: Model,
        math: SpatialMath,
        gravity: npt.ArrayLike = DEFAULT_GRAVITY,
        tolerances: Tolerances = DEFAULT_TOLERANCES,
    ) -> None:
        """
        Args:
            model (Model): the finalized abadyn.model describing the mechanism
            math (SpatialMath): the spatial math.
            gravity (npt.ArrayLike): the default gravity acceleration, expressed in world
            tolerances (Tolerances): the tolerances of the guards and of the singularity check
        """
        if not model.is_finalized:
            raise ModelError(f"The model {model.name} must be finalized before computing its dynamics")
        self.model = model
        self.NDoF = model.nv
        self.math = math
        self.g = self._convert_to_arraylike(gravity)
        self.tolerances = tolerances
        self.frame_velocity_representation = (
            Representations.MIXED_REPRESENTATION
        )  # default
        self._prepare_tree_cache()

    def set_frame_velocity_representation(self, representation: Representations):
        """Sets the representation of the body velocities and accelerations returned by the queries

        Args:
            representation (Representations): The representation of the frame velocity
        """
        if representation not in (
            Representations.BODY_FIXED_REPRESENTATION,
            Representations.MIXED_REPRESENTATION,
        ):
            raise NotImplementedError(
                "Only BODY_FIXED_REPRESENTATION and MIXED_REPRESENTATION are implemented"
            )
        self.frame_velocity_representation = representation

    def create_default_context(self) -> Context:
        """
        Returns:
            Context: zero joint values, identity floating base orientations and zero velocities
        """
        return Context(self.model, self.math, owner=self)

    def _check_context(self, context: Context) -> None:
        """The caches of a context are only valid for the algorithms that filled them"""
        if context.owner is not self:
            raise ValueError(
                f"The context of {context.model.name} was not created by these algorithms. "
                "Use create_default_context"
            )

    def position_kinematics(self, context: Context) -> PositionKinematicsCache:
        """Spatial transforms and world poses of every node, computed top-down from q

        Args:
            context (Context): the context

        Returns:
            PositionKinematicsCache: the cached quantities
        """
        self._check_context(context)
        cached = context.get_cache(cache.POSITION_KINEMATICS)
        if cached is not None:
            return cached

        math = self.math
        q = context.positions
        Xup: List[Optional[ArrayLike]] = [None] * self._node_count
        world_H_body: List[Optional[ArrayLike]] = [None] * self._node_count
        world_H_body[self._root_index] = math.factory.eye(4)

        for idx in self._node_indices:
            if idx == self._root_index:
                continue
            joint = self._joints_per_node[idx]
            q_i = q[joint.position_slice]
            if joint.type == JointType.FLOATING:
                check_unit_vector(
                    q_i[3:7], f"position_kinematics[{joint.name}]", self.tolerances.quaternion
                )
            H = joint.homogeneous(q_i, math)
            Xup[idx] = math.X_from_H(H)
            world_H_body[idx] = world_H_body[self._parent_indices[idx]] @ H

        logger.debug(f"Computed the position kinematics of {self.model.name}")
        return context.set_cache(
            cache.POSITION_KINEMATICS,
            PositionKinematicsCache(Xup=Xup, world_H_body=world_H_body),
        )

    def velocity_kinematics(self, context: Context) -> VelocityKinematicsCache:
        """Body spatial velocities, computed top-down from q and v

        Args:
            context (Context): the context

        Returns:
            VelocityKinematicsCache: the cached quantities
        """
        self._check_context(context)
        cached = context.get_cache(cache.VELOCITY_KINEMATICS)
        if cached is not None:
            return cached

        math = self.math
        pk = self.position_kinematics(context)
        qd = context.velocities
        v = [None] * self._node_count
        vJ = [None] * self._node_count
        c = [None] * self._node_count
        v[self._root_index] = math.factory.zeros(6)
        vJ[self._root_index] = math.factory.zeros(6)
        c[self._root_index] = math.factory.zeros(6)

        for idx in self._node_indices:
            if idx == self._root_index:
                continue
            joint = self._joints_per_node[idx]
            if joint.num_velocities > 0:
                vJ[idx] = math.mxv(self._motion_subspaces[idx], qd[joint.velocity_slice])
            else:
                vJ[idx] = math.factory.zeros(6)
            v[idx] = math.mxv(pk.Xup[idx], v[self._parent_indices[idx]]) + vJ[idx]
            c[idx] = math.mxv(math.spatial_skew(v[idx]), vJ[idx])

        logger.debug(f"Computed the velocity kinematics of {self.model.name}")
        return context.set_cache(
            cache.VELOCITY_KINEMATICS, VelocityKinematicsCache(v=v, vJ=vJ, c=c)
        )

    def body_spatial_inertias(self, context: Context) -> List[ArrayLike]:
        """6x6 spatial inertias of every node about the body origin, parameter overrides included"""
        self._check_context(context)
        cached = context.get_cache(cache.BODY_SPATIAL_INERTIA)
        if cached is not None:
            return cached

        inertias = list(self._spatial_inertias)
        for idx, body in enumerate(self._bodies_per_node):
            if context.has_inertial_override(body.name):
                inertias[idx] = body.spatial_inertia(self.math, context.get_inertial(body.name))
        return context.set_cache(cache.BODY_SPATIAL_INERTIA, inertias)

    def articulated_body_inertia(self, context: Context) -> ArticulatedBodyInertiaCache:
        """First pass of the ABA, inertia part: articulated body inertias, computed leaves to root.

        Args:
            context (Context): the context

        Raises:
            SingularConfigurationError: if a hinge inertia cannot be safely inverted. Nothing is cached

        Returns:
            ArticulatedBodyInertiaCache: the cached quantities
        """
        self._check_context(context)
        cached = context.get_cache(cache.ARTICULATED_BODY_INERTIA)
        if cached is not None:
            return cached

        math = self.math
        pk = self.position_kinematics(context)
        inertias = self.body_spatial_inertias(context)
        IA = list(inertias)
        Ia = [None] * self._node_count
        U = [None] * self._node_count
        D_inv = [None] * self._node_count
        # largest inertia magnitude in the subtree of each node
        scale = [math.max_abs(I) for I in inertias]

        for idx in self._rev_node_indices:
            if idx == self._root_index:
                Ia[idx] = IA[idx]
                continue
            parent = self._parent_indices[idx]
            joint = self._joints_per_node[idx]
            if joint.num_velocities > 0:
                S = self._motion_subspaces[idx]
                U[idx] = IA[idx] @ S
                D = self._motion_subspaces_T[idx] @ U[idx]
                self._check_hinge_inertia(idx, D, scale[idx])
                D_inv[idx] = math.inv(D)
                Ia[idx] = IA[idx] - U[idx] @ D_inv[idx] @ math.swapaxes(U[idx], -1, -2)
            else:
                Ia[idx] = IA[idx]
            IA[parent] = IA[parent] + math.shift_inertia(Ia[idx], pk.Xup[idx])
            scale[parent] = max(scale[parent], scale[idx])

        logger.debug(f"Computed the articulated body inertias of {self.model.name}")
        return context.set_cache(
            cache.ARTICULATED_BODY_INERTIA,
            ArticulatedBodyInertiaCache(inertias=inertias, IA=IA, Ia=Ia, U=U, D_inv=D_inv),
        )

    def _check_hinge_inertia(self, idx: int, D: ArrayLike, scale: float) -> None:
        """The hinge inertia is singular if its smallest eigenvalue is within roundoff of zero,
        relative to the largest inertia that took part in its computation."""
        math = self.math
        if not math.all_finite(D):
            raise SingularConfigurationError(idx)
        threshold = self.tolerances.hinge_inertia * math.eps() * scale
        if math.min_eigenvalue(D) <= threshold:
            raise SingularConfigurationError(idx)

    def aba(self, context: Context, forces: AppliedForces = None) -> ArrayLike:
        """Featherstone Articulated Body Algorithm for forward dynamics.

        Args:
            context (Context): the context holding q, v and the body parameters
            forces (AppliedForces, optional): actuation, body wrenches and gravity. Defaults to
                                              no actuation, no wrenches and the default gravity

        Raises:
            SingularConfigurationError: if a hinge inertia cannot be safely inverted

        Returns:
            ArrayLike: the generalized accelerations
        """
        self._check_context(context)
        math = self.math
        forces = AppliedForces() if forces is None else forces
        if self.NDoF == 0:
            return math.factory.zeros(0)

        tau = self._generalized_forces(forces)
        f_ext = self._body_wrenches(context, forces)
        a0 = self._gravity_acceleration(forces)

        pk = self.position_kinematics(context)
        vk = self.velocity_kinematics(context)
        abi = self.articulated_body_inertia(context)

        ws = context.workspace
        pA, u, a = ws.pA, ws.u, ws.a

        for idx in self._node_indices:
            I = abi.inertias[idx]
            pA[idx] = math.mxv(math.spatial_skew_star(vk.v[idx]), math.mxv(I, vk.v[idx]))
            if f_ext[idx] is not None:
                pA[idx] = pA[idx] - f_ext[idx]

        for idx in self._rev_node_indices:
            if idx == self._root_index:
                continue
            parent = self._parent_indices[idx]
            joint = self._joints_per_node[idx]
            pa = pA[idx] + math.mxv(abi.Ia[idx], vk.c[idx])
            if joint.num_velocities > 0:
                u[idx] = tau[joint.velocity_slice] - math.mxv(
                    self._motion_subspaces_T[idx], pA[idx]
                )
                pa = pa + math.mxv(abi.U[idx], math.mxv(abi.D_inv[idx], u[idx]))
            pA[parent] = pA[parent] + math.mxv(math.swapaxes(pk.Xup[idx], -1, -2), pa)

        a[self._root_index] = a0
        qdd = []
        for idx in self._node_indices:
            if idx == self._root_index:
                continue
            joint = self._joints_per_node[idx]
            a_pre = math.mxv(pk.Xup[idx], a[self._parent_indices[idx]]) + vk.c[idx]
            if joint.num_velocities > 0:
                U_T = math.swapaxes(abi.U[idx], -1, -2)
                qdd_i = math.mxv(abi.D_inv[idx], u[idx] - math.mxv(U_T, a_pre))
                a[idx] = a_pre + math.mxv(self._motion_subspaces[idx], qdd_i)
                qdd.append(qdd_i)
            else:
                a[idx] = a_pre

        # velocity offsets follow the node order
        return math.concatenate(qdd, axis=-1)

    def rnea(
        self, context: Context, vdot: npt.ArrayLike, forces: AppliedForces = None
    ) -> ArrayLike:
        """Recursive Newton-Euler algorithm.

        Args:
            context (Context): the context holding q, v and the body parameters
            vdot (npt.ArrayLike): the generalized accelerations
            forces (AppliedForces, optional): actuation, body wrenches and gravity

        Returns:
            ArrayLike: M(q) vdot + C(q, v) - tau_applied - sum J^T F_ext, including gravity
        """
        self._check_context(context)
        math = self.math
        forces = AppliedForces() if forces is None else forces
        vdot = self._convert_to_arraylike(vdot)
        if tuple(vdot.shape) != (self.NDoF,):
            raise ValueError(f"vdot must have shape ({self.NDoF},), got {tuple(vdot.shape)}")
        if self.NDoF == 0:
            return math.factory.zeros(0)

        tau_applied = self._generalized_forces(forces)
        f_ext = self._body_wrenches(context, forces)
        a0 = self._gravity_acceleration(forces)

        pk = self.position_kinematics(context)
        vk = self.velocity_kinematics(context)
        inertias = self.body_spatial_inertias(context)

        a = [None] * self._node_count
        f = [None] * self._node_count
        a[self._root_index] = a0
        for idx in self._node_indices:
            if idx == self._root_index:
                continue
            joint = self._joints_per_node[idx]
            a[idx] = math.mxv(pk.Xup[idx], a[self._parent_indices[idx]]) + vk.c[idx]
            if joint.num_velocities > 0:
                a[idx] = a[idx] + math.mxv(
                    self._motion_subspaces[idx], vdot[joint.velocity_slice]
                )
            I = inertias[idx]
            f[idx] = math.mxv(I, a[idx]) + math.mxv(
                math.spatial_skew_star(vk.v[idx]), math.mxv(I, vk.v[idx])
            )
            if f_ext[idx] is not None:
                f[idx] = f[idx] - f_ext[idx]

        tau: Dict[int, ArrayLike] = {}
        for idx in self._rev_node_indices:
            if idx == self._root_index:
                continue
            joint = self._joints_per_node[idx]
            if joint.num_velocities > 0:
                tau[idx] = math.mxv(self._motion_subspaces_T[idx], f[idx])
            parent = self._parent_indices[idx]
            if parent != self._root_index:
                f[parent] = f[parent] + math.mxv(math.swapaxes(pk.Xup[idx], -1, -2), f[idx])

        tau_id = math.concatenate([tau[idx] for idx in self._node_indices if idx in tau], axis=-1)
        return tau_id - tau_applied

    def spatial_accelerations(self, context: Context, vdot: npt.ArrayLike) -> List[ArrayLike]:
        """
        Args:
            context (Context): the context
            vdot (npt.ArrayLike): the generalized accelerations

        Returns:
            List[ArrayLike]: body-fixed spatial acceleration of every node, without gravity
        """
        math = self.math
        vdot = self._convert_to_arraylike(vdot)
        pk = self.position_kinematics(context)
        vk = self.velocity_kinematics(context)
        a = [None] * self._node_count
        a[self._root_index] = math.factory.zeros(6)
        for idx in self._node_indices:
            if idx == self._root_index:
                continue
            joint = self._joints_per_node[idx]
            a[idx] = math.mxv(pk.Xup[idx], a[self._parent_indices[idx]]) + vk.c[idx]
            if joint.num_velocities > 0:
                a[idx] = a[idx] + math.mxv(
                    self._motion_subspaces[idx], vdot[joint.velocity_slice]
                )
        return a

    def body_pose_in_world(self, context: Context, body_name: str) -> ArrayLike:
        """
        Args:
            context (Context): the context
            body_name (str): the body

        Returns:
            ArrayLike: the homogeneous transform world_H_body
        """
        node_idx = self.model.get_body(body_name).node_idx
        return self.position_kinematics(context).world_H_body[node_idx]

    def frame_pose_in_world(self, context: Context, frame_name: str) -> ArrayLike:
        """
        Args:
            context (Context): the context
            frame_name (str): a frame or a body

        Returns:
            ArrayLike: the homogeneous transform world_H_frame
        """
        frame = self.model.get_frame(frame_name)
        body_H_frame = self.math.asarray(frame.pose.homogeneous())
        return self.body_pose_in_world(context, frame.body) @ body_H_frame

    def relative_pose(self, context: Context, frame_A: str, frame_B: str) -> ArrayLike:
        """
        Args:
            context (Context): the context
            frame_A (str): the reference frame
            frame_B (str): the measured frame

        Returns:
            ArrayLike: the homogeneous transform A_H_B
        """
        world_H_A = self.frame_pose_in_world(context, frame_A)
        world_H_B = self.frame_pose_in_world(context, frame_B)
        return self.math.homogeneous_inverse(world_H_A) @ world_H_B

    def body_spatial_velocity(self, context: Context, body_name: str) -> ArrayLike:
        """
        Args:
            context (Context): the context
            body_name (str): the body

        Returns:
            ArrayLike: the body velocity in the active frame velocity representation
        """
        node_idx = self.model.get_body(body_name).node_idx
        v = self.velocity_kinematics(context).v[node_idx]
        if self.frame_velocity_representation == Representations.BODY_FIXED_REPRESENTATION:
            return v
        world_H_body = self.position_kinematics(context).world_H_body[node_idx]
        return self.math.mxv(self.math.adjoint_mixed(world_H_body), v)

    def body_spatial_acceleration(
        self, context: Context, body_name: str, vdot: npt.ArrayLike
    ) -> ArrayLike:
        """
        Args:
            context (Context): the context
            body_name (str): the body
            vdot (npt.ArrayLike): the generalized accelerations

        Returns:
            ArrayLike: the body acceleration in the active frame velocity representation
        """
        math = self.math
        node_idx = self.model.get_body(body_name).node_idx
        a = self.spatial_accelerations(context, vdot)[node_idx]
        if self.frame_velocity_representation == Representations.BODY_FIXED_REPRESENTATION:
            return a
        v = self.velocity_kinematics(context).v[node_idx]
        # time derivative of the mixed velocity [R v_lin; R omega]
        lin = a[:3] + math.mxv(math.skew(v[3:]), v[:3])
        a_body_origin = math.concatenate([lin, a[3:]], axis=-1)
        world_H_body = self.position_kinematics(context).world_H_body[node_idx]
        return math.mxv(math.adjoint_mixed(world_H_body), a_body_origin)

    def get_total_mass(self, context: Context = None) -> float:
        """Returns the total mass of the mechanism

        Args:
            context (Context, optional): if given, the mass overrides of the context are used

        Returns:
            mass: The total mass
        """
        if context is None:
            return self.model.get_total_mass()
        return sum(context.get_mass(name) for name in self.model.bodies)

    def _generalized_forces(self, forces: AppliedForces) -> ArrayLike:
        if forces.generalized_forces is None:
            return self.math.factory.zeros(self.NDoF)
        tau = self._convert_to_arraylike(forces.generalized_forces)
        if tuple(tau.shape) != (self.NDoF,):
            raise ValueError(
                f"The generalized forces must have shape ({self.NDoF},), got {tuple(tau.shape)}"
            )
        return tau

    def _body_wrenches(self, context: Context, forces: AppliedForces) -> List[Optional[ArrayLike]]:
        """External wrenches rotated into the body frames. The application point is the body origin"""
        f_ext = [None] * self._node_count
        if not forces.body_wrenches:
            return f_ext
        pk = self.position_kinematics(context)
        for name, wrench in forces.body_wrenches.items():
            node_idx = self.model.get_body(name).node_idx
            wrench = self._convert_to_arraylike(wrench)
            if tuple(wrench.shape) != (6,):
                raise ValueError(f"The wrench on {name} must have shape (6,), got {tuple(wrench.shape)}")
            body_X_world = self.math.adjoint_mixed_inverse(pk.world_H_body[node_idx])
            f_ext[node_idx] = self.math.mxv(body_X_world, wrench)
        return f_ext

    def _gravity_acceleration(self, forces: AppliedForces) -> ArrayLike:
        """The fictitious world acceleration that accounts for gravity"""
        g = self.g if forces.gravity is None else self._convert_to_arraylike(forces.gravity)
        return self.math.concatenate([-g, self.math.factory.zeros(3)], axis=-1)

    def _convert_to_arraylike(self, *args):
        """Convert inputs to ArrayLike if they are not already.
        Args:
            *args: Input arguments to be converted.
        Returns:
            Converted arguments as ArrayLike.
        """
        if not args:
            raise ValueError("At least one argument is required")

        converted = []
        for arg in args:
            if isinstance(arg, ArrayLike):
                converted.append(arg)
            else:
                converted.append(self.math.asarray(arg))
        return converted[0] if len(converted) == 1 else converted

    def _prepare_tree_cache(self) -> None:
        """Pre-compute static tree data so the dynamic algorithms avoid repeated Python work."""
        nodes = list(self.model.tree)
        node_count = len(nodes)
        self._node_indices = tuple(range(node_count))
        self._rev_node_indices = tuple(reversed(self._node_indices))
        self._parent_indices = [-1] * node_count
        self._motion_subspaces: List[Optional[ArrayLike]] = [None] * node_count
        self._motion_subspaces_T: List[Optional[ArrayLike]] = [None] * node_count
        self._spatial_inertias: List[ArrayLike] = [None] * node_count
        self._joints_per_node: List[Optional[Joint]] = [None] * node_count
        self._bodies_per_node = [node.body for node in nodes]

        for idx, node in enumerate(nodes):
            body, joint, parent_body = node.get_elements()
            self._joints_per_node[idx] = joint
            self._spatial_inertias[idx] = body.spatial_inertia(self.math)
            if parent_body is not None:
                self._parent_indices[idx] = parent_body.node_idx
            if joint is not None and joint.num_velocities > 0:
                S = joint.motion_subspace()
                self._motion_subspaces[idx] = self.math.asarray(S)
                self._motion_subspaces_T[idx] = self.math.asarray(S.T)

        self._root_index = self.model.tree.get_idx_from_name(self.model.tree.root)
        self._node_count = node_count

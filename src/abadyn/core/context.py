# Copyright (C) Istituto Italiano di Tecnologia (IIT). All rights reserved.

import dataclasses
import logging
from typing import Any, Dict, List, Optional

import numpy as np
import numpy.typing as npt

from abadyn.core.cache import KINEMATICS_GRAPH, STATE_SOURCES, DependencyGraph, VersionedBuffer
from abadyn.core.constants import WORLD_BODY_NAME
from abadyn.core.errors import ModelError
from abadyn.core.spatial_math import ArrayLike, SpatialMath
from abadyn.model import Inertial, Model

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class AppliedForces:
    """Forces acting on the mechanism at the current instant.

    Args:
        generalized_forces (npt.ArrayLike, optional): actuation, one entry per generalized velocity
        body_wrenches (Dict[str, npt.ArrayLike], optional): [force; torque] applied at the origin
            of each named body, expressed in the world frame
        gravity (npt.ArrayLike, optional): gravity acceleration in world. None uses the default
            gravity of the computations object
    """

    generalized_forces: Optional[npt.ArrayLike] = None
    body_wrenches: Optional[Dict[str, npt.ArrayLike]] = None
    gravity: Optional[npt.ArrayLike] = None


@dataclasses.dataclass
class PositionKinematicsCache:
    """Per node: child_X_parent spatial transforms and world_H_body homogeneous transforms"""

    Xup: List[Optional[ArrayLike]]
    world_H_body: List[ArrayLike]


@dataclasses.dataclass
class VelocityKinematicsCache:
    """Per node: body spatial velocity, joint velocity and velocity product acceleration, in body frame"""

    v: List[ArrayLike]
    vJ: List[ArrayLike]
    c: List[ArrayLike]


@dataclasses.dataclass
class ArticulatedBodyInertiaCache:
    """Per node quantities of the first ABA pass that only depend on q and on the body parameters"""

    inertias: List[ArrayLike]
    IA: List[ArrayLike]
    Ia: List[ArrayLike]
    U: List[Optional[ArrayLike]]
    D_inv: List[Optional[ArrayLike]]


@dataclasses.dataclass
class AbaWorkspace:
    """Buffers of the velocity dependent ABA passes, allocated once per context"""

    pA: List[Any]
    u: List[Any]
    a: List[Any]

    @staticmethod
    def allocate(node_count: int) -> "AbaWorkspace":
        return AbaWorkspace(
            pA=[None] * node_count, u=[None] * node_count, a=[None] * node_count
        )


class Context:
    """Owns the state of a model instance (q, v and body parameter overrides) and its caches.

    Every cache entry stores a snapshot of the versions of the state it was computed from;
    changing q, v or a body parameter bumps the corresponding version, so that the stale
    entries are recomputed the next time they are requested. A context must be used by one
    evaluation at a time: use clone to get an independent copy.
    """

    def __init__(
        self,
        model: Model,
        math: SpatialMath,
        graph: DependencyGraph = KINEMATICS_GRAPH,
        owner: Any = None,
    ) -> None:
        """
        Args:
            model (Model): a finalized model
            math (SpatialMath): the backend math used to store the state
            graph (DependencyGraph): the declaration of the cache entries
            owner (Any, optional): the algorithms that fill the caches. Only the owner may evaluate the context
        """
        if not model.is_finalized:
            raise ModelError(f"Cannot create a context: the model {model.name} is not finalized")
        self.model = model
        self.math = math
        self.owner = owner
        self._graph = graph
        self._versions = {source: 0 for source in STATE_SOURCES}
        self._buffers = {name: VersionedBuffer() for name in graph.entries}
        self._inertials: Dict[str, Inertial] = {}
        self._q = math.asarray(self._default_positions())
        self._v = math.factory.zeros(model.nv)
        self.workspace = AbaWorkspace.allocate(len(model.tree))

    def _default_positions(self) -> np.ndarray:
        q = np.zeros(self.model.nq)
        for joint in self.model.joints.values():
            q[joint.position_slice] = joint.default_positions()
        return q

    def _bump(self, source: str) -> None:
        self._versions[source] += 1

    def version(self, source: str) -> int:
        """
        Args:
            source (str): one of q, v, parameters

        Returns:
            int: the number of times the source has been changed
        """
        return self._versions[source]

    def _snapshot(self, name: str) -> tuple:
        return tuple(self._versions[s] for s in self._graph.sources(name))

    def is_cache_valid(self, name: str) -> bool:
        """
        Args:
            name (str): the cache entry

        Returns:
            bool: True if the entry was computed from the current state
        """
        buffer = self._buffers[name]
        return buffer.versions is not None and buffer.versions == self._snapshot(name)

    def get_cache(self, name: str) -> Any:
        """Returns the cached value of the entry, None if it is missing or stale"""
        if self.is_cache_valid(name):
            return self._buffers[name].data
        return None

    def set_cache(self, name: str, data: Any) -> Any:
        buffer = self._buffers[name]
        buffer.data = data
        buffer.versions = self._snapshot(name)
        return data

    def _convert(self, x: npt.ArrayLike, size: int, what: str) -> ArrayLike:
        # the caller keeps no handle on the stored state
        x = self.math.factory.copy(x)
        if tuple(x.shape) != (size,):
            raise ValueError(f"{what} must have shape ({size},), got {tuple(x.shape)}")
        return x

    @property
    def positions(self) -> ArrayLike:
        return self._q

    @property
    def velocities(self) -> ArrayLike:
        return self._v

    def get_positions(self) -> npt.ArrayLike:
        """
        Returns:
            npt.ArrayLike: a copy of the generalized positions
        """
        return self.math.factory.copy(self._q).array

    def get_velocities(self) -> npt.ArrayLike:
        """
        Returns:
            npt.ArrayLike: a copy of the generalized velocities
        """
        return self.math.factory.copy(self._v).array

    def set_positions(self, q: npt.ArrayLike) -> None:
        self._q = self._convert(q, self.model.nq, "The generalized positions")
        self._bump("q")

    def set_velocities(self, v: npt.ArrayLike) -> None:
        self._v = self._convert(v, self.model.nv, "The generalized velocities")
        self._bump("v")

    def _replace_slice(self, x: ArrayLike, s: slice, values: ArrayLike) -> ArrayLike:
        return self.math.concatenate([x[: s.start], values, x[s.stop :]], axis=-1)

    def set_joint_positions(self, joint_name: str, values: npt.ArrayLike) -> None:
        """Sets the positions of one joint, leaving the others untouched"""
        joint = self.model.get_joint(joint_name)
        values = self._convert(values, joint.num_positions, f"The positions of {joint_name}")
        self._q = self._replace_slice(self._q, joint.position_slice, values)
        self._bump("q")

    def set_joint_velocities(self, joint_name: str, values: npt.ArrayLike) -> None:
        """Sets the velocities of one joint, leaving the others untouched"""
        joint = self.model.get_joint(joint_name)
        values = self._convert(values, joint.num_velocities, f"The velocities of {joint_name}")
        self._v = self._replace_slice(self._v, joint.velocity_slice, values)
        self._bump("v")

    def get_joint_positions(self, joint_name: str) -> npt.ArrayLike:
        position_slice = self.model.get_joint(joint_name).position_slice
        return self.math.factory.copy(self._q[position_slice]).array

    def get_joint_velocities(self, joint_name: str) -> npt.ArrayLike:
        velocity_slice = self.model.get_joint(joint_name).velocity_slice
        return self.math.factory.copy(self._v[velocity_slice]).array

    def get_inertial(self, body_name: str) -> Inertial:
        """
        Args:
            body_name (str): the body

        Returns:
            Inertial: the inertial of the body in this context, overrides included
        """
        body = self.model.get_body(body_name)
        return self._inertials.get(body_name, body.inertial)

    def has_inertial_override(self, body_name: str) -> bool:
        return body_name in self._inertials

    def set_inertial(self, body_name: str, inertial: Inertial) -> None:
        """Overrides mass, unit inertia and center of mass of a body in this context only"""
        self.model.get_body(body_name)
        if body_name == WORLD_BODY_NAME:
            raise ValueError(f"The inertial of {WORLD_BODY_NAME} cannot be changed")
        self._inertials[body_name] = inertial
        self._bump("parameters")
        logger.debug(f"Set the inertial of {body_name} to {inertial}")

    def set_mass(self, body_name: str, mass: float) -> None:
        """Overrides the mass of a body in this context only. The unit inertia is kept"""
        self.set_inertial(body_name, self.get_inertial(body_name).with_mass(mass))

    def get_mass(self, body_name: str) -> float:
        return self.get_inertial(body_name).mass

    def clone(self) -> "Context":
        """
        Returns:
            Context: a context with the same state, owner and empty caches, independent from this one
        """
        other = Context(self.model, self.math, self._graph, self.owner)
        other._q = self._q
        other._v = self._v
        other._inertials = dict(self._inertials)
        return other

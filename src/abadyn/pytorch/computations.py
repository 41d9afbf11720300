# Copyright (C) Istituto Italiano di Tecnologia (IIT). All rights reserved.


import torch

from abadyn.core import mass_matrix_oracle
from abadyn.core.constants import (
    DEFAULT_GRAVITY,
    DEFAULT_TOLERANCES,
    Representations,
    Tolerances,
)
from abadyn.core.context import AppliedForces, Context
from abadyn.core.rbd_algorithms import RBDAlgorithms
from abadyn.model import Model
from abadyn.pytorch.torch_like import SpatialMath


class KinDynComputations:
    """This is a small class that retrieves the dynamics of a kinematic tree using PyTorch."""

    def __init__(
        self,
        model: Model,
        gravity: torch.Tensor = torch.tensor(DEFAULT_GRAVITY, dtype=torch.float64),
        tolerances: Tolerances = DEFAULT_TOLERANCES,
    ) -> None:
        """
        Args:
            model (Model): the finalized model of the mechanism
            gravity (torch.Tensor, optional): the gravity acceleration in world. Defaults to [0, 0, -9.80665].
            tolerances (Tolerances, optional): tolerances of the guards and of the singular hinge detection
        """
        math = SpatialMath()
        self.rbdalgos = RBDAlgorithms(
            model=model, math=math, gravity=gravity, tolerances=tolerances
        )
        self.model = model
        self.NDoF = self.rbdalgos.NDoF
        self.g = gravity

    def set_frame_velocity_representation(
        self, representation: Representations
    ) -> None:
        """Sets the representation of the velocity of the frames

        Args:
            representation (Representations): The representation of the velocity
        """
        self.rbdalgos.set_frame_velocity_representation(representation)

    def create_default_context(self) -> Context:
        """Returns a context with zero joint values, identity orientations and zero velocities"""
        return self.rbdalgos.create_default_context()

    def forward_dynamics(self, context: Context, forces: AppliedForces = None) -> torch.Tensor:
        """Returns the generalized accelerations computed with the Articulated Body Algorithm

        Args:
            context (Context): the context holding q, v and the body parameters
            forces (AppliedForces, optional): actuation, body wrenches and gravity

        Returns:
            vdot (torch.Tensor): the generalized accelerations
        """
        return self.rbdalgos.aba(context, forces).array

    def inverse_dynamics(
        self, context: Context, vdot: torch.Tensor, forces: AppliedForces = None
    ) -> torch.Tensor:
        """Returns the generalized forces computed with the Recursive Newton-Euler algorithm

        Args:
            context (Context): the context holding q, v and the body parameters
            vdot (torch.Tensor): the generalized accelerations
            forces (AppliedForces, optional): actuation, body wrenches and gravity

        Returns:
            tau (torch.Tensor): M(q) vdot + C(q, v) - tau_applied - sum J^T F_ext
        """
        return self.rbdalgos.rnea(context, vdot, forces).array

    def mass_matrix(self, context: Context) -> torch.Tensor:
        """Returns the Mass Matrix computed column by column with inverse dynamics

        Args:
            context (Context): the context

        Returns:
            M (torch.Tensor): Mass Matrix
        """
        M = mass_matrix_oracle.mass_matrix_via_inverse_dynamics(self.rbdalgos, context)
        return self.rbdalgos.math.asarray(M).array

    def bias_term(self, context: Context, forces: AppliedForces = None) -> torch.Tensor:
        """Returns the inverse dynamics at zero acceleration

        Args:
            context (Context): the context
            forces (AppliedForces, optional): actuation, body wrenches and gravity

        Returns:
            h (torch.Tensor): the bias term C(q, v) - tau_applied
        """
        h = mass_matrix_oracle.bias_term(self.rbdalgos, context, forces)
        return self.rbdalgos.math.asarray(h).array

    def body_pose_in_world(self, context: Context, body: str) -> torch.Tensor:
        """
        Args:
            context (Context): the context
            body (str): the body

        Returns:
            H (torch.Tensor): the pose of the body as homogenous transformation matrix
        """
        return self.rbdalgos.body_pose_in_world(context, body).array

    def frame_pose_in_world(self, context: Context, frame: str) -> torch.Tensor:
        """
        Args:
            context (Context): the context
            frame (str): the frame, or a body

        Returns:
            H (torch.Tensor): the pose of the frame as homogenous transformation matrix
        """
        return self.rbdalgos.frame_pose_in_world(context, frame).array

    def relative_pose(self, context: Context, frame_A: str, frame_B: str) -> torch.Tensor:
        """
        Args:
            context (Context): the context
            frame_A (str): the reference frame
            frame_B (str): the measured frame

        Returns:
            A_H_B (torch.Tensor): the pose of frame_B in frame_A
        """
        return self.rbdalgos.relative_pose(context, frame_A, frame_B).array

    def body_spatial_velocity(self, context: Context, body: str) -> torch.Tensor:
        """
        Args:
            context (Context): the context
            body (str): the body

        Returns:
            v (torch.Tensor): the body velocity in the chosen representation
        """
        return self.rbdalgos.body_spatial_velocity(context, body).array

    def body_spatial_acceleration(
        self, context: Context, body: str, vdot: torch.Tensor
    ) -> torch.Tensor:
        """
        Args:
            context (Context): the context
            body (str): the body
            vdot (torch.Tensor): the generalized accelerations

        Returns:
            a (torch.Tensor): the body acceleration in the chosen representation
        """
        return self.rbdalgos.body_spatial_acceleration(context, body, vdot).array

    def get_total_mass(self, context: Context = None) -> float:
        """Returns the total mass of the mechanism

        Returns:
            mass: The total mass
        """
        return self.rbdalgos.get_total_mass(context)

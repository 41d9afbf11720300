# Copyright (C) Istituto Italiano di Tecnologia (IIT). All rights reserved.

from abadyn.core.constants import (
    DEFAULT_GRAVITY,
    DEFAULT_TOLERANCES,
    JointType,
    Representations,
    Tolerances,
)
from abadyn.core.context import AppliedForces, Context
from abadyn.core.errors import InvalidArgument, ModelError, SingularConfigurationError
from abadyn.model import Inertial, Model, Pose, UnitInertia

# Copyright (C) 2021 Istituto Italiano di Tecnologia (IIT). All rights reserved.

from .constants import DEFAULT_GRAVITY, DEFAULT_TOLERANCES, JointType, Representations, Tolerances
from .errors import InvalidArgument, ModelError, SingularConfigurationError

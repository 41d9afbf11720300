# Copyright (C) Istituto Italiano di Tecnologia (IIT). All rights reserved.


class InvalidArgument(ValueError):
    """Raised by the validity guards on a malformed rotation matrix or unit vector"""


class ModelError(ValueError):
    """Raised on a misuse of the model construction API or on a malformed topology"""


class SingularConfigurationError(RuntimeError):
    """Raised by the forward dynamics when a hinge inertia cannot be safely inverted"""

    def __init__(self, node_index: int) -> None:
        self.node_index = node_index
        super().__init__(
            f"Encountered singular articulated body hinge inertia for body node index {node_index}. "
            "Please ensure that this body has non-zero inertia along all axes of motion."
        )

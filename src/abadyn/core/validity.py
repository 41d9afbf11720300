# Copyright (C) Istituto Italiano di Tecnologia (IIT). All rights reserved.

"""Validity guards for unit vectors and rotation matrices.

The guards work on concrete values (numpy arrays, lists or tensors that can be
detached) and come in two flavours: ``check_*`` raises
:class:`~abadyn.core.errors.InvalidArgument`, ``warn_if_not_*`` logs a warning
and lets the caller continue.
"""

import logging
from typing import Optional, Tuple

import numpy as np
import numpy.typing as npt

from abadyn.core.constants import DEFAULT_TOLERANCES
from abadyn.core.errors import InvalidArgument

logger = logging.getLogger(__name__)


def _to_numpy(x: npt.ArrayLike) -> np.ndarray:
    if hasattr(x, "array"):
        x = x.array
    if hasattr(x, "detach"):
        x = x.detach().cpu().numpy()
    return np.asarray(x, dtype=float)


def _fmt(x: float) -> str:
    s = repr(float(x))
    return s[:-2] if s.endswith(".0") else s


def _unit_vector_message(
    v: np.ndarray, function_name: str, tolerance: float
) -> Tuple[float, Optional[str]]:
    squared_norm = float(v @ v)
    norm = float(np.sqrt(squared_norm))
    deviation = abs(norm - 1.0)
    if np.isfinite(deviation) and deviation <= tolerance:
        return squared_norm, None
    message = (
        f"{function_name}(): The unit_vector argument {' '.join(_fmt(x) for x in v)}"
        " is not a unit vector.\n"
        f"|unit_vector| = {_fmt(norm)}\n"
        f"||unit_vector| - 1| = {_fmt(deviation)} is greater than {_fmt(tolerance)}."
    )
    return squared_norm, message


def check_unit_vector(
    unit_vector: npt.ArrayLike,
    function_name: str = "check_unit_vector",
    tolerance: float = DEFAULT_TOLERANCES.unit_vector,
) -> float:
    """
    Args:
        unit_vector (npt.ArrayLike): the vector that should have unit length
        function_name (str): name of the calling function, reported in the message
        tolerance (float): allowed deviation of the norm from 1

    Returns:
        float: the squared norm of the vector

    Raises:
        InvalidArgument: if ||unit_vector| - 1| is above tolerance or not finite
    """
    squared_norm, message = _unit_vector_message(
        _to_numpy(unit_vector), function_name, tolerance
    )
    if message is not None:
        raise InvalidArgument(message)
    return squared_norm


def warn_if_not_unit_vector(
    unit_vector: npt.ArrayLike,
    function_name: str = "warn_if_not_unit_vector",
    tolerance: float = DEFAULT_TOLERANCES.unit_vector,
) -> float:
    """Same as :func:`check_unit_vector`, but logs a warning instead of raising."""
    squared_norm, message = _unit_vector_message(
        _to_numpy(unit_vector), function_name, tolerance
    )
    if message is not None:
        logger.warning(message)
    return squared_norm


def measure_of_orthonormality(R: npt.ArrayLike) -> float:
    """
    Args:
        R (npt.ArrayLike): 3x3 matrix

    Returns:
        float: max |R R^T - I|, zero for an exactly orthonormal matrix
    """
    R = _to_numpy(R)
    return float(np.max(np.abs(R @ R.T - np.eye(3))))


def project_to_rotation_matrix(M: npt.ArrayLike) -> np.ndarray:
    """
    Args:
        M (npt.ArrayLike): 3x3 matrix

    Returns:
        np.ndarray: the rotation matrix closest to M in the Frobenius norm
    """
    U, _, Vt = np.linalg.svd(_to_numpy(M))
    D = np.diag([1.0, 1.0, np.sign(np.linalg.det(U @ Vt))])
    return U @ D @ Vt


def _rotation_matrix_message(R: np.ndarray, tolerance: float) -> Optional[str]:
    if R.shape != (3, 3):
        return f"Error: Rotation matrix must be 3x3, got shape {R.shape}."
    if not np.all(np.isfinite(R)):
        return "Error: Rotation matrix contains an element that is infinity or NaN."
    measure = measure_of_orthonormality(R)
    if measure > tolerance:
        return (
            "Error: Rotation matrix is not orthonormal.\n"
            f"  Measure of orthonormality error: {measure}  (near-zero is good).\n"
            "  To calculate the proper orthonormal rotation matrix closest to the"
            " alleged rotation matrix, use project_to_rotation_matrix() (SVD)."
        )
    if np.linalg.det(R) < 0:
        return (
            "Error: Rotation matrix determinant is negative."
            " It is possible a basis is left-handed."
        )
    return None


def check_rotation_matrix(
    R: npt.ArrayLike, tolerance: float = DEFAULT_TOLERANCES.orthonormality
) -> np.ndarray:
    """
    Args:
        R (npt.ArrayLike): the alleged rotation matrix
        tolerance (float): allowed measure of orthonormality

    Returns:
        np.ndarray: R as a numpy array

    Raises:
        InvalidArgument: if R is not finite, not orthonormal or left-handed
    """
    R = _to_numpy(R)
    message = _rotation_matrix_message(R, tolerance)
    if message is not None:
        raise InvalidArgument(message)
    return R


def warn_if_not_rotation_matrix(
    R: npt.ArrayLike, tolerance: float = DEFAULT_TOLERANCES.orthonormality
) -> bool:
    """Same checks as :func:`check_rotation_matrix`. Returns False and logs a warning on failure."""
    message = _rotation_matrix_message(_to_numpy(R), tolerance)
    if message is not None:
        logger.warning(message)
        return False
    return True

"""Reference forward dynamics through the mass matrix.

The mass matrix is assembled column by column from inverse dynamics and the system
M(q) vdot = tau - C(q, v) is solved with a Cholesky factorization. It is O(n^2) in the
number of bodies and it is only meant to cross-check the articulated body algorithm.
"""

import numpy as np
import numpy.typing as npt
import scipy.linalg

from abadyn.core.context import AppliedForces, Context
from abadyn.core.rbd_algorithms import RBDAlgorithms


def _to_numpy(x) -> np.ndarray:
    x = x.array if hasattr(x, "array") else x
    if hasattr(x, "detach"):
        x = x.detach().cpu().numpy()
    return np.asarray(x, dtype=float)


def mass_matrix_via_inverse_dynamics(algos: RBDAlgorithms, context: Context) -> np.ndarray:
    """
    Args:
        algos (RBDAlgorithms): the algorithms
        context (Context): the context, only q and the body parameters are used

    Returns:
        np.ndarray: the nv x nv mass matrix, one unit acceleration per column
    """
    nv = algos.NDoF
    static = context.clone()
    static.set_velocities(np.zeros(nv))
    no_gravity = AppliedForces(gravity=np.zeros(3))
    M = np.zeros((nv, nv))
    for i in range(nv):
        vdot = np.zeros(nv)
        vdot[i] = 1.0
        M[:, i] = _to_numpy(algos.rnea(static, vdot, no_gravity))
    # symmetric up to roundoff
    return (M + M.T) / 2


def bias_term(
    algos: RBDAlgorithms, context: Context, forces: AppliedForces = None
) -> np.ndarray:
    """
    Args:
        algos (RBDAlgorithms): the algorithms
        context (Context): the context
        forces (AppliedForces, optional): the applied forces

    Returns:
        np.ndarray: C(q, v) - tau_applied, inverse dynamics at zero acceleration
    """
    return _to_numpy(algos.rnea(context, np.zeros(algos.NDoF), forces))


def forward_dynamics_via_mass_matrix(
    algos: RBDAlgorithms, context: Context, forces: AppliedForces = None
) -> np.ndarray:
    """
    Args:
        algos (RBDAlgorithms): the algorithms
        context (Context): the context
        forces (AppliedForces, optional): the applied forces

    Returns:
        np.ndarray: the generalized accelerations solving M vdot = -bias
    """
    if algos.NDoF == 0:
        return np.zeros(0)
    M = mass_matrix_via_inverse_dynamics(algos, context)
    rhs = -bias_term(algos, context, forces)
    return scipy.linalg.cho_solve(scipy.linalg.cho_factor(M), rhs)


def condition_number(M: npt.ArrayLike) -> float:
    """2-norm condition number of a matrix, 1 for an empty one"""
    M = np.asarray(M, dtype=float)
    if M.size == 0:
        return 1.0
    return float(np.linalg.cond(M))
